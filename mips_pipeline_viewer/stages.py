from enum import Enum, IntEnum
from .config import STAGE_NAMES, STAGE_INFO

class Stage(IntEnum):
    IF = 0
    ID = 1
    EX = 2
    MEM = 3
    WB = 4
    @property
    def label(self) -> str:
        return STAGE_NAMES[self.value]
    @property
    def title(self) -> str:
        return STAGE_INFO[self.label][0]
    @property
    def description(self) -> str:
        return STAGE_INFO[self.label][1]

class Mode(str, Enum):
    NORMAL = "normal"
    STALL = "stall"
    FORWARDING = "forwarding"
    @classmethod
    def parse(cls, value) -> "Mode":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())

STAGE_COUNT = len(Stage)
