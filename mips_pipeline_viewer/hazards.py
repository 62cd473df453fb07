"""Data-hazard detection between program-order-adjacent instructions."""
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from .decoder import DecodedInstruction
from .stages import Mode

class HazardKind(str, Enum):
    RAW = "RAW"
    WAW = "WAW"
    WAR = "WAR"
    STRUCTURAL = "Structural"
    CONTROL = "Control"

HAZARD_DESCRIPTIONS = {
    HazardKind.RAW: "Read-After-Write: an instruction tries to read a register before the previous instruction has written it.",
    HazardKind.WAW: "Write-After-Write: two instructions write the same register out of order.",
    HazardKind.WAR: "Write-After-Read: an instruction writes a register before an earlier one has read it.",
    HazardKind.STRUCTURAL: "Structural: two instructions need the same pipeline resource in the same cycle.",
    HazardKind.CONTROL: "Control: the next instruction depends on an unresolved branch.",
}

@dataclass(frozen=True)
class Hazard:
    index: int
    producer: int
    register: int
    kind: HazardKind = HazardKind.RAW
    @property
    def description(self) -> str:
        return HAZARD_DESCRIPTIONS[self.kind]

def detect(earlier: DecodedInstruction, later: DecodedInstruction) -> bool:
    return earlier.dest is not None and earlier.dest in later.sources

def hazards_at(schedule, cycle: int) -> List[Hazard]:
    """RAW hazards visible at ``cycle``: an instruction held in ID while its
    predecessor is in EX. Only Stall mode ever holds an instruction."""
    found = []
    if schedule.mode is not Mode.STALL:
        return found
    for timing in schedule.timeline:
        if timing.index == 0 or not timing.is_stalled_at(cycle):
            continue
        producer = schedule.timeline[timing.index - 1]
        found.append(Hazard(timing.index, producer.index, producer.decoded.dest))
    return found

def adjacent_dependencies(decoded: Sequence[DecodedInstruction]) -> List[bool]:
    return [i > 0 and detect(decoded[i - 1], decoded[i]) for i in range(len(decoded))]
