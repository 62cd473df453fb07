from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .schedule import EMPTY_SCHEDULE, Schedule
from .stages import Mode, Stage

class ControllerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"

@dataclass
class SimulationState:
    """Mutable record owned by a single :class:`CycleController`."""
    instructions: List[str] = field(default_factory=list)
    words: List[int] = field(default_factory=list)
    mode: Mode = Mode.NORMAL
    current_cycle: int = 0
    schedule: Schedule = EMPTY_SCHEDULE
    status: ControllerState = ControllerState.IDLE
    @property
    def max_cycles(self) -> int:
        return self.schedule.max_cycles
    @property
    def is_running(self) -> bool:
        return self.status is ControllerState.RUNNING
    @property
    def is_finished(self) -> bool:
        return self.max_cycles > 0 and self.current_cycle >= self.max_cycles
    def instruction_stages(self) -> Tuple[Optional[Stage], ...]:
        return self.schedule.stages_at(self.current_cycle)
    def clear(self):
        self.instructions = []
        self.words = []
        self.current_cycle = 0
        self.schedule = EMPTY_SCHEDULE
        self.status = ControllerState.IDLE

@dataclass(frozen=True)
class SimulationSnapshot:
    instructions: Tuple[str, ...]
    mode: Mode
    current_cycle: int
    max_cycles: int
    is_running: bool
    is_finished: bool
    instruction_stages: Tuple[Optional[Stage], ...]
    status: ControllerState
    schedule: Schedule
    @classmethod
    def of(cls, state: SimulationState) -> "SimulationSnapshot":
        return cls(
            instructions=tuple(state.instructions),
            mode=state.mode,
            current_cycle=state.current_cycle,
            max_cycles=state.max_cycles,
            is_running=state.is_running,
            is_finished=state.is_finished,
            instruction_stages=state.instruction_stages(),
            status=state.status,
            schedule=state.schedule,
        )
    @property
    def has_started(self) -> bool:
        return self.current_cycle > 0
    @property
    def progress(self) -> int:
        if self.max_cycles <= 0:
            return 0
        return min(100, (self.current_cycle * 100) // self.max_cycles)
    @property
    def status_label(self) -> str:
        if self.status is ControllerState.IDLE:
            return "Idle"
        if self.is_finished:
            return "Finished"
        return "Running" if self.is_running else "Paused"
