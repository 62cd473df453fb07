"""Per-instruction stage timeline for a program under a hazard policy.

Instruction ``i`` normally occupies stage ``s`` at cycle ``i + s + 1``. In
Stall mode each RAW dependency on the immediately preceding instruction adds
one cycle of delay; the dependent instruction is held in ID for that cycle
and the delay is inherited by every later instruction.
"""
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .decoder import DecodedInstruction, decode
from .hazards import adjacent_dependencies
from .stages import Mode, Stage, STAGE_COUNT

@dataclass(frozen=True)
class StageTiming:
    index: int
    decoded: DecodedInstruction
    if_cycle: int
    id_cycle: int
    ex_cycle: int
    stalls: int = 0
    depends_on_previous: bool = False
    @property
    def mem_cycle(self) -> int:
        return self.ex_cycle + 1
    @property
    def wb_cycle(self) -> int:
        return self.ex_cycle + 2
    @property
    def cycles(self) -> Tuple[int, int, int, int, int]:
        return (self.if_cycle, self.id_cycle, self.ex_cycle, self.mem_cycle, self.wb_cycle)
    def stage_at(self, cycle: int) -> Optional[Stage]:
        if cycle == self.if_cycle:
            return Stage.IF
        if self.id_cycle <= cycle < self.ex_cycle:
            return Stage.ID
        if self.ex_cycle <= cycle <= self.wb_cycle:
            return Stage(Stage.EX + cycle - self.ex_cycle)
        return None
    def is_stalled_at(self, cycle: int) -> bool:
        return self.stalls > 0 and self.id_cycle <= cycle < self.id_cycle + self.stalls

@dataclass(frozen=True)
class Schedule:
    mode: Mode
    timeline: Tuple[StageTiming, ...]
    max_cycles: int
    stall_cycles: int = 0
    def __len__(self):
        return len(self.timeline)
    def stage_at(self, index: int, cycle: int) -> Optional[Stage]:
        return self.timeline[index].stage_at(cycle)
    def stages_at(self, cycle: int) -> Tuple[Optional[Stage], ...]:
        return tuple(t.stage_at(cycle) for t in self.timeline)
    def is_stalled_at(self, index: int, cycle: int) -> bool:
        return self.timeline[index].is_stalled_at(cycle)

EMPTY_SCHEDULE = Schedule(Mode.NORMAL, (), 0)

def compute_schedule(words: Sequence[int], mode: Mode) -> Schedule:
    mode = Mode.parse(mode)
    if not words:
        return Schedule(mode, (), 0)
    decoded = [decode(w) for w in words]
    deps = adjacent_dependencies(decoded)
    timeline = []
    offset = 0
    for i, inst in enumerate(decoded):
        inherited = offset
        stalls = 0
        if mode is Mode.STALL and deps[i]:
            stalls = 1
            offset += 1
        if_cycle = i + 1 + inherited
        ex_cycle = i + Stage.EX + 1 + offset
        timeline.append(StageTiming(i, inst, if_cycle, if_cycle + 1, ex_cycle, stalls, deps[i]))
    max_cycles = len(decoded) + STAGE_COUNT - 1 + offset
    return Schedule(mode, tuple(timeline), max_cycles, offset)
