"""Cycle-by-cycle view of instructions flowing through a 5-stage MIPS pipeline."""
from .controller import CycleController
from .decoder import DecodedInstruction, decode
from .errors import InvalidInstructionFormat, InvalidStateTransition, PipelineError
from .hazards import HazardKind, detect, hazards_at
from .schedule import Schedule, StageTiming, compute_schedule
from .stages import Mode, Stage
from .state import ControllerState, SimulationSnapshot

__version__ = "0.1.0"
