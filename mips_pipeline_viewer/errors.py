from typing import Iterable

class PipelineError(Exception):
    """Base class for errors raised by the simulation engine."""

class InvalidInstructionFormat(PipelineError, ValueError):
    def __init__(self, words: Iterable[str] = (), message: str = ""):
        self.words = list(words)
        if not message:
            if self.words:
                message = f"Invalid hex: {', '.join(self.words)} (must be 8 hex digits)."
            else:
                message = "Enter at least one instruction (8 hex digits)."
        super().__init__(message)

class InvalidStateTransition(PipelineError):
    def __init__(self, action: str, state):
        self.action = action
        self.state = state
        name = getattr(state, "value", state)
        super().__init__(f"cannot {action} while {name}")
