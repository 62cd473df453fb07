import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)

APP_TITLE = "MIPS PIPELINE VIEWER"
WINDOW_MIN_W = 1200
WINDOW_MIN_H = 750
STAGE_NAMES = ["IF", "ID", "EX", "MEM", "WB"]
STAGE_INFO = {
    "IF": ("Instruction Fetch", "Loads the instruction from memory into the processor."),
    "ID": ("Instruction Decode", "Decodes the instruction and reads the source registers."),
    "EX": ("Execute", "Performs ALU operations or memory address calculation."),
    "MEM": ("Memory Access", "Reads or writes data memory when needed."),
    "WB": ("Write Back", "Writes the result into the destination register."),
}
HEX_WORD_LEN = 8
DEFAULT_TICK_MS = 1000
MIN_SPEED = 0.5
MAX_SPEED = 5.0
SAMPLE_PROGRAM = "8d280000\n010b5020\n01495822\nad6b0004"

CELL_W = 56
CELL_H = 36
INSTR_COL_W = 220
BG = "#0b1220"
CARD_BG = "#0f172a"
ACTIVE_COLOR = "#06b6d4"
TEXT_COLOR = "#e6eef8"
STAGE_BG = "#071428"
STAGE_LINE = "#1e3a8a"
STALL_COLOR = "#fbbf24"
PAST_COLOR = "#1f2937"
STAGE_COLORS = {
    "IF": "#3b82f6",
    "ID": "#6366f1",
    "EX": "#a855f7",
    "MEM": "#ec4899",
    "WB": "#ef4444",
}

ENV_TICK_MS = "PIPELINE_VIEWER_TICK_MS"
ENV_MODE = "PIPELINE_VIEWER_MODE"
MODE_NAMES = ("normal", "stall", "forwarding")

def tick_interval_ms(environ=None) -> int:
    environ = os.environ if environ is None else environ
    raw = environ.get(ENV_TICK_MS)
    if not raw:
        return DEFAULT_TICK_MS
    try:
        value = int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not an integer", ENV_TICK_MS, raw)
        return DEFAULT_TICK_MS
    if value <= 0:
        logger.warning("ignoring %s=%r: must be positive", ENV_TICK_MS, raw)
        return DEFAULT_TICK_MS
    return value

def default_mode_name(environ=None) -> Optional[str]:
    environ = os.environ if environ is None else environ
    raw = environ.get(ENV_MODE)
    if not raw:
        return None
    name = raw.strip().lower()
    if name not in MODE_NAMES:
        logger.warning("ignoring %s=%r: expected one of %s", ENV_MODE, raw, ", ".join(MODE_NAMES))
        return None
    return name
