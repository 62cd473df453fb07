"""Reading and validating instruction text (one 8-digit hex word per line)."""
import re
from pathlib import Path
from typing import Iterable, List

from .config import HEX_WORD_LEN
from .errors import InvalidInstructionFormat

HEX_RE = re.compile(r"[0-9a-fA-F]{%d}" % HEX_WORD_LEN)

def is_hex_word(text) -> bool:
    return isinstance(text, str) and HEX_RE.fullmatch(text) is not None

def split_lines(text: str) -> List[str]:
    lines = [l.partition("#")[0].strip() for l in text.splitlines()]
    return [l for l in lines if l]

def validate_words(words: Iterable[str]) -> List[str]:
    words = list(words)
    if not words:
        raise InvalidInstructionFormat()
    invalid = [w if isinstance(w, str) else repr(w) for w in words if not is_hex_word(w)]
    if invalid:
        raise InvalidInstructionFormat(invalid)
    return words

def parse_program(text: str) -> List[str]:
    return validate_words(split_lines(text))

def load_program(path) -> List[str]:
    return parse_program(Path(path).read_text(encoding="utf-8"))
