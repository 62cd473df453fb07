"""Register-dependency decoding of 32-bit MIPS instruction words.

Only enough of the encoding is looked at to tell which registers an
instruction reads and which one it writes:

    opcode = bits 31-26, rs = bits 25-21, rt = bits 20-16, rd = bits 15-11

R-type (opcode 0) writes rd and reads rs/rt, ``lw`` writes rt and reads rs,
``sw`` writes nothing and reads rs/rt, and every other opcode is treated as
an I-type instruction writing rt and reading rs.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional

OP_RTYPE = 0x00
OP_LW = 0x23
OP_SW = 0x2B

OPCODE_NAMES = {
    0x02: "j", 0x03: "jal", 0x04: "beq", 0x05: "bne",
    0x08: "addi", 0x09: "addiu", 0x0A: "slti", 0x0C: "andi",
    0x0D: "ori", 0x0F: "lui", OP_LW: "lw", OP_SW: "sw",
}
FUNCT_NAMES = {
    0x00: "sll", 0x02: "srl", 0x08: "jr", 0x20: "add", 0x21: "addu",
    0x22: "sub", 0x23: "subu", 0x24: "and", 0x25: "or", 0x26: "xor",
    0x27: "nor", 0x2A: "slt",
}

@dataclass(frozen=True)
class DecodedInstruction:
    word: int
    opcode: int
    rs: int
    rt: int
    rd: int
    fmt: str
    dest: Optional[int]
    sources: FrozenSet[int]
    @property
    def writes(self) -> bool:
        return self.dest is not None
    @property
    def mnemonic(self) -> str:
        if self.opcode == OP_RTYPE:
            return FUNCT_NAMES.get(self.word & 0x3F, "r-type")
        return OPCODE_NAMES.get(self.opcode, f"op{self.opcode:#04x}")

def parse_word(text: str) -> int:
    return int(text.strip(), 16) & 0xFFFFFFFF

def decode(word: int) -> DecodedInstruction:
    word &= 0xFFFFFFFF
    opcode = (word >> 26) & 0x3F
    rs = (word >> 21) & 0x1F
    rt = (word >> 16) & 0x1F
    rd = (word >> 11) & 0x1F
    if opcode == OP_RTYPE:
        return DecodedInstruction(word, opcode, rs, rt, rd, "R", rd, frozenset((rs, rt)))
    if opcode == OP_SW:
        return DecodedInstruction(word, opcode, rs, rt, rd, "I", None, frozenset((rs, rt)))
    # lw and any unrecognised opcode
    return DecodedInstruction(word, opcode, rs, rt, rd, "I", rt, frozenset((rs,)))

def describe(inst: DecodedInstruction) -> str:
    """One-line summary for the instruction inspector."""
    srcs = ", ".join(f"${r}" for r in sorted(inst.sources))
    dst = f"${inst.dest}" if inst.dest is not None else "-"
    return f"{inst.word:08x}  {inst.mnemonic:<6} {inst.fmt}-type  dst={dst}  src={srcs}"
