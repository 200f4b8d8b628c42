"""
IC10 Instruction Set Definition
===============================

This module defines the subset of the Stationeers IC10 instruction set
the compiler emits, with the operand kinds each instruction accepts.

Operand Kinds
-------------
| Kind       | Accepts                   | Example         |
|------------|---------------------------|-----------------|
| REGISTER   | register only (written)   | r0              |
| VALUE      | register or number        | r1, 42, 21.5    |
| DEVICE     | device slot               | d0, db          |
| LOGIC_TYPE | property name             | Temperature     |
| NAME       | alias name                | sensor          |
| LINE       | line number or register   | 17, ra          |

Instructions are written ``mnemonic op op ...`` separated by single
spaces, one instruction per line, with an optional ``# comment``.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from ayysee.errors import SourceLocation
from ayysee.ic10.types import (
    DeviceSlot,
    Label,
    Name,
    Number,
    Operand,
    ParameterRef,
    Register,
)


# =============================================================================
# Operand Kinds
# =============================================================================

class OperandKind(Enum):
    """Kinds of operand slot in an IC10 instruction."""
    REGISTER = auto()
    VALUE = auto()
    DEVICE = auto()
    LOGIC_TYPE = auto()
    NAME = auto()
    LINE = auto()

    def accepts(self, operand: Operand) -> bool:
        """Return True if ``operand`` may appear in a slot of this kind."""
        if self is OperandKind.REGISTER:
            return isinstance(operand, (Register, ParameterRef))
        if self is OperandKind.VALUE:
            return isinstance(operand, (Register, ParameterRef, Number))
        if self is OperandKind.DEVICE:
            return isinstance(operand, DeviceSlot)
        if self in (OperandKind.LOGIC_TYPE, OperandKind.NAME):
            return isinstance(operand, Name)
        return isinstance(operand, (Label, Number, Register))


# =============================================================================
# Opcode Table
# =============================================================================

@dataclass(frozen=True)
class OpcodeInfo:
    """
    Signature of one IC10 instruction.

    Attributes:
        mnemonic: Instruction name as written
        operands: Kind of each operand slot, in order
        description: One-line summary
    """
    mnemonic: str
    operands: tuple[OperandKind, ...]
    description: str


_R = OperandKind.REGISTER
_V = OperandKind.VALUE
_D = OperandKind.DEVICE
_L = OperandKind.LINE

OPCODE_TABLE: dict[str, OpcodeInfo] = {info.mnemonic: info for info in (
    # Arithmetic
    OpcodeInfo("add", (_R, _V, _V), "r = a + b"),
    OpcodeInfo("sub", (_R, _V, _V), "r = a - b"),
    OpcodeInfo("mul", (_R, _V, _V), "r = a * b"),
    OpcodeInfo("div", (_R, _V, _V), "r = a / b"),

    # Comparison (0/1 result)
    OpcodeInfo("seq", (_R, _V, _V), "r = a == b"),
    OpcodeInfo("sne", (_R, _V, _V), "r = a != b"),
    OpcodeInfo("slt", (_R, _V, _V), "r = a < b"),
    OpcodeInfo("sgt", (_R, _V, _V), "r = a > b"),
    OpcodeInfo("sle", (_R, _V, _V), "r = a <= b"),
    OpcodeInfo("sge", (_R, _V, _V), "r = a >= b"),
    OpcodeInfo("seqz", (_R, _V), "r = a == 0"),

    # Logic
    OpcodeInfo("and", (_R, _V, _V), "r = a && b"),
    OpcodeInfo("or", (_R, _V, _V), "r = a || b"),

    # Data movement
    OpcodeInfo("move", (_R, _V), "r = a"),

    # Flow control
    OpcodeInfo("j", (_L,), "jump to line"),
    OpcodeInfo("jal", (_L,), "jump to line, ra = next line"),
    OpcodeInfo("beqz", (_V, _L), "jump to line if a == 0"),
    OpcodeInfo("yield", (), "pause until the next tick"),

    # Device I/O
    OpcodeInfo("l", (_R, _D, OperandKind.LOGIC_TYPE), "r = device.Property"),
    OpcodeInfo("s", (_D, OperandKind.LOGIC_TYPE, _V), "device.Property = a"),

    # Directives
    OpcodeInfo("alias", (OperandKind.NAME, _D), "label a device screw"),
)}


def get_opcode(mnemonic: str) -> OpcodeInfo:
    """
    Look up an instruction signature.

    Raises:
        KeyError: If the mnemonic is not part of the emitted subset
    """
    return OPCODE_TABLE[mnemonic]


# =============================================================================
# Instruction
# =============================================================================

@dataclass(frozen=True)
class Instruction:
    """
    One line of IC10 code.

    Attributes:
        mnemonic: Instruction name
        operands: Operands in order; may contain unlinked Label and
            ParameterRef values until the program is linked
        location: Source position of the construct that produced it
        origin: Short description of that construct, e.g. "loop"
        comment: Optional trailing comment
    """
    mnemonic: str
    operands: tuple[Operand, ...] = ()
    location: Optional[SourceLocation] = None
    origin: Optional[str] = None
    comment: Optional[str] = None

    def __post_init__(self):
        info = get_opcode(self.mnemonic)
        if len(info.operands) != len(self.operands):
            raise ValueError(
                f"'{self.mnemonic}' takes {len(info.operands)} operands, "
                f"got {len(self.operands)}"
            )
        for kind, operand in zip(info.operands, self.operands):
            if not kind.accepts(operand):
                raise ValueError(
                    f"'{self.mnemonic}' cannot take {operand!r} as a {kind.name} operand"
                )

    @property
    def is_linked(self) -> bool:
        return not any(isinstance(op, (Label, ParameterRef)) for op in self.operands)

    def with_operands(self, operands: tuple[Operand, ...]) -> "Instruction":
        return Instruction(
            self.mnemonic,
            operands,
            location=self.location,
            origin=self.origin,
            comment=self.comment,
        )

    def render(self, comments: bool = False) -> str:
        """Render as IC10 text, e.g. ``add r0 r1 5``."""
        text = " ".join([self.mnemonic, *(str(op) for op in self.operands)])
        if comments and self.comment:
            text = f"{text} # {self.comment}"
        return text

    def __str__(self) -> str:
        return self.render()
