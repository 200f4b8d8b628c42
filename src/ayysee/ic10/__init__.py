"""
Stationeers IC10 Target
=======================

Operand types, the emitted instruction subset, and the section/label
model used to assemble and link the final program text.
"""

from ayysee.ic10.types import (
    DEVICE_SLOTS,
    LOGIC_TYPES,
    MAX_LINES,
    REGISTER_COUNT,
    RA,
    SP,
    DeviceSlot,
    Label,
    Name,
    Number,
    Operand,
    ParameterRef,
    Register,
    format_number,
)
from ayysee.ic10.instructions import (
    OPCODE_TABLE,
    Instruction,
    OpcodeInfo,
    OperandKind,
    get_opcode,
)
from ayysee.ic10.program import (
    AssemblyProgram,
    LinkedProgram,
    LinkError,
    Section,
)

__all__ = [
    "DEVICE_SLOTS",
    "LOGIC_TYPES",
    "MAX_LINES",
    "REGISTER_COUNT",
    "RA",
    "SP",
    "DeviceSlot",
    "Label",
    "Name",
    "Number",
    "Operand",
    "ParameterRef",
    "Register",
    "format_number",
    "OPCODE_TABLE",
    "Instruction",
    "OpcodeInfo",
    "OperandKind",
    "get_opcode",
    "AssemblyProgram",
    "LinkedProgram",
    "LinkError",
    "Section",
]
