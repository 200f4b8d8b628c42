"""
IC10 Program Assembly and Linking
=================================

The code generator writes instructions into sections: one for the
top-level code and one per function. Labels mark line offsets within a
section. Linking concatenates the sections, turns every label into an
absolute 0-based line number and every parameter reference into the
register the callee uses, and yields plain IC10 text with no label lines.

Usage:
    main = Section("main")
    main.place_label("loop_0")
    main.emit(Instruction("yield"))
    main.emit(Instruction("j", (Label("loop_0"),)))

    program = AssemblyProgram([main])
    print(program.link().render())
    # yield
    # j 0
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ayysee.ic10.instructions import Instruction
from ayysee.ic10.types import Label, Number, Operand, ParameterRef, Register

logger = logging.getLogger(__name__)


class LinkError(Exception):
    """Unresolvable symbolic operand; always a compiler bug."""
    pass


@dataclass
class Section:
    """
    A run of instructions with section-relative labels.

    Attributes:
        name: Section name for diagnostics ("main" or a function name)
        instructions: Instructions in order
        labels: Label name -> offset of the next instruction when placed
    """
    name: str
    instructions: list[Instruction] = field(default_factory=list)
    labels: dict[str, int] = field(default_factory=dict)

    def emit(self, instruction: Instruction) -> None:
        self.instructions.append(instruction)

    def place_label(self, name: str) -> None:
        """Mark the position of the next emitted instruction."""
        if name in self.labels:
            raise LinkError(f"label '{name}' placed twice in section '{self.name}'")
        self.labels[name] = len(self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)


class AssemblyProgram:
    """
    Ordered sections plus the information needed to link them.

    Attributes:
        sections: Sections in output order
        parameter_registers: (function, index) -> callee register
    """

    def __init__(
        self,
        sections: list[Section],
        parameter_registers: Optional[dict[tuple[str, int], Register]] = None,
    ):
        self.sections = sections
        self.parameter_registers = parameter_registers or {}

    @property
    def instructions(self) -> list[Instruction]:
        """All instructions in output order, still symbolic."""
        return [inst for section in self.sections for inst in section.instructions]

    def __len__(self) -> int:
        return sum(len(section) for section in self.sections)

    def label_addresses(self) -> dict[str, int]:
        """
        Compute the absolute line of every label.

        A label placed at the end of a section points at the first line
        of the next section, or one past the last line of the program.
        """
        addresses: dict[str, int] = {}
        offset = 0
        for section in self.sections:
            for name, position in section.labels.items():
                if name in addresses:
                    raise LinkError(f"label '{name}' defined in more than one section")
                addresses[name] = offset + position
            offset += len(section)
        return addresses

    def link(self) -> "LinkedProgram":
        """
        Resolve all labels and parameter references.

        Raises:
            LinkError: If a referenced label or parameter is unknown
        """
        addresses = self.label_addresses()

        def resolve(operand: Operand) -> Operand:
            if isinstance(operand, Label):
                if operand.name not in addresses:
                    raise LinkError(f"undefined label '{operand.name}'")
                return Number(addresses[operand.name])
            if isinstance(operand, ParameterRef):
                key = (operand.function, operand.index)
                if key not in self.parameter_registers:
                    raise LinkError(f"unallocated parameter {operand}")
                return self.parameter_registers[key]
            return operand

        linked = [
            inst if inst.is_linked else inst.with_operands(tuple(resolve(op) for op in inst.operands))
            for inst in self.instructions
        ]
        logger.debug(f"Linked {len(linked)} lines, {len(addresses)} labels")
        return LinkedProgram(linked)


@dataclass
class LinkedProgram:
    """Fully resolved program, ready to render."""
    instructions: list[Instruction]

    def __len__(self) -> int:
        return len(self.instructions)

    def render(self, comments: bool = False) -> str:
        """Join the instructions into IC10 source text."""
        return "\n".join(inst.render(comments) for inst in self.instructions)
