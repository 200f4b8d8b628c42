"""
IC10 Code Generator for Ayysee
==============================

This module turns a resolved Ayysee program into IC10 instructions.

Code Generation Strategy
------------------------
Every variable lives in a register for its whole lifetime; there is no
stack and no spilling. Registers come from a scope-stack allocator (see
allocator.py) and are reused once their scope closes.

Expressions are lowered bottom-up. Each node yields an operand: an
immediate for literals and constants, the variable's own register for
variables, or a register holding an intermediate result. Only the top
operation of an expression writes to the destination variable; inner
operations write to temporaries that are freed immediately.

| Source        | IC10                        |
|---------------|-----------------------------|
| a + b         | add d a b                   |
| a - b         | sub d a b                   |
| a * b         | mul d a b                   |
| a / b         | div d a b                   |
| a == b        | seq d a b                   |
| a != b        | sne d a b                   |
| a < b         | slt d a b                   |
| a > b         | sgt d a b                   |
| a <= b        | sle d a b                   |
| a >= b        | sge d a b                   |
| a && b        | and d a b                   |
| a || b        | or d a b                    |
| !a            | seqz d a                    |

``&&`` and ``||`` evaluate both sides; expressions have no side effects,
so this only costs lines, never behaviour.

Control Flow
------------
    if (c) { T } else { E }        loop { B }
        beqz c if_N_else               loop_N:
        T                              B
        j if_N_end                     j loop_N
    if_N_else:
        E
    if_N_end:

Functions
---------
Top-level code comes first and, when the program has functions, ends
with a jump past them. Function bodies follow, each starting at label
``fn_<name>``. A call moves its arguments into the callee's parameter
registers and executes ``jal``. A function returns with ``j ra``; one
that makes calls of its own first saves ``ra`` in a register.

Functions are compiled callers first. When a function is compiled, the
registers live at each of its call sites are already known and are kept
out of its allocator, together with every top-level variable. Parameter
registers are therefore unknown while the caller is generated; call
sites use symbolic ParameterRef operands that are fixed at link time.

Labels are symbolic until the final link pass turns them into absolute
line numbers; the output contains no label lines.

Usage
-----
>>> from ayysee.compiler.parser import parse_source
>>> from ayysee.compiler.resolver import resolve
>>> from ayysee.compiler.codegen import CodeGenerator
>>> program = parse_source("let x = 1 + 2;")
>>> generator = CodeGenerator(resolve(program))
>>> print(generator.generate(program).link().render())
add r0 1 2
"""

import logging
from typing import Optional

from ayysee.errors import SourceLocation
from ayysee.compiler.allocator import DeviceTable, RegisterAllocator
from ayysee.compiler.ast import (
    ProgramNode,
    Statement,
    Expression,
    Literal,
    Identifier,
    UnaryExpression,
    BinaryExpression,
    BinaryOperator,
    AliasStatement,
    ConstantStatement,
    LetStatement,
    AssignmentStatement,
    BlockStatement,
    FunctionNode,
    CallStatement,
    LoopStatement,
    IfStatement,
    ReadStatement,
    WriteStatement,
    YieldStatement,
)
from ayysee.compiler.errors import InstructionBudgetExceededError, MissingYieldError
from ayysee.compiler.resolver import (
    MAIN,
    ConstantBinding,
    Resolution,
    VariableBinding,
)
from ayysee.ic10.instructions import Instruction
from ayysee.ic10.program import AssemblyProgram, Section
from ayysee.ic10.types import (
    MAX_LINES,
    RA,
    REGISTER_COUNT,
    Label,
    Name,
    Number,
    Operand,
    ParameterRef,
    Register,
)

logger = logging.getLogger(__name__)


BINARY_MNEMONICS: dict[BinaryOperator, str] = {
    BinaryOperator.ADD: "add",
    BinaryOperator.SUB: "sub",
    BinaryOperator.MUL: "mul",
    BinaryOperator.DIV: "div",
    BinaryOperator.EQUALS: "seq",
    BinaryOperator.NOT_EQUALS: "sne",
    BinaryOperator.LOWER: "slt",
    BinaryOperator.GREATER: "sgt",
    BinaryOperator.LOWER_EQUALS: "sle",
    BinaryOperator.GREATER_EQUALS: "sge",
    BinaryOperator.CONJ: "and",
    BinaryOperator.DISJ: "or",
}

END_LABEL = "end"


def function_label(name: str) -> str:
    return f"fn_{name}"


class CodeGenerator:
    """
    Generates IC10 instructions from a resolved Ayysee AST.

    The generator owns the register pools and the device table for the
    duration of one compile; nothing is shared between compiles.

    Attributes:
        resolution: Binding tables from the resolver
        register_count: Size of the general purpose register pool
        max_lines: Line ceiling of the target chip
        emit_aliases: Emit ``alias`` lines for device definitions
        emit_comments: Attach ``# comment`` annotations to instructions
        require_yield: Treat a loop without yield as an error
        warnings: Non-fatal diagnostics collected during generation
    """

    def __init__(
        self,
        resolution: Resolution,
        register_count: int = REGISTER_COUNT,
        max_lines: int = MAX_LINES,
        emit_aliases: bool = True,
        emit_comments: bool = False,
        require_yield: bool = False,
    ):
        self.resolution = resolution
        self.register_count = register_count
        self.max_lines = max_lines
        self.emit_aliases = emit_aliases
        self.emit_comments = emit_comments
        self.require_yield = require_yield
        self.warnings: list[str] = []

        # Output
        self._section = Section(MAIN)
        self._parameter_registers: dict[tuple[str, int], Register] = {}

        # Register state
        self._allocator = RegisterAllocator(register_count)
        self._registers: dict[VariableBinding, Register] = {}
        self._temps: set[Register] = set()
        self._call_site_live: dict[str, set[Register]] = {}
        self._used_registers: set[Register] = set()

        # Device state
        self._devices = DeviceTable()

        # Label generation, one counter per construct kind
        self._label_counters: dict[str, int] = {}

        # Construct currently being lowered, stamped on each instruction
        self._location: Optional[SourceLocation] = None
        self._origin: Optional[str] = None
        self._pending_comment: Optional[str] = None

        self._yield_cache: dict[str, bool] = {}

    @property
    def registers_used(self) -> list[Register]:
        """Every register used anywhere in the program, in index order."""
        return sorted(self._used_registers, key=lambda reg: reg.index)

    def generate(self, program: ProgramNode) -> AssemblyProgram:
        """
        Generate the whole program.

        Returns:
            An unlinked AssemblyProgram

        Raises:
            CodegenError: On register exhaustion, a device slot
                conflict, an overlong program, or a loop without yield
                when yields are required
        """
        functions = [stmt for stmt in program.statements if isinstance(stmt, FunctionNode)]

        main = self._section
        for stmt in program.statements:
            self._generate_statement(stmt)
        self._used_registers |= self._allocator.used

        sections = [main]
        if functions:
            self._origin = "program end"
            self._location = program.location
            self._emit("j", Label(END_LABEL))

            root_registers = {
                reg for binding, reg in self._registers.items()
                if binding.function is None and binding.depth == 0
            }
            generated = {
                name: self._generate_function(self.resolution.functions[name], root_registers)
                for name in self.resolution.function_order
            }
            sections.extend(generated[fn.name.name] for fn in functions)

            tail = Section(END_LABEL)
            tail.place_label(END_LABEL)
            sections.append(tail)

        assembly = AssemblyProgram(sections, self._parameter_registers)
        self._check_budget(assembly)

        logger.debug(
            f"Generated {len(assembly)} lines using {len(self._used_registers)} registers"
        )
        return assembly

    # =========================================================================
    # Emission Helpers
    # =========================================================================

    def _emit(self, mnemonic: str, *operands: Operand) -> None:
        """Append one instruction to the current section."""
        comment = self._pending_comment if self.emit_comments else None
        self._pending_comment = None
        self._section.emit(Instruction(
            mnemonic,
            tuple(operands),
            location=self._location,
            origin=self._origin,
            comment=comment,
        ))

    def _new_label(self, kind: str) -> int:
        """Return the next sequence number for a label kind."""
        number = self._label_counters.get(kind, 0)
        self._label_counters[kind] = number + 1
        return number

    def _enter(self, origin: str, location: SourceLocation, comment: Optional[str] = None) -> None:
        self._origin = origin
        self._location = location
        if comment:
            self._annotate(comment)

    def _annotate(self, comment: str) -> None:
        """Attach a comment to the next emitted instruction."""
        if self._pending_comment:
            self._pending_comment = f"{self._pending_comment}; {comment}"
        else:
            self._pending_comment = comment

    # =========================================================================
    # Register Helpers
    # =========================================================================

    def _temp(self) -> Register:
        reg = self._allocator.allocate(f"{self._origin} (temporary)", self._location)
        self._temps.add(reg)
        return reg

    def _release(self, operand: Operand) -> None:
        """Free ``operand`` if it is a temporary register."""
        if isinstance(operand, Register) and operand in self._temps:
            self._temps.discard(operand)
            self._allocator.release(operand)

    def _variable_register(self, identifier: Identifier) -> Register:
        return self._registers[self.resolution.binding_of(identifier)]

    def _define_variable(self, identifier: Identifier) -> Register:
        binding = self.resolution.binding_of(identifier)
        reg = self._allocator.allocate(f"variable '{identifier.name}'", identifier.location)
        self._registers[binding] = reg
        return reg

    # =========================================================================
    # Statements
    # =========================================================================

    def _generate_statement(self, stmt: Statement) -> None:
        if isinstance(stmt, AliasStatement):
            self._generate_alias(stmt)
        elif isinstance(stmt, ConstantStatement):
            pass  # folded into every use
        elif isinstance(stmt, LetStatement):
            self._enter(f"definition of '{stmt.name.name}'", stmt.location, f"let {stmt.name.name}")
            target = self._define_variable(stmt.name)
            self._evaluate_into(stmt.initializer, target)
        elif isinstance(stmt, AssignmentStatement):
            self._enter(f"assignment to '{stmt.target.name}'", stmt.location, f"{stmt.target.name} = ...")
            self._evaluate_into(stmt.value, self._variable_register(stmt.target))
        elif isinstance(stmt, BlockStatement):
            self._generate_block(stmt)
        elif isinstance(stmt, FunctionNode):
            pass  # emitted after the top-level code
        elif isinstance(stmt, CallStatement):
            self._generate_call(stmt)
        elif isinstance(stmt, LoopStatement):
            self._generate_loop(stmt)
        elif isinstance(stmt, IfStatement):
            self._generate_if(stmt)
        elif isinstance(stmt, ReadStatement):
            self._generate_read(stmt)
        elif isinstance(stmt, WriteStatement):
            self._generate_write(stmt)
        elif isinstance(stmt, YieldStatement):
            self._enter("yield", stmt.location)
            self._emit("yield")
        else:
            raise TypeError(f"unknown statement type {type(stmt).__name__}")

        # An annotation the statement did not consume (an empty else block,
        # a self-assignment) must not attach to the next statement's code
        self._pending_comment = None

    def _generate_block(self, block: BlockStatement) -> None:
        with self._allocator.frame():
            for stmt in block.statements:
                self._generate_statement(stmt)

    def _generate_alias(self, stmt: AliasStatement) -> None:
        slot = self.resolution.device_of(stmt.device)
        self._devices.bind(stmt.name.name, slot, stmt.location)
        if self.emit_aliases:
            self._enter(f"alias '{stmt.name.name}'", stmt.location)
            self._emit("alias", Name(stmt.name.name), slot)

    def _generate_loop(self, stmt: LoopStatement) -> None:
        if not self._block_yields(stmt.body):
            if self.require_yield:
                raise MissingYieldError(stmt.location)
            message = (
                f"{stmt.location}: warning: loop never yields and will use "
                f"its full line allowance every tick"
            )
            logger.warning(message)
            self.warnings.append(message)

        label = f"loop_{self._new_label('loop')}"
        self._section.place_label(label)
        self._annotate("loop")
        self._generate_block(stmt.body)

        self._enter("loop", stmt.location)
        self._emit("j", Label(label))

    def _generate_if(self, stmt: IfStatement) -> None:
        number = self._new_label("if")
        else_label = f"if_{number}_else"
        end_label = f"if_{number}_end"

        self._enter("if condition", stmt.location, "if")
        condition = self._expression(stmt.condition)
        self._emit("beqz", condition, Label(else_label if stmt.else_branch else end_label))
        self._release(condition)

        self._generate_block(stmt.then_branch)

        if stmt.else_branch is not None:
            self._enter("if", stmt.location)
            self._emit("j", Label(end_label))
            self._section.place_label(else_label)
            self._annotate("else")
            self._generate_block(stmt.else_branch)

        self._section.place_label(end_label)

    def _generate_read(self, stmt: ReadStatement) -> None:
        slot = self.resolution.device_of(stmt.device)
        self._enter(
            f"read of {slot}.{stmt.property_name}",
            stmt.location,
            f"read {slot}.{stmt.property_name}",
        )
        self._emit("l", self._variable_register(stmt.target), slot, Name(stmt.property_name))

    def _generate_write(self, stmt: WriteStatement) -> None:
        slot = self.resolution.device_of(stmt.device)
        self._enter(
            f"write to {slot}.{stmt.property_name}",
            stmt.location,
            f"write {slot}.{stmt.property_name}",
        )
        value = self._expression(stmt.value)
        self._emit("s", slot, Name(stmt.property_name), value)
        self._release(value)

    def _block_yields(self, block: BlockStatement) -> bool:
        """True if a yield is reachable from the block, including through calls."""
        for stmt in block.statements:
            if isinstance(stmt, YieldStatement):
                return True
            if isinstance(stmt, BlockStatement) and self._block_yields(stmt):
                return True
            if isinstance(stmt, LoopStatement) and self._block_yields(stmt.body):
                return True
            if isinstance(stmt, IfStatement):
                if self._block_yields(stmt.then_branch):
                    return True
                if stmt.else_branch is not None and self._block_yields(stmt.else_branch):
                    return True
            if isinstance(stmt, CallStatement) and self._function_yields(stmt.function.name):
                return True
        return False

    def _function_yields(self, name: str) -> bool:
        if name not in self._yield_cache:
            self._yield_cache[name] = self._block_yields(self.resolution.functions[name].body)
        return self._yield_cache[name]

    # =========================================================================
    # Functions
    # =========================================================================

    def _generate_call(self, stmt: CallStatement) -> None:
        """
        Lower a call statement.

        All arguments are evaluated before any is moved, and their
        temporaries stay reserved until the jump, so no argument can be
        clobbered by the callee's parameter registers.
        """
        name = stmt.function.name
        self._enter(f"call to '{name}'", stmt.location, f"call {name}")

        arguments = [self._expression(arg) for arg in stmt.arguments]
        self._call_site_live.setdefault(name, set()).update(self._allocator.live())

        for index, operand in enumerate(arguments):
            self._emit("move", ParameterRef(name, index), operand)
        self._emit("jal", Label(function_label(name)))

        for operand in arguments:
            self._release(operand)

    def _generate_function(self, node: FunctionNode, root_registers: set[Register]) -> Section:
        name = node.name.name
        forbidden = root_registers | self._call_site_live.get(name, set())

        self._section = Section(name)
        self._allocator = RegisterAllocator(self.register_count, forbidden)
        self._section.place_label(function_label(name))
        self._annotate(f"fn {name}")

        self._origin = f"function '{name}'"
        self._location = node.location
        for index, param in enumerate(node.parameters):
            reg = self._define_variable(param)
            self._parameter_registers[(name, index)] = reg

        return_register = RA
        if self.resolution.callees(name):
            return_register = self._allocator.allocate(f"return address of '{name}'", node.location)
            self._emit("move", return_register, RA)

        for stmt in node.body.statements:
            self._generate_statement(stmt)

        self._enter(f"function '{name}'", node.location)
        self._emit("j", return_register)

        self._used_registers |= self._allocator.used
        logger.debug(
            f"Function {name}: {len(self._section)} lines, "
            f"{len(forbidden)} registers kept for callers"
        )
        return self._section

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate_into(self, expr: Expression, target: Register) -> None:
        """Evaluate ``expr`` and leave the result in ``target``."""
        operand = self._expression(expr, target)
        if operand != target:
            self._emit("move", target, operand)
            self._release(operand)

    def _expression(self, expr: Expression, target: Optional[Register] = None) -> Operand:
        """
        Lower an expression.

        Args:
            expr: The expression
            target: Register the top operation should write to; leaves
                (literals, constants, variables) ignore it

        Returns:
            The operand holding the value. Temporaries must be passed to
            _release by the caller once consumed.
        """
        # Post-order walk: an operator node is visited twice, first to
        # queue its operands, then to combine their results.
        results: list[Operand] = []
        stack: list[tuple[Expression, Optional[Register], bool]] = [(expr, target, False)]

        while stack:
            node, dest, operands_ready = stack.pop()

            if isinstance(node, Literal):
                results.append(Number(node.value))
                continue

            if isinstance(node, Identifier):
                binding = self.resolution.binding_of(node)
                if isinstance(binding, ConstantBinding):
                    results.append(Number(binding.value))
                else:
                    results.append(self._registers[binding])
                continue

            if not isinstance(node, (UnaryExpression, BinaryExpression)):
                raise TypeError(f"unknown expression type {type(node).__name__}")

            if not operands_ready:
                stack.append((node, dest, True))
                if isinstance(node, UnaryExpression):
                    stack.append((node.operand, None, False))
                else:
                    stack.append((node.right, None, False))
                    stack.append((node.left, None, False))
                continue

            if isinstance(node, UnaryExpression):
                operand = results.pop()
                self._release(operand)
                result = dest if dest is not None else self._temp()
                self._emit("seqz", result, operand)
            else:
                right = results.pop()
                left = results.pop()
                self._release(left)
                self._release(right)
                result = dest if dest is not None else self._temp()
                self._emit(BINARY_MNEMONICS[node.operator], result, left, right)
            results.append(result)

        return results.pop()

    # =========================================================================
    # Line Budget
    # =========================================================================

    def _check_budget(self, assembly: AssemblyProgram) -> None:
        """
        Fail if the program does not fit on the chip.

        Raises:
            InstructionBudgetExceededError: Naming the construct whose
                code holds the first line past the ceiling
        """
        line_count = len(assembly)
        if line_count <= self.max_lines:
            return

        first_excess = assembly.instructions[self.max_lines]
        raise InstructionBudgetExceededError(
            first_excess.origin or "program",
            line_count,
            self.max_lines,
            first_excess.location,
        )
