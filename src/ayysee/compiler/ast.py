"""
Ayysee Abstract Syntax Tree (AST) Definitions
=============================================

This module defines the AST node types produced by the Ayysee parser and
consumed by the resolver and the code generator.

Node Hierarchy
--------------
ASTNode (base)
├── ProgramNode - root node, ordered top-level statements
├── Statements
│   ├── AliasStatement - def d0 as name;
│   ├── ConstantStatement - const NAME = literal;
│   ├── LetStatement - let name = expr;
│   ├── AssignmentStatement - name = expr;
│   ├── BlockStatement - { ... }
│   ├── FunctionNode - fn name(params) { ... }
│   ├── CallStatement - name(args);
│   ├── LoopStatement - loop { ... }
│   ├── IfStatement - if (cond) { ... } else { ... }
│   ├── ReadStatement - read device.Property into name;
│   ├── WriteStatement - write expr into device.Property;
│   └── YieldStatement - yield;
├── Expressions
│   ├── Literal - integer, float or boolean constant
│   ├── Identifier - reference to a bound name
│   ├── UnaryExpression - !x
│   └── BinaryExpression - a op b
└── DeviceLiteral - raw device slot (d0-d5, db)

Design Notes
------------
- All nodes are dataclasses; every node stores its source location
- The tree is never mutated after parsing. Resolution and code
  generation keep their metadata in side tables keyed by node identity
  (see NodeTable), so the same tree can be compiled again with
  different options.
- Identifier is used for every name occurrence, including definition
  sites, assignment targets and call targets, so the resolver can bind
  every occurrence the same way.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Generic, Iterator, Optional, TypeVar, Union

from ayysee.errors import SourceLocation


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all AST nodes.

    Attributes:
        location: Source location where this node appears
    """
    location: SourceLocation

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}@{self.location.line}:{self.location.column}"


@dataclass
class Expression(ASTNode):
    """Base class for all expression nodes."""
    pass


@dataclass
class Statement(ASTNode):
    """Base class for all statement nodes."""
    pass


# =============================================================================
# Program Root Node
# =============================================================================

@dataclass
class ProgramNode(ASTNode):
    """
    Root node of the AST representing a complete Ayysee program.

    Attributes:
        statements: Top-level statements in source order
    """
    statements: list[Statement] = field(default_factory=list)


# =============================================================================
# Expression Nodes
# =============================================================================

class BinaryOperator(Enum):
    """Binary operator types."""

    # Arithmetic
    ADD = auto()            # +
    SUB = auto()            # -
    MUL = auto()            # *
    DIV = auto()            # /

    # Comparison
    EQUALS = auto()         # ==
    NOT_EQUALS = auto()     # !=
    LOWER = auto()          # <
    GREATER = auto()        # >
    LOWER_EQUALS = auto()   # <=
    GREATER_EQUALS = auto() # >=

    # Logical
    CONJ = auto()           # &&
    DISJ = auto()           # ||

    @property
    def is_comparison(self) -> bool:
        return self in COMPARISON_OPERATORS


COMPARISON_OPERATORS = frozenset({
    BinaryOperator.EQUALS,
    BinaryOperator.NOT_EQUALS,
    BinaryOperator.LOWER,
    BinaryOperator.GREATER,
    BinaryOperator.LOWER_EQUALS,
    BinaryOperator.GREATER_EQUALS,
})

BINARY_OPERATOR_SYMBOLS: dict[BinaryOperator, str] = {
    BinaryOperator.ADD: "+",
    BinaryOperator.SUB: "-",
    BinaryOperator.MUL: "*",
    BinaryOperator.DIV: "/",
    BinaryOperator.EQUALS: "==",
    BinaryOperator.NOT_EQUALS: "!=",
    BinaryOperator.LOWER: "<",
    BinaryOperator.GREATER: ">",
    BinaryOperator.LOWER_EQUALS: "<=",
    BinaryOperator.GREATER_EQUALS: ">=",
    BinaryOperator.CONJ: "&&",
    BinaryOperator.DISJ: "||",
}


class UnaryOperator(Enum):
    """Unary operator types."""
    NOT = auto()            # !x


@dataclass
class Literal(Expression):
    """
    Literal value.

    Booleans are kept as bool so the printer can show them as written;
    they lower to 0 and 1.

    Attributes:
        value: int (signed 64-bit), float or bool
    """
    value: Union[int, float, bool] = 0


@dataclass
class Identifier(Expression):
    """
    A name occurrence.

    Attributes:
        name: The identifier text
    """
    name: str = ""


@dataclass
class UnaryExpression(Expression):
    """
    Unary operation expression.

    Attributes:
        operator: The unary operator
        operand: The operand expression
    """
    operator: UnaryOperator = UnaryOperator.NOT
    operand: Expression = None


@dataclass
class BinaryExpression(Expression):
    """
    Binary operation expression (a op b).

    Attributes:
        operator: The binary operator
        left: Left operand expression
        right: Right operand expression
    """
    operator: BinaryOperator = None
    left: Expression = None
    right: Expression = None


@dataclass
class DeviceLiteral(ASTNode):
    """
    A raw device slot reference.

    Attributes:
        slot: Device name as written, d0-d5 or db
    """
    slot: str = ""


# A device can be named by alias or by raw slot
DeviceRef = Union[Identifier, DeviceLiteral]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class AliasStatement(Statement):
    """
    Device alias: ``def d0 as sensor;``

    Attributes:
        device: The physical slot being named
        name: The alias
    """
    device: DeviceLiteral = None
    name: Identifier = None


@dataclass
class ConstantStatement(Statement):
    """
    Compile-time constant: ``const LIMIT = 25.5;``

    Attributes:
        name: The constant name
        value: Literal value (never an expression)
    """
    name: Identifier = None
    value: Literal = None


@dataclass
class LetStatement(Statement):
    """
    Variable definition: ``let x = expr;``

    Attributes:
        name: The new variable
        initializer: Initial value
    """
    name: Identifier = None
    initializer: Expression = None


@dataclass
class AssignmentStatement(Statement):
    """
    Assignment to an existing variable: ``x = expr;``

    Attributes:
        target: The variable being assigned
        value: The new value
    """
    target: Identifier = None
    value: Expression = None


@dataclass
class BlockStatement(Statement):
    """
    Compound statement ``{ ... }``; introduces a scope.

    Attributes:
        statements: Statements in the block
    """
    statements: list[Statement] = field(default_factory=list)


@dataclass
class FunctionNode(Statement):
    """
    Function definition: ``fn name(a, b) { ... }``

    Functions have no return value; they communicate through device
    writes and global variables.

    Attributes:
        name: Function name
        parameters: Parameter names in order
        body: Function body
    """
    name: Identifier = None
    parameters: list[Identifier] = field(default_factory=list)
    body: BlockStatement = None


@dataclass
class CallStatement(Statement):
    """
    Function call statement: ``name(args);``

    Attributes:
        function: The called name
        arguments: Argument expressions in order
    """
    function: Identifier = None
    arguments: list[Expression] = field(default_factory=list)


@dataclass
class LoopStatement(Statement):
    """
    Infinite loop: ``loop { ... }``

    There is no break; control only leaves through the host.

    Attributes:
        body: Loop body
    """
    body: BlockStatement = None


@dataclass
class IfStatement(Statement):
    """
    Conditional: ``if (cond) { ... } else { ... }``

    Attributes:
        condition: The test expression
        then_branch: Block executed when condition is non-zero
        else_branch: Optional block executed otherwise
    """
    condition: Expression = None
    then_branch: BlockStatement = None
    else_branch: Optional[BlockStatement] = None


@dataclass
class ReadStatement(Statement):
    """
    Device read: ``read sensor.Temperature into t;``

    Attributes:
        device: Alias identifier or raw slot
        property_name: Logic type to read
        target: Variable receiving the value
    """
    device: DeviceRef = None
    property_name: str = ""
    target: Identifier = None


@dataclass
class WriteStatement(Statement):
    """
    Device write: ``write expr into heater.On;``

    Attributes:
        value: Expression to store
        device: Alias identifier or raw slot
        property_name: Logic type to write
    """
    value: Expression = None
    device: DeviceRef = None
    property_name: str = ""


@dataclass
class YieldStatement(Statement):
    """Cooperative suspension point: ``yield;``"""
    pass


# =============================================================================
# Side Tables
# =============================================================================

V = TypeVar("V")


class NodeTable(Generic[V]):
    """
    Mapping from AST node identity to metadata.

    AST nodes are dataclasses and compare by value, so two identical
    ``x`` identifiers in different places would collide in a plain dict.
    This table keys by ``id(node)`` and keeps a reference to the node so
    the id cannot be reused while the table is alive.
    """

    def __init__(self):
        self._entries: dict[int, tuple[ASTNode, V]] = {}

    def __setitem__(self, node: ASTNode, value: V) -> None:
        self._entries[id(node)] = (node, value)

    def __getitem__(self, node: ASTNode) -> V:
        return self._entries[id(node)][1]

    def __contains__(self, node: ASTNode) -> bool:
        return id(node) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, node: ASTNode, default: Optional[V] = None) -> Optional[V]:
        entry = self._entries.get(id(node))
        return entry[1] if entry is not None else default

    def items(self) -> Iterator[tuple[ASTNode, V]]:
        return iter(self._entries.values())


# =============================================================================
# AST Visitor Pattern
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Subclasses override visit_* methods for the node types they care
    about; everything else is walked by generic_visit.

    Usage:
        class MyVisitor(ASTVisitor):
            def visit_FunctionNode(self, node):
                ...

        MyVisitor().visit(program)
    """

    def visit(self, node: ASTNode):
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode) -> None:
        """Visit all child nodes in field order."""
        for field_value in node.__dict__.values():
            if isinstance(field_value, ASTNode):
                self.visit(field_value)
            elif isinstance(field_value, list):
                for item in field_value:
                    if isinstance(item, ASTNode):
                        self.visit(item)


# =============================================================================
# AST Pretty Printer
# =============================================================================

class ASTPrinter(ASTVisitor):
    """
    Pretty printer for AST debugging (used by ``aysc --ast``).

    Usage:
        printer = ASTPrinter()
        print(printer.print(ast))
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: ASTNode) -> str:
        """Print the AST and return as string."""
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def _indent(self) -> None:
        self.indent_level += 1

    def _dedent(self) -> None:
        self.indent_level = max(0, self.indent_level - 1)

    def _visit_block(self, node: BlockStatement) -> None:
        self._indent()
        for stmt in node.statements:
            self.visit(stmt)
        self._dedent()

    def visit_ProgramNode(self, node: ProgramNode):
        self._emit("Program")
        self._indent()
        for stmt in node.statements:
            self.visit(stmt)
        self._dedent()

    def visit_AliasStatement(self, node: AliasStatement):
        self._emit(f"Alias: {node.device.slot} as {node.name.name}")

    def visit_ConstantStatement(self, node: ConstantStatement):
        self._emit(f"Const: {node.name.name} = {self._expr_str(node.value)}")

    def visit_LetStatement(self, node: LetStatement):
        self._emit(f"Let: {node.name.name} = {self._expr_str(node.initializer)}")

    def visit_AssignmentStatement(self, node: AssignmentStatement):
        self._emit(f"Assign: {node.target.name} = {self._expr_str(node.value)}")

    def visit_BlockStatement(self, node: BlockStatement):
        self._emit("Block")
        self._visit_block(node)

    def visit_FunctionNode(self, node: FunctionNode):
        params = ", ".join(p.name for p in node.parameters)
        self._emit(f"Function: {node.name.name}({params})")
        self._visit_block(node.body)

    def visit_CallStatement(self, node: CallStatement):
        args = ", ".join(self._expr_str(a) for a in node.arguments)
        self._emit(f"Call: {node.function.name}({args})")

    def visit_LoopStatement(self, node: LoopStatement):
        self._emit("Loop")
        self._visit_block(node.body)

    def visit_IfStatement(self, node: IfStatement):
        self._emit(f"If ({self._expr_str(node.condition)})")
        self._indent()
        self._emit("Then:")
        self._visit_block(node.then_branch)
        if node.else_branch is not None:
            self._emit("Else:")
            self._visit_block(node.else_branch)
        self._dedent()

    def visit_ReadStatement(self, node: ReadStatement):
        self._emit(
            f"Read: {self._device_str(node.device)}.{node.property_name} "
            f"into {node.target.name}"
        )

    def visit_WriteStatement(self, node: WriteStatement):
        self._emit(
            f"Write: {self._expr_str(node.value)} "
            f"into {self._device_str(node.device)}.{node.property_name}"
        )

    def visit_YieldStatement(self, node: YieldStatement):
        self._emit("Yield")

    def _device_str(self, device: DeviceRef) -> str:
        if isinstance(device, DeviceLiteral):
            return device.slot
        return device.name

    def _expr_str(self, expr: Expression) -> str:
        """Convert expression to string representation."""
        parts: list[str] = []
        stack: list[tuple[Expression, bool]] = [(expr, False)]

        while stack:
            node, operands_ready = stack.pop()
            if isinstance(node, Literal):
                if isinstance(node.value, bool):
                    parts.append("true" if node.value else "false")
                else:
                    parts.append(str(node.value))
            elif isinstance(node, Identifier):
                parts.append(node.name)
            elif isinstance(node, BinaryExpression):
                if operands_ready:
                    right = parts.pop()
                    left = parts.pop()
                    parts.append(f"({left} {BINARY_OPERATOR_SYMBOLS[node.operator]} {right})")
                else:
                    stack.extend([(node, True), (node.right, False), (node.left, False)])
            elif isinstance(node, UnaryExpression):
                if operands_ready:
                    parts.append(f"(!{parts.pop()})")
                else:
                    stack.extend([(node, True), (node.operand, False)])
            else:
                parts.append(f"<{type(node).__name__}>")

        return parts.pop()
