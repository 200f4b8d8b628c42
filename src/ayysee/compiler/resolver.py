"""
Ayysee Symbol and Scope Resolver
================================

This module walks a parsed program, builds the nested scopes and binds
every identifier occurrence to what it names. The result is a Resolution
object holding side tables keyed by AST node identity; the tree itself
is left untouched.

Binding Kinds
-------------
| Binding           | Introduced by          | Usable as             |
|-------------------|------------------------|-----------------------|
| VariableBinding   | let, fn parameter      | value, assign target  |
| ConstantBinding   | const                  | value                 |
| AliasBinding      | def dN as name         | device                |
| FunctionBinding   | fn                     | call target           |

Raw device slots (``d0``..``d5``, ``db``) need no binding; they resolve
to the same DeviceSlot value an alias for that slot would.

Scoping Rules
-------------
- Scopes nest lexically: root, function bodies, loop bodies, if/else
  branches and bare blocks. Inner definitions shadow outer ones and are
  gone once the block ends.
- ``def``, ``const`` and ``fn`` are only allowed in the root scope.
- Aliases, constants and functions are collected before the walk, so
  they can be used anywhere in the program.
- ``let`` variables are visible from their definition onwards. The
  initializer is resolved before the new name is bound, so
  ``let x = x + 1;`` reads the enclosing ``x``.
- A function body sees its parameters, the root variables defined
  before the function, and every alias, constant and function.
- Recursion, direct or through other functions, is rejected: the chip
  has one return-address register and no call stack.
"""

import difflib
import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from ayysee.errors import SourceLocation
from ayysee.compiler.ast import (
    ASTNode,
    NodeTable,
    ProgramNode,
    Statement,
    Expression,
    Literal,
    Identifier,
    DeviceLiteral,
    DeviceRef,
    UnaryExpression,
    BinaryExpression,
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
from ayysee.compiler.errors import (
    ArgumentCountError,
    BindingKindError,
    DuplicateDefinitionError,
    ImmutableBindingError,
    RecursiveCallError,
    ScopeError,
    UnknownPropertyError,
    UnresolvedNameError,
)
from ayysee.ic10.types import LOGIC_TYPES, DeviceSlot

logger = logging.getLogger(__name__)

# Call graph key for the top-level code
MAIN = "<main>"


# =============================================================================
# Bindings
# =============================================================================

@dataclass(eq=False)
class Binding:
    """
    What a name refers to.

    Bindings compare by identity: two variables called ``x`` in sibling
    blocks are different bindings.

    Attributes:
        name: The bound name
        location: Where the name was defined
        depth: Depth of the defining scope (root is 0)
    """
    name: str
    location: SourceLocation
    depth: int

    kind_name = "name"


@dataclass(eq=False)
class VariableBinding(Binding):
    """
    A ``let`` variable or function parameter.

    Attributes:
        function: Owning function, or None for top-level code
    """
    function: Optional[str] = None

    kind_name = "variable"


@dataclass(eq=False)
class ConstantBinding(Binding):
    """A ``const`` with its literal value."""
    value: Union[int, float, bool] = 0

    kind_name = "constant"


@dataclass(eq=False)
class AliasBinding(Binding):
    """A device alias and the slot it names."""
    slot: DeviceSlot = None

    kind_name = "device alias"


@dataclass(eq=False)
class FunctionBinding(Binding):
    """A function definition."""
    node: FunctionNode = None

    kind_name = "function"

    @property
    def arity(self) -> int:
        return len(self.node.parameters)


# =============================================================================
# Scopes
# =============================================================================

class Scope:
    """
    One lexical scope.

    Attributes:
        parent: Enclosing scope, None for the root
        depth: Nesting depth (root is 0)
        kind: "root", "function", "loop", "if", "else" or "block"
    """

    def __init__(self, parent: Optional["Scope"], kind: str):
        self.parent = parent
        self.kind = kind
        self.depth = 0 if parent is None else parent.depth + 1
        self.bindings: dict[str, Binding] = {}

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def define(self, binding: Binding, location: SourceLocation) -> None:
        """
        Bind a name in this scope.

        Raises:
            DuplicateDefinitionError: If the name is already bound here
        """
        existing = self.bindings.get(binding.name)
        if existing is not None:
            raise DuplicateDefinitionError(binding.name, location, existing.location)
        self.bindings[binding.name] = binding

    def lookup(self, name: str) -> Optional[Binding]:
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        return None

    def visible_names(self) -> list[str]:
        names: list[str] = []
        scope: Optional[Scope] = self
        while scope is not None:
            names.extend(scope.bindings)
            scope = scope.parent
        return names


# =============================================================================
# Resolution Result
# =============================================================================

@dataclass
class CallSite:
    """A call from ``caller`` (a function name or MAIN) to ``callee``."""
    caller: str
    callee: str
    node: CallStatement


@dataclass
class Resolution:
    """
    Side tables produced by the resolver.

    Attributes:
        bindings: Identifier node -> Binding, for every identifier
            occurrence (definitions, uses, targets, call names)
        devices: Device reference node -> DeviceSlot
        functions: Function name -> FunctionNode, in source order
        call_sites: Every call in source order
        function_order: Function names ordered callers first
    """
    bindings: NodeTable[Binding] = field(default_factory=NodeTable)
    devices: NodeTable[DeviceSlot] = field(default_factory=NodeTable)
    functions: dict[str, FunctionNode] = field(default_factory=dict)
    call_sites: list[CallSite] = field(default_factory=list)
    function_order: list[str] = field(default_factory=list)

    def binding_of(self, identifier: Identifier) -> Binding:
        return self.bindings[identifier]

    def depth_of(self, identifier: Identifier) -> int:
        """Scope depth of the binding an identifier refers to."""
        return self.bindings[identifier].depth

    def device_of(self, device: DeviceRef) -> DeviceSlot:
        return self.devices[device]

    def callees(self, caller: str) -> list[str]:
        """Distinct functions called from ``caller``, in source order."""
        seen: list[str] = []
        for site in self.call_sites:
            if site.caller == caller and site.callee not in seen:
                seen.append(site.callee)
        return seen


# =============================================================================
# Resolver
# =============================================================================

class Resolver:
    """
    Binds every identifier in a program.

    Usage:
        resolution = Resolver().resolve(program)
        binding = resolution.binding_of(identifier_node)

    Attributes:
        strict_properties: Reject device properties that are not known
            IC10 logic types
    """

    def __init__(self, strict_properties: bool = False):
        self.strict_properties = strict_properties
        self._resolution = Resolution()
        self._scope = Scope(None, "root")
        self._function: Optional[str] = None

    def resolve(self, program: ProgramNode) -> Resolution:
        """
        Resolve a whole program.

        Raises:
            ResolutionError: On the first binding error
        """
        self._resolution = Resolution()
        self._scope = Scope(None, "root")
        self._function = None

        self._collect_globals(program)
        for stmt in program.statements:
            self._resolve_statement(stmt)

        self._check_recursion()
        self._resolution.function_order = self._order_functions()

        logger.debug(
            f"Resolved {len(self._resolution.bindings)} identifiers, "
            f"{len(self._resolution.functions)} functions"
        )
        return self._resolution

    # =========================================================================
    # Global Pre-pass
    # =========================================================================

    def _collect_globals(self, program: ProgramNode) -> None:
        """Bind aliases, constants and functions before the main walk."""
        for stmt in program.statements:
            if isinstance(stmt, AliasStatement):
                binding = AliasBinding(
                    stmt.name.name,
                    stmt.name.location,
                    0,
                    slot=DeviceSlot(stmt.device.slot),
                )
                self._scope.define(binding, stmt.name.location)
            elif isinstance(stmt, ConstantStatement):
                binding = ConstantBinding(
                    stmt.name.name,
                    stmt.name.location,
                    0,
                    value=stmt.value.value,
                )
                self._scope.define(binding, stmt.name.location)
            elif isinstance(stmt, FunctionNode):
                binding = FunctionBinding(
                    stmt.name.name,
                    stmt.name.location,
                    0,
                    node=stmt,
                )
                self._scope.define(binding, stmt.name.location)
                self._resolution.functions[stmt.name.name] = stmt

    # =========================================================================
    # Statements
    # =========================================================================

    def _resolve_statement(self, stmt: Statement) -> None:
        if isinstance(stmt, AliasStatement):
            self._require_root("def", stmt.name)
            self._bind(stmt.name, self._scope.lookup(stmt.name.name))
            self._resolution.devices[stmt.device] = DeviceSlot(stmt.device.slot)
        elif isinstance(stmt, ConstantStatement):
            self._require_root("const", stmt.name)
            self._bind(stmt.name, self._scope.lookup(stmt.name.name))
        elif isinstance(stmt, LetStatement):
            self._resolve_expression(stmt.initializer)
            binding = VariableBinding(
                stmt.name.name,
                stmt.name.location,
                self._scope.depth,
                function=self._function,
            )
            self._scope.define(binding, stmt.name.location)
            self._bind(stmt.name, binding)
        elif isinstance(stmt, AssignmentStatement):
            self._resolve_expression(stmt.value)
            self._resolve_variable_target(stmt.target)
        elif isinstance(stmt, BlockStatement):
            self._resolve_block(stmt, "block")
        elif isinstance(stmt, FunctionNode):
            self._require_root("fn", stmt.name)
            self._resolve_function(stmt)
        elif isinstance(stmt, CallStatement):
            self._resolve_call(stmt)
        elif isinstance(stmt, LoopStatement):
            self._resolve_block(stmt.body, "loop")
        elif isinstance(stmt, IfStatement):
            self._resolve_expression(stmt.condition)
            self._resolve_block(stmt.then_branch, "if")
            if stmt.else_branch is not None:
                self._resolve_block(stmt.else_branch, "else")
        elif isinstance(stmt, ReadStatement):
            self._resolve_device(stmt.device)
            self._check_property(stmt.property_name, stmt.location)
            self._resolve_variable_target(stmt.target)
        elif isinstance(stmt, WriteStatement):
            self._resolve_expression(stmt.value)
            self._resolve_device(stmt.device)
            self._check_property(stmt.property_name, stmt.location)
        elif isinstance(stmt, YieldStatement):
            pass
        else:
            raise TypeError(f"unknown statement type {type(stmt).__name__}")

    def _require_root(self, construct: str, name: Identifier) -> None:
        if not self._scope.is_root:
            raise ScopeError(construct, name.name, name.location)

    def _resolve_block(self, block: BlockStatement, kind: str) -> None:
        self._scope = Scope(self._scope, kind)
        try:
            for stmt in block.statements:
                self._resolve_statement(stmt)
        finally:
            self._scope = self._scope.parent

    def _resolve_function(self, node: FunctionNode) -> None:
        """Parameters and body share one scope below the root."""
        self._bind(node.name, self._scope.lookup(node.name.name))

        outer_function = self._function
        self._function = node.name.name
        self._scope = Scope(self._scope, "function")
        try:
            for param in node.parameters:
                binding = VariableBinding(
                    param.name,
                    param.location,
                    self._scope.depth,
                    function=self._function,
                )
                self._scope.define(binding, param.location)
                self._bind(param, binding)

            for stmt in node.body.statements:
                self._resolve_statement(stmt)
        finally:
            self._scope = self._scope.parent
            self._function = outer_function

    def _resolve_call(self, stmt: CallStatement) -> None:
        binding = self._lookup(stmt.function)
        if not isinstance(binding, FunctionBinding):
            raise BindingKindError(
                stmt.function.name,
                binding.kind_name,
                "function",
                stmt.function.location,
            )
        self._bind(stmt.function, binding)

        if len(stmt.arguments) != binding.arity:
            raise ArgumentCountError(
                binding.name,
                binding.arity,
                len(stmt.arguments),
                stmt.location,
            )

        for arg in stmt.arguments:
            self._resolve_expression(arg)

        caller = self._function if self._function is not None else MAIN
        self._resolution.call_sites.append(CallSite(caller, binding.name, stmt))

    def _resolve_variable_target(self, target: Identifier) -> None:
        """Bind an assignment or read-into target; it must be a variable."""
        binding = self._lookup(target)
        if isinstance(binding, (ConstantBinding, AliasBinding)):
            raise ImmutableBindingError(target.name, binding.kind_name, target.location)
        if not isinstance(binding, VariableBinding):
            raise BindingKindError(target.name, binding.kind_name, "variable", target.location)
        self._bind(target, binding)

    def _resolve_device(self, device: DeviceRef) -> None:
        if isinstance(device, DeviceLiteral):
            self._resolution.devices[device] = DeviceSlot(device.slot)
            return

        binding = self._lookup(device)
        if not isinstance(binding, AliasBinding):
            raise BindingKindError(device.name, binding.kind_name, "device", device.location)
        self._bind(device, binding)
        self._resolution.devices[device] = binding.slot

    def _check_property(self, name: str, location: SourceLocation) -> None:
        if not self.strict_properties or name in LOGIC_TYPES:
            return
        similar = difflib.get_close_matches(name, sorted(LOGIC_TYPES), n=3)
        raise UnknownPropertyError(name, location, similar)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _resolve_expression(self, expr: Expression) -> None:
        """Bind every identifier in ``expr``, left to right."""
        stack = [expr]
        while stack:
            node = stack.pop()
            if isinstance(node, Literal):
                continue
            if isinstance(node, Identifier):
                binding = self._lookup(node)
                if not isinstance(binding, (VariableBinding, ConstantBinding)):
                    raise BindingKindError(node.name, binding.kind_name, "value", node.location)
                self._bind(node, binding)
            elif isinstance(node, UnaryExpression):
                stack.append(node.operand)
            elif isinstance(node, BinaryExpression):
                stack.append(node.right)
                stack.append(node.left)
            else:
                raise TypeError(f"unknown expression type {type(node).__name__}")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _lookup(self, identifier: Identifier) -> Binding:
        """
        Find the binding for a name occurrence.

        Raises:
            UnresolvedNameError: If nothing visible has that name
        """
        binding = self._scope.lookup(identifier.name)
        if binding is None:
            similar = difflib.get_close_matches(
                identifier.name, self._scope.visible_names(), n=3
            )
            raise UnresolvedNameError(identifier.name, identifier.location, similar)
        return binding

    def _bind(self, node: ASTNode, binding: Binding) -> None:
        self._resolution.bindings[node] = binding

    # =========================================================================
    # Call Graph
    # =========================================================================

    def _check_recursion(self) -> None:
        """
        Reject call cycles.

        Raises:
            RecursiveCallError: Naming the cycle and the call closing it
        """
        done: set[str] = set()

        def visit(name: str, path: list[str]) -> None:
            if name in done:
                return
            for site in self._resolution.call_sites:
                if site.caller != name:
                    continue
                if site.callee in path:
                    cycle = path[path.index(site.callee):] + [site.callee]
                    raise RecursiveCallError(cycle, site.node.location)
                visit(site.callee, path + [site.callee])
            done.add(name)

        for name in self._resolution.functions:
            visit(name, [name])

    def _order_functions(self) -> list[str]:
        """
        Order functions so every caller precedes its callees.

        Ties are broken by source order, which keeps the result
        deterministic.
        """
        names = list(self._resolution.functions)
        indegree = {name: 0 for name in names}
        for name in names:
            for callee in self._resolution.callees(name):
                indegree[callee] += 1

        order: list[str] = []
        ready = [name for name in names if indegree[name] == 0]
        while ready:
            name = ready.pop(0)
            order.append(name)
            for callee in self._resolution.callees(name):
                indegree[callee] -= 1
                if indegree[callee] == 0:
                    ready.append(callee)
            ready.sort(key=names.index)

        return order


def resolve(program: ProgramNode, strict_properties: bool = False) -> Resolution:
    """Convenience wrapper around Resolver."""
    return Resolver(strict_properties).resolve(program)
