"""
Ayysee Compiler Error Hierarchy
===============================

This module defines the exceptions raised by the Ayysee compiler. All of
them inherit from CompileError, which itself inherits from the package
base AyyseeError.

Every stage fails fast: the first error aborts the compile and no partial
assembly is ever produced.

Exception Hierarchy
-------------------
CompileError (base for all compile errors)
├── ParseError - lexer and parser errors
│   ├── InvalidCharacterError - character outside the language
│   ├── UnexpectedTokenError - token does not fit the grammar
│   ├── MissingTokenError - required token absent
│   └── NestingTooDeepError - blocks nested past the walk limit
├── ResolutionError - name binding errors
│   ├── ScopeError - root-only construct used in a nested scope
│   ├── UnresolvedNameError - reference to an unbound identifier
│   ├── ImmutableBindingError - assignment to a constant or alias
│   ├── DuplicateDefinitionError - name bound twice in one scope
│   ├── BindingKindError - name used as the wrong kind of thing
│   ├── ArgumentCountError - call arity mismatch
│   ├── RecursiveCallError - function reaches itself through calls
│   └── UnknownPropertyError - unknown logic type (strict mode only)
└── CodegenError - resource errors while emitting code
    ├── DeviceSlotConflictError - second alias for one device slot
    ├── RegisterExhaustionError - register pool exhausted
    ├── InstructionBudgetExceededError - program longer than the chip
    └── MissingYieldError - loop without yield (when required)

Each error exposes ``kind`` (the taxonomy name, e.g. "ParseError"),
``message``, ``location``, ``hint`` and ``source_line``.
"""

from typing import Optional

from ayysee.errors import AyyseeError, SourceLocation, format_error


# =============================================================================
# Base Compile Exception
# =============================================================================

class CompileError(AyyseeError):
    """
    Base exception for all compile errors.

    Attributes:
        kind: Taxonomy name of the error
        message: The error description
        location: Where in the source the error occurred
        hint: A suggestion for fixing the error
        source_line: The source text of the offending line
    """

    kind = "CompileError"

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return format_error(self.message, self.location, self.hint, self.source_line)

    def attach_source(self, source: str) -> None:
        """
        Fill in the source line from the full source text.

        The resolver and code generator only know node locations; the
        compiler driver calls this so the final message shows the line.
        """
        if self.source_line is not None or self.location is None:
            return
        lines = source.split("\n")
        if 1 <= self.location.line <= len(lines):
            self.source_line = lines[self.location.line - 1].rstrip("\r")
            self.args = (self._format_message(),)


# =============================================================================
# Parse Errors
# =============================================================================

class ParseError(CompileError):
    """
    Malformed token stream or grammar violation.

    Attributes:
        token: Text of the offending token, when there is one
    """

    kind = "ParseError"

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        token: Optional[str] = None,
    ):
        self.token = token
        super().__init__(message, location, hint=hint, source_line=source_line)


class InvalidCharacterError(ParseError):
    """Character that cannot start any token."""

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.char = char
        super().__init__(
            f"invalid character '{char}' (0x{ord(char):02X})",
            location=location,
            source_line=source_line,
            token=char,
        )


class UnexpectedTokenError(ParseError):
    """
    Unexpected token during parsing.

    Raised when the parser encounters a token that doesn't match
    the expected grammar rule.
    """

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected

        hint = None
        if expected:
            hint = f"expected {expected}"

        super().__init__(
            f"unexpected token '{found}'",
            location=location,
            hint=hint,
            source_line=source_line,
            token=found,
        )


class MissingTokenError(ParseError):
    """Required token (like ';' or ')') is missing."""

    def __init__(
        self,
        expected: str,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        self.found = found
        super().__init__(
            f"expected '{expected}' before '{found}'",
            location=location,
            source_line=source_line,
            token=found,
        )


class NestingTooDeepError(ParseError):
    """Blocks nested deeper than the compiler can walk."""

    def __init__(self, location: Optional[SourceLocation] = None):
        super().__init__(
            "program is nested too deeply",
            location=location,
            hint="move deeply nested blocks into functions",
        )


# =============================================================================
# Resolution Errors
# =============================================================================

class ResolutionError(CompileError):
    """
    Name binding error.

    Raised when the program parses but an identifier cannot be bound
    consistently with the scoping rules.

    Attributes:
        identifier: The offending name
    """

    kind = "ResolutionError"

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.identifier = identifier
        super().__init__(message, location, hint=hint, source_line=source_line)


class ScopeError(ResolutionError):
    """A root-only construct (def, const, fn) used in a nested scope."""

    kind = "ScopeError"

    def __init__(
        self,
        construct: str,
        identifier: str,
        location: Optional[SourceLocation] = None,
    ):
        self.construct = construct
        super().__init__(
            f"'{construct}' is only allowed at the top level of the program",
            identifier=identifier,
            location=location,
            hint=f"move the definition of '{identifier}' out of the enclosing block",
        )


class UnresolvedNameError(ResolutionError):
    """
    Reference to an unbound identifier.

    Similarly named bindings that are visible at the reference are
    offered as a hint, which catches most typos.
    """

    kind = "UnresolvedNameError"

    def __init__(
        self,
        identifier: str,
        location: Optional[SourceLocation] = None,
        similar: Optional[list[str]] = None,
    ):
        self.similar = similar or []

        hint = None
        if self.similar:
            suggestions = ", ".join(f"'{s}'" for s in self.similar[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"unresolved name '{identifier}'",
            identifier=identifier,
            location=location,
            hint=hint,
        )


class ImmutableBindingError(ResolutionError):
    """Assignment (or read-into) targeting a constant or device alias."""

    kind = "ImmutableBindingError"

    def __init__(
        self,
        identifier: str,
        binding_kind: str,
        location: Optional[SourceLocation] = None,
    ):
        self.binding_kind = binding_kind
        super().__init__(
            f"cannot assign to {binding_kind} '{identifier}'",
            identifier=identifier,
            location=location,
            hint=f"declare a variable with 'let {identifier} = ...;' instead",
        )


class DuplicateDefinitionError(ResolutionError):
    """Name bound twice in the same scope."""

    kind = "DuplicateDefinitionError"

    def __init__(
        self,
        identifier: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
    ):
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{identifier}' was first defined at {original_location}"

        super().__init__(
            f"redefinition of '{identifier}'",
            identifier=identifier,
            location=location,
            hint=hint,
        )


class BindingKindError(ResolutionError):
    """
    A name used as the wrong kind of thing.

    Examples:
        - using a device alias or function name inside an expression
        - calling a variable
        - reading from a variable as if it were a device
    """

    kind = "BindingKindError"

    def __init__(
        self,
        identifier: str,
        actual: str,
        expected: str,
        location: Optional[SourceLocation] = None,
    ):
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"'{identifier}' is a {actual}, not a {expected}",
            identifier=identifier,
            location=location,
        )


class ArgumentCountError(ResolutionError):
    """Function called with a different number of arguments than declared."""

    kind = "ArgumentCountError"

    def __init__(
        self,
        function_name: str,
        expected: int,
        actual: int,
        location: Optional[SourceLocation] = None,
    ):
        self.expected = expected
        self.actual = actual

        word = "argument" if expected == 1 else "arguments"
        super().__init__(
            f"'{function_name}' expects {expected} {word}, got {actual}",
            identifier=function_name,
            location=location,
        )


class RecursiveCallError(ResolutionError):
    """
    Function that can reach itself through calls.

    The chip has a single return-address register and no call stack, so
    recursion would overwrite both.
    """

    kind = "RecursiveCallError"

    def __init__(
        self,
        cycle: list[str],
        location: Optional[SourceLocation] = None,
    ):
        self.cycle = cycle
        path = " -> ".join(cycle)
        super().__init__(
            f"recursive call cycle {path}",
            identifier=cycle[0],
            location=location,
            hint="IC10 has no call stack; rewrite the recursion as a loop",
        )


class UnknownPropertyError(ResolutionError):
    """Logic type not known to the IC10 chip (strict mode only)."""

    kind = "UnknownPropertyError"

    def __init__(
        self,
        identifier: str,
        location: Optional[SourceLocation] = None,
        similar: Optional[list[str]] = None,
    ):
        self.similar = similar or []

        hint = None
        if self.similar:
            suggestions = ", ".join(f"'{s}'" for s in self.similar[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"unknown device property '{identifier}'",
            identifier=identifier,
            location=location,
            hint=hint,
        )


# =============================================================================
# Code Generation Errors
# =============================================================================

class CodegenError(CompileError):
    """
    Resource error during code generation.

    The target has a fixed register pool, fixed device slots and a line
    ceiling; running out of any of them is fatal rather than degraded.
    """

    kind = "CodegenError"


class DeviceSlotConflictError(CodegenError):
    """Two aliases bound to the same physical device slot."""

    kind = "DeviceSlotConflictError"

    def __init__(
        self,
        slot: str,
        alias: str,
        existing_alias: str,
        location: Optional[SourceLocation] = None,
    ):
        self.slot = slot
        self.alias = alias
        self.existing_alias = existing_alias
        super().__init__(
            f"device slot '{slot}' is already aliased as '{existing_alias}'",
            location=location,
            hint=f"use '{existing_alias}' instead of defining '{alias}'",
        )


class RegisterExhaustionError(CodegenError):
    """More simultaneously live values than general purpose registers."""

    kind = "RegisterExhaustionError"

    def __init__(
        self,
        construct: str,
        register_count: int,
        location: Optional[SourceLocation] = None,
    ):
        self.construct = construct
        self.register_count = register_count
        super().__init__(
            f"out of registers while compiling {construct} "
            f"(all {register_count} registers are live)",
            location=location,
            hint="move variables into inner blocks so their registers can be reused",
        )


class InstructionBudgetExceededError(CodegenError):
    """Emitted program longer than the host's line ceiling."""

    kind = "InstructionBudgetExceededError"

    def __init__(
        self,
        construct: str,
        line_count: int,
        max_lines: int,
        location: Optional[SourceLocation] = None,
    ):
        self.construct = construct
        self.line_count = line_count
        self.max_lines = max_lines
        super().__init__(
            f"program needs {line_count} lines but the chip holds {max_lines}; "
            f"the limit is crossed in {construct}",
            location=location,
            hint="shorten the program or move repeated code into a function",
        )


class MissingYieldError(CodegenError):
    """Loop body with no yield statement (only when yields are required)."""

    kind = "MissingYieldError"

    def __init__(self, location: Optional[SourceLocation] = None):
        super().__init__(
            "loop body never yields",
            location=location,
            hint="add 'yield;' so the chip hands control back every tick",
        )
