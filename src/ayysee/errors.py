"""
Ayysee Error Hierarchy
======================

This module defines the root of the exception hierarchy for the Ayysee
toolchain. Every exception raised by the package inherits from
AyyseeError, so callers can catch all toolchain errors with a single
except clause:

    try:
        assembly = ayysee.compile(source)
    except AyyseeError as e:
        print(f"Error: {e}")

Exception Hierarchy
-------------------
AyyseeError (base)
└── CompileError (see ayysee.compiler.errors)
    ├── ParseError - malformed token stream or grammar violation
    ├── ResolutionError - name binding and scoping errors
    └── CodegenError - resource exhaustion while emitting IC10 code

Error Message Format
--------------------
Errors that know where they happened follow this format:

    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class AyyseeError(Exception):
    """Base exception for all Ayysee errors."""
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Tokens, AST nodes, emitted instructions and errors all carry one of
    these so that a failure deep inside code generation can still point
    at the construct the user wrote.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


def format_error(
    message: str,
    location: Optional[SourceLocation] = None,
    hint: Optional[str] = None,
    source_line: Optional[str] = None,
) -> str:
    """
    Format an error message with location, source context, and hint.

    Example output:
        greenhouse.ay:7:11: error: unresolved name 'temprature'
            write temprature into base.Setting;
                  ^
        hint: did you mean 'temperature'?
    """
    parts = []

    # Location prefix
    if location:
        parts.append(f"{location}: error: {message}")
    else:
        parts.append(f"error: {message}")

    # Source context with caret pointer
    if source_line is not None and location is not None:
        parts.append(f"    {source_line}")
        if location.column > 0:
            padding = " " * (4 + location.column - 1)
            parts.append(f"{padding}^")

    if hint:
        parts.append(f"hint: {hint}")

    return "\n".join(parts)
