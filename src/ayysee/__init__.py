"""
Ayysee - A C-like Language for Stationeers IC10 Chips
=====================================================

This package provides a compiler from Ayysee, a small statically
structured C-like language, to the IC10 assembly dialect run by the
programmable chips of the game Stationeers.

IC10 is a MIPS-like assembly with 16 general purpose registers, six
device pins plus the chip housing, no addressable memory, and a hard
ceiling of 128 lines per program. The compiler maps variables to
registers, device aliases to pins, and control flow to jumps, and
rejects programs that do not fit.

Main Components
---------------
- **compiler**: Lexer, parser, resolver, register allocator and code
  generator, driven by AyyseeCompiler

- **ic10**: Operand types, the emitted instruction subset, and the
  section/label model used to link the final program

- **cli**: The ``aysc`` command-line compiler

Quick Start
-----------
Compile a program:
    >>> import ayysee
    >>> print(ayysee.compile("def d0 as lamp; write true into lamp.On;"))
    alias lamp d0
    s d0 On 1

Get text back instead of an exception:
    >>> assembly, error = ayysee.compile_code("let x = ;")

Or use the command-line tool:
    $ aysc greenhouse.ay -o greenhouse.ic10
"""

__version__ = "0.1.0"

# =============================================================================
# Public API Exports
# =============================================================================

from ayysee.errors import AyyseeError, SourceLocation
from ayysee.compiler import (
    AyyseeCompiler,
    CompilerOptions,
    CompilerResult,
    compile,
    compile_code,
    compile_file,
    CompileError,
    ParseError,
    ResolutionError,
    CodegenError,
)

__all__ = [
    "__version__",
    # Compiler
    "AyyseeCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile",
    "compile_code",
    "compile_file",
    # Errors
    "AyyseeError",
    "SourceLocation",
    "CompileError",
    "ParseError",
    "ResolutionError",
    "CodegenError",
]
