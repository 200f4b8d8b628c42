"""
Ayysee Compiler Main Module
===========================

This module provides the main compiler interface. It runs the whole
pipeline for one source text:

    Source → Lex → Parse → Resolve → Generate → Link → IC10 text

Usage
-----
Command line:
    $ aysc greenhouse.ay -o greenhouse.ic10

Programmatic:
    >>> import ayysee
    >>> print(ayysee.compile("def d0 as lamp; write true into lamp.On;"))
    alias lamp d0
    s d0 On 1

Compilation Pipeline
--------------------
1. **Lexical Analysis**: Convert source to tokens
2. **Parsing**: Build the Abstract Syntax Tree (AST)
3. **Resolution**: Bind every identifier, check scoping rules
4. **Code Generation**: Allocate registers, lower to IC10 instructions
5. **Linking**: Replace labels with line numbers, check the line budget

Error Handling
--------------
Every stage stops at the first error. A failed compile raises a
CompileError subclass and produces no assembly at all.

Each compile builds its own lexer, parser, resolver and generator, so
separate compiles share no state and may run concurrently.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ayysee.compiler.ast import ProgramNode
from ayysee.compiler.codegen import CodeGenerator
from ayysee.compiler.errors import CompileError, NestingTooDeepError
from ayysee.compiler.lexer import Lexer, Token
from ayysee.compiler.parser import Parser
from ayysee.compiler.resolver import Resolution, Resolver
from ayysee.ic10.program import LinkedProgram
from ayysee.ic10.types import MAX_LINES, REGISTER_COUNT

logger = logging.getLogger(__name__)


# =============================================================================
# Options
# =============================================================================

@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        max_lines: Line ceiling of the target chip (128 in game)
        register_count: General purpose registers available (r0..rN-1)
        emit_aliases: Emit ``alias name dN`` lines for device definitions,
            which label the screws on the IC housing in game
        emit_comments: Append ``# comment`` annotations naming the source
            construct of each statement
        strict_properties: Reject device properties that are not known
            IC10 logic types
        require_yield: Make a loop without any reachable yield an error
            instead of a warning
    """
    max_lines: int = MAX_LINES
    register_count: int = REGISTER_COUNT
    emit_aliases: bool = True
    emit_comments: bool = False
    strict_properties: bool = False
    require_yield: bool = False

    @classmethod
    def from_env(cls) -> "CompilerOptions":
        """
        Create CompilerOptions from environment variables.

        Environment variables (all optional):
            AYYSEE_MAX_LINES: Line ceiling (integer)
            AYYSEE_REGISTER_COUNT: Register pool size (integer, 1-16)
            AYYSEE_EMIT_ALIASES: "0"/"false" to suppress alias lines
            AYYSEE_EMIT_COMMENTS: "1"/"true" to annotate instructions
            AYYSEE_STRICT_PROPERTIES: "1"/"true" to check logic types
            AYYSEE_REQUIRE_YIELD: "1"/"true" to reject loops without yield

        Returns:
            CompilerOptions with values from environment variables
        """
        options = cls()

        if max_lines := os.environ.get("AYYSEE_MAX_LINES"):
            try:
                limit = int(max_lines)
            except ValueError:
                limit = 0
            if limit >= 1:
                options.max_lines = limit
            else:
                logger.warning(f"Ignoring invalid AYYSEE_MAX_LINES={max_lines!r}")

        if register_count := os.environ.get("AYYSEE_REGISTER_COUNT"):
            try:
                count = int(register_count)
            except ValueError:
                count = 0
            if 1 <= count <= REGISTER_COUNT:
                options.register_count = count
            else:
                logger.warning(f"Ignoring invalid AYYSEE_REGISTER_COUNT={register_count!r}")

        flags = {
            "AYYSEE_EMIT_ALIASES": "emit_aliases",
            "AYYSEE_EMIT_COMMENTS": "emit_comments",
            "AYYSEE_STRICT_PROPERTIES": "strict_properties",
            "AYYSEE_REQUIRE_YIELD": "require_yield",
        }
        for variable, attribute in flags.items():
            if (value := os.environ.get(variable)) is not None:
                setattr(options, attribute, _parse_flag(value))

        return options


def _parse_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# Result
# =============================================================================

@dataclass
class CompilerResult:
    """
    Result of a successful compilation.

    Attributes:
        filename: Source filename
        assembly: Generated IC10 program text
        ast: Parsed program
        resolution: Binding side tables
        token_count: Number of tokens lexed
        line_count: Number of IC10 lines emitted
        registers_used: Names of the registers the program uses
        warnings: Non-fatal diagnostics
    """
    filename: str = ""
    assembly: str = ""
    ast: Optional[ProgramNode] = None
    resolution: Optional[Resolution] = None
    token_count: int = 0
    line_count: int = 0
    registers_used: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# Compiler
# =============================================================================

class AyyseeCompiler:
    """
    Ayysee to IC10 compiler.

    Example:
        compiler = AyyseeCompiler()
        result = compiler.compile_file("greenhouse.ay")
        print(result.assembly)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile Ayysee source code to IC10 assembly.

        Args:
            source: Ayysee source code string
            filename: Source filename for error messages

        Returns:
            CompilerResult containing assembly output and diagnostics

        Raises:
            CompileError: If compilation fails
        """
        result = CompilerResult(filename=filename)

        try:
            linked, generator = self._run_stages(source, filename, result)
        except CompileError as e:
            e.attach_source(source)
            logger.debug(f"Compile of {filename} failed: {e.kind}")
            raise

        result.assembly = linked.render(comments=self.options.emit_comments)
        result.line_count = len(linked)
        result.registers_used = [str(reg) for reg in generator.registers_used]
        result.warnings = list(generator.warnings)

        logger.info(
            f"Compiled {filename}: {result.line_count}/{self.options.max_lines} lines, "
            f"{len(result.registers_used)} registers"
        )
        return result

    def _run_stages(
        self,
        source: str,
        filename: str,
        result: CompilerResult,
    ) -> tuple[LinkedProgram, CodeGenerator]:
        """
        Run lexing through linking, recording intermediate results.

        Raises:
            CompileError: If any stage fails
            NestingTooDeepError: If the tree is too deep for the block
                walks of the later stages
        """
        # Stage 1: Lexical analysis
        tokens = self._lex(source, filename)
        result.token_count = len(tokens)

        # Stage 2: Parsing
        ast = self._parse(tokens, filename, source.splitlines())
        result.ast = ast

        try:
            # Stage 3: Resolution
            resolution = Resolver(self.options.strict_properties).resolve(ast)
            result.resolution = resolution

            # Stage 4 and 5: Code generation and linking
            generator = CodeGenerator(
                resolution,
                register_count=self.options.register_count,
                max_lines=self.options.max_lines,
                emit_aliases=self.options.emit_aliases,
                emit_comments=self.options.emit_comments,
                require_yield=self.options.require_yield,
            )
            linked = generator.generate(ast).link()
        except RecursionError:
            raise NestingTooDeepError() from None

        return linked, generator

    def compile_file(self, filepath: str) -> CompilerResult:
        """
        Compile an Ayysee source file.

        Raises:
            CompileError: If compilation fails
            FileNotFoundError: If source file not found
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")
        return self.compile_source(source, filepath)

    def _lex(self, source: str, filename: str) -> list[Token]:
        tokens = list(Lexer(source, filename).tokenize())
        logger.debug(f"Lexed {len(tokens)} tokens")
        return tokens

    def _parse(self, tokens: list[Token], filename: str, source_lines: list[str]) -> ProgramNode:
        program = Parser(tokens, filename, source_lines).parse()
        logger.debug(f"Parsed {len(program.statements)} top-level statements")
        return program


# =============================================================================
# Convenience Functions
# =============================================================================

def compile(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile Ayysee source code to IC10 assembly text.

    This is the primary high-level interface.

    Raises:
        CompileError: If compilation fails
    """
    return AyyseeCompiler(options).compile_source(source, filename).assembly


def compile_code(source: str) -> tuple[Optional[str], Optional[str]]:
    """
    String-in, string-out entry point for hosts that only show text.

    Returns:
        ``(assembly, None)`` on success, ``(None, error_text)`` on failure
    """
    try:
        return compile(source), None
    except CompileError as e:
        return None, str(e)


def compile_file(
    filepath: str,
    output_path: Optional[str] = None,
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile an Ayysee source file to IC10 assembly.

    Args:
        filepath: Path to the source file
        output_path: Optional path to write the assembly to
        options: Compiler options (defaults if None)

    Returns:
        Generated IC10 assembly
    """
    result = AyyseeCompiler(options).compile_file(filepath)

    if output_path:
        Path(output_path).write_text(result.assembly + "\n", encoding="utf-8")

    return result.assembly
