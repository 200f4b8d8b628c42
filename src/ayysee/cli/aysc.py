"""
aysc - Ayysee Compiler Command-Line Interface
=============================================

This module implements the command-line interface for the Ayysee
compiler. It reads one source file and writes the IC10 program that can
be pasted into a programmable chip in game.

Usage Examples
--------------
Basic compilation:
    $ aysc greenhouse.ay

With output file:
    $ aysc greenhouse.ay -o greenhouse.ic10

Print to the terminal (for copy and paste):
    $ aysc --stdout greenhouse.ay

Check the parse tree:
    $ aysc --ast greenhouse.ay

Verbose mode:
    $ aysc -v greenhouse.ay

Environment
-----------
Defaults come from CompilerOptions.from_env() (AYYSEE_MAX_LINES,
AYYSEE_REGISTER_COUNT, AYYSEE_STRICT_PROPERTIES, ...); command-line
options override them.
"""

import logging
from pathlib import Path
from typing import Optional

import click

from ayysee import __version__
from ayysee.cli.errors import handle_cli_exception
from ayysee.compiler import AyyseeCompiler, CompilerOptions
from ayysee.ic10.types import REGISTER_COUNT


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output IC10 file (default: input.ic10)",
)
@click.option(
    "--stdout", "to_stdout",
    is_flag=True,
    help="Write the program to stdout instead of a file",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print AST and exit (for debugging)",
)
@click.option(
    "--max-lines",
    type=click.IntRange(min=1),
    default=None,
    help="Line ceiling of the target chip (default: 128)",
)
@click.option(
    "--registers",
    type=click.IntRange(1, REGISTER_COUNT),
    default=None,
    help="Number of general purpose registers to use (default: 16)",
)
@click.option(
    "--no-aliases",
    is_flag=True,
    help="Do not emit alias lines for device definitions",
)
@click.option(
    "--comments",
    is_flag=True,
    help="Annotate instructions with the construct they came from",
)
@click.option(
    "--strict-properties",
    is_flag=True,
    help="Reject device properties that are not known IC10 logic types",
)
@click.option(
    "--require-yield",
    is_flag=True,
    help="Treat a loop without yield as an error",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="aysc")
def main(
    input_file: Path,
    output: Optional[Path],
    to_stdout: bool,
    ast: bool,
    max_lines: Optional[int],
    registers: Optional[int],
    no_aliases: bool,
    comments: bool,
    strict_properties: bool,
    require_yield: bool,
    verbose: bool,
) -> None:
    """
    Compile Ayysee source code for a Stationeers IC10 chip.

    INPUT_FILE is the Ayysee source file (.ay) to compile.

    The compiler produces IC10 assembly that can be pasted into the
    chip's editor in game.

    \b
    Examples:
        aysc greenhouse.ay               # Outputs greenhouse.ic10
        aysc greenhouse.ay -o out.ic10   # Specify output file
        aysc --stdout greenhouse.ay      # Print the program
        aysc --comments greenhouse.ay    # Annotated output
        aysc -v greenhouse.ay            # Verbose output

    \b
    Exit codes:
        0  success
        1  compile error
        2  invalid arguments or unreadable input
        3  internal error
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s: %(message)s",
    )

    if output is None:
        output = input_file.with_suffix(".ic10")

    options = CompilerOptions.from_env()
    if max_lines is not None:
        options.max_lines = max_lines
    if registers is not None:
        options.register_count = registers
    if no_aliases:
        options.emit_aliases = False
    if comments:
        options.emit_comments = True
    if strict_properties:
        options.strict_properties = True
    if require_yield:
        options.require_yield = True

    try:
        if verbose:
            click.echo(f"Compiling {input_file}...", err=to_stdout)

        source = input_file.read_text(encoding="utf-8")

        # AST dump mode
        if ast:
            from ayysee.compiler.ast import ASTPrinter
            from ayysee.compiler.parser import parse_source
            click.echo(ASTPrinter().print(parse_source(source, str(input_file))))
            return

        result = AyyseeCompiler(options).compile_source(source, str(input_file))

        for warning in result.warnings:
            click.echo(warning, err=True)

        if to_stdout:
            click.echo(result.assembly)
        else:
            output.write_text(result.assembly + "\n", encoding="utf-8")

        if verbose:
            click.echo(f"Tokenized: {result.token_count} tokens", err=to_stdout)
            click.echo(
                f"Registers: {', '.join(result.registers_used) or 'none'}",
                err=to_stdout,
            )

        if not to_stdout:
            click.echo(
                f"Compiled {input_file} -> {output} "
                f"({result.line_count}/{options.max_lines} lines)"
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
