"""
aysc Command-Line Tests
=======================

Tests for the aysc click command and the CLI error handler.
"""

from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from ayysee import __version__
from ayysee.cli.aysc import main
from ayysee.cli.errors import ExitCode, handle_cli_exception
from ayysee.compiler.errors import UnresolvedNameError


class TestAysc:
    """Tests for the aysc command."""

    def test_compile_to_default_output(self, greenhouse_source):
        """Should write input.ic10 next to the source."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("greenhouse.ay").write_text(greenhouse_source)

            result = runner.invoke(main, ["greenhouse.ay"])

            assert result.exit_code == 0, f"Compile failed: {result.output}"
            output = Path("greenhouse.ic10")
            assert output.exists()
            assert output.read_text().splitlines()[0] == "alias sensor d0"
            assert "Compiled greenhouse.ay -> greenhouse.ic10 (18/128 lines)" in result.output

    def test_compile_to_named_output(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("lamp.ay").write_text("write 1 into d0.On;")

            result = runner.invoke(main, ["lamp.ay", "-o", "out.ic10"])

            assert result.exit_code == 0
            assert Path("out.ic10").read_text() == "s d0 On 1\n"

    def test_stdout(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("loop.ay").write_text("loop { yield; }")

            result = runner.invoke(main, ["--stdout", "loop.ay"])

            assert result.exit_code == 0
            assert result.output == "yield\nj 0\n"
            assert not Path("loop.ic10").exists()

    def test_ast(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.ay").write_text("let x = 1 + 2;")

            result = runner.invoke(main, ["--ast", "prog.ay"])

            assert result.exit_code == 0
            assert result.output.splitlines() == ["Program", "  Let: x = (1 + 2)"]

    def test_options(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.ay").write_text("def d0 as lamp; let x = 1; write x into lamp.On;")

            result = runner.invoke(main, ["--stdout", "--no-aliases", "--comments", "prog.ay"])

            assert result.exit_code == 0
            assert result.output.splitlines() == [
                "move r0 1 # let x",
                "s d0 On r0 # write d0.On",
            ]

    def test_compile_error(self):
        """Compile errors go to stderr with exit code 1."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.ay").write_text("let x = 1;\ny = 2;")

            result = runner.invoke(main, ["bad.ay"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "bad.ay:2:1: error: unresolved name 'y'" in result.output
            assert not Path("bad.ic10").exists()

    def test_register_limit(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.ay").write_text("let a = 1; let b = 2;")

            result = runner.invoke(main, ["--registers", "1", "prog.ay"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "out of registers" in result.output

    def test_max_lines(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.ay").write_text("yield; yield;")

            result = runner.invoke(main, ["--max-lines", "1", "prog.ay"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "program needs 2 lines but the chip holds 1" in result.output

    def test_strict_properties(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.ay").write_text("write 1 into d0.Onn;")

            result = runner.invoke(main, ["--strict-properties", "prog.ay"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "unknown device property 'Onn'" in result.output

    def test_require_yield(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.ay").write_text("loop { }")

            lenient = runner.invoke(main, ["prog.ay"])
            strict = runner.invoke(main, ["--require-yield", "prog.ay"])

            assert lenient.exit_code == 0
            assert "warning: loop never yields" in lenient.output
            assert strict.exit_code == ExitCode.BUILD_ERROR
            assert "loop body never yields" in strict.output

    def test_invalid_register_count(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.ay").write_text("yield;")

            result = runner.invoke(main, ["--registers", "17", "prog.ay"])

            assert result.exit_code == ExitCode.INVALID_ARGS

    def test_missing_input(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["missing.ay"])
            assert result.exit_code == ExitCode.INVALID_ARGS

    def test_verbose(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.ay").write_text("let x = 1;")

            result = runner.invoke(main, ["-v", "prog.ay"])

            assert result.exit_code == 0
            assert "Compiling prog.ay..." in result.output
            assert "Registers: r0" in result.output

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestErrorHandler:
    """Tests for exit code selection."""

    def test_compile_error(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_exception(UnresolvedNameError("x"))
        assert exc_info.value.code == ExitCode.BUILD_ERROR

    def test_missing_file(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_exception(FileNotFoundError("gone.ay"))
        assert exc_info.value.code == ExitCode.INVALID_ARGS

    def test_bad_parameter(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_exception(click.BadParameter("nope"))
        assert exc_info.value.code == ExitCode.INVALID_ARGS

    def test_internal_error(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_exception(RuntimeError("boom"))
        assert exc_info.value.code == ExitCode.INTERNAL_ERROR
