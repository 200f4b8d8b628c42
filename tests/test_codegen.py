"""
Ayysee Code Generator Test Suite
================================

Tests for IC10 output: expression lowering, register allocation across
scopes, control flow layout, device I/O, functions, and the resource
limits (registers, lines, yields).
"""

import pytest

from ayysee.compiler.parser import parse_source
from ayysee.compiler.resolver import resolve
from ayysee.compiler.codegen import CodeGenerator
from ayysee.compiler.errors import (
    DeviceSlotConflictError,
    InstructionBudgetExceededError,
    MissingYieldError,
    RegisterExhaustionError,
)
from ayysee.ic10.types import Register


def generate(source: str, comments: bool = False, **options) -> list[str]:
    """Compile ``source`` and return the linked lines."""
    program = parse_source(source, "test.ay")
    generator = CodeGenerator(resolve(program), emit_comments=comments, **options)
    return generator.generate(program).link().render(comments).splitlines()


# =============================================================================
# Expressions
# =============================================================================

class TestExpressions:
    """Tests for expression lowering."""

    def test_literal_initializer(self):
        assert generate("let x = 5;") == ["move r0 5"]

    def test_top_operation_writes_target(self):
        assert generate("let x = 1 + 2;") == ["add r0 1 2"]

    def test_nested_expression_uses_temporary(self):
        assert generate("let x = 1; let y = x * 2 + 3;") == [
            "move r0 1",
            "mul r2 r0 2",
            "add r1 r2 3",
        ]

    def test_temporaries_are_released(self):
        """Both inner products fit in two temporaries."""
        assert generate("let x = 1 * 2 + 3 * 4;") == [
            "mul r1 1 2",
            "mul r2 3 4",
            "add r0 r1 r2",
        ]

    def test_all_binary_operators(self):
        mnemonics = {
            "+": "add", "-": "sub", "*": "mul", "/": "div",
            "==": "seq", "!=": "sne", "<": "slt", ">": "sgt",
            "<=": "sle", ">=": "sge", "&&": "and", "||": "or",
        }
        for symbol, mnemonic in mnemonics.items():
            lines = generate(f"let a = 1; let b = a {symbol} 2;")
            assert lines[-1] == f"{mnemonic} r1 r0 2", f"Failed for {symbol}"

    def test_not(self):
        assert generate("let a = 0; let b = !a;") == ["move r0 0", "seqz r1 r0"]

    def test_constants_are_folded(self):
        assert generate("const LIMIT = 4; let x = LIMIT;") == ["move r0 4"]

    def test_booleans_become_numbers(self):
        assert generate("let on = true; let off = false;") == ["move r0 1", "move r1 0"]

    def test_float_literal(self):
        assert generate("let t = 21.5;") == ["move r0 21.5"]

    def test_negative_literal(self):
        assert generate("let t = -40;") == ["move r0 -40"]

    def test_assignment_reuses_register(self):
        assert generate("let x = 1; x = x + 1;") == ["move r0 1", "add r0 r0 1"]

    def test_copy_between_variables(self):
        assert generate("let x = 1; let y = x;") == ["move r0 1", "move r1 r0"]


# =============================================================================
# Register Allocation
# =============================================================================

class TestRegisters:
    """Tests for scope-based register reuse."""

    def test_sibling_blocks_reuse_registers(self):
        assert generate("{ let a = 1; } { let b = 2; }") == ["move r0 1", "move r0 2"]

    def test_inner_register_freed_after_block(self):
        assert generate("let a = 1; { let b = 2; } let c = 3;") == [
            "move r0 1",
            "move r1 2",
            "move r1 3",
        ]

    def test_shadowing_gets_new_register(self):
        assert generate("let x = 1; { let x = 2; x = 3; } x = 4;") == [
            "move r0 1",
            "move r1 2",
            "move r1 3",
            "move r0 4",
        ]

    def test_registers_used(self):
        program = parse_source("let a = 1; { let b = a + 1; }")
        generator = CodeGenerator(resolve(program))
        generator.generate(program)
        assert generator.registers_used == [Register(0), Register(1)]

    def test_exhaustion(self):
        with pytest.raises(RegisterExhaustionError) as exc_info:
            generate("let a = 1;\nlet b = 2;\nlet c = 3;", register_count=2)
        error = exc_info.value
        assert "variable 'c'" in str(error)
        assert error.location.line == 3

    def test_exhaustion_by_temporaries(self):
        with pytest.raises(RegisterExhaustionError, match="temporary"):
            generate("let a = 1; let b = (a + 1) * (a + 2);", register_count=3)

    def test_sixteen_variables_fit(self):
        source = " ".join(f"let v{i} = {i};" for i in range(16))
        lines = generate(source)
        assert lines[-1] == "move r15 15"

    def test_seventeen_variables_do_not_fit(self):
        source = " ".join(f"let v{i} = {i};" for i in range(17))
        with pytest.raises(RegisterExhaustionError):
            generate(source)

    def test_block_scoping_avoids_exhaustion(self):
        source = " ".join(f"{{ let v{i} = {i}; }}" for i in range(20))
        lines = generate(source, register_count=1)
        assert all(line.startswith("move r0 ") for line in lines)


# =============================================================================
# Control Flow
# =============================================================================

class TestControlFlow:
    """Tests for loops and conditionals."""

    def test_loop(self):
        assert generate("loop { yield; }") == ["yield", "j 0"]

    def test_loop_after_code(self):
        assert generate("let x = 0; loop { x = x + 1; yield; }") == [
            "move r0 0",
            "add r0 r0 1",
            "yield",
            "j 1",
        ]

    def test_two_loops(self):
        lines = generate("loop { yield; } loop { yield; }")
        assert lines == ["yield", "j 0", "yield", "j 2"]

    def test_if_without_else(self):
        assert generate("let x = 1; if (x) { x = 2; }") == [
            "move r0 1",
            "beqz r0 3",
            "move r0 2",
        ]

    def test_if_else(self):
        assert generate("let x = 1; if (x == 1) { x = 2; } else { x = 3; }") == [
            "move r0 1",
            "seq r1 r0 1",
            "beqz r1 5",
            "move r0 2",
            "j 6",
            "move r0 3",
        ]

    def test_nested_ifs_get_distinct_labels(self):
        source = "let x = 1; if (x) { if (x) { x = 2; } } else { x = 3; }"
        assert generate(source) == [
            "move r0 1",
            "beqz r0 5",
            "beqz r0 4",
            "move r0 2",
            "j 6",
            "move r0 3",
        ]

    def test_condition_temporary_reused_in_branch(self):
        lines = generate("let x = 1; if (x > 0) { let y = 2; }")
        assert lines == ["move r0 1", "sgt r1 r0 0", "beqz r1 4", "move r1 2"]

    def test_missing_yield_warns(self):
        program = parse_source("loop { }", "test.ay")
        generator = CodeGenerator(resolve(program))
        generator.generate(program)
        assert len(generator.warnings) == 1
        assert generator.warnings[0].startswith("test.ay:1:1: warning: loop never yields")

    def test_missing_yield_required(self):
        with pytest.raises(MissingYieldError):
            generate("loop { let x = 1; }", require_yield=True)

    def test_yield_in_nested_branch_counts(self):
        generate("let x = 0; loop { if (x) { yield; } }", require_yield=True)

    def test_yield_through_call_counts(self):
        generate("fn wait() { yield; } loop { wait(); }", require_yield=True)


# =============================================================================
# Devices
# =============================================================================

class TestDevices:
    """Tests for device aliases and I/O."""

    def test_alias_emitted(self):
        assert generate("def d0 as sensor;") == ["alias sensor d0"]

    def test_alias_suppressed(self):
        assert generate("def d0 as sensor;", emit_aliases=False) == []

    def test_read(self):
        source = "def d0 as sensor; let t = 0; read sensor.Temperature into t;"
        assert generate(source, emit_aliases=False) == [
            "move r0 0",
            "l r0 d0 Temperature",
        ]

    def test_write_variable(self):
        assert generate("let t = 20; write t into db.Setting;") == [
            "move r0 20",
            "s db Setting r0",
        ]

    def test_write_immediate(self):
        assert generate("def d1 as lamp; write true into lamp.On;") == [
            "alias lamp d1",
            "s d1 On 1",
        ]

    def test_write_expression(self):
        assert generate("write 1 + 2 into d0.Setting;") == [
            "add r0 1 2",
            "s d0 Setting r0",
        ]

    def test_raw_slot_and_alias_emit_same_code(self):
        via_alias = generate("def d2 as pump; write 1 into pump.On;", emit_aliases=False)
        via_slot = generate("write 1 into d2.On;")
        assert via_alias == via_slot

    def test_slot_conflict(self):
        with pytest.raises(DeviceSlotConflictError) as exc_info:
            generate("def d0 as a;\ndef d0 as b;")
        assert exc_info.value.location.line == 2


# =============================================================================
# Functions
# =============================================================================

class TestFunctions:
    """Tests for function layout and calling convention."""

    def test_call_with_argument(self):
        source = """
fn bump(a) { write a into db.Setting; }
let x = 5;
bump(x);
"""
        assert generate(source) == [
            "move r0 5",
            "move r1 r0",
            "jal 4",
            "j 6",
            "s db Setting r1",
            "j ra",
        ]

    def test_call_with_literal_argument(self):
        source = "fn set(v) { write v into db.Setting; } set(3);"
        assert generate(source) == [
            "move r0 3",
            "jal 3",
            "j 5",
            "s db Setting r0",
            "j ra",
        ]

    def test_nested_call_saves_return_address(self):
        source = """
fn inner() { yield; }
fn outer() { inner(); }
outer();
"""
        assert generate(source) == [
            "jal 4",
            "j 7",
            "yield",
            "j ra",
            "move r0 ra",
            "jal 2",
            "j r0",
        ]

    def test_function_registers_avoid_root_variables(self):
        source = """
let keep = 1;
fn work() { let tmp = 2; }
work();
"""
        lines = generate(source)
        assert "move r1 2" in lines
        assert "move r0 2" not in lines

    def test_function_registers_avoid_call_site_variables(self):
        source = """
fn work() { let tmp = 2; }
loop {
    let busy = 1;
    work();
    yield;
}
"""
        lines = generate(source)
        assert lines[0] == "move r0 1"
        assert "move r1 2" in lines

    def test_arguments_evaluated_before_moves(self):
        source = """
fn pair(a, b) { write a + b into db.Setting; }
let x = 1;
pair(x + 1, x + 2);
"""
        lines = generate(source)
        assert lines[:5] == [
            "move r0 1",
            "add r1 r0 1",
            "add r2 r0 2",
            "move r3 r1",
            "move r4 r2",
        ]
        assert lines[5].startswith("jal ")

    def test_uncalled_function_still_emitted(self):
        lines = generate("fn idle() { yield; }")
        assert lines == ["j 3", "yield", "j ra"]

    def test_callee_registers_avoid_caller_registers(self):
        source = """
fn leaf(v) { write v into db.Setting; }
fn mid(a) { let doubled = a * 2; leaf(doubled); }
mid(4);
"""
        lines = generate(source)
        # mid: a=r0, return address r1, doubled r2; leaf keeps clear of all three
        assert "move r1 ra" in lines
        assert "mul r2 r0 2" in lines
        assert "move r3 r2" in lines
        assert "s db Setting r3" in lines


# =============================================================================
# Line Budget and Comments
# =============================================================================

class TestBudget:
    """Tests for the line ceiling."""

    def test_exactly_at_limit(self):
        lines = generate("yield;" * 128)
        assert len(lines) == 128

    def test_over_limit(self):
        with pytest.raises(InstructionBudgetExceededError) as exc_info:
            generate("yield;" * 129)
        error = exc_info.value
        assert error.line_count == 129
        assert error.max_lines == 128

    def test_names_construct_past_limit(self):
        source = "let a = 1;\nlet b = 2;\nlet c = 3;\nlet d = 4;"
        with pytest.raises(InstructionBudgetExceededError) as exc_info:
            generate(source, max_lines=3)
        error = exc_info.value
        assert error.construct == "definition of 'd'"
        assert error.location.line == 4

    def test_budget_includes_functions(self):
        with pytest.raises(InstructionBudgetExceededError):
            generate("fn f() { yield; yield; }", max_lines=3)


class TestComments:
    """Tests for inline source annotations."""

    def test_statement_comments(self):
        lines = generate("let x = 1; x = 2;", comments=True)
        assert lines == ["move r0 1 # let x", "move r0 2 # x = ..."]

    def test_loop_comment_combines(self):
        lines = generate("loop { yield; }", comments=True)
        assert lines[0] == "yield # loop"

    def test_comments_off_by_default(self):
        assert generate("let x = 1;") == ["move r0 1"]

    def test_empty_else_comment_dropped(self):
        source = "let x = 1; if (x) { x = 2; } else { } let y = 2;"
        assert generate(source, comments=True) == [
            "move r0 1 # let x",
            "beqz r0 4 # if",
            "move r0 2 # x = ...",
            "j 4",
            "move r1 2 # let y",
        ]

    def test_self_assignment_comment_dropped(self):
        lines = generate("let x = 1; x = x; yield;", comments=True)
        assert lines == ["move r0 1 # let x", "yield"]
