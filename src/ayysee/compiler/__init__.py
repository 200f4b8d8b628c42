"""
Ayysee Compiler
===============

This package implements the compiler for Ayysee, a small C-like language
for the Stationeers IC10 programmable chip.

Pipeline
--------
    Source → Lexer → Parser → AST → Resolver → Code Generator → Link → IC10

Usage
-----
>>> from ayysee.compiler import compile
>>> source = '''
... def d0 as sensor;
... loop {
...     let t = 0;
...     read sensor.Temperature into t;
...     yield;
... }
... '''
>>> print(compile(source))
alias sensor d0
move r0 0
l r0 d0 Temperature
yield
j 1

Language Summary
----------------
- Values: integers, floats, true/false
- Declarations: def (device alias), const, let, fn
- Statements: assignment, call, loop, if/else, read, write, yield
- Operators: + - * / == != < > <= >= && || !

Machine Model
-------------
- 16 general purpose registers (r0-r15), no memory
- Devices d0-d5 plus the chip housing db
- 128 lines per program
"""

from ayysee.compiler.compiler import (
    AyyseeCompiler,
    CompilerOptions,
    CompilerResult,
    compile,
    compile_code,
    compile_file,
)
from ayysee.compiler.errors import (
    CompileError,
    ParseError,
    InvalidCharacterError,
    UnexpectedTokenError,
    MissingTokenError,
    NestingTooDeepError,
    ResolutionError,
    ScopeError,
    UnresolvedNameError,
    ImmutableBindingError,
    DuplicateDefinitionError,
    BindingKindError,
    ArgumentCountError,
    RecursiveCallError,
    UnknownPropertyError,
    CodegenError,
    DeviceSlotConflictError,
    RegisterExhaustionError,
    InstructionBudgetExceededError,
    MissingYieldError,
)

__all__ = [
    # Compiler
    "AyyseeCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile",
    "compile_code",
    "compile_file",
    # Errors
    "CompileError",
    "ParseError",
    "InvalidCharacterError",
    "UnexpectedTokenError",
    "MissingTokenError",
    "NestingTooDeepError",
    "ResolutionError",
    "ScopeError",
    "UnresolvedNameError",
    "ImmutableBindingError",
    "DuplicateDefinitionError",
    "BindingKindError",
    "ArgumentCountError",
    "RecursiveCallError",
    "UnknownPropertyError",
    "CodegenError",
    "DeviceSlotConflictError",
    "RegisterExhaustionError",
    "InstructionBudgetExceededError",
    "MissingYieldError",
]
