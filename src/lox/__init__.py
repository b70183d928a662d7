"""Lox tokenizer, parser, resolver and interpreter — public API."""

from __future__ import annotations

from .ast import Stmt
from .diagnostics import Diagnostic as Diagnostic, Diagnostics
from .parse import ParseError as ParseError, Parser
from .printer import to_sexpr
from .resolve import ResolveError as ResolveError, resolve as resolve_stmts
from .runtime import Interpreter, LoxRuntimeError as LoxRuntimeError
from .tokens import Token as Token, tokenize as tokenize


def parse(source: str, diagnostics: Diagnostics | None = None) -> list[Stmt]:
    """Tokenize and parse Lox source.

    Lexical and syntax errors are reported to `diagnostics`; the returned list
    holds every statement the parser could recover.
    """
    tokens = tokenize(source, diagnostics)
    return Parser(tokens, diagnostics).parse_program()


def resolve(stmts: list[Stmt]) -> dict[int, int]:
    """Compute scope distances for local references. Raises ResolveError."""
    return resolve_stmts(stmts)


def run(source: str, diagnostics: Diagnostics | None = None) -> str:
    """Parse, resolve and run Lox source in a fresh interpreter.

    Returns everything the program printed. Raises ResolveError before running
    anything if the program is statically invalid, and LoxRuntimeError if it
    faults while running.
    """
    stmts = parse(source, diagnostics)
    locals = resolve_stmts(stmts)
    return Interpreter(locals).interpret(stmts)


def emit(stmts: list[Stmt]) -> str:
    """Render parsed statements as parenthesized prefix forms."""
    return to_sexpr(stmts)
