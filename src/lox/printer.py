"""Lox AST printer — renders parsed trees as parenthesized prefix forms.

Used by `lox --ast` and in tests; `1 + 2 * 3` renders as `(+ 1 (* 2 3))`.
"""

from __future__ import annotations

from .ast import (
    Assign,
    Binary,
    BlockStmt,
    BreakStmt,
    Call,
    ClassStmt,
    Expr,
    ExprStmt,
    FunStmt,
    Get,
    Grouping,
    IfStmt,
    Literal,
    Logical,
    PrintStmt,
    ReturnStmt,
    Set,
    Stmt,
    Super,
    This,
    Unary,
    VarStmt,
    Variable,
    WhileStmt,
)
from .runtime import format_number, to_f32


def to_sexpr(stmts: list[Stmt]) -> str:
    """Render a program, one top-level statement per line."""
    printer = _Printer()
    return "".join(printer.stmt(s) + "\n" for s in stmts)


def expr_to_sexpr(expr: Expr) -> str:
    return _Printer().expr(expr)


def _paren(name: str, parts: list[str]) -> str:
    if len(parts) == 0:
        return "(" + name + ")"
    return "(" + name + " " + " ".join(parts) + ")"


class _Printer:
    # ── Statements ───────────────────────────────────────────

    def stmt(self, s: Stmt) -> str:
        if isinstance(s, ExprStmt):
            return _paren(";", [self.expr(s.expr)])
        if isinstance(s, PrintStmt):
            return _paren("print", [self.expr(s.expr)])
        if isinstance(s, VarStmt):
            if s.initializer is None:
                return _paren("var", [s.name.lexeme])
            return _paren("var", [s.name.lexeme, self.expr(s.initializer)])
        if isinstance(s, BlockStmt):
            return _paren("block", [self.stmt(x) for x in s.stmts])
        if isinstance(s, IfStmt):
            parts = [self.expr(s.cond), self.stmt(s.then_branch)]
            if s.else_branch is not None:
                parts.append(self.stmt(s.else_branch))
            return _paren("if", parts)
        if isinstance(s, WhileStmt):
            return _paren("while", [self.expr(s.cond), self.stmt(s.body)])
        if isinstance(s, FunStmt):
            return self.function("fun", s)
        if isinstance(s, ReturnStmt):
            if s.value is None:
                return _paren("return", [])
            return _paren("return", [self.expr(s.value)])
        if isinstance(s, BreakStmt):
            return _paren("break", [])
        if isinstance(s, ClassStmt):
            parts = [s.name.lexeme]
            if s.superclass is not None:
                parts.append("< " + s.superclass.name.lexeme)
            for m in s.methods:
                parts.append(self.function("method", m))
            return _paren("class", parts)
        raise ValueError("cannot print statement " + type(s).__name__)

    def function(self, head: str, fn: FunStmt) -> str:
        params = "(" + " ".join(p.lexeme for p in fn.params) + ")"
        parts = [fn.name.lexeme, params]
        parts.extend(self.stmt(x) for x in fn.body)
        return _paren(head, parts)

    # ── Expressions ──────────────────────────────────────────

    def expr(self, e: Expr) -> str:
        if isinstance(e, Literal):
            if e.value is None:
                return "nil"
            if isinstance(e.value, bool):
                return "true" if e.value else "false"
            if isinstance(e.value, float):
                return format_number(to_f32(e.value))
            return e.value
        if isinstance(e, Grouping):
            return _paren("group", [self.expr(e.inner)])
        if isinstance(e, Unary):
            return _paren(e.op.lexeme, [self.expr(e.operand)])
        if isinstance(e, (Binary, Logical)):
            return _paren(e.op.lexeme, [self.expr(e.left), self.expr(e.right)])
        if isinstance(e, Variable):
            return e.name.lexeme
        if isinstance(e, Assign):
            return _paren("=", [e.name.lexeme, self.expr(e.value)])
        if isinstance(e, Call):
            return _paren("call", [self.expr(e.callee)] + [self.expr(a) for a in e.args])
        if isinstance(e, Get):
            return _paren(".", [self.expr(e.obj), e.name.lexeme])
        if isinstance(e, Set):
            target = _paren(".", [self.expr(e.obj), e.name.lexeme])
            return _paren("=", [target, self.expr(e.value)])
        if isinstance(e, This):
            return "this"
        if isinstance(e, Super):
            return _paren("super", [e.method.lexeme])
        raise ValueError("cannot print expression " + type(e).__name__)
