"""Lox AST — parse-time node definitions."""

from __future__ import annotations

from dataclasses import dataclass
import itertools

from .tokens import Token


# ============================================================
# POSITION / IDENTITY
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


_node_ids = itertools.count(1)


def next_node_id() -> int:
    """Process-wide unique id; resolution tables are keyed by it."""
    return next(_node_ids)


def tok_pos(tok: Token) -> Pos:
    return Pos(tok.line, tok.col)


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr:
    """Base for all expressions."""

    pos: Pos
    node_id: int


@dataclass
class Literal(Expr):
    """Number, string, true, false or nil."""

    value: float | str | bool | None


@dataclass
class Grouping(Expr):
    """( inner )."""

    inner: Expr


@dataclass
class Unary(Expr):
    """op operand."""

    op: Token
    operand: Expr


@dataclass
class Binary(Expr):
    """left op right."""

    op: Token
    left: Expr
    right: Expr


@dataclass
class Logical(Expr):
    """left and/or right, short-circuiting."""

    op: Token
    left: Expr
    right: Expr


@dataclass
class Variable(Expr):
    """Variable reference."""

    name: Token


@dataclass
class Assign(Expr):
    """name = value."""

    name: Token
    value: Expr


@dataclass
class Call(Expr):
    """callee(args); paren is kept for error positions."""

    callee: Expr
    paren: Token
    args: list[Expr]


@dataclass
class Get(Expr):
    """obj.name."""

    obj: Expr
    name: Token


@dataclass
class Set(Expr):
    """obj.name = value."""

    obj: Expr
    name: Token
    value: Expr


@dataclass
class This(Expr):
    """this."""

    keyword: Token


@dataclass
class Super(Expr):
    """super.method."""

    keyword: Token
    method: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt:
    """Base for all statements."""

    pos: Pos


@dataclass
class ExprStmt(Stmt):
    """Bare expression as statement."""

    expr: Expr


@dataclass
class PrintStmt(Stmt):
    """print expr;"""

    expr: Expr


@dataclass
class VarStmt(Stmt):
    """var name = initializer?;"""

    name: Token
    initializer: Expr | None


@dataclass
class BlockStmt(Stmt):
    """{ statements }."""

    stmts: list[Stmt]


@dataclass
class IfStmt(Stmt):
    """if (cond) then_branch else else_branch."""

    cond: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass
class WhileStmt(Stmt):
    """while (cond) body."""

    cond: Expr
    body: Stmt


@dataclass
class FunStmt(Stmt):
    """fun name(params) { body }; also used for methods."""

    name: Token
    params: list[Token]
    body: list[Stmt]


@dataclass
class ReturnStmt(Stmt):
    """return value?;"""

    keyword: Token
    value: Expr | None


@dataclass
class BreakStmt(Stmt):
    """break;"""

    keyword: Token


@dataclass
class ClassStmt(Stmt):
    """class Name < Superclass { methods }."""

    name: Token
    superclass: Variable | None
    methods: list[FunStmt]
