"""Lox resolver — static pass binding each local reference to a scope distance."""

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
    Pos,
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
from .depth import host_recursion
from .tokens import Token


# Function kinds
FN_NONE = "none"
FN_FUNCTION = "function"
FN_METHOD = "method"
FN_INITIALIZER = "initializer"

# Class kinds
CLASS_NONE = "none"
CLASS_CLASS = "class"
CLASS_SUBCLASS = "subclass"


class ResolveError(Exception):
    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class Resolver:
    """Walks the tree once and fills `locals` with node_id -> depth.

    Globals are never pushed as a scope; a name not found in any local scope
    is left out of the table and looked up dynamically at runtime.
    """

    def __init__(self, locals: dict[int, int] | None = None) -> None:
        self.locals: dict[int, int] = locals if locals is not None else {}
        self.scopes: list[dict[str, bool]] = []
        self.current_fn: str = FN_NONE
        self.current_class: str = CLASS_NONE
        self.loop_depth: int = 0

    def error(self, msg: str, pos: Pos) -> ResolveError:
        return ResolveError(msg, pos.line, pos.col)

    def error_at(self, msg: str, tok: Token) -> ResolveError:
        return ResolveError(msg, tok.line, tok.col)

    # ── Scopes ───────────────────────────────────────────────

    def enter_scope(self) -> None:
        self.scopes.append({})

    def exit_scope(self) -> None:
        self.scopes.pop()

    def declare(self, name: str) -> None:
        if len(self.scopes) == 0:
            return
        self.scopes[-1][name] = False

    def define(self, name: str) -> None:
        if len(self.scopes) == 0:
            return
        self.scopes[-1][name] = True

    def resolve_local(self, node_id: int, name: str) -> None:
        i = len(self.scopes) - 1
        while i >= 0:
            if name in self.scopes[i]:
                self.locals[node_id] = len(self.scopes) - 1 - i
                return
            i -= 1

    # ── Entry ────────────────────────────────────────────────

    def resolve(self, stmts: list[Stmt]) -> dict[int, int]:
        with host_recursion():
            for stmt in stmts:
                try:
                    self.resolve_stmt(stmt)
                except RecursionError:
                    raise self.error("Expression nests too deeply.", stmt.pos) from None
        return self.locals

    # ── Statements ───────────────────────────────────────────

    def resolve_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, BlockStmt):
            self.enter_scope()
            try:
                for s in stmt.stmts:
                    self.resolve_stmt(s)
            finally:
                self.exit_scope()
        elif isinstance(stmt, VarStmt):
            self.declare(stmt.name.lexeme)
            if stmt.initializer is not None:
                self.resolve_expr(stmt.initializer)
            self.define(stmt.name.lexeme)
        elif isinstance(stmt, FunStmt):
            # Defined before the body so the function can recurse.
            self.declare(stmt.name.lexeme)
            self.define(stmt.name.lexeme)
            self.resolve_function(stmt, FN_FUNCTION)
        elif isinstance(stmt, ClassStmt):
            self.resolve_class(stmt)
        elif isinstance(stmt, ExprStmt):
            self.resolve_expr(stmt.expr)
        elif isinstance(stmt, PrintStmt):
            self.resolve_expr(stmt.expr)
        elif isinstance(stmt, IfStmt):
            self.resolve_expr(stmt.cond)
            self.resolve_stmt(stmt.then_branch)
            if stmt.else_branch is not None:
                self.resolve_stmt(stmt.else_branch)
        elif isinstance(stmt, WhileStmt):
            self.resolve_expr(stmt.cond)
            self.loop_depth += 1
            try:
                self.resolve_stmt(stmt.body)
            finally:
                self.loop_depth -= 1
        elif isinstance(stmt, ReturnStmt):
            if self.current_fn == FN_NONE:
                raise self.error_at("Can't return from top-level code.", stmt.keyword)
            if stmt.value is not None:
                if self.current_fn == FN_INITIALIZER:
                    raise self.error_at(
                        "Can't return a value from an initializer.", stmt.keyword
                    )
                self.resolve_expr(stmt.value)
        elif isinstance(stmt, BreakStmt):
            if self.loop_depth == 0:
                raise self.error_at("Can't use 'break' outside of a loop.", stmt.keyword)
        else:
            raise self.error("unknown statement " + type(stmt).__name__, stmt.pos)

    def resolve_function(self, fn: FunStmt, kind: str) -> None:
        enclosing_fn = self.current_fn
        enclosing_loops = self.loop_depth
        self.current_fn = kind
        # A loop outside the function does not make 'break' legal inside it.
        self.loop_depth = 0
        self.enter_scope()
        try:
            for param in fn.params:
                self.declare(param.lexeme)
                self.define(param.lexeme)
            for s in fn.body:
                self.resolve_stmt(s)
        finally:
            self.exit_scope()
            self.current_fn = enclosing_fn
            self.loop_depth = enclosing_loops

    def resolve_class(self, cls: ClassStmt) -> None:
        enclosing_class = self.current_class
        self.current_class = CLASS_CLASS
        self.declare(cls.name.lexeme)
        self.define(cls.name.lexeme)
        has_super = cls.superclass is not None
        try:
            if cls.superclass is not None:
                if cls.superclass.name.lexeme == cls.name.lexeme:
                    raise self.error_at(
                        "A class can't inherit from itself.", cls.superclass.name
                    )
                self.current_class = CLASS_SUBCLASS
                self.resolve_expr(cls.superclass)
                self.enter_scope()
                self.scopes[-1]["super"] = True
            self.enter_scope()
            self.scopes[-1]["this"] = True
            for method in cls.methods:
                kind = FN_METHOD
                if method.name.lexeme == "init":
                    kind = FN_INITIALIZER
                self.resolve_function(method, kind)
            self.exit_scope()
            if has_super:
                self.exit_scope()
        finally:
            self.current_class = enclosing_class

    # ── Expressions ──────────────────────────────────────────

    def resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, Variable):
            name = expr.name.lexeme
            if len(self.scopes) > 0 and self.scopes[-1].get(name) is False:
                raise self.error_at(
                    "Can't read local variable in its own initializer.", expr.name
                )
            self.resolve_local(expr.node_id, name)
        elif isinstance(expr, Assign):
            self.resolve_expr(expr.value)
            self.resolve_local(expr.node_id, expr.name.lexeme)
        elif isinstance(expr, Binary):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, Logical):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, Unary):
            self.resolve_expr(expr.operand)
        elif isinstance(expr, Grouping):
            self.resolve_expr(expr.inner)
        elif isinstance(expr, Call):
            self.resolve_expr(expr.callee)
            for arg in expr.args:
                self.resolve_expr(arg)
        elif isinstance(expr, Get):
            self.resolve_expr(expr.obj)
        elif isinstance(expr, Set):
            self.resolve_expr(expr.value)
            self.resolve_expr(expr.obj)
        elif isinstance(expr, This):
            if self.current_class == CLASS_NONE:
                raise self.error_at("Can't use 'this' outside of a class.", expr.keyword)
            self.resolve_local(expr.node_id, "this")
        elif isinstance(expr, Super):
            if self.current_class == CLASS_NONE:
                raise self.error_at(
                    "Can't use 'super' outside of a class.", expr.keyword
                )
            if self.current_class != CLASS_SUBCLASS:
                raise self.error_at(
                    "Can't use 'super' in a class with no superclass.", expr.keyword
                )
            self.resolve_local(expr.node_id, "super")
        elif isinstance(expr, Literal):
            pass
        else:
            raise self.error("unknown expression " + type(expr).__name__, expr.pos)


def resolve(stmts: list[Stmt], locals: dict[int, int] | None = None) -> dict[int, int]:
    """Resolve a program; raises ResolveError on the first static error."""
    return Resolver(locals).resolve(stmts)
