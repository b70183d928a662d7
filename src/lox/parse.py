"""Lox parser — recursive descent, one method per grammar production."""

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
    next_node_id,
    tok_pos,
)
from .depth import host_recursion
from .diagnostics import Diagnostics
from .tokens import (
    TK_EOF,
    TK_IDENT,
    TK_NUMBER,
    TK_SEMICOLON,
    TK_STRING,
    Token,
)

EQUALITY_OPS: set[str] = {"==", "!="}

COMPARISON_OPS: set[str] = {"<", "<=", ">", ">="}

# Keywords that begin a statement; error recovery stops in front of them.
STATEMENT_KEYWORDS: set[str] = {
    "class",
    "for",
    "fun",
    "if",
    "print",
    "return",
    "var",
    "while",
}


class ParseError(Exception):
    """Parse error with location info."""

    def __init__(self, msg: str, token: Token):
        self.msg: str = msg
        self.token: Token = token
        self.line: int = token.line
        self.col: int = token.col
        super().__init__(msg + " at line " + str(self.line) + " col " + str(self.col))

    @property
    def where(self) -> str:
        if self.token.type == TK_EOF:
            return " at end"
        return " at '" + self.token.lexeme + "'"


class Parser:
    """Recursive descent parser for Lox.

    Errors do not stop the parse: each one is recorded in `errors`, reported to
    the diagnostics sink, and the parser skips ahead to the next statement.
    """

    def __init__(self, tokens: list[Token], diagnostics: Diagnostics | None = None):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.diagnostics = diagnostics
        self.errors: list[ParseError] = []

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def at(self, type_: str) -> bool:
        return self.current().type == type_

    def at_end(self) -> bool:
        return self.current().type == TK_EOF

    def match(self, *types: str) -> bool:
        if self.current().type in types:
            self.advance()
            return True
        return False

    def expect(self, type_: str, msg: str) -> Token:
        if self.at(type_):
            return self.advance()
        raise self.error(msg)

    def error(self, msg: str, token: Token | None = None) -> ParseError:
        return ParseError(msg, token if token is not None else self.current())

    def _pos(self) -> Pos:
        return tok_pos(self.current())

    def _record(self, err: ParseError) -> None:
        self.errors.append(err)
        if self.diagnostics is not None:
            self.diagnostics.report(err.line, err.where, err.msg)

    def synchronize(self) -> None:
        """Skip to just past a ';' or to the next statement keyword."""
        self.advance()
        while not self.at_end():
            if self.previous().type == TK_SEMICOLON:
                return
            if self.current().type in STATEMENT_KEYWORDS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> list[Stmt]:
        stmts: list[Stmt] = []
        with host_recursion():
            while not self.at_end():
                stmt = self.parse_declaration()
                if stmt is not None:
                    stmts.append(stmt)
        return stmts

    def parse_declaration(self) -> Stmt | None:
        try:
            if self.at("class"):
                return self.parse_class_decl()
            if self.at("fun"):
                self.advance()
                return self.parse_function("function")
            if self.at("var"):
                return self.parse_var_decl()
            return self.parse_stmt()
        except ParseError as e:
            self._record(e)
            self.synchronize()
            return None
        except RecursionError:
            self._record(self.error("Expression nests too deeply."))
            self.synchronize()
            return None

    def parse_class_decl(self) -> ClassStmt:
        pos = self._pos()
        self.expect("class", "Expect 'class'.")
        name = self.expect(TK_IDENT, "Expect class name.")
        superclass: Variable | None = None
        if self.match("<"):
            super_tok = self.expect(TK_IDENT, "Expect superclass name.")
            superclass = Variable(tok_pos(super_tok), next_node_id(), super_tok)
        self.expect("{", "Expect '{' before class body.")
        methods: list[FunStmt] = []
        while not self.at("}") and not self.at_end():
            methods.append(self.parse_function("method"))
        self.expect("}", "Expect '}' after class body.")
        return ClassStmt(pos, name, superclass, methods)

    def parse_function(self, kind: str) -> FunStmt:
        """Function = IDENT '(' Params? ')' Block; the 'fun' is already consumed."""
        pos = self._pos()
        name = self.expect(TK_IDENT, "Expect " + kind + " name.")
        self.expect("(", "Expect '(' after " + kind + " name.")
        params: list[Token] = []
        if not self.at(")"):
            params.append(self.expect(TK_IDENT, "Expect parameter name."))
            while self.match(","):
                params.append(self.expect(TK_IDENT, "Expect parameter name."))
        self.expect(")", "Expect ')' after parameters.")
        self.expect("{", "Expect '{' before " + kind + " body.")
        body = self.parse_block()
        return FunStmt(pos, name, params, body)

    def parse_var_decl(self) -> VarStmt:
        pos = self._pos()
        self.expect("var", "Expect 'var'.")
        name = self.expect(TK_IDENT, "Expect variable name.")
        initializer: Expr | None = None
        if self.match("="):
            initializer = self.parse_expr()
        self.expect(TK_SEMICOLON, "Expect ';' after variable declaration.")
        return VarStmt(pos, name, initializer)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        tok = self.current()
        if tok.type == "for":
            return self.parse_for_stmt()
        if tok.type == "if":
            return self.parse_if_stmt()
        if tok.type == "print":
            return self.parse_print_stmt()
        if tok.type == "return":
            return self.parse_return_stmt()
        if tok.type == "break":
            return self.parse_break_stmt()
        if tok.type == "while":
            return self.parse_while_stmt()
        if tok.type == "{":
            pos = self._pos()
            self.advance()
            return BlockStmt(pos, self.parse_block())
        return self.parse_expr_stmt()

    def parse_block(self) -> list[Stmt]:
        """Statements up to and including the closing '}'."""
        stmts: list[Stmt] = []
        while not self.at("}") and not self.at_end():
            stmt = self.parse_declaration()
            if stmt is not None:
                stmts.append(stmt)
        self.expect("}", "Expect '}' after block.")
        return stmts

    def parse_for_stmt(self) -> Stmt:
        """Desugar `for (init; cond; incr) body` into a while loop."""
        pos = self._pos()
        self.expect("for", "Expect 'for'.")
        self.expect("(", "Expect '(' after 'for'.")

        initializer: Stmt | None
        if self.match(TK_SEMICOLON):
            initializer = None
        elif self.at("var"):
            initializer = self.parse_var_decl()
        else:
            initializer = self.parse_expr_stmt()

        cond: Expr | None = None
        if not self.at(TK_SEMICOLON):
            cond = self.parse_expr()
        self.expect(TK_SEMICOLON, "Expect ';' after loop condition.")

        increment: Expr | None = None
        if not self.at(")"):
            increment = self.parse_expr()
        self.expect(")", "Expect ')' after for clauses.")

        body = self.parse_stmt()
        if increment is not None:
            body = BlockStmt(body.pos, [body, ExprStmt(increment.pos, increment)])
        if cond is None:
            cond = Literal(pos, next_node_id(), True)
        loop: Stmt = WhileStmt(pos, cond, body)
        if initializer is not None:
            loop = BlockStmt(pos, [initializer, loop])
        return loop

    def parse_if_stmt(self) -> IfStmt:
        pos = self._pos()
        self.expect("if", "Expect 'if'.")
        self.expect("(", "Expect '(' after 'if'.")
        cond = self.parse_expr()
        self.expect(")", "Expect ')' after if condition.")
        then_branch = self.parse_stmt()
        else_branch: Stmt | None = None
        if self.match("else"):
            else_branch = self.parse_stmt()
        return IfStmt(pos, cond, then_branch, else_branch)

    def parse_print_stmt(self) -> PrintStmt:
        pos = self._pos()
        self.expect("print", "Expect 'print'.")
        value = self.parse_expr()
        self.expect(TK_SEMICOLON, "Expect ';' after value.")
        return PrintStmt(pos, value)

    def parse_return_stmt(self) -> ReturnStmt:
        pos = self._pos()
        keyword = self.expect("return", "Expect 'return'.")
        value: Expr | None = None
        if not self.at(TK_SEMICOLON):
            value = self.parse_expr()
        self.expect(TK_SEMICOLON, "Expect ';' after return value.")
        return ReturnStmt(pos, keyword, value)

    def parse_break_stmt(self) -> BreakStmt:
        pos = self._pos()
        keyword = self.expect("break", "Expect 'break'.")
        self.expect(TK_SEMICOLON, "Expect ';' after 'break'.")
        return BreakStmt(pos, keyword)

    def parse_while_stmt(self) -> WhileStmt:
        pos = self._pos()
        self.expect("while", "Expect 'while'.")
        self.expect("(", "Expect '(' after 'while'.")
        cond = self.parse_expr()
        self.expect(")", "Expect ')' after condition.")
        body = self.parse_stmt()
        return WhileStmt(pos, cond, body)

    def parse_expr_stmt(self) -> ExprStmt:
        pos = self._pos()
        expr = self.parse_expr()
        self.expect(TK_SEMICOLON, "Expect ';' after expression.")
        return ExprStmt(pos, expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_assignment()

    def parse_assignment(self) -> Expr:
        """Assignment = ( Call '.' )? IDENT '=' Assignment | Or"""
        expr = self.parse_or()
        if self.at("="):
            equals = self.advance()
            value = self.parse_assignment()
            if isinstance(expr, Variable):
                return Assign(expr.pos, next_node_id(), expr.name, value)
            if isinstance(expr, Get):
                return Set(expr.pos, next_node_id(), expr.obj, expr.name, value)
            raise self.error("Invalid assignment target.", equals)
        return expr

    def parse_or(self) -> Expr:
        """Or = And ( 'or' And )*"""
        left = self.parse_and()
        while self.at("or"):
            op = self.advance()
            right = self.parse_and()
            left = Logical(left.pos, next_node_id(), op, left, right)
        return left

    def parse_and(self) -> Expr:
        """And = Equality ( 'and' Equality )*"""
        left = self.parse_equality()
        while self.at("and"):
            op = self.advance()
            right = self.parse_equality()
            left = Logical(left.pos, next_node_id(), op, left, right)
        return left

    def parse_equality(self) -> Expr:
        """Equality = Comparison ( ( '!=' | '==' ) Comparison )*"""
        left = self.parse_comparison()
        while self.current().type in EQUALITY_OPS:
            op = self.advance()
            right = self.parse_comparison()
            left = Binary(left.pos, next_node_id(), op, left, right)
        return left

    def parse_comparison(self) -> Expr:
        """Comparison = Term ( ( '<' | '<=' | '>' | '>=' ) Term )*"""
        left = self.parse_term()
        while self.current().type in COMPARISON_OPS:
            op = self.advance()
            right = self.parse_term()
            left = Binary(left.pos, next_node_id(), op, left, right)
        return left

    def parse_term(self) -> Expr:
        """Term = Factor ( ( '+' | '-' ) Factor )*"""
        left = self.parse_factor()
        while self.at("+") or self.at("-"):
            op = self.advance()
            right = self.parse_factor()
            left = Binary(left.pos, next_node_id(), op, left, right)
        return left

    def parse_factor(self) -> Expr:
        """Factor = Unary ( ( '*' | '/' ) Unary )*"""
        left = self.parse_unary()
        while self.at("*") or self.at("/"):
            op = self.advance()
            right = self.parse_unary()
            left = Binary(left.pos, next_node_id(), op, left, right)
        return left

    def parse_unary(self) -> Expr:
        """Unary = ( '!' | '-' ) Unary | Call"""
        if self.at("!") or self.at("-"):
            pos = self._pos()
            op = self.advance()
            operand = self.parse_unary()
            return Unary(pos, next_node_id(), op, operand)
        return self.parse_call()

    def parse_call(self) -> Expr:
        """Call = Primary ( '(' Args? ')' | '.' IDENT )*"""
        expr = self.parse_primary()
        while True:
            if self.match("("):
                expr = self.finish_call(expr)
            elif self.match("."):
                name = self.expect(TK_IDENT, "Expect property name after '.'.")
                expr = Get(expr.pos, next_node_id(), expr, name)
            else:
                break
        return expr

    def finish_call(self, callee: Expr) -> Call:
        args: list[Expr] = []
        if not self.at(")"):
            args.append(self.parse_expr())
            while self.match(","):
                args.append(self.parse_expr())
        paren = self.expect(")", "Expect ')' after arguments.")
        return Call(callee.pos, next_node_id(), callee, paren, args)

    def parse_primary(self) -> Expr:
        """Parse a primary expression."""
        tok = self.current()
        pos = self._pos()

        if tok.type == "false":
            self.advance()
            return Literal(pos, next_node_id(), False)
        if tok.type == "true":
            self.advance()
            return Literal(pos, next_node_id(), True)
        if tok.type == "nil":
            self.advance()
            return Literal(pos, next_node_id(), None)
        if tok.type == TK_NUMBER or tok.type == TK_STRING:
            self.advance()
            return Literal(pos, next_node_id(), tok.literal)

        if tok.type == "super":
            keyword = self.advance()
            self.expect(".", "Expect '.' after 'super'.")
            method = self.expect(TK_IDENT, "Expect superclass method name.")
            return Super(pos, next_node_id(), keyword, method)
        if tok.type == "this":
            self.advance()
            return This(pos, next_node_id(), tok)
        if tok.type == TK_IDENT:
            self.advance()
            return Variable(pos, next_node_id(), tok)

        if tok.type == "(":
            self.advance()
            inner = self.parse_expr()
            self.expect(")", "Expect ')' after expression.")
            return Grouping(pos, next_node_id(), inner)

        raise self.error("Expect expression.")

