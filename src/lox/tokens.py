"""Lox tokenizer — lexes source into a flat token list."""

from __future__ import annotations

from dataclasses import dataclass

from .diagnostics import Diagnostics


# Token type constants
TK_LEFT_PAREN = "("
TK_RIGHT_PAREN = ")"
TK_LEFT_BRACE = "{"
TK_RIGHT_BRACE = "}"
TK_COMMA = ","
TK_DOT = "."
TK_MINUS = "-"
TK_PLUS = "+"
TK_SEMICOLON = ";"
TK_SLASH = "/"
TK_STAR = "*"
TK_BANG = "!"
TK_BANG_EQUAL = "!="
TK_EQUAL = "="
TK_EQUAL_EQUAL = "=="
TK_GREATER = ">"
TK_GREATER_EQUAL = ">="
TK_LESS = "<"
TK_LESS_EQUAL = "<="
TK_IDENT = "IDENT"
TK_STRING = "STRING"
TK_NUMBER = "NUMBER"
TK_EOF = "EOF"

# Keywords are their own token type.
KEYWORDS: set[str] = {
    "and",
    "break",
    "class",
    "else",
    "false",
    "for",
    "fun",
    "if",
    "nil",
    "or",
    "print",
    "return",
    "super",
    "this",
    "true",
    "var",
    "while",
}

SINGLE_OPS: set[str] = {
    "(",
    ")",
    "{",
    "}",
    ",",
    ".",
    "-",
    "+",
    ";",
    "*",
}

# One-char operators that may take a trailing '='
EQUAL_SUFFIX_OPS: set[str] = {"!", "=", "<", ">"}


@dataclass(frozen=True)
class Token:
    """A token with type, lexeme, literal value, and position."""

    type: str
    lexeme: str
    literal: float | str | None
    line: int
    col: int = 0

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.lexeme)
            + ", "
            + repr(self.literal)
            + ", "
            + str(self.line)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


class _Scanner:
    """Single-pass scanner with two characters of lookahead."""

    def __init__(self, source: str, diagnostics: Diagnostics | None):
        self.source = source
        self.diagnostics = diagnostics
        self.tokens: list[Token] = []
        self.start = 0
        self.current = 0
        self.line = 1
        self.col = 1
        self.start_line = 1
        self.start_col = 1

    # ── Helpers ──────────────────────────────────────────────

    def at_end(self) -> bool:
        return self.current >= len(self.source)

    def advance(self) -> str:
        c = self.source[self.current]
        self.current += 1
        if c == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return c

    def peek(self) -> str:
        if self.at_end():
            return "\0"
        return self.source[self.current]

    def peek_next(self) -> str:
        if self.current + 1 >= len(self.source):
            return "\0"
        return self.source[self.current + 1]

    def match(self, expected: str) -> bool:
        if self.peek() != expected:
            return False
        self.advance()
        return True

    def add(self, type_: str, literal: float | str | None = None) -> None:
        lexeme = self.source[self.start : self.current]
        self.tokens.append(
            Token(type_, lexeme, literal, self.start_line, self.start_col)
        )

    def error(self, line: int, message: str) -> None:
        if self.diagnostics is not None:
            self.diagnostics.report(line, "", message)

    # ── Scanning ─────────────────────────────────────────────

    def scan(self) -> list[Token]:
        while not self.at_end():
            self.start = self.current
            self.start_line = self.line
            self.start_col = self.col
            self.scan_token()
        self.tokens.append(Token(TK_EOF, "", None, self.line, self.col))
        return self.tokens

    def scan_token(self) -> None:
        c = self.advance()

        if c == " " or c == "\t" or c == "\r" or c == "\n":
            return

        if c in SINGLE_OPS:
            self.add(c)
            return

        if c in EQUAL_SUFFIX_OPS:
            if self.match("="):
                self.add(c + "=")
            else:
                self.add(c)
            return

        if c == "/":
            if self.match("/"):
                # Line comment
                while self.peek() != "\n" and not self.at_end():
                    self.advance()
            else:
                self.add(TK_SLASH)
            return

        if c == '"':
            self.string()
            return

        if _is_digit(c):
            self.number()
            return

        if _is_alpha(c):
            self.identifier()
            return

        self.error(self.start_line, "Unexpected character.")

    def string(self) -> None:
        while self.peek() != '"' and not self.at_end():
            self.advance()
        if self.at_end():
            self.error(self.line, "Unterminated string.")
            return
        self.advance()  # closing "
        self.add(TK_STRING, self.source[self.start + 1 : self.current - 1])

    def number(self) -> None:
        while _is_digit(self.peek()):
            self.advance()
        # Fractional part needs a digit after the dot.
        if self.peek() == "." and _is_digit(self.peek_next()):
            self.advance()
            while _is_digit(self.peek()):
                self.advance()
        self.add(TK_NUMBER, float(self.source[self.start : self.current]))

    def identifier(self) -> None:
        while _is_alnum(self.peek()):
            self.advance()
        word = self.source[self.start : self.current]
        if word in KEYWORDS:
            self.add(word)
        else:
            self.add(TK_IDENT)


def tokenize(source: str, diagnostics: Diagnostics | None = None) -> list[Token]:
    """Tokenize Lox source into a flat list ending with TK_EOF.

    Lexical errors are reported to `diagnostics` and the offending characters
    skipped, so one pass can surface several of them.
    """
    return _Scanner(source, diagnostics).scan()
