"""Tokenizer tests."""

import sys

from lox.diagnostics import Diagnostics
from lox.tokens import TK_EOF, TK_IDENT, TK_NUMBER, TK_STRING, tokenize


def types(source: str) -> list[str]:
    return [t.type for t in tokenize(source)]


def test_empty_source_is_just_eof():
    toks = tokenize("")
    assert len(toks) == 1
    assert toks[0].type == TK_EOF


def test_one_and_two_char_operators():
    assert types("! != = == < <= > >=") == [
        "!",
        "!=",
        "=",
        "==",
        "<",
        "<=",
        ">",
        ">=",
        TK_EOF,
    ]


def test_punctuation():
    assert types("(){},.-+;*/") == [
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
        "/",
        TK_EOF,
    ]


def test_keywords_and_identifiers():
    assert types("var foo = nil; break classy") == [
        "var",
        TK_IDENT,
        "=",
        "nil",
        ";",
        "break",
        TK_IDENT,
        TK_EOF,
    ]


def test_identifier_lexeme():
    toks = tokenize("_under_score9")
    assert toks[0].type == TK_IDENT
    assert toks[0].lexeme == "_under_score9"


def test_number_literals():
    toks = tokenize("12 12.5")
    assert toks[0].type == TK_NUMBER
    assert toks[0].literal == 12.0
    assert toks[1].literal == 12.5


def test_trailing_dot_is_not_part_of_number():
    toks = tokenize("12.")
    assert [t.type for t in toks] == [TK_NUMBER, ".", TK_EOF]
    assert toks[0].lexeme == "12"


def test_string_literal_strips_quotes():
    toks = tokenize('"hello world"')
    assert toks[0].type == TK_STRING
    assert toks[0].literal == "hello world"
    assert toks[0].lexeme == '"hello world"'


def test_multiline_string_counts_lines():
    toks = tokenize('"a\nb" x')
    assert toks[0].literal == "a\nb"
    assert toks[0].line == 1
    assert toks[1].line == 2


def test_comment_is_skipped():
    toks = tokenize("// a comment\nprint")
    assert toks[0].type == "print"
    assert toks[0].line == 2


def test_columns():
    toks = tokenize("a\n  b")
    assert (toks[0].line, toks[0].col) == (1, 1)
    assert (toks[1].line, toks[1].col) == (2, 3)


def test_unexpected_characters_do_not_stop_scanning():
    diags = Diagnostics()
    toks = tokenize("@ 1 #", diags)
    assert [t.type for t in toks] == [TK_NUMBER, TK_EOF]
    assert diags.messages() == [
        "[line 1] Error: Unexpected character.",
        "[line 1] Error: Unexpected character.",
    ]


def test_unterminated_string():
    diags = Diagnostics()
    toks = tokenize('"open\nstill open', diags)
    assert [t.type for t in toks] == [TK_EOF]
    assert diags.messages() == ["[line 2] Error: Unterminated string."]


def test_diagnostics_stream(capsys):
    diags = Diagnostics(stream=sys.stderr)
    tokenize("$", diags)
    assert capsys.readouterr().err == "[line 1] Error: Unexpected character.\n"
    assert diags.had_error
    diags.clear()
    assert not diags.had_error
