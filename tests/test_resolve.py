"""Resolver tests: scope distances and static errors."""

import pytest

from lox import parse, resolve
from lox.ast import ExprStmt, Grouping, Literal, Pos, next_node_id
from lox.resolve import ResolveError, Resolver


def test_globals_are_not_recorded():
    stmts = parse("var a = 1; print a; a = 2;")
    assert resolve(stmts) == {}


def test_block_local_distance():
    stmts = parse("{ var a = 1; { print a; } }")
    read = stmts[0].stmts[1].stmts[0].expr
    assert resolve(stmts) == {read.node_id: 1}


def test_assignment_distance():
    stmts = parse("{ var a = 1; a = 2; }")
    assign = stmts[0].stmts[1].expr
    assert resolve(stmts)[assign.node_id] == 0


def test_parameter_distance():
    stmts = parse("fun f(x) { return x; }")
    read = stmts[0].body[0].value
    assert resolve(stmts)[read.node_id] == 0


def test_closure_distance():
    stmts = parse("fun outer() { var n = 0; fun inner() { return n; } }")
    inner = stmts[0].body[1]
    read = inner.body[0].value
    assert resolve(stmts)[read.node_id] == 1


def test_this_distance():
    stmts = parse("class A { m() { return this; } }")
    this = stmts[0].methods[0].body[0].value
    assert resolve(stmts)[this.node_id] == 1


def test_super_distance():
    stmts = parse("class A {} class B < A { m() { return super.m; } }")
    sup = stmts[1].methods[0].body[0].value
    assert resolve(stmts)[sup.node_id] == 2


def test_shared_table_across_resolvers():
    table: dict[int, int] = {}
    first = parse("{ var a; a; }")
    second = parse("{ var b; { b; } }")
    Resolver(table).resolve(first)
    Resolver(table).resolve(second)
    assert table[first[0].stmts[1].expr.node_id] == 0
    assert table[second[0].stmts[1].stmts[0].expr.node_id] == 1


def test_global_self_reference_is_allowed():
    # Only locals are checked for reads in their own initializer.
    resolve(parse("var a = a;"))


@pytest.mark.parametrize(
    "source,message",
    [
        ("return 1;", "Can't return from top-level code."),
        ("class A { init() { return 1; } }", "Can't return a value from an initializer."),
        ("print this;", "Can't use 'this' outside of a class."),
        ("fun f() { this; }", "Can't use 'this' outside of a class."),
        ("super.m();", "Can't use 'super' outside of a class."),
        ("class A { m() { super.m(); } }", "Can't use 'super' in a class with no superclass."),
        ("class A < A {}", "A class can't inherit from itself."),
        ("{ var a = a; }", "Can't read local variable in its own initializer."),
        ("break;", "Can't use 'break' outside of a loop."),
        ("while (true) { fun f() { break; } }", "Can't use 'break' outside of a loop."),
    ],
)
def test_static_errors(source: str, message: str):
    with pytest.raises(ResolveError) as exc:
        resolve(parse(source))
    assert exc.value.msg == message


def test_bare_return_in_initializer_is_allowed():
    resolve(parse("class A { init() { return; } }"))


def test_break_inside_loop_is_allowed():
    resolve(parse("while (true) { if (true) break; }"))
    resolve(parse("for (;;) { { break; } }"))


def test_error_position():
    with pytest.raises(ResolveError) as exc:
        resolve(parse("\n  return;"))
    assert (exc.value.line, exc.value.col) == (2, 3)
    assert str(exc.value) == "Can't return from top-level code. at line 2 col 3"


def test_runaway_nesting_is_reported():
    expr = Literal(Pos(1, 7), next_node_id(), 1.0)
    for _ in range(30_000):
        expr = Grouping(Pos(1, 6), next_node_id(), expr)
    with pytest.raises(ResolveError) as exc:
        resolve([ExprStmt(Pos(1, 1), expr)])
    assert exc.value.msg == "Expression nests too deeply."
    assert (exc.value.line, exc.value.col) == (1, 1)
