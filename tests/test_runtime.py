"""Runtime tests: numbers, values, environments and interpreter state."""

import math
import sys
import time

import pytest

from lox import parse, resolve, run
from lox.resolve import Resolver
from lox.runtime import (
    Environment,
    Interpreter,
    LoxRuntimeError,
    VBool,
    VClass,
    VInstance,
    VNil,
    VNumber,
    VString,
    _value_eq,
    format_number,
    to_f32,
)
from lox.tokens import TK_IDENT, Token


def name(text: str) -> Token:
    return Token(TK_IDENT, text, None, 1, 1)


# ── Numbers ──────────────────────────────────────────────


@pytest.mark.parametrize(
    "value,text",
    [
        (7.0, "7"),
        (-2.0, "-2"),
        (0.5, "0.5"),
        (to_f32(3.14), "3.14"),
        (to_f32(0.1), "0.1"),
        (-0.0, "-0"),
        (0.0, "0"),
        (to_f32(1e12), "1000000000000"),
        (math.inf, "inf"),
        (-math.inf, "-inf"),
        (math.nan, "NaN"),
    ],
)
def test_format_number(value: float, text: str):
    assert format_number(value) == text


def test_numbers_are_single_precision():
    n = VNumber(0.1)
    assert n.value != 0.1
    assert n.value == to_f32(0.1)


def test_f32_overflow_is_infinite():
    assert to_f32(1e39) == math.inf
    assert to_f32(-1e39) == -math.inf


# ── Values ───────────────────────────────────────────────


def test_value_equality():
    assert _value_eq(VNil(), VNil())
    assert not _value_eq(VNil(), VBool(False))
    assert _value_eq(VNumber(1.0), VNumber(1.0))
    assert not _value_eq(VNumber(1.0), VString("1"))
    assert _value_eq(VString("a"), VString("a"))


def test_instances_never_equal():
    klass = VClass("A", None)
    inst = VInstance(klass)
    assert not _value_eq(inst, inst)
    assert not _value_eq(klass, klass)


def test_display_labels():
    klass = VClass("Point", None)
    assert klass.to_string() == "<loxClass Point>"
    assert VInstance(klass).to_string() == "<loxInstance Point>"
    assert VNil().to_string() == "nil"
    assert VBool(True).to_string() == "true"


# ── Environment ──────────────────────────────────────────


def test_child_scopes_share_parent():
    parent = Environment()
    parent.define("x", VNumber(1.0))
    left = Environment(parent)
    right = Environment(parent)
    left.assign(name("x"), VNumber(2.0))
    assert right.get(name("x")) == VNumber(2.0)


def test_get_at_and_assign_at():
    outer = Environment()
    outer.define("x", VString("outer"))
    inner = Environment(Environment(outer))
    assert inner.ancestor(2) is outer
    assert inner.get_at(2, "x") == VString("outer")
    inner.assign_at(2, "x", VString("changed"))
    assert outer.get(name("x")) == VString("changed")


def test_define_shadows_enclosing():
    outer = Environment()
    outer.define("x", VNumber(1.0))
    inner = Environment(outer)
    inner.define("x", VNumber(2.0))
    assert inner.get(name("x")) == VNumber(2.0)
    assert outer.get(name("x")) == VNumber(1.0)


def test_undefined_variable():
    with pytest.raises(LoxRuntimeError) as exc:
        Environment().get(name("missing"))
    assert exc.value.msg == "Undefined variable 'missing'."
    with pytest.raises(LoxRuntimeError):
        Environment().assign(name("missing"), VNil())


# ── Interpreter ──────────────────────────────────────────


def test_run_is_idempotent():
    source = """
    class Counter {
      init() { this.n = 0; }
      tick() { this.n = this.n + 1; return this.n; }
    }
    var c = Counter();
    c.tick();
    print c.tick();
    """
    assert run(source) == "2\n"
    assert run(source) == run(source)


def test_runtime_error_carries_partial_output():
    with pytest.raises(LoxRuntimeError) as exc:
        run('print "one";\nprint "two";\nprint -nil;')
    assert exc.value.output == "one\ntwo\n"
    assert exc.value.msg == "Operand must be a number."
    assert exc.value.line == 3


def test_stack_overflow_is_a_runtime_error():
    with pytest.raises(LoxRuntimeError) as exc:
        run("fun f() { f(); } f();")
    assert exc.value.msg == "Stack overflow."


def test_interpreter_keeps_globals_between_programs():
    interp = Interpreter()
    first = parse("var a = 1; fun bump() { a = a + 1; }")
    Resolver(interp.locals).resolve(first)
    assert interp.interpret(first) == ""
    second = parse("bump(); print a;")
    Resolver(interp.locals).resolve(second)
    assert interp.interpret(second) == "2\n"


def test_interpreter_recovers_after_runtime_error():
    interp = Interpreter()
    bad = parse("{ var x = 1; print nope; }")
    Resolver(interp.locals).resolve(bad)
    with pytest.raises(LoxRuntimeError):
        interp.interpret(bad)
    assert interp.env is interp.globals
    good = parse('print "fine";')
    assert interp.interpret(good) == "fine\n"


def test_without_natives():
    stmts = parse("print clock();")
    interp = Interpreter(resolve(stmts), natives=False)
    with pytest.raises(LoxRuntimeError) as exc:
        interp.interpret(stmts)
    assert exc.value.msg == "Undefined variable 'clock'."


def test_resolve_hook_records_depth():
    interp = Interpreter()
    interp.resolve(42, 3)
    assert interp.locals[42] == 3


def test_clock_counts_seconds():
    # Whole seconds survive the f32 rounding only to within a couple of minutes.
    assert abs(float(run("print clock();")) - time.time()) < 300


def test_deep_recursion_restores_host_limit():
    before = sys.getrecursionlimit()
    source = """
    fun depth(n) {
      if (n == 0) return 0;
      return depth(n - 1) + 1;
    }
    print depth(2000);
    """
    assert run(source) == "2000\n"
    assert sys.getrecursionlimit() == before
