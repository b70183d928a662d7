"""Lox runtime — values, environments and the tree-walking interpreter.

Statements execute to a Completion (normal, return or break) that callers
inspect and propagate; runtime errors are the only exceptions raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
import math
import struct
import time
from typing import Callable

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
    tok_pos,
)
from .depth import host_recursion
from .tokens import Token


# ============================================================
# Diagnostics
# ============================================================


class LoxRuntimeError(Exception):
    """Runtime fault; aborts the current run.

    `output` holds whatever the program printed before the fault.
    """

    def __init__(self, msg: str, pos: Pos | None = None, output: str = ""):
        if pos is None:
            super().__init__(msg)
        else:
            super().__init__(f"{msg} at line {pos.line} col {pos.col}")
        self.msg = msg
        self.pos = pos
        self.output = output

    @property
    def line(self) -> int:
        return self.pos.line if self.pos is not None else 0


# ============================================================
# Numbers
# ============================================================


def to_f32(x: float) -> float:
    """Round a double to the nearest binary32 value."""
    try:
        return struct.unpack("f", struct.pack("f", x))[0]
    except OverflowError:
        return math.copysign(math.inf, x)


def format_number(x: float) -> str:
    """Shortest positional text that reads back as the same binary32 value."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "inf" if x > 0 else "-inf"
    text = "%.9g" % x
    for precision in range(1, 10):
        candidate = "%.*g" % (precision, x)
        if to_f32(float(candidate)) == x:
            text = candidate
            break
    out = format(Decimal(text), "f")
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    return out


def _divide(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


# ============================================================
# Values
# ============================================================


class Value:
    """A runtime value."""

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass
class VNil(Value):
    def to_string(self) -> str:
        return "nil"


@dataclass
class VBool(Value):
    value: bool

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass
class VNumber(Value):
    value: float

    def __post_init__(self) -> None:
        self.value = to_f32(self.value)

    def to_string(self) -> str:
        return format_number(self.value)


@dataclass
class VString(Value):
    value: str

    def to_string(self) -> str:
        return self.value


class VCallable(Value):
    """Anything a call expression accepts."""

    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        raise NotImplementedError


@dataclass(eq=False)
class VFunction(VCallable):
    decl: FunStmt
    closure: Environment
    is_initializer: bool = False

    def arity(self) -> int:
        return len(self.decl.params)

    def bind(self, instance: VInstance) -> VFunction:
        env = Environment(self.closure)
        env.define("this", instance)
        return VFunction(self.decl, env, self.is_initializer)

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        env = Environment(self.closure)
        for param, arg in zip(self.decl.params, args):
            env.define(param.lexeme, arg)
        completion = interp.execute_block(self.decl.body, env)
        if self.is_initializer:
            return self.closure.get_at(0, "this")
        if completion.kind == COMPLETION_RETURN and completion.value is not None:
            return completion.value
        return VNil()

    def to_string(self) -> str:
        return f"<fn {self.decl.name.lexeme}>"


@dataclass(eq=False)
class VNative(VCallable):
    name: str
    n_params: int
    fn: Callable[[Interpreter, list[Value]], Value]

    def arity(self) -> int:
        return self.n_params

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        return self.fn(interp, args)

    def to_string(self) -> str:
        return "<native fn>"


@dataclass(eq=False)
class VClass(VCallable):
    name: str
    superclass: VClass | None
    methods: dict[str, VFunction] = field(default_factory=dict)

    def find_method(self, name: str) -> VFunction | None:
        klass: VClass | None = self
        while klass is not None:
            if name in klass.methods:
                return klass.methods[name]
            klass = klass.superclass
        return None

    def arity(self) -> int:
        init = self.find_method("init")
        if init is None:
            return 0
        return init.arity()

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        instance = VInstance(self)
        init = self.find_method("init")
        if init is not None:
            init.bind(instance).call(interp, args)
        return instance

    def to_string(self) -> str:
        return f"<loxClass {self.name}>"


@dataclass(eq=False)
class VInstance(Value):
    klass: VClass
    fields: dict[str, Value] = field(default_factory=dict)

    def get(self, name: Token) -> Value:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        method = self.klass.find_method(name.lexeme)
        if method is not None:
            return method.bind(self)
        raise LoxRuntimeError(f"Undefined property '{name.lexeme}'.", tok_pos(name))

    def set(self, name: Token, value: Value) -> None:
        self.fields[name.lexeme] = value

    def to_string(self) -> str:
        return f"<loxInstance {self.klass.name}>"


def _value_eq(a: Value, b: Value) -> bool:
    if type(a) is not type(b):
        return False
    if isinstance(a, VNil):
        return True
    if isinstance(a, VBool):
        return a.value == b.value  # type: ignore[attr-defined]
    if isinstance(a, VNumber):
        return a.value == b.value  # type: ignore[attr-defined]
    if isinstance(a, VString):
        return a.value == b.value  # type: ignore[attr-defined]
    # Functions, classes and instances never compare equal.
    return False


def _is_truthy(v: Value) -> bool:
    if isinstance(v, VNil):
        return False
    if isinstance(v, VBool):
        return v.value
    return True


# ============================================================
# Environment
# ============================================================


class Environment:
    """One scope in the chain; shared by reference, never copied."""

    def __init__(self, enclosing: Environment | None = None) -> None:
        self.values: dict[str, Value] = {}
        self.enclosing = enclosing

    def define(self, name: str, value: Value) -> None:
        self.values[name] = value

    def get(self, name: Token) -> Value:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env.enclosing
        raise LoxRuntimeError(f"Undefined variable '{name.lexeme}'.", tok_pos(name))

    def assign(self, name: Token, value: Value) -> None:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing
        raise LoxRuntimeError(f"Undefined variable '{name.lexeme}'.", tok_pos(name))

    def ancestor(self, distance: int) -> Environment:
        env = self
        for _ in range(distance):
            if env.enclosing is None:
                raise LoxRuntimeError("scope chain shorter than resolved distance")
            env = env.enclosing
        return env

    def get_at(self, distance: int, name: str) -> Value:
        scope = self.ancestor(distance)
        if name not in scope.values:
            raise LoxRuntimeError(f"Undefined variable '{name}'.")
        return scope.values[name]

    def assign_at(self, distance: int, name: str, value: Value) -> None:
        self.ancestor(distance).values[name] = value


# ============================================================
# Completions
# ============================================================


COMPLETION_NORMAL = "normal"
COMPLETION_RETURN = "return"
COMPLETION_BREAK = "break"


@dataclass
class Completion:
    """How a statement finished."""

    kind: str
    value: Value | None = None


NORMAL = Completion(COMPLETION_NORMAL)
BREAK = Completion(COMPLETION_BREAK)


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    """Executes resolved statements against a global environment.

    `locals` maps expression node ids to scope distances; ids missing from it
    are looked up by walking the chain. One interpreter may run many programs,
    and globals persist between them.
    """

    def __init__(self, locals: dict[int, int] | None = None, natives: bool = True):
        self.locals: dict[int, int] = locals if locals is not None else {}
        self.globals = Environment()
        self.env = self.globals
        self.out: list[str] = []
        if natives:
            for name, native in _NATIVES.items():
                self.globals.define(name, native)

    def resolve(self, node_id: int, depth: int) -> None:
        self.locals[node_id] = depth

    def interpret(self, stmts: list[Stmt]) -> str:
        """Run statements; return what they printed."""
        start = len(self.out)
        try:
            with host_recursion():
                for stmt in stmts:
                    self.execute(stmt)
        except LoxRuntimeError as e:
            e.output = "".join(self.out[start:])
            raise
        except RecursionError:
            raise LoxRuntimeError(
                "Stack overflow.", None, "".join(self.out[start:])
            ) from None
        return "".join(self.out[start:])

    # ---- Statements --------------------------------------------------------

    def execute_block(self, stmts: list[Stmt], env: Environment) -> Completion:
        previous = self.env
        self.env = env
        try:
            for stmt in stmts:
                completion = self.execute(stmt)
                if completion.kind != COMPLETION_NORMAL:
                    return completion
            return NORMAL
        finally:
            self.env = previous

    def execute(self, st: Stmt) -> Completion:
        if isinstance(st, ExprStmt):
            self.evaluate(st.expr)
            return NORMAL

        if isinstance(st, PrintStmt):
            value = self.evaluate(st.expr)
            self.out.append(value.to_string() + "\n")
            return NORMAL

        if isinstance(st, VarStmt):
            value: Value = VNil()
            if st.initializer is not None:
                value = self.evaluate(st.initializer)
            self.env.define(st.name.lexeme, value)
            return NORMAL

        if isinstance(st, BlockStmt):
            return self.execute_block(st.stmts, Environment(self.env))

        if isinstance(st, IfStmt):
            if _is_truthy(self.evaluate(st.cond)):
                return self.execute(st.then_branch)
            if st.else_branch is not None:
                return self.execute(st.else_branch)
            return NORMAL

        if isinstance(st, WhileStmt):
            while _is_truthy(self.evaluate(st.cond)):
                completion = self.execute(st.body)
                if completion.kind == COMPLETION_BREAK:
                    break
                if completion.kind == COMPLETION_RETURN:
                    return completion
            return NORMAL

        if isinstance(st, FunStmt):
            fn = VFunction(st, self.env, False)
            self.env.define(st.name.lexeme, fn)
            return NORMAL

        if isinstance(st, ReturnStmt):
            value = VNil()
            if st.value is not None:
                value = self.evaluate(st.value)
            return Completion(COMPLETION_RETURN, value)

        if isinstance(st, BreakStmt):
            return BREAK

        if isinstance(st, ClassStmt):
            self._exec_class(st)
            return NORMAL

        raise LoxRuntimeError("unknown statement " + type(st).__name__, st.pos)

    def _exec_class(self, st: ClassStmt) -> None:
        # Bound as nil first so methods can refer to the class by name.
        self.env.define(st.name.lexeme, VNil())
        superclass: VClass | None = None
        if st.superclass is not None:
            sv = self.evaluate(st.superclass)
            if not isinstance(sv, VClass):
                raise LoxRuntimeError(
                    "Superclass must be a class.", tok_pos(st.superclass.name)
                )
            superclass = sv
        method_env = self.env
        if superclass is not None:
            method_env = Environment(self.env)
            method_env.define("super", superclass)
        methods: dict[str, VFunction] = {}
        for method in st.methods:
            is_init = method.name.lexeme == "init"
            methods[method.name.lexeme] = VFunction(method, method_env, is_init)
        klass = VClass(st.name.lexeme, superclass, methods)
        self.env.assign(st.name, klass)

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, e: Expr) -> Value:
        if isinstance(e, Literal):
            if e.value is None:
                return VNil()
            if isinstance(e.value, bool):
                return VBool(e.value)
            if isinstance(e.value, float):
                return VNumber(e.value)
            return VString(e.value)

        if isinstance(e, Grouping):
            return self.evaluate(e.inner)

        if isinstance(e, Variable):
            return self._look_up(e.name, e.node_id)

        if isinstance(e, Assign):
            value = self.evaluate(e.value)
            distance = self.locals.get(e.node_id)
            if distance is not None:
                self.env.assign_at(distance, e.name.lexeme, value)
            else:
                self.env.assign(e.name, value)
            return value

        if isinstance(e, Logical):
            left = self.evaluate(e.left)
            if e.op.type == "or":
                if _is_truthy(left):
                    return left
            elif not _is_truthy(left):
                return left
            return self.evaluate(e.right)

        if isinstance(e, Unary):
            operand = self.evaluate(e.operand)
            if e.op.type == "!":
                return VBool(not _is_truthy(operand))
            if not isinstance(operand, VNumber):
                raise LoxRuntimeError("Operand must be a number.", tok_pos(e.op))
            return VNumber(-operand.value)

        if isinstance(e, Binary):
            left = self.evaluate(e.left)
            right = self.evaluate(e.right)
            return self._eval_binary(e.op, left, right)

        if isinstance(e, Call):
            return self._eval_call(e)

        if isinstance(e, Get):
            obj = self.evaluate(e.obj)
            if not isinstance(obj, VInstance):
                raise LoxRuntimeError(
                    "Only instances have properties.", tok_pos(e.name)
                )
            return obj.get(e.name)

        if isinstance(e, Set):
            obj = self.evaluate(e.obj)
            if not isinstance(obj, VInstance):
                raise LoxRuntimeError("Only instances have fields.", tok_pos(e.name))
            value = self.evaluate(e.value)
            obj.set(e.name, value)
            return value

        if isinstance(e, This):
            return self._look_up(e.keyword, e.node_id)

        if isinstance(e, Super):
            return self._eval_super(e)

        raise LoxRuntimeError("unknown expression " + type(e).__name__, e.pos)

    def _look_up(self, name: Token, node_id: int) -> Value:
        distance = self.locals.get(node_id)
        if distance is not None:
            return self.env.get_at(distance, name.lexeme)
        return self.env.get(name)

    def _eval_binary(self, op: Token, left: Value, right: Value) -> Value:
        kind = op.type
        if kind == "==":
            return VBool(_value_eq(left, right))
        if kind == "!=":
            return VBool(not _value_eq(left, right))

        if kind == "+":
            if isinstance(left, VNumber) and isinstance(right, VNumber):
                return VNumber(left.value + right.value)
            if isinstance(left, VString) and isinstance(right, VString):
                return VString(left.value + right.value)
            raise LoxRuntimeError(
                "Operands must be two numbers or two strings.", tok_pos(op)
            )

        if kind in ("<", "<=", ">", ">="):
            if not (
                type(left) is type(right)
                and isinstance(left, (VNumber, VString, VBool))
            ):
                raise LoxRuntimeError(
                    "Operands must be two numbers, two strings or two booleans.",
                    tok_pos(op),
                )
            a = left.value  # type: ignore[attr-defined]
            b = right.value  # type: ignore[attr-defined]
            if kind == "<":
                return VBool(a < b)
            if kind == "<=":
                return VBool(a <= b)
            if kind == ">":
                return VBool(a > b)
            return VBool(a >= b)

        if not (isinstance(left, VNumber) and isinstance(right, VNumber)):
            raise LoxRuntimeError("Operands must be numbers.", tok_pos(op))
        if kind == "-":
            return VNumber(left.value - right.value)
        if kind == "*":
            return VNumber(left.value * right.value)
        if kind == "/":
            return VNumber(_divide(left.value, right.value))
        raise LoxRuntimeError(f"unknown operator '{kind}'", tok_pos(op))

    def _eval_call(self, e: Call) -> Value:
        callee = self.evaluate(e.callee)
        args = [self.evaluate(a) for a in e.args]
        if not isinstance(callee, VCallable):
            raise LoxRuntimeError(
                "Can only call functions and classes.", tok_pos(e.paren)
            )
        if len(args) != callee.arity():
            raise LoxRuntimeError(
                f"Expected {callee.arity()} arguments but got {len(args)}.",
                tok_pos(e.paren),
            )
        return callee.call(self, args)

    def _eval_super(self, e: Super) -> Value:
        distance = self.locals.get(e.node_id)
        if distance is None:
            raise LoxRuntimeError("Can't use 'super' outside of a class.", e.pos)
        superclass = self.env.get_at(distance, "super")
        instance = self.env.get_at(distance - 1, "this")
        if not isinstance(superclass, VClass) or not isinstance(instance, VInstance):
            raise LoxRuntimeError("Superclass must be a class.", e.pos)
        method = superclass.find_method(e.method.lexeme)
        if method is None:
            raise LoxRuntimeError(
                f"Undefined property '{e.method.lexeme}'.", tok_pos(e.method)
            )
        return method.bind(instance)


# ============================================================
# Natives
# ============================================================


def _bi_clock(interp: Interpreter, args: list[Value]) -> Value:
    """Epoch seconds; binary32 keeps this to roughly 128 s resolution."""
    return VNumber(time.time())


_NATIVES: dict[str, VNative] = {
    "clock": VNative("clock", 0, _bi_clock),
}
