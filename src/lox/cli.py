"""Lox CLI — run a .lox file or start an interactive prompt."""

from __future__ import annotations

import sys

from . import parse
from .diagnostics import Diagnostics
from .printer import to_sexpr
from .resolve import ResolveError, Resolver
from .runtime import Interpreter, LoxRuntimeError


USAGE: str = """\
lox [OPTIONS] [FILE]

Run a Lox program, or start a prompt when no FILE is given.

Options:
  --ast   Print the parsed tree instead of running
  --help  Show this help message
"""

EXIT_OK = 0
EXIT_USAGE = 64
EXIT_STATIC = 65
EXIT_RUNTIME = 70
EXIT_IO = 74


def _report_resolve(e: ResolveError) -> None:
    print("[line " + str(e.line) + "] Error: " + e.msg, file=sys.stderr)


def _report_runtime(e: LoxRuntimeError) -> None:
    print(e.msg + "\n[line " + str(e.line) + "]", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    show_ast = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return EXIT_OK
        elif arg == "--ast":
            show_ast = True
            i += 1
        elif arg.startswith("-"):
            print("lox: unknown flag '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("lox: unexpected argument '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE
    if filepath == "":
        return run_prompt(show_ast)
    return run_file(filepath, show_ast)


def run_file(filepath: str, show_ast: bool = False) -> int:
    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("lox: " + filepath + ": No such file or directory", file=sys.stderr)
        return EXIT_IO
    except OSError as e:
        print("lox: " + filepath + ": " + str(e), file=sys.stderr)
        return EXIT_IO
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("lox: " + filepath + ": invalid utf-8", file=sys.stderr)
        return EXIT_IO

    diagnostics = Diagnostics(stream=sys.stderr)
    stmts = parse(source, diagnostics)
    if diagnostics.had_error:
        return EXIT_STATIC
    if show_ast:
        sys.stdout.write(to_sexpr(stmts))
        return EXIT_OK

    interp = Interpreter()
    try:
        Resolver(interp.locals).resolve(stmts)
    except ResolveError as e:
        _report_resolve(e)
        return EXIT_STATIC
    try:
        sys.stdout.write(interp.interpret(stmts))
    except LoxRuntimeError as e:
        sys.stdout.write(e.output)
        _report_runtime(e)
        return EXIT_RUNTIME
    return EXIT_OK


def run_prompt(show_ast: bool = False) -> int:
    """Read-eval-print loop; one interpreter for the whole session."""
    interp = Interpreter()
    while True:
        sys.stdout.write("> ")
        sys.stdout.flush()
        line = sys.stdin.readline()
        if line == "":
            sys.stdout.write("\n")
            return EXIT_OK
        diagnostics = Diagnostics(stream=sys.stderr)
        stmts = parse(line, diagnostics)
        if diagnostics.had_error:
            continue
        if show_ast:
            sys.stdout.write(to_sexpr(stmts))
            continue
        try:
            Resolver(interp.locals).resolve(stmts)
        except ResolveError as e:
            _report_resolve(e)
            continue
        try:
            sys.stdout.write(interp.interpret(stmts))
        except LoxRuntimeError as e:
            sys.stdout.write(e.output)
            _report_runtime(e)


if __name__ == "__main__":
    sys.exit(main())
