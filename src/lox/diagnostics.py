"""Diagnostics sink shared by the tokenizer and the parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TextIO


@dataclass
class Diagnostic:
    """One reported static error."""

    line: int
    where: str
    message: str

    def __str__(self) -> str:
        return "[line " + str(self.line) + "] Error" + self.where + ": " + self.message


@dataclass
class Diagnostics:
    """Collects lexical and parse errors; never alters control flow.

    If `stream` is set, each diagnostic is also written to it as it arrives.
    """

    stream: TextIO | None = None
    entries: list[Diagnostic] = field(default_factory=list)

    def report(self, line: int, where: str, message: str) -> None:
        diag = Diagnostic(line, where, message)
        self.entries.append(diag)
        if self.stream is not None:
            self.stream.write(str(diag) + "\n")

    @property
    def had_error(self) -> bool:
        return len(self.entries) > 0

    def clear(self) -> None:
        self.entries.clear()

    def messages(self) -> list[str]:
        return [str(d) for d in self.entries]
