"""Host recursion headroom for the recursive passes over a program."""

from __future__ import annotations

from contextlib import contextmanager
import sys
from typing import Iterator

# One guest call costs roughly six host frames, so this allows a few thousand
# nested Lox calls before "Stack overflow." is reported.
HOST_RECURSION_LIMIT: int = 20_000


@contextmanager
def host_recursion(limit: int = HOST_RECURSION_LIMIT) -> Iterator[None]:
    """Raise the interpreter's recursion limit for the duration of the block."""
    previous = sys.getrecursionlimit()
    if previous < limit:
        sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)
