"""Line-delimited message transport over standard input."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from typing import Any, Union

MAX_LINE_SIZE = 64 * 1024

Line = Union[bytes, str]


def _strip_newline(line: Line) -> Line:
    newline, carriage = (b"\n", b"\r") if isinstance(line, bytes) else ("\n", "\r")
    if line.endswith(newline):
        line = line[:-1]
    if line.endswith(carriage):
        line = line[:-1]
    return line


def start_stdio_transport(
    handler: Callable[[Line], Any], stream: Iterable[Line] | None = None
) -> None:
    """Pass each non-empty line of the stream to the handler until it ends.

    Reads standard input when no stream is given. An exception from the
    handler stops the transport and propagates; a line longer than
    MAX_LINE_SIZE raises ValueError.
    """
    if stream is None:
        stream = sys.stdin.buffer
    for raw in stream:
        line = _strip_newline(raw)
        if len(line) > MAX_LINE_SIZE:
            raise ValueError("token too long")
        if not line:
            continue
        handler(line)