from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

from .style import ANSI_ESCAPE_RE

if TYPE_CHECKING:
    from .tracer import Tracer


def tty_write(text: str, file: TextIO | None = None) -> None:
    """Write text and a newline, without colors unless file is a terminal."""
    if file is None:
        file = sys.stderr
    is_tty = file.isatty() if hasattr(file, "isatty") else False
    if not is_tty:
        # Strip all ANSI escape sequences for non-TTY output
        text = ANSI_ESCAPE_RE.sub("", text)
    file.write(text + "\n")


def tty_trace(tracer: Tracer, *, file: TextIO | None = None) -> None:
    """Print the graph of every rule the parser tried."""
    tty_write(tracer.render_trace(), file)


def tty_backtrace(tracer: Tracer, *, file: TextIO | None = None) -> None:
    """Print the graph of the calls leading to the furthest failures."""
    tty_write(tracer.render_backtrace(), file)
