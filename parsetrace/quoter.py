"""Quoting excerpts of the parsed source with the matched range highlighted.

All line and column numbers used here are zero-based; parser locations that
count from 1 have to be converted by the caller.
"""

from __future__ import annotations

import math
import re

from .style import Style, make_line, styler

HIGHLIGHT = Style(color="cyan")

# Line breaks other than \n that would throw off line numbering
UNSUPPORTED_BREAK_RE = re.compile("[\v\f\x1c\x1d\x1e\x85\u2028\u2029]")


class InvalidSource(ValueError):
    """The source text cannot be split into quotable lines."""


class SourceQuoter:
    def __init__(
        self,
        source: str | None,
        *,
        use_color: bool = True,
        highlight: Style = HIGHLIGHT,
    ) -> None:
        if source is None:
            raise InvalidSource("Missing source argument")
        source = source.replace("\t", " ").replace("\r\n", "\n").replace("\r", "\n")
        match = UNSUPPORTED_BREAK_RE.search(source)
        if match:
            raise InvalidSource(
                f"Unsupported line break {match.group()!r} at offset "
                f"{match.start()}, lines must end with '\\n'"
            )
        self.lines = source.split("\n")
        self.highlight = highlight
        self.paint = styler(use_color)

    def line(self, index: int) -> str:
        """Source line by zero-based index, empty past the end of the source."""
        if 0 <= index < len(self.lines):
            return self.lines[index]
        return ""

    def quote(
        self,
        prefix: str,
        start_line: int,
        start_col: int,
        end_line: int,
        end_col: int,
        max_lines: int = 3,
    ) -> list[str]:
        """Quote the source lines of a range, marking the range beneath.

        Args:
            prefix: Text put in front of every returned line.
            start_line, start_col: Zero-based start of the range.
            end_line, end_col: Zero-based end of the range.
            max_lines: Lines of source to show at most (at least 3). Longer
                ranges keep their head and tail with a "..." line between.

        Returns:
            The quoted lines, followed (and for multi-line ranges also
            preceded) by marker lines.
        """
        max_lines = max(max_lines or 3, 3)
        lines = [self.line(i) for i in range(start_line, end_line + 1)]
        if not lines:
            lines = [self.line(start_line)]
        first_width = len(lines[0])
        hl = self.highlight

        if start_line == end_line:
            if start_col < end_col:
                lines[0] = self.paint(lines[0], hl, start_col, end_col)
        elif start_line < end_line:
            lines[0] = self.paint(lines[0], hl, start_col)
            for i in range(1, len(lines) - 1):
                lines[i] = self.paint(lines[i], hl)
            lines[-1] = self.paint(lines[-1], hl, 0, end_col + 1)

        total = len(lines)
        skip = total - max_lines
        if skip > 0:
            head = math.ceil((total - skip) / 2)
            tail = (total - skip) // 2
            lines = [*lines[:head], "...", *lines[total - tail :]]

        if start_line == end_line and start_col <= end_col:
            lines.append(self._hline(start_col, (end_col - start_col) or 1, "^"))
        elif start_line < end_line:
            lines.insert(0, self._hline(start_col, first_width - start_col, "_"))
            lines.append(self._hline(0, end_col, "^"))

        return [prefix + line for line in lines]

    def quote_text(
        self,
        prefix: str,
        start_line: int,
        start_col: int,
        end_line: int,
        end_col: int,
        max_lines: int = 3,
    ) -> str:
        return "\n".join(
            self.quote(prefix, start_line, start_col, end_line, end_col, max_lines)
        )

    def _hline(self, start: int, length: int, ch: str) -> str:
        return self.paint(make_line(start, length, ch), self.highlight)
