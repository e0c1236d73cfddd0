from __future__ import annotations

import re
from collections import namedtuple
from typing import Callable

# ANSI escape codes for terminal colors (can be monkeypatched for styling)
ESC = "\x1b["
RESET = f"{ESC}0m"

# SGR parameters for foreground colors
COLORS = {
    "black": "30",
    "red": "31",
    "green": "32",
    "yellow": "33",
    "blue": "34",
    "magenta": "35",
    "cyan": "36",
    "white": "37",
}

# SGR parameters for background colors
BACKGROUNDS = {
    "black": "40",
    "red": "41",
    "green": "42",
    "yellow": "43",
    "blue": "44",
    "magenta": "45",
    "cyan": "46",
    "white": "47",
}

# SGR parameters for text attributes
ATTRIBUTES = {
    "bold": "1",
    "thin": "2",
    "underline": "4",
    "blink": "5",
    "reverse": "7",
    "invisible": "8",
}

# Regex pattern to strip ANSI escape sequences
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")

Style = namedtuple("Style", ["color", "background", "attribute"], defaults=(None,) * 3)


def sgr(style: Style | None) -> str:
    """Build the escape sequence selecting a style, or "" for no style."""
    if style is None:
        return ""
    params = []
    if style.color is not None:
        params.append(COLORS.get(style.color, "37"))
    if style.background is not None:
        params.append(BACKGROUNDS.get(style.background, "40"))
    if style.attribute is not None:
        params.append(ATTRIBUTES.get(style.attribute, ""))
    return f"{ESC}{';'.join(params)}m" if params else ""


def set_text_style(
    text: str, style: Style | None, start: int | None = None, end: int | None = None
) -> str:
    """Apply a style to the whole text or to the slice [start, end).

    An end of None (or 0) extends the slice to the end of the text.
    """
    code = sgr(style)
    if not code:
        return text
    if start is None:
        return f"{code}{text}{RESET}"
    end = end or len(text)
    return f"{text[:start]}{code}{text[start:end]}{RESET}{text[end:]}"


def _unstyled(
    text: str, style: Style | None, start: int | None = None, end: int | None = None
) -> str:
    return text


def styler(use_color: bool) -> Callable[..., str]:
    """Return set_text_style, or a function leaving text untouched if colors are off."""
    return set_text_style if use_color else _unstyled


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def truncate(text: str, maxlen: int) -> str:
    """Shorten text to maxlen characters by cutting from the front."""
    if 0 < maxlen < len(text):
        return "..." + text[len(text) - maxlen + 3 :]
    return text


def make_line(indent: int, length: int, ch: str) -> str:
    """Blank indent followed by a run of ch (negative lengths give no run)."""
    return " " * indent + ch * length
