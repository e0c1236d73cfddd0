"""HTML rendering of trace graphs for notebooks and web pages.

The graph is rendered as text and its ANSI colors are turned into CSS classes,
so the layout matches the terminal output exactly.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from importlib.resources import files
from typing import TYPE_CHECKING, Any, cast

from html5tagger import E  # type: ignore[import]

from .style import ATTRIBUTES, BACKGROUNDS, COLORS

if TYPE_CHECKING:
    from .tracer import Tracer

style = files(cast(str, __package__)).joinpath("style.css").read_text(encoding="UTF-8")

SGR_RE = re.compile(r"\x1b\[([0-9;]*)m")

# CSS class for each SGR parameter
SGR_CLASSES = {
    **{code: f"fg-{name}" for name, code in COLORS.items()},
    **{code: f"bg-{name}" for name, code in BACKGROUNDS.items()},
    **{code: f"attr-{name}" for name, code in ATTRIBUTES.items()},
}


def html_trace(tracer: Tracer, *, include_css: bool = True) -> Any:
    """Graph of every rule tried, as an HTML fragment."""
    return _graph(tracer.render_trace(), "trace", include_css)


def html_backtrace(tracer: Tracer, *, include_css: bool = True) -> Any:
    """Graph of the calls leading to the furthest failures, as an HTML fragment."""
    return _graph(tracer.render_backtrace(), "backtrace", include_css)


def _graph(text: str, kind: str, include_css: bool) -> Any:
    with E.div(class_=f"parsetrace parsetrace-{kind}") as doc:
        if include_css:
            doc._style(style)
        with doc.pre(class_="graph"):
            for i, line in enumerate(text.split("\n")):
                if i:
                    doc("\n")
                for segment, classes in sgr_segments(line):
                    if classes:
                        doc(E.span(segment, class_=" ".join(classes)))
                    else:
                        doc(segment)
    return doc


def sgr_segments(line: str) -> Iterator[tuple[str, list[str]]]:
    """Split a line at its color codes into (text, css_classes) pairs."""
    classes: list[str] = []
    # Odd items of the split are the parameters of an escape sequence
    for i, part in enumerate(SGR_RE.split(line)):
        if i % 2:
            params = [p for p in part.split(";") if p]
            if not params or "0" in params:
                classes = []
            else:
                classes = classes + [SGR_CLASSES[p] for p in params if p in SGR_CLASSES]
        elif part:
            yield part, classes
