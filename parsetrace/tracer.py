from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any, TextIO

from .graph import FlowGraph
from .logging import logger
from .quoter import SourceQuoter
from .style import Style, styler, truncate
from .tree import (
    EventKind,
    Location,
    Node,
    TraceEvent,
    TraceTree,
    View,
    as_event,
    as_location,
)
from .tty import tty_write

NO_TRACE = (
    "No trace found. Make sure your parser sends its trace events to the tracer."
)
NO_BACKTRACE = (
    "No backtrace found. Make sure your parser sends its trace events to the tracer.\n"
    "Or, the failure might occur in the start node."
)

THIN = Style(attribute="thin")
RULE = Style(color="yellow", attribute="bold")

# Tags of the live trace output
KIND_TAGS = {
    EventKind.ENTER: ("ENTER", Style(color="cyan")),
    EventKind.MATCH: ("MATCH", Style(color="green")),
    EventKind.FAIL: ("FAIL ", Style(color="red")),
}


class Tracer:
    """Collects the trace events of one parse and renders them.

    Args:
        source: The text being parsed.
        hidden_paths: Rule paths left out of the full trace, as regex strings
            matched against whole path components, or compiled patterns.
        use_color: Decorate the output with ANSI colors.
        max_source_lines: Source lines quoted per node (at least 3).
        parent: Another tracer that receives every event first.
        show_source: Quote the source text under each node.
        show_trace: Write every event out as it arrives.
        show_full_path: Label nodes with their full rule path.
        max_path_length: Paths longer than this are cut from the front.
        file: Output of the live trace. Defaults to sys.stderr.
    """

    def __init__(
        self,
        source: str,
        *,
        hidden_paths: Iterable[str | re.Pattern[str]] = (),
        use_color: bool = True,
        max_source_lines: int = 6,
        parent: Tracer | None = None,
        show_source: bool = True,
        show_trace: bool = False,
        show_full_path: bool = False,
        max_path_length: int = 64,
        file: TextIO | None = None,
    ) -> None:
        self.parent = parent
        self.use_color = use_color
        self.max_source_lines = max(max_source_lines, 3)
        self.show_source = show_source
        self.show_trace = show_trace
        self.show_full_path = show_full_path
        self.max_path_length = max_path_length
        self.file = file
        self.paint = styler(use_color)
        self.quoter = SourceQuoter(source, use_color=use_color)
        self.tree = TraceTree(hidden_paths)
        self.graph = FlowGraph(use_color=use_color)

    def reset(self) -> None:
        """Forget all events, ready for another parse of the same source."""
        self.tree.reset()

    def trace(self, event: TraceEvent | Mapping[str, Any]) -> Node:
        event = as_event(event)
        if self.parent is not None:
            self.parent.trace(event)
        node = self.tree.apply(event)
        if self.show_trace:
            # Entered rules are printed at the depth of their caller
            level = self.tree.depth
            if event.kind is EventKind.ENTER:
                level -= 1
            self.print_node(level, node, event.kind)
        return node

    def enter(self, rule: str, location: Location | Mapping[str, Any]) -> Node:
        return self.trace(TraceEvent(EventKind.ENTER, rule, as_location(location)))

    def match(self, rule: str, location: Location | Mapping[str, Any]) -> Node:
        return self.trace(TraceEvent(EventKind.MATCH, rule, as_location(location)))

    def fail(self, rule: str, location: Location | Mapping[str, Any]) -> Node:
        return self.trace(TraceEvent(EventKind.FAIL, rule, as_location(location)))

    def print_node(self, level: int, node: Node, kind: EventKind) -> None:
        """Write one node of the live trace, indented by level."""
        if self.tree.is_hidden(node):
            return
        tag, style = KIND_TAGS[kind]
        head = " " * level + self.paint(tag, style) + " "
        tail = " " * (level + 1)
        lines = self.node_text(node, self.show_source, " ")
        text = "\n".join(
            (head if i == 0 else tail) + line for i, line in enumerate(lines)
        )
        try:
            tty_write(text, self.file)
        except OSError:
            logger.exception("Unable to write the live trace, turning it off")
            self.show_trace = False

    def source_lines(
        self, prefix: str, location: Location, max_lines: int
    ) -> list[str]:
        """Quote a location given with 1-based lines and columns."""
        start, end = location
        return self.quoter.quote(
            prefix,
            start.line - 1,
            start.column - 1,
            end.line - 1,
            end.column - 1,
            max_lines,
        )

    def node_text(self, node: Node, with_source: bool, prefix: str = "") -> list[str]:
        """Label lines of a node: its title and optionally the quoted source."""
        start, end = node.location
        span = f"{start.line}:{start.column}-{end.line}:{end.column}"

        title = []
        if self.show_trace:
            title.append(self.paint(f"#{node.sequence}", THIN))
        title.append(self.paint(span, THIN))
        if self.show_full_path:
            name = truncate(node.path, self.max_path_length) + node.rule
        else:
            name = node.rule
        title.append(self.paint(name, RULE))

        lines = [" ".join(title)]
        if with_source:
            lines += self.source_lines(prefix, node.location, self.max_source_lines)
        return lines

    def _label(self, node: Node) -> list[str]:
        return self.node_text(node, self.show_source)

    def render(self, view: View) -> list[str]:
        """Graph rows of a view, empty when it has no nodes."""
        nodes = self.tree.flatten(view)
        return self.graph.render(nodes, self._label, spacer=not self.show_source)

    def render_trace(self) -> str:
        """Graph of every rule tried, hidden paths left out."""
        lines = self.render(View.FULL)
        return "\n".join(lines) if lines else NO_TRACE

    def render_backtrace(self) -> str:
        """Graph of the calls that lead to the furthest failures."""
        lines = self.render(View.FAILURE)
        return "\n".join(lines) if lines else NO_BACKTRACE
