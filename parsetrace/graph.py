"""ASCII flow graph of rule invocations.

Nodes are drawn bottom-up in columns like a version control log: each column
follows one line of calls, and columns are merged where their nodes share a
caller. A node is shown by a state glyph in its column followed by its label.
"""

from __future__ import annotations

from collections import namedtuple
from collections.abc import Callable, Sequence

from .style import Style, styler
from .tree import Node, NodeState

# Column colors, rotating by the column a lineage first appears in
VLINE_STYLES = (
    Style(color="yellow"),
    Style(color="magenta"),
    Style(color="blue"),
    Style(color="white"),
    Style(color="green"),
)

# State glyphs shown in the column of the node being drawn
GLYPHS = {
    NodeState.FAILED: ("x ", Style(color="red")),
    NodeState.MATCHED: ("o ", Style(color="green")),
    NodeState.PENDING: ("? ", Style(color="yellow")),
}

Column = namedtuple("Column", ["node", "style"])


class FlowGraph:
    def __init__(self, *, use_color: bool = True) -> None:
        self.paint = styler(use_color)

    def render(
        self,
        nodes: Sequence[Node],
        label: Callable[[Node], list[str]],
        *,
        spacer: bool = False,
    ) -> list[str]:
        """Lay out nodes given in pre-order, drawing from the last one back.

        Args:
            nodes: Nodes to draw, each with its parent sequence number.
            label: Builds the text lines shown next to a node.
            spacer: Add a bar-only row between nodes.

        Returns:
            The rows of the graph, top to bottom.
        """
        queue = list(nodes)
        columns: list[Column] = []
        lines: list[str] = []

        while queue:
            node = queue.pop()
            children = [
                i for i, col in enumerate(columns) if col.node.parent == node.sequence
            ]

            if not children:
                column = len(columns)
                columns.append(Column(node, VLINE_STYLES[column % len(VLINE_STYLES)]))
                lines += self.state_rows(columns, column, label(node))
            else:
                column, *merged = children
                lines += self.merge_rows(merged, column, columns)
                columns[column] = Column(node, columns[column].style)
                columns = [col for i, col in enumerate(columns) if i not in merged]
                lines += self.state_rows(
                    columns, column, label(node), is_last=not queue
                )
            node.style = columns[column].style

            if spacer and queue:
                lines += self.state_rows(columns)

        return lines

    def state_rows(
        self,
        columns: Sequence[Column],
        column: int | None = None,
        contents: Sequence[str] = (),
        is_last: bool = False,
    ) -> list[str]:
        """Rows for a node's label, the glyph goes on the first one."""
        if not contents:
            return [self.state_line(columns, column, is_last)]
        rows = [self.state_line(columns, column, is_last) + contents[0]]
        for text in contents[1:]:
            rows.append(self.state_line(columns, None, is_last) + text)
        return rows

    def state_line(
        self, columns: Sequence[Column], column: int | None, is_last: bool = False
    ) -> str:
        bar = "  " if is_last else "| "
        line = ""
        for i, col in enumerate(columns):
            if i == column:
                glyph, style = GLYPHS.get(col.node.state, GLYPHS[NodeState.PENDING])
                line += self.paint(glyph, style)
            else:
                line += self.paint(bar, col.style)
        return line

    def merge_edge(self, src: int, dst: int, columns: Sequence[Column]) -> list[str]:
        """Two rows folding column src into column dst (dst < src).

        Columns between the two are crossed with "_" on the first row, and
        the columns right of src shift one place left on the second.
        """
        paint = self.paint
        moving = columns[src].style
        top = bottom = ""

        for i, col in enumerate(columns):
            if i <= dst:
                top += paint("| ", col.style)
            elif i < src - 1:
                top += paint("|", col.style) + paint("_", moving)
            elif i == src - 1:
                top += paint("|", col.style) + paint("/", moving)
            elif i > src or (i == src and dst + 1 == src):
                top += paint("| ", col.style)
            else:
                top += "  "

        for i, col in enumerate(columns):
            if i < dst:
                bottom += paint("| ", col.style)
            elif i == dst:
                bottom += paint("|", col.style) + paint("/", moving)
            elif i < src:
                bottom += paint("| ", col.style)
            elif i < len(columns) - 1:
                bottom += paint(" /", columns[i + 1].style)
            else:
                bottom += "  "

        return [top, bottom]

    def merge_rows(
        self, sources: Sequence[int], dst: int, columns: Sequence[Column]
    ) -> list[str]:
        """Merge edges folding each source column into dst, lowest first."""
        columns = list(columns)
        pending = sorted(sources)
        lines: list[str] = []
        while pending:
            src = pending.pop(0)
            lines += self.merge_edge(src, dst, columns)
            del columns[src]
            pending = [i - 1 if i > src else i for i in pending]
        return lines
