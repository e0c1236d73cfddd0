"""Call tree of rule invocations, built from a stream of trace events.

The parser reports every rule it tries as an enter event followed later by a
match or fail event for the same rule. Events nest like calls on a stack, so
the tree is built by keeping a cursor on the innermost pending rule.
"""

from __future__ import annotations

import re
from collections import namedtuple
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from .logging import logger

Position = namedtuple("Position", ["offset", "line", "column"])
Location = namedtuple("Location", ["start", "end"])
TraceEvent = namedtuple("TraceEvent", ["kind", "rule", "location"])
TreeView = namedtuple("TreeView", ["node", "children"])

ROOT_LOCATION = Location(Position(0, 0, 0), Position(0, 0, 0))


class EventKind(Enum):
    ENTER = "enter"
    MATCH = "match"
    FAIL = "fail"


class NodeState(Enum):
    PENDING = "pending"
    MATCHED = "matched"
    FAILED = "failed"


class View(Enum):
    FULL = "full"
    FAILURE = "failure"


class UnbalancedTrace(RuntimeError):
    """A match or fail event that does not close the pending rule."""


def locate(source: str, start: int, end: int) -> Location:
    """Location of source[start:end] with 1-based lines and columns."""
    return Location(_position(source, start), _position(source, end))


def _position(source: str, offset: int) -> Position:
    head = source[:offset]
    line = head.count("\n") + 1
    column = offset - (head.rfind("\n") + 1) + 1
    return Position(offset, line, column)


def as_location(location: Any) -> Location:
    """Location from a Location or a {"start": {...}, "end": {...}} mapping."""
    if isinstance(location, Location):
        return location
    start, end = location["start"], location["end"]
    return Location(
        Position(start["offset"], start["line"], start["column"]),
        Position(end["offset"], end["line"], end["column"]),
    )


def as_event(event: TraceEvent | Mapping[str, Any]) -> TraceEvent:
    """Normalize an event given as a TraceEvent or as a mapping.

    Mappings name the event kind in "kind" or "type"; PEG.js style types such
    as "rule.enter" are accepted too.
    """
    if isinstance(event, TraceEvent):
        kind, rule, location = event
    else:
        kind = event.get("kind") or event.get("type")
        rule, location = event["rule"], event["location"]
    if not isinstance(kind, EventKind):
        kind = EventKind(str(kind).removeprefix("rule."))
    return TraceEvent(kind, rule, as_location(location))


class Node:
    """One invocation of a grammar rule.

    The parent is referenced by its sequence number, which is also its index
    in the arena of the tree that owns it. Children are owned through the
    matches and fails lists.
    """

    __slots__ = (
        "sequence",
        "path",
        "rule",
        "location",
        "state",
        "parent",
        "matches",
        "fails",
        "style",
    )

    def __init__(
        self,
        sequence: int,
        path: str,
        rule: str,
        location: Location,
        parent: int | None = None,
    ) -> None:
        self.sequence = sequence
        self.path = path
        self.rule = rule
        self.location = location
        self.state = NodeState.PENDING
        self.parent = parent
        self.matches: list[Node] = []
        self.fails: list[Node] = []
        self.style = None

    @property
    def fullpath(self) -> str:
        return self.path + self.rule

    @property
    def childpath(self) -> str:
        """The path given to rules entered from this one."""
        return self.path + self.rule + "/"

    @property
    def children(self) -> list[Node]:
        return [*self.matches, *self.fails]

    def __repr__(self) -> str:
        return f"<Node #{self.sequence} {self.fullpath} {self.state.name}>"


def compile_hidden(patterns: Iterable[str | re.Pattern[str]]) -> list[re.Pattern[str]]:
    """Compile hidden path patterns.

    Strings match whole path components, so "expr" hides ".../expr" and
    "expr/.*" hides everything called from expr. Compiled patterns are used as
    they are. A single pattern may be given instead of a collection.
    """
    if isinstance(patterns, (str, re.Pattern)):
        patterns = (patterns,)
    compiled = []
    for pattern in patterns:
        if not isinstance(pattern, re.Pattern):
            pattern = re.compile(f"(^|/){pattern}(/|$)")
        compiled.append(pattern)
    return compiled


class TraceTree:
    """Rule invocation tree with the furthest failure frontier.

    The state belongs to one session of parsing. It lives from construction
    until reset() starts over with an empty tree.
    """

    def __init__(self, hidden_paths: Iterable[str | re.Pattern[str]] = ()) -> None:
        self.hidden_patterns = compile_hidden(hidden_paths)
        self.reset()

    def reset(self) -> None:
        self.root = Node(0, "", "", ROOT_LOCATION)
        self.nodes: list[Node] = [self.root]
        self.cursor = 0
        self.depth = 0
        self.max_fail_offset = 0
        self.frontier: list[Node] = []

    @property
    def current(self) -> Node:
        return self.nodes[self.cursor]

    @property
    def node_count(self) -> int:
        """Number of rule invocations seen, which equals the enter events."""
        return len(self.nodes) - 1

    def parent_of(self, node: Node) -> Node | None:
        return None if node.parent is None else self.nodes[node.parent]

    def pending(self) -> list[Node]:
        """Rules entered but not yet resolved, innermost first."""
        chain = []
        node = self.current
        while node is not self.root:
            chain.append(node)
            node = self.nodes[node.parent]
        return chain

    def apply(self, event: TraceEvent) -> Node:
        if event.kind is EventKind.ENTER:
            return self.enter(event.rule, event.location)
        if event.kind is EventKind.MATCH:
            return self.match(event.rule, event.location)
        if event.kind is EventKind.FAIL:
            return self.fail(event.rule, event.location)
        raise ValueError(f"Unknown trace event kind {event.kind!r}")

    def enter(self, rule: str, location: Location) -> Node:
        parent = self.current
        node = Node(len(self.nodes), parent.childpath, rule, location, parent.sequence)
        self.nodes.append(node)
        self.cursor = node.sequence
        self.depth += 1
        return node

    def match(self, rule: str, location: Location) -> Node:
        node = self._resolve(rule, location, NodeState.MATCHED)
        self.nodes[node.parent].matches.append(node)
        return node

    def fail(self, rule: str, location: Location) -> Node:
        node = self._resolve(rule, location, NodeState.FAILED)
        self.nodes[node.parent].fails.append(node)
        self._update_frontier(node)
        return node

    def _resolve(self, rule: str, location: Location, state: NodeState) -> Node:
        node = self.current
        verb = "match" if state is NodeState.MATCHED else "fail"
        if node is self.root:
            raise UnbalancedTrace(f"Cannot {verb} rule {rule!r}: no rule is pending")
        if node.rule != rule:
            raise UnbalancedTrace(
                f"Cannot {verb} rule {rule!r}: the pending rule is {node.rule!r}"
            )
        node.state = state
        node.location = location
        self.cursor = node.parent
        self.depth -= 1
        return node

    def _update_frontier(self, node: Node) -> None:
        offset = node.location.start.offset
        if offset > self.max_fail_offset:
            logger.debug(f"Furthest failure moved to offset {offset} ({node.rule})")
            self.max_fail_offset = offset
            self.frontier = [node]
        elif offset == self.max_fail_offset:
            # Skip direct callers of a member and repeats of a member's call site.
            # Earlier members are never replaced by later, deeper ones.
            for f in self.frontier:
                if node.childpath == f.path:
                    return
                if node.path == f.path and node.rule == f.rule:
                    return
            self.frontier.append(node)

    def is_hidden(self, node: Node) -> bool:
        fullpath = node.fullpath
        return any(pattern.search(fullpath) for pattern in self.hidden_patterns)

    def extract(self, view: View = View.FULL, node: Node | None = None) -> TreeView | None:
        """Pruned copy of the tree, matches listed before fails.

        In the full view, hidden nodes are left out and their children are
        attached to the closest visible ancestor instead. The failure view
        shows everything, but only the branches leading to the frontier. It
        is None when nothing survives the pruning.
        """
        if node is None:
            node = self.root
        frontier = {f.sequence for f in self.frontier}
        return self._extract(view, node, frontier)

    def _extract(self, view: View, node: Node, frontier: set[int]) -> TreeView | None:
        children = []
        for child in node.children:
            sub = self._extract(view, child, frontier)
            if sub is None:
                continue
            if view is View.FULL and self.is_hidden(child):
                children.extend(sub.children)
            else:
                children.append(sub)
        if view is View.FAILURE and not children and node.sequence not in frontier:
            return None
        return TreeView(node, children)

    def flatten(self, view: View = View.FULL) -> list[Node]:
        """Nodes of the pruned tree in pre-order, without the root.

        The nodes are the tree's own, so their parent still names the true
        caller even where pruning skipped it.
        """
        tree = self.extract(view)
        if tree is None:
            return []
        result = []
        stack = list(reversed(tree.children))
        while stack:
            sub = stack.pop()
            result.append(sub.node)
            stack.extend(reversed(sub.children))
        return result
