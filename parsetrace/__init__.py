from .graph import FlowGraph
from .html import html_backtrace, html_trace
from .quoter import InvalidSource, SourceQuoter
from .style import Style
from .tracer import NO_BACKTRACE, NO_TRACE, Tracer
from .tree import (
    EventKind,
    Location,
    Node,
    NodeState,
    Position,
    TraceEvent,
    TraceTree,
    UnbalancedTrace,
    View,
    locate,
)
from .tty import tty_backtrace, tty_trace

__all__ = [
    "Tracer",
    "TraceTree",
    "SourceQuoter",
    "FlowGraph",
    "Style",
    "Node",
    "NodeState",
    "EventKind",
    "TraceEvent",
    "Location",
    "Position",
    "View",
    "locate",
    "InvalidSource",
    "UnbalancedTrace",
    "NO_TRACE",
    "NO_BACKTRACE",
    "tty_trace",
    "tty_backtrace",
    "html_trace",
    "html_backtrace",
]
