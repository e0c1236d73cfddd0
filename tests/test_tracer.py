"""Tests for tracer.py - collecting events and rendering traces."""

import io
import logging
import re

import pytest

from parsetrace import (
    NO_BACKTRACE,
    NO_TRACE,
    EventKind,
    InvalidSource,
    NodeState,
    TraceEvent,
    Tracer,
    UnbalancedTrace,
    locate,
)

from .parsercases import Calc, ParseError, Recorder

SOURCE = "abc"


def at(start, end=None):
    return locate(SOURCE, start, start if end is None else end)


def plain(**options):
    """Tracer without colors or source quotes, for comparing layouts."""
    options.setdefault("use_color", False)
    options.setdefault("show_source", False)
    return Tracer(SOURCE, **options)


class BrokenFile:
    def isatty(self):
        return False

    def write(self, text):
        raise OSError("stream closed")


class TestConstruction:
    def test_missing_source(self):
        with pytest.raises(InvalidSource):
            Tracer(None)

    def test_minimum_source_lines(self):
        """Test that fewer than three quoted lines are not allowed."""
        assert Tracer(SOURCE, max_source_lines=1).max_source_lines == 3
        assert Tracer(SOURCE).max_source_lines == 6


class TestEvents:
    def test_trace_returns_node(self):
        tracer = plain()
        node = tracer.trace({"type": "rule.enter", "rule": "A", "location": at(0)})
        assert node.rule == "A"
        assert node.state is NodeState.PENDING
        assert tracer.match("A", at(0, 3)) is node
        assert node.state is NodeState.MATCHED

    def test_mapping_locations(self):
        """Test that shortcuts accept locations given as mappings."""
        tracer = plain()
        loc = {
            "start": {"offset": 1, "line": 1, "column": 2},
            "end": {"offset": 2, "line": 1, "column": 3},
        }
        node = tracer.enter("A", loc)
        assert node.location == at(1, 2)

    def test_trace_event_with_string_kind(self):
        """Test that a match given as a plain string is not taken for a failure."""
        tracer = plain()
        tracer.enter("A", at(0))
        node = tracer.trace(TraceEvent("match", "A", at(0, 3)))
        assert node.state is NodeState.MATCHED
        assert tracer.tree.frontier == []

    def test_unknown_kind(self):
        tracer = plain()
        with pytest.raises(ValueError):
            tracer.trace({"kind": "skip", "rule": "A", "location": at(0)})

    def test_unbalanced(self):
        tracer = plain()
        tracer.enter("A", at(0))
        with pytest.raises(UnbalancedTrace):
            tracer.fail("B", at(0))

    def test_reset(self):
        tracer = plain()
        tracer.enter("A", at(0))
        tracer.fail("A", at(0))
        tracer.reset()
        assert tracer.tree.node_count == 0
        assert tracer.render_trace() == NO_TRACE
        assert tracer.render_backtrace() == NO_BACKTRACE


class TestParent:
    """Tests for forwarding events to a parent tracer."""

    def test_events_forwarded(self):
        recorder = Recorder()
        tracer = plain(parent=recorder)
        tracer.enter("A", at(0))
        tracer.match("A", at(0, 3))
        assert recorder.events == [
            TraceEvent(EventKind.ENTER, "A", at(0)),
            TraceEvent(EventKind.MATCH, "A", at(0, 3)),
        ]

    def test_tracer_as_parent(self):
        """Test that a parent tracer builds the same tree."""
        parent = plain()
        tracer = plain(parent=parent)
        tracer.enter("A", at(0))
        tracer.enter("B", at(0))
        tracer.fail("B", at(0))
        tracer.match("A", at(0, 1))
        assert parent.tree.node_count == 2
        assert parent.render_trace() == tracer.render_trace()

    def test_parent_sees_event_first(self):
        """Test that a parent rejecting an event stops it before the child."""
        parent = plain()
        tracer = plain(parent=parent)
        with pytest.raises(UnbalancedTrace):
            tracer.match("A", at(0))
        assert tracer.tree.node_count == 0


class TestRenderTrace:
    def test_empty(self):
        assert plain().render_trace() == NO_TRACE

    def test_with_source(self):
        """Test that each node quotes the source it covers."""
        tracer = Tracer(SOURCE, use_color=False)
        tracer.enter("A", at(0))
        tracer.match("A", at(0, 3))
        assert tracer.render_trace() == "o 1:1-1:4 A\n| abc\n| ^^^"

    def test_without_source(self):
        tracer = plain()
        tracer.enter("A", at(0))
        tracer.match("A", at(0, 3))
        assert tracer.render_trace() == "o 1:1-1:4 A"

    def test_colored(self):
        tracer = Tracer(SOURCE, show_source=False)
        tracer.enter("A", at(0))
        tracer.match("A", at(0, 3))
        assert tracer.render_trace() == (
            "\x1b[32mo \x1b[0m\x1b[2m1:1-1:4\x1b[0m \x1b[33;1mA\x1b[0m"
        )

    def test_long_range_truncated(self):
        """Test that quotes of long ranges are cut to the line limit."""
        source = "\n".join(f"line{i}" for i in range(10))
        tracer = Tracer(source, use_color=False, max_source_lines=3)
        tracer.enter("A", locate(source, 0, 0))
        tracer.match("A", locate(source, 0, len(source)))
        lines = tracer.render_trace().split("\n")
        assert lines[0] == "o 1:1-10:6 A"
        assert "| ..." in lines
        assert "| line5" not in lines

    def test_full_path(self):
        """Test labels with full paths, cut from the front when too long."""
        tracer = plain(show_full_path=True, max_path_length=4)
        tracer.enter("A", at(0))
        tracer.enter("B", at(0))
        tracer.enter("C", at(0))
        tracer.match("C", at(0, 1))
        tracer.match("B", at(0, 1))
        tracer.match("A", at(0, 1))
        assert tracer.render_trace().split("\n") == [
            "o 1:1-1:2 .../C",
            "| ",
            "o 1:1-1:2 /A/B",
            "| ",
            "o 1:1-1:2 /A",
        ]

    def test_sequence_numbers_with_live_trace(self):
        """Test that sequence numbers are shown while tracing live."""
        tracer = plain(show_trace=True, file=io.StringIO())
        tracer.enter("A", at(0))
        tracer.match("A", at(0, 3))
        assert tracer.render_trace() == "o #1 1:1-1:4 A"

    def test_hidden_rules(self):
        """Test that hidden rules are left out of the trace only."""
        tracer = plain(hidden_paths=["inner"])
        tracer.enter("outer", at(0))
        tracer.enter("inner", at(0))
        tracer.fail("inner", at(0))
        tracer.fail("outer", at(0))
        assert tracer.render_trace() == "x 1:1-1:1 outer"
        assert tracer.render_backtrace().split("\n") == [
            "x 1:1-1:1 inner",
            "| ",
            "x 1:1-1:1 outer",
        ]

    def test_hidden_caller(self):
        """Test that rules called from a hidden rule get their own column."""
        tracer = plain(hidden_paths=[re.compile(r"/h$")])
        for rule in ("a", "h", "c"):
            tracer.enter(rule, at(0))
        for rule in ("c", "h", "a"):
            tracer.match(rule, at(0, 1))
        assert tracer.render_trace().split("\n") == [
            "o 1:1-1:2 c",
            "| ",
            "| o 1:1-1:2 a",
        ]


class TestRenderBacktrace:
    def test_empty(self):
        assert plain().render_backtrace() == NO_BACKTRACE

    def test_no_failures(self):
        tracer = plain()
        tracer.enter("A", at(0))
        tracer.match("A", at(0, 3))
        assert tracer.render_backtrace() == NO_BACKTRACE

    def test_failure_chain(self):
        tracer = plain()
        tracer.enter("A", at(0))
        tracer.enter("B", at(0))
        tracer.fail("B", at(0, 3))
        tracer.fail("A", at(0, 3))
        assert tracer.render_backtrace().split("\n") == [
            "x 1:1-1:4 B",
            "| ",
            "x 1:1-1:4 A",
        ]

    def test_sibling_failures_merge(self):
        tracer = plain()
        tracer.enter("P", at(0))
        for rule in ("Q", "R"):
            tracer.enter(rule, at(0))
            tracer.fail(rule, at(0))
        tracer.fail("P", at(0))
        assert tracer.render_backtrace().split("\n") == [
            "x 1:1-1:1 R",
            "| ",
            "| x 1:1-1:1 Q",
            "| | ",
            "| | ",
            "|/  ",
            "x 1:1-1:1 P",
        ]

    def test_top_level_failures(self):
        """Test that failures without a common caller stay in separate columns."""
        tracer = plain()
        for rule in ("X", "Y"):
            tracer.enter(rule, at(0))
            tracer.fail(rule, at(0))
        assert tracer.render_backtrace().split("\n") == [
            "x 1:1-1:1 Y",
            "| ",
            "| x 1:1-1:1 X",
        ]


class TestLiveTrace:
    """Tests for writing events out as they arrive."""

    def test_enter_and_match(self):
        output = io.StringIO()
        tracer = Tracer(SOURCE, show_source=False, show_trace=True, file=output)
        tracer.enter("A", at(0))
        tracer.match("A", at(0, 3))
        # Colors are stripped as StringIO is no terminal
        assert output.getvalue() == "ENTER #1 1:1-1:1 A\nMATCH #1 1:1-1:4 A\n"

    def test_nesting(self):
        """Test that nested rules are indented by depth."""
        output = io.StringIO()
        tracer = plain(show_trace=True, file=output)
        tracer.enter("A", at(0))
        tracer.enter("B", at(0))
        tracer.fail("B", at(0))
        tracer.fail("A", at(0))
        assert output.getvalue().split("\n") == [
            "ENTER #1 1:1-1:1 A",
            " ENTER #2 1:1-1:1 B",
            " FAIL  #2 1:1-1:1 B",
            "FAIL  #1 1:1-1:1 A",
            "",
        ]

    def test_with_source(self):
        output = io.StringIO()
        tracer = Tracer(SOURCE, use_color=False, show_trace=True, file=output)
        tracer.enter("A", at(0))
        assert output.getvalue() == "ENTER #1 1:1-1:1 A\n  abc\n  ^\n"

    def test_hidden_not_written(self):
        output = io.StringIO()
        tracer = plain(show_trace=True, file=output, hidden_paths=["inner"])
        tracer.enter("outer", at(0))
        tracer.enter("inner", at(0))
        tracer.match("inner", at(0, 1))
        assert output.getvalue() == "ENTER #1 1:1-1:1 outer\n"

    def test_off_by_default(self, capsys):
        tracer = plain()
        tracer.enter("A", at(0))
        assert capsys.readouterr().err == ""

    def test_defaults_to_stderr(self, capsys):
        tracer = plain(show_trace=True)
        tracer.enter("A", at(0))
        assert capsys.readouterr().err == "ENTER #1 1:1-1:1 A\n"

    def test_write_error(self, caplog):
        """Test that a failing output is logged and the live trace turned off."""
        tracer = plain(show_trace=True, file=BrokenFile())
        with caplog.at_level(logging.ERROR, logger="parsetrace"):
            node = tracer.enter("A", at(0))
        assert node.rule == "A"
        assert tracer.show_trace is False
        assert "Unable to write the live trace" in caplog.text
        # Later events are still collected
        tracer.match("A", at(0, 1))
        assert tracer.tree.nodes[1].state is NodeState.MATCHED


class TestParser:
    """Tests against the event stream of a real recursive-descent parser."""

    def test_every_node_resolved(self):
        recorder = Recorder()
        tracer = Tracer("2+(3*4)", use_color=False, parent=recorder)
        assert Calc("2+(3*4)", tracer).parse() == 14
        enters = [e for e in recorder.events if e.kind is EventKind.ENTER]
        assert tracer.tree.node_count == len(enters)
        assert tracer.tree.depth == 0
        assert all(n.state is not NodeState.PENDING for n in tracer.tree.nodes[1:])

    def test_frontier_at_furthest_failure(self):
        source = "2+(3/4)"
        tracer = Tracer(source, use_color=False)
        with pytest.raises(ParseError):
            Calc(source, tracer).parse()
        assert tracer.tree.max_fail_offset == 2
        rules = {n.rule for n in tracer.tree.frontier}
        assert "integer" in rules
        sites = [(n.path, n.rule) for n in tracer.tree.frontier]
        assert len(sites) == len(set(sites))
