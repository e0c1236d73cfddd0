"""
Traced Parser Demo

A hand-written PEG parser for bracketed number lists such as [1, [2, 3]] that
reports every rule call to a parsetrace Tracer. Shows the backtrace when the
input does not parse, or the full trace with --trace.

Within source repository:
  uv run python demo/list_demo.py "[1, [2 3]]"
  uv run python demo/list_demo.py --trace "[1, 2]"
"""

import re
import sys

from parsetrace import Tracer, locate, tty_backtrace, tty_trace

NUMBER = re.compile(r"-?[0-9]+")
SPACE = re.compile(r"[ \n]*")


class ListParser:
    def __init__(self, source, tracer):
        self.source = source
        self.tracer = tracer
        self.pos = 0

    def rule(self, name, body):
        start = self.pos
        self.tracer.enter(name, locate(self.source, start, start))
        value = body()
        if value is None:
            self.pos = start
            self.tracer.fail(name, locate(self.source, start, start))
        else:
            self.tracer.match(name, locate(self.source, start, self.pos))
        return value

    def token(self, text):
        self.pos = SPACE.match(self.source, self.pos).end()
        if self.source.startswith(text, self.pos):
            self.pos += len(text)
            return text
        return None

    def parse(self):
        value = self.rule("start", self.value)
        self.pos = SPACE.match(self.source, self.pos).end()
        if value is None or self.pos != len(self.source):
            return None
        return value

    def value(self):
        return self.rule("value", lambda: self.number() or self.list())

    def number(self):
        def body():
            self.pos = SPACE.match(self.source, self.pos).end()
            m = NUMBER.match(self.source, self.pos)
            if not m:
                return None
            self.pos = m.end()
            return [int(m.group())]

        return self.rule("number", body)

    def list(self):
        def body():
            if self.token("[") is None:
                return None
            items = []
            item = self.value()
            while item is not None:
                items.extend(item)
                if self.token(",") is None:
                    break
                item = self.value()
                if item is None:
                    return None
            if self.token("]") is None:
                return None
            return [items]

        return self.rule("list", body)


def main(argv):
    show_trace = "--trace" in argv
    args = [a for a in argv if a != "--trace"]
    source = args[0] if args else "[1, [2 3]]"
    tracer = Tracer(source)
    result = ListParser(source, tracer).parse()
    if show_trace:
        tty_trace(tracer)
    if result is None:
        print(f"Unable to parse {source!r}", file=sys.stderr)
        tty_backtrace(tracer)
        return 1
    print(result[0])
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
