"""
harness/golden/markdown.py

Line-oriented markdown primitives for golden files.

Every primitive writes through a LineSink and never reads back what was
written; keeping the lines (in memory, on disk, …) is the sink's job.

Layout produced
---------------
  ## 1. Section title          section()      numbered, never reset
  ### Sub-section title        sub_section()
  `{ "a" : 1 }`                code_one_line()
  ```json                      code()
  ...
  ```
  <empty line>                 linebreak()

Section numbers come from a SectionCounter owned by the writer.  Create one
writer per test-run session; two writers never share a counter unless the
caller passes the same counter to both on purpose.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol, TextIO

from harness.golden.serialize import to_json_one_line


class LineSink(Protocol):
    """Append-only destination for rendered lines."""

    def write_line(self, text: str = "") -> None: ...


class ListSink:
    """Collect lines in memory; used by tests and by callers that diff text."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write_line(self, text: str = "") -> None:
        self.lines.append(text)

    def text(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


class StreamSink:
    """Write each line to a text stream (an open file, ``sys.stdout`` …)."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write_line(self, text: str = "") -> None:
        self._stream.write(text + "\n")


class SectionCounter:
    """Monotonic section number, starting at 1."""

    def __init__(self, start: int = 1) -> None:
        self._next = start

    @property
    def current(self) -> int:
        """Number the next section will get."""
        return self._next

    def next(self) -> int:
        value = self._next
        self._next += 1
        return value


class MarkdownWriter:
    """Markdown formatting primitives bound to one sink and one counter."""

    def __init__(self, sink: LineSink, counter: SectionCounter | None = None) -> None:
        self.sink = sink
        self.counter = counter if counter is not None else SectionCounter()

    def section(self, msg: str) -> None:
        self.sink.write_line(f"## {self.counter.next()}. {msg}")

    def sub_section(self, msg: str) -> None:
        self.sink.write_line(f"### {msg}")

    def line(self, msg: str) -> None:
        self.sink.write_line(msg)

    def code_one_line(self, value: Any) -> None:
        self.sink.write_line("`" + to_json_one_line(value) + "`")

    def code(self, text: str | Iterable[str], fmt: str = "json") -> None:
        """Write a fenced block; *text* is a string or one string per line."""
        self.sink.write_line("```" + fmt)
        if isinstance(text, str):
            self.sink.write_line(text)
        else:
            for line in text:
                self.sink.write_line(line)
        self.sink.write_line("```")

    def linebreak(self) -> None:
        self.sink.write_line()
