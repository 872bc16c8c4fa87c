"""Span exporters: where finished spans go.

Provides pluggable destinations:
- InMemoryExporter: Records spans for assertions in tests
- ConsoleExporter: Pretty-printed spans for development
- JsonExporter: JSON lines for log aggregation
- NoOpExporter: Discards spans
"""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

import orjson

if TYPE_CHECKING:
    from .span import Span

_SPAN_COLORS = {"reset": "\033[0m", "bold": "\033[1m", "dim": "\033[2m",
                "red": "\033[31m", "green": "\033[32m", "yellow": "\033[33m", "cyan": "\033[36m"}
_SPAN_NO_COLORS = {k: "" for k in _SPAN_COLORS}


@runtime_checkable
class Exporter(Protocol):
    """Protocol for span exporters.

    Exporters receive finished spans. Must be thread-safe for concurrent exports.
    """

    def export(self, spans: list[Span]) -> None:
        """Export batch of finished spans."""
        ...

    def shutdown(self) -> None:
        """Graceful shutdown, flush pending exports."""
        ...


@dataclass(slots=True)
class NoOpExporter:
    """Silent exporter for disabled tracing."""

    def export(self, spans: list[Span]) -> None:
        pass

    def shutdown(self) -> None:
        pass


@dataclass(slots=True)
class InMemoryExporter:
    """Keeps finished spans in finish order."""

    _spans: list[Span] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def export(self, spans: list[Span]) -> None:
        with self._lock:
            self._spans.extend(spans)

    def finished_spans(self) -> list[Span]:
        """Snapshot of finished spans."""
        with self._lock:
            return list(self._spans)

    def reset(self) -> None:
        with self._lock:
            self._spans.clear()

    def shutdown(self) -> None:
        pass


@dataclass(slots=True)
class ConsoleExporter:
    """Pretty-print spans to console for development.

    Args: output (stderr), colors (True if TTY), verbose (False)
    """

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool = True
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.colors and not getattr(self.output, "isatty", lambda: False)():
            self.colors = False

    def export(self, spans: list[Span]) -> None:
        for s in spans: self._print_span(s)

    def _print_span(self, span: Span) -> None:
        c = _SPAN_COLORS if self.colors else _SPAN_NO_COLORS
        failed = bool(span.tags.get("error"))
        sym, color = ("✗", c["red"]) if failed else ("✓", c["green"])
        ts = datetime.fromtimestamp(span.start_time, tz=UTC).strftime("%H:%M:%S.%f")[:-3]
        dur = f"{span.duration_ms:.1f}ms" if span.duration_ms is not None else "..."
        indent = "  " if span.parent_id else ""

        line = (f"{c['dim']}{ts}{c['reset']} {color}{sym}{c['reset']} "
                f"{indent}{c['bold']}{span.operation_name}{c['reset']} "
                f"{c['cyan']}[{span.context.trace_id:x}:{span.context.span_id:x}]{c['reset']} "
                f"{c['yellow']}{dur}{c['reset']}")
        if (status := span.tags.get("http.status_code")) is not None:
            line += f" {c['dim']}status={status}{c['reset']}"
        print(line, file=self.output)

        if self.verbose:
            for k, v in span.tags.items():
                print(f"    {c['dim']}{k}={v!r}{c['reset']}", file=self.output)
            for record in span.logs:
                print(f"    {c['dim']}log {record.fields!r}{c['reset']}", file=self.output)

    def shutdown(self) -> None:
        self.output.flush()


@dataclass(slots=True)
class JsonExporter:
    """Export spans as JSON lines (one object per span)."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def export(self, spans: list[Span]) -> None:
        for s in spans:
            print(orjson.dumps(s.to_dict(), default=str, option=orjson.OPT_NON_STR_KEYS).decode(), file=self.output)

    def shutdown(self) -> None:
        self.output.flush()
