"""Structured logging for the tracing client, correlated with the active span.

Entries are key/value events rather than formatted strings. Every entry
emitted while a span is active on the global tracer carries that span's
``trace_id`` and ``span_id``, so a retry warning or a contained decorator
failure can be matched to the span it happened in.

Quick Start:
    >>> from httptrace.observability.logging import configure_logging, get_logger
    >>>
    >>> configure_logging(format="json", level="DEBUG")
    >>> log = get_logger("billing-client", region="eu")
    >>> log.warning("attempt failed, retrying", attempt=1, code="CONNECTION_ERROR")
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, TextIO, runtime_checkable

import orjson

from httptrace.foundation.errors import JsonDict, JsonValue

# Scoped fields, inherited by threads' copied contexts and asyncio tasks
_scoped: ContextVar[JsonDict] = ContextVar("httptrace_log_scope", default={})

_CORRELATION_KEYS = ("trace_id", "span_id", "parent_span_id")


@dataclass(slots=True)
class LogEntry:
    """One structured event."""

    timestamp: float
    level: str
    event: str
    context: JsonDict

    @property
    def iso_time(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def clock(self) -> str:
        """HH:MM:SS.mmm"""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]

    @property
    def fields(self) -> JsonDict:
        """Context without the correlation ids."""
        return {k: v for k, v in self.context.items() if k not in _CORRELATION_KEYS}


@dataclass(slots=True)
class BoundLogger:
    """Logger carrying a fixed set of fields. ``bind`` returns a new logger.

    Field precedence, lowest first: scoped (``log_context``), bound, call site,
    span correlation.
    """

    context: JsonDict = field(default_factory=dict)
    _renderer: LogRenderer | None = None
    _level: int | None = None

    def bind(self, **kw: JsonValue) -> BoundLogger:
        return BoundLogger({**self.context, **kw}, self._renderer, self._level)

    def enabled_for(self, level: int) -> bool:
        return level >= (_default_level if self._level is None else self._level)

    def _emit(self, level: int, event: str, kw: dict[str, object]) -> None:
        if not self.enabled_for(level):
            return
        ctx = _scoped.get() | self.context | kw | _span_correlation()
        renderer = self._renderer or _active_renderer()
        renderer.render(LogEntry(time.time(), logging.getLevelName(level).lower(), event, ctx))

    def debug(self, event: str, **kw: object) -> None:
        self._emit(logging.DEBUG, event, kw)

    def info(self, event: str, **kw: object) -> None:
        self._emit(logging.INFO, event, kw)

    def warning(self, event: str, **kw: object) -> None:
        self._emit(logging.WARNING, event, kw)

    def error(self, event: str, **kw: object) -> None:
        self._emit(logging.ERROR, event, kw)

    def exception(self, event: str, **kw: object) -> None:
        """Error entry with the current traceback under ``exc_info``."""
        self._emit(logging.ERROR, event, {**kw, "exc_info": traceback.format_exc()})


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class ConsoleRenderer:
    """One line per entry for development.

    Format: ``12:00:01.042 warning [trace:span] event key=value ...``. Error
    records (``ErrorInfo`` dumps) collapse to ``CODE: message``.
    """

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None  # auto-detect from the stream

    def __post_init__(self) -> None:
        if self.colors is None:
            self.colors = bool(getattr(self.output, "isatty", lambda: False)())

    def _paint(self, text: str, color: str) -> str:
        return f"{_ANSI[color]}{text}{_ANSI['reset']}" if self.colors else text

    def render(self, entry: LogEntry) -> None:
        line = [self._paint(entry.clock, "dim"), self._paint(f"{entry.level:<7}", _LEVEL_COLOR.get(entry.level, "dim"))]
        if (trace_id := entry.context.get("trace_id")) is not None:
            line.append(self._paint(f"[{trace_id:x}:{entry.context['span_id']:x}]", "cyan"))
        line.append(self._paint(entry.event, "bold"))
        tail = entry.fields
        exc_info = tail.pop("exc_info", None)
        line += [f"{k}={_console_value(v)}" for k, v in tail.items()]
        print(" ".join(line), file=self.output)
        if exc_info:
            print(self._paint(str(exc_info).rstrip(), "red"), file=self.output)


@dataclass(slots=True)
class JsonRenderer:
    """JSON Lines: ``timestamp``, ``level``, ``event`` followed by every field."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        record = {"timestamp": entry.iso_time, "level": entry.level, "event": entry.event, **entry.context}
        self.output.write(orjson.dumps(record, default=str, option=orjson.OPT_NON_STR_KEYS).decode() + "\n")


@dataclass(slots=True)
class MemoryRenderer:
    """Keeps entries for assertions in tests."""

    entries: list[LogEntry] = field(default_factory=list)

    def render(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self, level: str | None = None) -> list[str]:
        return [e.event for e in self.entries if level in (None, e.level)]


@dataclass(slots=True)
class NoOpRenderer:
    def render(self, entry: LogEntry) -> None:
        pass


# ─────────────────────────────────────────────────────────────────────────────
# Global Configuration
# ─────────────────────────────────────────────────────────────────────────────

# Process-wide; configure_logging runs once at startup
_renderer: LogRenderer | None = None
_default_level: int = logging.INFO


def configure_logging(
    format: str = "console",  # noqa: A002
    level: str = "INFO",
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
    renderer: LogRenderer | None = None,
) -> LogRenderer:
    """Install the process-wide renderer and level.

    Args:
        format: "console", "json" or "none" (ignored when ``renderer`` is given)
        level: Minimum level name, e.g. "DEBUG"
        output: Stream for console/json output
        colors: Force ANSI colors on or off for console output
        renderer: Explicit renderer, e.g. MemoryRenderer in tests
    """
    global _renderer, _default_level
    _default_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    if renderer is None:
        match format:
            case "console":
                renderer = ConsoleRenderer(output=output or sys.stderr, colors=colors)
            case "json":
                renderer = JsonRenderer(output=output or sys.stdout)
            case "none":
                renderer = NoOpRenderer()
            case _:
                raise ValueError(f"Unknown log format: {format!r}. Use 'console', 'json', or 'none'")
    _renderer = renderer
    return renderer


def get_logger(name: str | None = None, **initial_context: JsonValue) -> BoundLogger:
    """Logger with ``name`` bound as the ``logger`` field."""
    return BoundLogger(initial_context | ({"logger": name} if name else {}))


@contextmanager
def log_context(**fields: JsonValue) -> Iterator[None]:
    """Add fields to every entry logged inside the block, in this thread or task."""
    token = _scoped.set(_scoped.get() | fields)
    try:
        yield
    finally:
        _scoped.reset(token)


def _active_renderer() -> LogRenderer:
    global _renderer
    if _renderer is None:
        _renderer = ConsoleRenderer()
    return _renderer


def _span_correlation() -> JsonDict:
    """Ids of the global tracer's active span, empty outside a span."""
    from httptrace.tracing.tracer import Tracer

    if (tracer := Tracer.get_global()) is None or (span := tracer.active_span) is None:
        return {}
    ctx = span.context
    ids: JsonDict = {"trace_id": ctx.trace_id, "span_id": ctx.span_id}
    if ctx.parent_id is not None:
        ids["parent_span_id"] = ctx.parent_id
    return ids


# ─────────────────────────────────────────────────────────────────────────────
# Console helpers
# ─────────────────────────────────────────────────────────────────────────────

_ANSI = {"reset": "\033[0m", "bold": "\033[1m", "dim": "\033[2m", "red": "\033[31m",
         "green": "\033[32m", "yellow": "\033[33m", "cyan": "\033[36m"}
_LEVEL_COLOR = {"debug": "dim", "info": "green", "warning": "yellow", "error": "red"}


def _console_value(v: object) -> str:
    match v:
        case {"code": code, "message": message}:
            return f"{code}: {message!r}"
        case str() if v and " " not in v:
            return v
        case bool():
            return str(v).lower()
        case _:
            return repr(v)
