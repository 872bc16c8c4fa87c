"""Span types for tracing outbound HTTP calls.

Spans represent one traced unit of work: an operation name, tags, timestamped
log records, and a SpanContext. A span is reported to its tracer exactly once,
when finished.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from httptrace.foundation.errors import JsonDict
from httptrace.observability.logging import get_logger

if TYPE_CHECKING:
    from .context import SpanContext
    from .tracer import Tracer

log = get_logger("httptrace.span")


class Tags:
    """Standard tag keys for client spans."""

    COMPONENT = "component"
    SPAN_KIND = "span.kind"
    HTTP_METHOD = "http.method"
    HTTP_URL = "http.url"
    HTTP_STATUS = "http.status_code"
    ERROR = "error"

    SPAN_KIND_CLIENT = "client"
    SPAN_KIND_SERVER = "server"


class Fields:
    """Standard log field keys."""

    EVENT = "event"
    ERROR_OBJECT = "error.object"
    MESSAGE = "message"


@dataclass(frozen=True, slots=True)
class LogRecord:
    """Timestamped set of fields appended to a span."""

    timestamp: float
    fields: dict[str, Any]


@dataclass(slots=True, eq=False)
class Span:
    """Represents a unit of work in a trace.

    Attributes:
        operation_name: Human-readable name, mutable until finish
        context: SpanContext with trace/span/parent IDs
        tracer: Tracer that receives the span on finish
        start_time: Unix timestamp of span start
        finish_time: Unix timestamp of span end (None while active)
        tags: Key-value metadata
        logs: Timestamped log records

    Example:
        >>> span = tracer.start_span("GET /users")
        >>> span.set_tag(Tags.HTTP_METHOD, "GET")
        >>> span.log_kv({Fields.EVENT: "retry"})
        >>> span.finish()
    """

    operation_name: str
    context: SpanContext
    tracer: Tracer | None = field(default=None, repr=False)
    start_time: float = field(default_factory=time.time)
    finish_time: float | None = None
    tags: JsonDict = field(default_factory=dict)
    logs: list[LogRecord] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def parent_id(self) -> int | None:
        return self.context.parent_id

    @property
    def is_finished(self) -> bool:
        return self.finish_time is not None

    @property
    def duration_ms(self) -> float | None:
        """Duration in milliseconds, or None if not finished."""
        return None if self.finish_time is None else (self.finish_time - self.start_time) * 1000

    def _mutable(self, what: str) -> bool:
        if self.finish_time is None:
            return True
        log.warning("span already finished", operation=self.operation_name, ignored=what)
        return False

    def set_operation_name(self, name: str) -> Span:
        if self._mutable("set_operation_name"):
            self.operation_name = name
        return self

    def set_tag(self, key: str, value: Any) -> Span:
        """Set tag, returns self for chaining."""
        if self._mutable(f"set_tag:{key}"):
            self.tags[key] = value
        return self

    def log_kv(self, fields: dict[str, Any], timestamp: float | None = None) -> Span:
        """Append a log record."""
        if self._mutable("log_kv"):
            self.logs.append(LogRecord(time.time() if timestamp is None else timestamp, dict(fields)))
        return self

    def finish(self, finish_time: float | None = None) -> None:
        """Finish the span and report it. Only the first call has any effect."""
        with self._lock:
            if self.finish_time is not None:
                log.warning("span finished twice", operation=self.operation_name, span_id=self.context.span_id)
                return
            self.finish_time = time.time() if finish_time is None else finish_time
        if self.tracer is not None:
            self.tracer._report(self)

    def to_dict(self) -> JsonDict:
        """Serialize span for export."""
        return {
            "operation_name": self.operation_name,
            "trace_id": self.context.trace_id,
            "span_id": self.context.span_id,
            "parent_id": self.context.parent_id,
            "start_time": self.start_time,
            "finish_time": self.finish_time,
            "duration_ms": self.duration_ms,
            "tags": self.tags,
            "logs": [{"timestamp": r.timestamp, "fields": r.fields} for r in self.logs],
        }
