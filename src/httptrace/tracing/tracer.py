"""Tracer for creating, activating and reporting spans.

The tracer is the span backend the HTTP instrumentation talks to. It creates
spans (parented to the active span unless told otherwise), tracks the active
span through a ScopeManager, injects/extracts context through propagators and
hands finished spans to an Exporter.

Usage:
    >>> tracer = Tracer(service_name="billing", exporter=InMemoryExporter())
    >>> parent = tracer.start_span("checkout")
    >>> with tracer.activate_span(parent):
    ...     child = tracer.start_span("GET /prices")  # parented to checkout
    ...     child.finish()
    >>> parent.finish()
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from httptrace.foundation.errors import ErrorInfo, PropagationError
from httptrace.observability.logging import get_logger

from .context import Scope, ScopeManager, SpanContext
from .exporter import ConsoleExporter, Exporter, InMemoryExporter, JsonExporter, NoOpExporter
from .propagation import Format, Propagator, default_propagators
from .span import Span

if TYPE_CHECKING:
    from collections.abc import Mapping, MutableMapping

log = get_logger("httptrace.tracer")

# Global tracer instance
_tracer: ContextVar[Tracer | None] = ContextVar("tracer", default=None)
_global_tracer: Tracer | None = None


@dataclass(slots=True)
class Tracer:
    """Creates and manages spans for distributed tracing.

    Args:
        service_name: Name identifying this service
        exporter: Where to send finished spans
        scope_manager: Active-span tracking (one ContextVar per tracer)
        propagators: Format -> Propagator table used by inject/extract
    """

    service_name: str = "httptrace"
    exporter: Exporter = field(default_factory=InMemoryExporter)
    scope_manager: ScopeManager = field(default_factory=ScopeManager)
    propagators: dict[Format, Propagator] = field(default_factory=default_propagators)

    def configure_global(self) -> None:
        """Set this tracer as the global instance."""
        global _global_tracer
        _global_tracer = self
        _tracer.set(self)

    @classmethod
    def get_global(cls) -> Tracer | None:
        return _tracer.get() or _global_tracer

    @classmethod
    def current(cls) -> Tracer:
        """Get global tracer or create a silent one."""
        return cls.get_global() or cls(exporter=NoOpExporter())

    # ─────────────────────────────────────────────────────────────────
    # Spans
    # ─────────────────────────────────────────────────────────────────

    @property
    def active_span(self) -> Span | None:
        return self.scope_manager.active_span

    def activate_span(self, span: Span) -> Scope:
        """Make span the active one until the returned scope closes."""
        return self.scope_manager.activate(span)

    def start_span(
        self,
        operation_name: str,
        *,
        child_of: Span | SpanContext | None = None,
        ignore_active: bool = False,
        tags: dict[str, Any] | None = None,
        start_time: float | None = None,
    ) -> Span:
        """Start a span (caller must finish it).

        Parent resolution: explicit ``child_of``, else the active span unless
        ``ignore_active``, else a new trace.
        """
        parent = child_of.context if isinstance(child_of, Span) else child_of
        if parent is None and not ignore_active and (active := self.active_span) is not None:
            parent = active.context
        ctx = parent.child() if parent is not None else SpanContext.new_root()
        span = Span(operation_name=operation_name, context=ctx, tracer=self, tags=dict(tags or {}))
        if start_time is not None:
            span.start_time = start_time
        return span

    def _report(self, span: Span) -> None:
        try:
            self.exporter.export([span])
        except Exception as e:
            log.warning("span export failed", operation=span.operation_name, span_id=span.context.span_id,
                        error=ErrorInfo.from_exception(e).model_dump())

    # ─────────────────────────────────────────────────────────────────
    # Propagation
    # ─────────────────────────────────────────────────────────────────

    def propagator(self, format: Format | str) -> Propagator:  # noqa: A002
        """Propagator for format, PropagationError if unsupported."""
        try:
            return self.propagators[Format(format)]
        except (KeyError, ValueError):
            raise PropagationError(f"Unsupported propagation format: {format!r}") from None

    def inject(self, span_context: SpanContext, format: Format | str, carrier: MutableMapping[str, str]) -> None:  # noqa: A002
        self.propagator(format).inject(span_context, carrier)

    def extract(self, format: Format | str, carrier: Mapping[str, str]) -> SpanContext | None:  # noqa: A002
        return self.propagator(format).extract(carrier)

    def finished_spans(self) -> list[Span]:
        """Finished spans when the exporter records them, else empty."""
        return self.exporter.finished_spans() if isinstance(self.exporter, InMemoryExporter) else []

    def reset(self) -> None:
        if isinstance(self.exporter, InMemoryExporter):
            self.exporter.reset()

    def shutdown(self) -> None:
        """Shutdown tracer and flush exports."""
        self.exporter.shutdown()


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


def get_tracer() -> Tracer:
    """Get the global tracer (creates a silent one if not configured)."""
    return Tracer.current()


def configure_tracing(
    service_name: str = "httptrace",
    exporter: str | Exporter = "console",
    *,
    trace_id_key: str = "traceId",
    span_id_key: str = "spanId",
    verbose: bool = False,
) -> Tracer:
    """Configure the global tracer.

    Args:
        service_name: Name for this service in traces
        exporter: "console", "json", "memory", "none", or Exporter instance
        trace_id_key: Carrier key for the trace id in text map formats
        span_id_key: Carrier key for the span id in text map formats
        verbose: Show tags and logs in console output

    Example:
        >>> from httptrace.tracing import configure_tracing
        >>> configure_tracing(service_name="billing", exporter="json")
    """
    if isinstance(exporter, str):
        exporters = {
            "console": lambda: ConsoleExporter(verbose=verbose),
            "json": JsonExporter,
            "memory": InMemoryExporter,
            "none": NoOpExporter,
        }
        if exporter not in exporters:
            raise ValueError(f"Unknown exporter: {exporter}. Use 'console', 'json', 'memory', or 'none'")
        exp: Exporter = exporters[exporter]()
    else:
        exp = exporter

    tracer = Tracer(service_name=service_name, exporter=exp,
                    propagators=default_propagators(trace_id_key, span_id_key))
    tracer.configure_global()
    return tracer
