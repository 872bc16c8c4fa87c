"""Tracing module: span context, scopes, spans, propagation and the tracer."""

from .context import Scope, ScopeManager, SpanContext
from .exporter import (
    ConsoleExporter,
    Exporter,
    InMemoryExporter,
    JsonExporter,
    NoOpExporter,
)
from .propagation import (
    B3Propagator,
    ContextInjector,
    Format,
    Propagator,
    TextMapPropagator,
    TraceContextPropagator,
    default_propagators,
)
from .span import Fields, LogRecord, Span, Tags
from .tracer import Tracer, configure_tracing, get_tracer

__all__ = [
    # Context
    "SpanContext",
    "Scope",
    "ScopeManager",
    # Span
    "Span",
    "LogRecord",
    "Tags",
    "Fields",
    # Propagation
    "Format",
    "Propagator",
    "TextMapPropagator",
    "B3Propagator",
    "TraceContextPropagator",
    "ContextInjector",
    "default_propagators",
    # Tracer
    "Tracer",
    "configure_tracing",
    "get_tracer",
    # Exporters
    "Exporter",
    "InMemoryExporter",
    "ConsoleExporter",
    "JsonExporter",
    "NoOpExporter",
]
