"""HTTP client instrumentation: tracing client and span decorators."""

from .client import AsyncTracingClient, TracingClient, default_span_name
from .decorators import DecoratorRegistry, SpanDecorator, StandardTags

__all__ = [
    "TracingClient",
    "AsyncTracingClient",
    "default_span_name",
    "SpanDecorator",
    "StandardTags",
    "DecoratorRegistry",
]
