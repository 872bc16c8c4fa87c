"""httptrace - Distributed tracing for HTTP clients.

Wraps any HTTP client so that every outbound request produces a client span,
propagates trace context to the remote peer in request headers, and records
the outcome (status code, or error tag plus an error log) on the span. The
caller's results and exceptions pass through unchanged.

Quick Start:
    >>> from httptrace import HttpxClient, Request, Tracer, TracingClient
    >>>
    >>> tracer = Tracer(service_name="billing")
    >>> client = TracingClient(HttpxClient(), tracer)
    >>> response = client.execute(Request("GET", "https://api.example.com/invoices"))
    >>> span = tracer.finished_spans()[0]
    >>> span.tags["http.status_code"]
    200

Retries (one span per attempt):
    >>> from httptrace import RetryingClient, RetryPolicy
    >>> client = RetryingClient(TracingClient(HttpxClient(), tracer), RetryPolicy(max_attempts=2))

From environment settings:
    >>> from httptrace import build_client, configure
    >>> configure()              # logging + global tracer from HTTPTRACE_* variables
    >>> client = build_client()  # httpx -> tracing -> retry
"""

from __future__ import annotations

__version__ = "0.1.0"

# Errors
from .foundation.errors import (
    DecoratorError,
    ErrorCode,
    ErrorInfo,
    HttptraceError,
    PropagationError,
    TransportError,
    classify_exception,
)

# Configuration
from .foundation.config import HttptraceSettings, clear_settings_cache, get_settings

# HTTP
from .http import AsyncClient, AsyncHttpxClient, Client, Headers, HttpxClient, Request, Response

# Tracing
from .tracing import (
    ContextInjector,
    Fields,
    Format,
    InMemoryExporter,
    Scope,
    Span,
    SpanContext,
    Tags,
    Tracer,
    configure_tracing,
    get_tracer,
)

# Instrumentation
from .instrumentation import AsyncTracingClient, SpanDecorator, StandardTags, TracingClient

# Retry
from .retry import AsyncRetryingClient, ExponentialBackoff, RetryingClient, RetryPolicy

# Logging
from .observability.logging import configure_logging, get_logger

# Assembly
from .builder import build_async_client, build_client, configure

__all__ = [
    "__version__",
    # Errors
    "ErrorCode", "ErrorInfo", "HttptraceError", "TransportError", "PropagationError", "DecoratorError",
    "classify_exception",
    # Configuration
    "HttptraceSettings", "get_settings", "clear_settings_cache",
    # HTTP
    "Headers", "Request", "Response", "Client", "AsyncClient", "HttpxClient", "AsyncHttpxClient",
    # Tracing
    "Tracer", "Span", "SpanContext", "Scope", "Tags", "Fields", "Format", "ContextInjector",
    "InMemoryExporter", "configure_tracing", "get_tracer",
    # Instrumentation
    "TracingClient", "AsyncTracingClient", "SpanDecorator", "StandardTags",
    # Retry
    "RetryingClient", "AsyncRetryingClient", "RetryPolicy", "ExponentialBackoff",
    # Logging
    "configure_logging", "get_logger",
    # Assembly
    "build_client", "build_async_client", "configure",
]
