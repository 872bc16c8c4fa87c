"""Assemble a traced HTTP client from settings.

Layers, innermost first: httpx transport adapter, tracing client, retrying
client. Tracing is skipped when disabled in settings; retry is skipped when a
single attempt is configured.

Example:
    >>> from httptrace import build_client, Request
    >>> client = build_client()
    >>> client.execute(Request("GET", "https://api.example.com/health"))
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from httptrace.foundation.config import HttptraceSettings, get_settings
from httptrace.http import AsyncHttpxClient, HttpxClient
from httptrace.instrumentation import AsyncTracingClient, SpanDecorator, StandardTags, TracingClient
from httptrace.instrumentation.client import SpanNamer
from httptrace.observability.logging import configure_logging
from httptrace.retry import AsyncRetryingClient, RetryingClient, RetryPolicy
from httptrace.tracing import Exporter, Tracer, configure_tracing, default_propagators

if TYPE_CHECKING:
    import httpx

    from httptrace.http import AsyncClient, Client


def configure(settings: HttptraceSettings | None = None, *, exporter: str | Exporter = "console") -> Tracer:
    """Configure logging and the global tracer from settings. Call once at startup."""
    settings = settings or get_settings()
    configure_logging(format=settings.logging.format, level=settings.logging.level)
    t = settings.tracing
    return configure_tracing(service_name=t.service_name, exporter=exporter if t.enabled else "none",
                             trace_id_key=t.trace_id_header, span_id_key=t.span_id_header,
                             verbose=settings.debug)


def _policy(settings: HttptraceSettings) -> RetryPolicy:
    r = settings.retry
    return RetryPolicy.from_settings(r.max_attempts, r.period, r.max_period, r.multiplier, r.jitter)


def _tracer(settings: HttptraceSettings, tracer: Tracer | None) -> Tracer:
    if tracer is not None:
        return tracer
    if (existing := Tracer.get_global()) is not None:
        return existing
    t = settings.tracing
    return Tracer(service_name=t.service_name, propagators=default_propagators(t.trace_id_header, t.span_id_header))


def _tracing_kwargs(settings: HttptraceSettings, decorators: Iterable[SpanDecorator] | None,
                    span_name: SpanNamer | None) -> dict[str, object]:
    return {
        "decorators": [StandardTags(component=settings.tracing.component)] if decorators is None else decorators,
        "propagation": settings.tracing.propagation,
        "span_name": span_name,
    }


def build_client(
    settings: HttptraceSettings | None = None,
    *,
    tracer: Tracer | None = None,
    decorators: Iterable[SpanDecorator] | None = None,
    span_name: SpanNamer | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Client:
    """Blocking client: HttpxClient -> TracingClient -> RetryingClient.

    Args:
        settings: Configuration (defaults to get_settings())
        tracer: Span backend (defaults to the global tracer, else a new one from settings)
        decorators: Span decorators (default: StandardTags with the configured component)
        span_name: Span naming callable
        transport: httpx transport override, e.g. httpx.MockTransport

    Raises:
        PropagationError: configured propagation format unsupported by the tracer
    """
    settings = settings or get_settings()
    h = settings.http
    client: Client = HttpxClient(timeout=h.timeout, follow_redirects=h.follow_redirects, verify_ssl=h.verify_ssl,
                                 transport=transport, headers={"User-Agent": h.user_agent})
    if settings.tracing.enabled:
        client = TracingClient(client, _tracer(settings, tracer), **_tracing_kwargs(settings, decorators, span_name))  # type: ignore[arg-type]
    if settings.retry.enabled:
        client = RetryingClient(client, _policy(settings))
    return client


def build_async_client(
    settings: HttptraceSettings | None = None,
    *,
    tracer: Tracer | None = None,
    decorators: Iterable[SpanDecorator] | None = None,
    span_name: SpanNamer | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncClient:
    """Async counterpart of build_client."""
    settings = settings or get_settings()
    h = settings.http
    client: AsyncClient = AsyncHttpxClient(timeout=h.timeout, follow_redirects=h.follow_redirects,
                                           verify_ssl=h.verify_ssl, transport=transport,
                                           headers={"User-Agent": h.user_agent})
    if settings.tracing.enabled:
        client = AsyncTracingClient(client, _tracer(settings, tracer), **_tracing_kwargs(settings, decorators, span_name))  # type: ignore[arg-type]
    if settings.retry.enabled:
        client = AsyncRetryingClient(client, _policy(settings))
    return client
