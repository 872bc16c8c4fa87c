"""Tracing client: wraps any HTTP client so every call produces a client span.

Per call, the client:
1. starts a span, parented to the active span if there is one
2. runs each decorator's ``on_request`` hook
3. injects the span context into the request headers
4. activates the span and delegates to the wrapped client
5. runs ``on_response`` or ``on_error`` depending on the outcome
6. finishes the span exactly once and releases the activation

Tracing is strictly observational: the caller gets the wrapped client's
response or exception unchanged. Decorator and injection failures are logged
and contained. Wrapping with a retrying client yields one span per attempt.

Example:
    >>> from httptrace import HttpxClient, Request, StandardTags, TracingClient, Tracer
    >>>
    >>> tracer = Tracer(service_name="billing")
    >>> client = TracingClient(HttpxClient(), tracer, decorators=[StandardTags(component="httpx")])
    >>> response = client.execute(Request("GET", "https://api.example.com/invoices"))
    >>>
    >>> # Fixed span name for grouping across URLs
    >>> class InvoiceClient(TracingClient):
    ...     def span_name(self, request):
    ...         return "invoices"
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from httptrace.foundation.errors import DecoratorError, ErrorInfo
from httptrace.observability.logging import get_logger
from httptrace.tracing import ContextInjector, Format, Tracer

from .decorators import DecoratorRegistry, SpanDecorator, StandardTags

if TYPE_CHECKING:
    from httptrace.http.client import AsyncClient, Client
    from httptrace.http.models import Request, Response
    from httptrace.tracing import Span

log = get_logger("httptrace.client")

SpanNamer = Callable[["Request"], str]
DecoratorErrorHandler = Callable[[DecoratorError], None]


def default_span_name(request: Request) -> str:
    """``"{METHOD} {path}"``, e.g. ``"GET /users/42"``."""
    return f"{request.method} {request.path}"


class _TracingBase:
    """Span lifecycle shared by the blocking and async clients.

    Args:
        tracer: Span backend (defaults to the global tracer)
        decorators: Span decorators, applied in order (default: StandardTags())
        propagation: Format used to inject context into request headers
        span_name: Callable naming the span from the request
        on_decorator_error: Receives contained decorator failures (default: log a warning)
        injector: Explicit ContextInjector, overrides ``propagation``

    Raises:
        PropagationError: propagation format unsupported by the tracer
    """

    __slots__ = ("tracer", "_decorators", "_injector", "_span_namer", "_on_decorator_error")

    def __init__(
        self,
        tracer: Tracer | None = None,
        *,
        decorators: Iterable[SpanDecorator] | None = None,
        propagation: Format | str = Format.TEXT_MAP,
        span_name: SpanNamer | None = None,
        on_decorator_error: DecoratorErrorHandler | None = None,
        injector: ContextInjector | None = None,
    ) -> None:
        self.tracer = tracer or Tracer.current()
        self._decorators = DecoratorRegistry(
            (StandardTags(),) if decorators is None else decorators, self._decorator_failed,
        )
        self._injector = injector or ContextInjector.for_format(self.tracer, propagation)
        self._span_namer = span_name
        self._on_decorator_error = on_decorator_error

    @property
    def decorators(self) -> tuple[SpanDecorator, ...]:
        return self._decorators.decorators

    def span_name(self, request: Request) -> str:
        """Operation name for the request's span. Override for custom naming."""
        return (self._span_namer or default_span_name)(request)

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle steps
    # ─────────────────────────────────────────────────────────────────

    def _start(self, request: Request) -> Span:
        try:
            name = self.span_name(request)
        except Exception as e:
            log.warning("span naming failed", error=ErrorInfo.from_exception(e).model_dump())
            name = default_span_name(request)
        span = self.tracer.start_span(name)
        self._decorators.on_request(request, span)
        try:
            self._injector.inject(span.context, request.headers)
        except Exception as e:
            log.warning("context injection failed", url=request.url, error=ErrorInfo.from_exception(e).model_dump())
        return span

    def _succeeded(self, response: Response, span: Span) -> None:
        self._decorators.on_response(response, span)

    def _failed(self, error: BaseException, span: Span) -> None:
        log.debug("transport failure", operation=span.operation_name, error_type=type(error).__name__, error=str(error))
        self._decorators.on_error(error, span)

    def _decorator_failed(self, error: DecoratorError) -> None:
        if self._on_decorator_error is None:
            log.warning("span decorator failed", decorator=type(error.decorator).__name__, hook=error.hook,
                        error=ErrorInfo.from_exception(error.cause).model_dump())
            return
        try:
            self._on_decorator_error(error)
        except Exception as e:
            log.warning("decorator error handler failed", error=ErrorInfo.from_exception(e).model_dump())


class TracingClient(_TracingBase):
    """Blocking client producing one span per ``execute`` call.

    Args:
        delegate: Underlying client that performs the call

    See _TracingBase for the remaining arguments.
    """

    __slots__ = ("delegate",)

    def __init__(self, delegate: Client, tracer: Tracer | None = None, **kwargs: object) -> None:
        super().__init__(tracer, **kwargs)  # type: ignore[arg-type]
        self.delegate = delegate

    def execute(self, request: Request) -> Response:
        span = self._start(request)
        try:
            with self.tracer.activate_span(span):
                response = self.delegate.execute(request)
        except Exception as e:
            self._failed(e, span)
            raise
        else:
            self._succeeded(response, span)
            return response
        finally:
            span.finish()


class AsyncTracingClient(_TracingBase):
    """Async variant: the span finishes when the awaited call completes.

    Cancellation is recorded through the error hooks, then propagated.
    """

    __slots__ = ("delegate",)

    def __init__(self, delegate: AsyncClient, tracer: Tracer | None = None, **kwargs: object) -> None:
        super().__init__(tracer, **kwargs)  # type: ignore[arg-type]
        self.delegate = delegate

    async def execute(self, request: Request) -> Response:
        span = self._start(request)
        try:
            with self.tracer.activate_span(span):
                response = await self.delegate.execute(request)
        except (Exception, asyncio.CancelledError) as e:
            self._failed(e, span)
            raise
        else:
            self._succeeded(response, span)
            return response
        finally:
            span.finish()
