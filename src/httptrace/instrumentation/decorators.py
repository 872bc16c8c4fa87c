"""Span decorators: hooks that annotate a client span.

A decorator reads the request, the response or the failure and writes tags
and log records onto the span. It never touches the request or response
themselves. Several decorators compose; they run in registration order and
must not depend on each other's output.

Example:
    >>> class TenantTag:
    ...     def on_request(self, request, span):
    ...         span.set_tag("tenant", request.headers.get("X-Tenant", "none"))
    ...     def on_response(self, response, span): ...
    ...     def on_error(self, error, span): ...
    >>>
    >>> TracingClient(HttpxClient(), decorators=[StandardTags(), TenantTag()])
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from httptrace.foundation.errors import DecoratorError
from httptrace.tracing.span import Fields, Tags

if TYPE_CHECKING:
    from httptrace.http.models import Request, Response
    from httptrace.tracing.span import Span


@runtime_checkable
class SpanDecorator(Protocol):
    """Extension points around one traced attempt."""

    def on_request(self, request: Request, span: Span) -> None:
        """Before the call. Runs even if the call later fails."""
        ...

    def on_response(self, response: Response, span: Span) -> None:
        """After a response was received."""
        ...

    def on_error(self, error: BaseException, span: Span) -> None:
        """After the underlying client failed. No response exists."""
        ...


@dataclass(frozen=True, slots=True)
class StandardTags:
    """Component, span kind, method, URL and status tags; error tag plus one error log on failure.

    Args:
        component: Value of the ``component`` tag, the client implementation's identity
    """

    component: str = "httpx"

    def on_request(self, request: Request, span: Span) -> None:
        span.set_tag(Tags.COMPONENT, self.component)
        span.set_tag(Tags.SPAN_KIND, Tags.SPAN_KIND_CLIENT)
        span.set_tag(Tags.HTTP_METHOD, request.method)
        span.set_tag(Tags.HTTP_URL, request.url)

    def on_response(self, response: Response, span: Span) -> None:
        span.set_tag(Tags.HTTP_STATUS, response.status_code)

    def on_error(self, error: BaseException, span: Span) -> None:
        span.set_tag(Tags.ERROR, True)
        span.log_kv({Fields.EVENT: Tags.ERROR, Fields.ERROR_OBJECT: error})


ErrorHandler = Callable[[DecoratorError], None]


class DecoratorRegistry:
    """Ordered, read-only sequence of span decorators.

    ``apply`` runs one hook on every decorator and contains failures: each
    failing hook becomes a DecoratorError passed to ``on_error``, and the
    remaining decorators still run.
    """

    __slots__ = ("_decorators", "_on_error")

    def __init__(self, decorators: Iterable[SpanDecorator], on_error: ErrorHandler) -> None:
        self._decorators: tuple[SpanDecorator, ...] = tuple(decorators)
        self._on_error = on_error

    @property
    def decorators(self) -> tuple[SpanDecorator, ...]:
        return self._decorators

    def __len__(self) -> int:
        return len(self._decorators)

    def apply(self, hook: str, subject: object, span: Span) -> None:
        for decorator in self._decorators:
            try:
                getattr(decorator, hook)(subject, span)
            except Exception as e:
                self._on_error(DecoratorError(decorator, hook, e))

    def on_request(self, request: Request, span: Span) -> None:
        self.apply("on_request", request, span)

    def on_response(self, response: Response, span: Span) -> None:
        self.apply("on_response", response, span)

    def on_error(self, error: BaseException, span: Span) -> None:
        self.apply("on_error", error, span)
