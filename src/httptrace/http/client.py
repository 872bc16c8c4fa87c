"""Underlying HTTP clients.

The tracing layer is polymorphic over anything satisfying ``Client`` (or
``AsyncClient``). The httpx adapters here are the stock transports; they
normalize httpx failures into TransportError so retry decisions can use
error codes.

Example:
    >>> from httptrace.http import HttpxClient, Request
    >>> with HttpxClient(timeout=5.0) as client:
    ...     response = client.execute(Request("GET", "https://api.example.com/health"))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from httptrace.foundation.errors import ErrorCode, TransportError

from .models import Headers, Request, Response

if TYPE_CHECKING:
    from types import TracebackType


@runtime_checkable
class Client(Protocol):
    """Blocking HTTP client capability."""

    def execute(self, request: Request) -> Response:
        """Send request and return response, raising on transport failure."""
        ...


@runtime_checkable
class AsyncClient(Protocol):
    """Non-blocking HTTP client capability."""

    async def execute(self, request: Request) -> Response:
        """Send request and return response, raising on transport failure."""
        ...


def _to_httpx(request: Request) -> dict[str, object]:
    return {
        "method": request.method,
        "url": request.url,
        "headers": list(request.headers.multi_items()),
        "content": request.body,
    }


def _from_httpx(response: httpx.Response, request: Request) -> Response:
    return Response(
        status_code=response.status_code,
        headers=Headers(response.headers.multi_items()),
        body=response.content,
        reason=response.reason_phrase,
        request=request,
    )


def _transport_error(exc: httpx.TransportError, request: Request) -> TransportError:
    match exc:
        case httpx.TimeoutException():
            code = ErrorCode.TIMEOUT
        case httpx.ConnectError():
            code = ErrorCode.CONNECTION_ERROR
        case _:
            code = ErrorCode.NETWORK_ERROR
    return TransportError(f"{request.method} {request.url} failed: {exc}", code, request=request)


class HttpxClient:
    """Blocking client backed by ``httpx.Client``.

    Args:
        client: Pre-built httpx client (takes precedence over the options below)
        timeout: Request timeout in seconds
        follow_redirects: Follow 3xx responses
        verify_ssl: Verify TLS certificates
        transport: Custom httpx transport (e.g. ``httpx.MockTransport`` in tests)
    """

    __slots__ = ("_client", "_owned")

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float = 30.0,
        follow_redirects: bool = True,
        verify_ssl: bool = True,
        transport: httpx.BaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._owned = client is None
        self._client = client or httpx.Client(
            timeout=timeout, follow_redirects=follow_redirects, verify=verify_ssl,
            transport=transport, headers=headers,
        )

    def execute(self, request: Request) -> Response:
        try:
            response = self._client.request(**_to_httpx(request))  # type: ignore[arg-type]
        except httpx.TransportError as e:
            raise _transport_error(e, request) from e
        return _from_httpx(response, request)

    def close(self) -> None:
        if self._owned:
            self._client.close()

    def __enter__(self) -> HttpxClient:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None) -> None:
        self.close()


class AsyncHttpxClient:
    """Non-blocking client backed by ``httpx.AsyncClient``. Same options as HttpxClient."""

    __slots__ = ("_client", "_owned")

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 30.0,
        follow_redirects: bool = True,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._owned = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout, follow_redirects=follow_redirects, verify=verify_ssl,
            transport=transport, headers=headers,
        )

    async def execute(self, request: Request) -> Response:
        try:
            response = await self._client.request(**_to_httpx(request))  # type: ignore[arg-type]
        except httpx.TransportError as e:
            raise _transport_error(e, request) from e
        return _from_httpx(response, request)

    async def aclose(self) -> None:
        if self._owned:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpxClient:
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None) -> None:
        await self.aclose()
