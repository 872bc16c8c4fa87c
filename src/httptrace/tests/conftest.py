"""Shared fixtures: recording tracer, mock remote peer, captured logs."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable

import httpx
import pytest

from httptrace.observability.logging import MemoryRenderer, configure_logging
from httptrace.tracing import InMemoryExporter, Tracer
from httptrace.tracing import tracer as tracer_module


class MockServer:
    """In-process remote peer built on httpx.MockTransport.

    Serves queued responses in order (200 when the queue is empty) and records
    every request it receives, headers included.
    """

    def __init__(self, base_url: str = "http://localhost:8080") -> None:
        self.base_url = base_url
        self.requests: list[httpx.Request] = []
        self._queue: deque[httpx.Response | Exception] = deque()

    def enqueue(self, status_code: int = 200, body: bytes = b"", headers: dict[str, str] | None = None) -> None:
        self._queue.append(httpx.Response(status_code, content=body, headers=headers))

    def enqueue_error(self, exc: Exception) -> None:
        self._queue.append(exc)

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def take_request(self) -> httpx.Request:
        return self.requests.pop(0)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self._queue.popleft() if self._queue else httpx.Response(200)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


def wait_until(condition: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> None:
    """Poll condition until true, failing after timeout."""
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError(f"condition not met within {timeout}s")
        time.sleep(interval)


@pytest.fixture
def tracer() -> Tracer:
    """Tracer recording finished spans in memory."""
    return Tracer(service_name="test", exporter=InMemoryExporter())


@pytest.fixture
def server() -> MockServer:
    return MockServer()


@pytest.fixture
def eventually() -> Callable[..., None]:
    return wait_until


@pytest.fixture(autouse=True)
def logs() -> MemoryRenderer:
    """Capture structured log entries at DEBUG for every test."""
    renderer = MemoryRenderer()
    configure_logging(level="DEBUG", renderer=renderer)
    yield renderer
    configure_logging(format="none")


@pytest.fixture(autouse=True)
def reset_global_tracer(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep global tracer configuration from leaking between tests."""
    monkeypatch.setattr(tracer_module, "_global_tracer", None)
    token = tracer_module._tracer.set(None)
    yield
    tracer_module._tracer.reset(token)
