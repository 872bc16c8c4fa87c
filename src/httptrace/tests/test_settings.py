"""Tests for settings and client assembly."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from httptrace import (
    HttptraceSettings,
    Request,
    RetryingClient,
    Tags,
    Tracer,
    TracingClient,
    build_client,
    clear_settings_cache,
    configure,
    get_settings,
)
from httptrace.foundation.config import RetrySettings, TracingSettings
from httptrace.http import HttpxClient
from httptrace.tracing import InMemoryExporter


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("HTTPTRACE_TRACING_PROPAGATION", "HTTPTRACE_RETRY_MAX_ATTEMPTS", "HTTPTRACE_TRACING_ENABLED",
                "HTTPTRACE_TRACING_TRACE_ID_HEADER", "HTTPTRACE_TRACING_SPAN_ID_HEADER", "HTTPTRACE_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


class TestSettings:
    def test_defaults(self) -> None:
        s = HttptraceSettings()
        assert s.tracing.enabled
        assert s.tracing.propagation == "text_map"
        assert (s.tracing.trace_id_header, s.tracing.span_id_header) == ("traceId", "spanId")
        assert s.tracing.component == "httpx"
        assert s.retry.max_attempts == 5
        assert s.retry.enabled

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HTTPTRACE_TRACING_PROPAGATION", "Trace-Context")
        monkeypatch.setenv("HTTPTRACE_RETRY_MAX_ATTEMPTS", "2")
        monkeypatch.setenv("HTTPTRACE_LOG_LEVEL", "debug")

        s = get_settings()
        assert s.tracing.propagation == "trace_context"
        assert s.retry.max_attempts == 2
        assert s.logging.level == "DEBUG"
        assert get_settings() is s

    def test_identical_headers_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must differ"):
            TracingSettings(trace_id_header="X-Id", span_id_header="x-id")

    def test_invalid_header_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TracingSettings(trace_id_header="trace id")

    def test_single_attempt_disables_retry(self) -> None:
        assert not RetrySettings(max_attempts=1).enabled


class TestBuildClient:
    def test_layers(self, server) -> None:
        client = build_client(HttptraceSettings(), tracer=Tracer(exporter=InMemoryExporter()),
                              transport=server.transport)
        assert isinstance(client, RetryingClient)
        assert isinstance(client.delegate, TracingClient)
        assert isinstance(client.delegate.delegate, HttpxClient)

    def test_retry_and_tracing_disabled(self, server) -> None:
        settings = HttptraceSettings(tracing=TracingSettings(enabled=False), retry=RetrySettings(max_attempts=1))
        assert isinstance(build_client(settings, transport=server.transport), HttpxClient)

    def test_built_client_traces_with_settings(self, server) -> None:
        tracer = Tracer(exporter=InMemoryExporter())
        settings = HttptraceSettings(tracing=TracingSettings(component="billing", propagation="b3"))
        client = build_client(settings, tracer=tracer, transport=server.transport)

        client.execute(Request("GET", server.url("/invoices")))

        span, sent = tracer.finished_spans()[0], server.take_request()
        assert span.tags[Tags.COMPONENT] == "billing"
        assert int(sent.headers["x-b3-spanid"], 16) == span.context.span_id
        assert sent.headers["user-agent"] == settings.http.user_agent

    def test_tracer_from_settings_uses_configured_headers(self, server) -> None:
        settings = HttptraceSettings(tracing=TracingSettings(trace_id_header="X-Trace", span_id_header="X-Span"))
        client = build_client(settings, transport=server.transport)

        client.execute(Request("GET", server.url("/")))

        sent = server.take_request()
        assert "x-trace" in sent.headers and "x-span" in sent.headers

    def test_configure_installs_global_tracer(self, server) -> None:
        tracer = configure(HttptraceSettings(), exporter="memory")
        assert Tracer.get_global() is tracer

        build_client(HttptraceSettings(), transport=server.transport).execute(Request("GET", server.url("/")))
        assert len(tracer.finished_spans()) == 1
