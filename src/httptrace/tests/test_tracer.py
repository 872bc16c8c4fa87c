"""Tests for span context, scopes, spans, exporters and the tracer."""

from __future__ import annotations

import io
import threading

import orjson
import pytest

from httptrace import Fields, Scope, SpanContext, Tags, Tracer, configure_tracing, get_tracer
from httptrace.tracing import ConsoleExporter, InMemoryExporter, JsonExporter, NoOpExporter, ScopeManager
from httptrace.tracing.context import new_id


# ─────────────────────────────────────────────────────────────────────────────
# SpanContext
# ─────────────────────────────────────────────────────────────────────────────


def test_new_ids_are_positive_63_bit() -> None:
    ids = {new_id() for _ in range(1000)}
    assert len(ids) == 1000
    assert all(0 < i < 2**63 for i in ids)


def test_child_context_shares_trace() -> None:
    root = SpanContext.new_root().with_baggage_item("k", "v")
    child = root.child()
    assert child.trace_id == root.trace_id
    assert child.parent_id == root.span_id
    assert child.span_id != root.span_id
    assert dict(child.baggage) == {"k": "v"}
    assert root.parent_id is None


def test_default_baggage_is_empty_and_read_only() -> None:
    a, b = SpanContext(1, 2), SpanContext(1, 2)
    assert dict(a.baggage) == {}
    assert a.baggage is b.baggage
    with pytest.raises(TypeError):
        a.baggage["k"] = "v"  # type: ignore[index]
    assert a.with_baggage_item("k", "v") == a
    assert dict(a.baggage) == {}


# ─────────────────────────────────────────────────────────────────────────────
# Scopes
# ─────────────────────────────────────────────────────────────────────────────


class TestScopeManager:
    def test_nesting_is_lifo(self, tracer: Tracer) -> None:
        a, b = tracer.start_span("a"), tracer.start_span("b")
        with tracer.activate_span(a):
            with tracer.activate_span(b):
                assert tracer.active_span is b
            assert tracer.active_span is a
        assert tracer.active_span is None

    def test_close_is_idempotent(self, tracer: Tracer) -> None:
        scope = tracer.activate_span(tracer.start_span("a"))
        scope.close()
        scope.close()
        assert tracer.active_span is None

    def test_out_of_order_close_warns(self, tracer: Tracer, logs) -> None:
        outer = tracer.activate_span(tracer.start_span("outer"))
        inner = tracer.activate_span(tracer.start_span("inner"))
        outer.close()
        inner.close()
        assert "scope closed out of order" in logs.events("warning")

    def test_threads_do_not_share_active_span(self, tracer: Tracer) -> None:
        seen: list[object] = []
        with tracer.activate_span(tracer.start_span("main")):
            t = threading.Thread(target=lambda: seen.append(tracer.active_span))
            t.start()
            t.join()
        assert seen == [None]

    def test_managers_are_independent(self) -> None:
        m1, m2 = ScopeManager(), ScopeManager()
        span = Tracer().start_span("x")
        with m1.activate(span) as scope:
            assert isinstance(scope, Scope)
            assert m1.active_span is span
            assert m2.active_span is None


# ─────────────────────────────────────────────────────────────────────────────
# Spans
# ─────────────────────────────────────────────────────────────────────────────


class TestSpan:
    def test_start_span_parent_resolution(self, tracer: Tracer) -> None:
        parent = tracer.start_span("parent")
        with tracer.activate_span(parent):
            child = tracer.start_span("child")
            orphan = tracer.start_span("orphan", ignore_active=True)
        explicit = tracer.start_span("explicit", child_of=parent)

        assert child.parent_id == parent.context.span_id
        assert orphan.parent_id is None
        assert explicit.parent_id == parent.context.span_id

    def test_finish_reports_once(self, tracer: Tracer, logs) -> None:
        span = tracer.start_span("op")
        span.finish()
        first = span.finish_time
        span.finish()

        assert tracer.finished_spans() == [span]
        assert span.finish_time == first
        assert "span finished twice" in logs.events("warning")

    def test_mutation_after_finish_is_ignored(self, tracer: Tracer) -> None:
        span = tracer.start_span("op").set_tag(Tags.HTTP_METHOD, "GET")
        span.finish()
        span.set_tag(Tags.ERROR, True).log_kv({Fields.EVENT: "late"}).set_operation_name("renamed")

        assert span.tags == {Tags.HTTP_METHOD: "GET"}
        assert span.logs == []
        assert span.operation_name == "op"

    def test_concurrent_finish_reports_once(self, tracer: Tracer) -> None:
        span = tracer.start_span("op")
        threads = [threading.Thread(target=span.finish) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(tracer.finished_spans()) == 1

    def test_to_dict(self, tracer: Tracer) -> None:
        span = tracer.start_span("op", tags={Tags.SPAN_KIND: Tags.SPAN_KIND_CLIENT}, start_time=100.0)
        span.log_kv({Fields.EVENT: "x"}, timestamp=100.5)
        span.finish(101.0)

        d = span.to_dict()
        assert d["operation_name"] == "op"
        assert d["duration_ms"] == pytest.approx(1000.0)
        assert d["tags"] == {"span.kind": "client"}
        assert d["logs"] == [{"timestamp": 100.5, "fields": {"event": "x"}}]

    def test_zero_timestamps_are_kept(self, tracer: Tracer) -> None:
        span = tracer.start_span("op", start_time=0.0)
        span.log_kv({Fields.EVENT: "x"}, timestamp=0.0)
        span.finish(0.0)

        assert span.logs[0].timestamp == 0.0
        assert span.finish_time == 0.0
        assert span.duration_ms == 0.0


# ─────────────────────────────────────────────────────────────────────────────
# Exporters & global tracer
# ─────────────────────────────────────────────────────────────────────────────


def test_json_exporter_serializes_error_objects() -> None:
    out = io.StringIO()
    tracer = Tracer(exporter=JsonExporter(output=out))
    span = tracer.start_span("GET /a").set_tag(Tags.ERROR, True)
    span.log_kv({Fields.EVENT: "error", Fields.ERROR_OBJECT: ConnectionRefusedError("refused")})
    span.finish()

    record = orjson.loads(out.getvalue())
    assert record["operation_name"] == "GET /a"
    assert record["tags"]["error"] is True
    assert "refused" in record["logs"][0]["fields"]["error.object"]


def test_console_exporter_marks_failures() -> None:
    out = io.StringIO()
    tracer = Tracer(exporter=ConsoleExporter(output=out, verbose=True))
    tracer.start_span("ok").set_tag(Tags.HTTP_STATUS, 200).finish()
    tracer.start_span("bad").set_tag(Tags.ERROR, True).finish()

    lines = out.getvalue().splitlines()
    assert "✓ ok" in lines[0] and "status=200" in lines[0]
    assert any("✗ bad" in line for line in lines)
    assert "    error=True" in lines


def test_finished_spans_empty_without_memory_exporter() -> None:
    tracer = Tracer(exporter=NoOpExporter())
    tracer.start_span("x").finish()
    assert tracer.finished_spans() == []


def test_configure_tracing_sets_global() -> None:
    assert Tracer.get_global() is None
    assert isinstance(get_tracer().exporter, NoOpExporter)

    tracer = configure_tracing("billing", exporter="memory", trace_id_key="x-trace", span_id_key="x-span")

    assert Tracer.get_global() is tracer
    assert get_tracer() is tracer
    assert isinstance(tracer.exporter, InMemoryExporter)
    carrier: dict[str, str] = {}
    tracer.inject(tracer.start_span("a").context, "text_map", carrier)
    assert set(carrier) == {"x-trace", "x-span"}


def test_configure_tracing_rejects_unknown_exporter() -> None:
    with pytest.raises(ValueError, match="zipkin"):
        configure_tracing(exporter="zipkin")
