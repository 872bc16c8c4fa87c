"""Context propagation: writing span identity into outgoing carriers.

A carrier is any mutable string mapping, in practice the request Headers.
Which keys are written is a property of the propagation format, never of the
client doing the injecting.

Formats:
    - TEXT_MAP / HTTP_HEADERS: decimal IDs under configurable keys (traceId/spanId by default)
    - B3: Zipkin multi-header format, hex IDs
    - TRACE_CONTEXT: W3C ``traceparent``
"""

from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from httptrace.foundation.errors import PropagationError

from .context import SpanContext

if TYPE_CHECKING:
    from .tracer import Tracer


class Format(StrEnum):
    """Propagation formats understood by the built-in propagators."""

    TEXT_MAP = "text_map"
    HTTP_HEADERS = "http_headers"
    B3 = "b3"
    TRACE_CONTEXT = "trace_context"


@runtime_checkable
class Propagator(Protocol):
    """Serializes SpanContext into a carrier and back."""

    def inject(self, span_context: SpanContext, carrier: MutableMapping[str, str]) -> None: ...
    def extract(self, carrier: Mapping[str, str]) -> SpanContext | None: ...


def _lookup(carrier: Mapping[str, str], key: str) -> str | None:
    if (v := carrier.get(key)) is not None:
        return v
    lowered = key.lower()
    return next((v for k, v in carrier.items() if k.lower() == lowered), None)


@dataclass(frozen=True, slots=True)
class TextMapPropagator:
    """Decimal trace and span IDs under configurable keys, plus prefixed baggage."""

    trace_id_key: str = "traceId"
    span_id_key: str = "spanId"
    baggage_prefix: str = "baggage-"

    def __post_init__(self) -> None:
        if not self.trace_id_key or not self.span_id_key:
            raise PropagationError("text map keys must be non-empty")
        if self.trace_id_key.lower() == self.span_id_key.lower():
            raise PropagationError(f"trace and span keys collide: {self.trace_id_key!r}")

    def inject(self, span_context: SpanContext, carrier: MutableMapping[str, str]) -> None:
        carrier[self.trace_id_key] = str(span_context.trace_id)
        carrier[self.span_id_key] = str(span_context.span_id)
        for k, v in span_context.baggage.items():
            carrier[f"{self.baggage_prefix}{k}"] = v

    def extract(self, carrier: Mapping[str, str]) -> SpanContext | None:
        trace_id, span_id = _lookup(carrier, self.trace_id_key), _lookup(carrier, self.span_id_key)
        if trace_id is None or span_id is None:
            return None
        try:
            ctx = SpanContext(int(trace_id), int(span_id))
        except ValueError:
            return None
        prefix = self.baggage_prefix.lower()
        baggage = {k[len(prefix):]: v for k, v in carrier.items() if k.lower().startswith(prefix)}
        return SpanContext(ctx.trace_id, ctx.span_id, baggage=MappingProxyType(baggage)) if baggage else ctx


@dataclass(frozen=True, slots=True)
class B3Propagator:
    """Zipkin B3 multi-header propagation."""

    TRACE_ID = "X-B3-TraceId"
    SPAN_ID = "X-B3-SpanId"
    PARENT_ID = "X-B3-ParentSpanId"
    SAMPLED = "X-B3-Sampled"

    def inject(self, span_context: SpanContext, carrier: MutableMapping[str, str]) -> None:
        carrier[self.TRACE_ID] = f"{span_context.trace_id:016x}"
        carrier[self.SPAN_ID] = f"{span_context.span_id:016x}"
        if span_context.parent_id is not None:
            carrier[self.PARENT_ID] = f"{span_context.parent_id:016x}"
        else:
            carrier.pop(self.PARENT_ID, None)
        carrier[self.SAMPLED] = "1"

    def extract(self, carrier: Mapping[str, str]) -> SpanContext | None:
        trace_id, span_id = _lookup(carrier, self.TRACE_ID), _lookup(carrier, self.SPAN_ID)
        if trace_id is None or span_id is None:
            return None
        parent = _lookup(carrier, self.PARENT_ID)
        try:
            # 128-bit trace ids keep their low 64 bits
            return SpanContext(int(trace_id[-16:], 16), int(span_id, 16), int(parent, 16) if parent else None)
        except ValueError:
            return None


_TRACEPARENT = re.compile(r"^00-([0-9a-f]{32})-([0-9a-f]{16})-([0-9a-f]{2})$")


@dataclass(frozen=True, slots=True)
class TraceContextPropagator:
    """W3C Trace Context ``traceparent`` header."""

    HEADER = "traceparent"

    def inject(self, span_context: SpanContext, carrier: MutableMapping[str, str]) -> None:
        carrier[self.HEADER] = f"00-{span_context.trace_id:032x}-{span_context.span_id:016x}-01"

    def extract(self, carrier: Mapping[str, str]) -> SpanContext | None:
        if (value := _lookup(carrier, self.HEADER)) is None or not (m := _TRACEPARENT.match(value.strip())):
            return None
        trace_id, span_id = int(m.group(1), 16), int(m.group(2), 16)
        return SpanContext(trace_id, span_id) if trace_id and span_id else None


def default_propagators(trace_id_key: str = "traceId", span_id_key: str = "spanId") -> dict[Format, Propagator]:
    """Built-in format -> propagator table."""
    text_map = TextMapPropagator(trace_id_key, span_id_key)
    return {
        Format.TEXT_MAP: text_map,
        Format.HTTP_HEADERS: text_map,
        Format.B3: B3Propagator(),
        Format.TRACE_CONTEXT: TraceContextPropagator(),
    }


@dataclass(frozen=True, slots=True)
class ContextInjector:
    """Writes a span's identity into a carrier using one bound propagator.

    Resolve it once at construction with ``for_format`` so an unsupported
    format fails early instead of on every call.
    """

    propagator: Propagator

    @classmethod
    def for_format(cls, tracer: Tracer, format: Format | str) -> ContextInjector:  # noqa: A002
        return cls(tracer.propagator(format))

    def inject(self, span_context: SpanContext, carrier: MutableMapping[str, str]) -> None:
        self.propagator.inject(span_context, carrier)
