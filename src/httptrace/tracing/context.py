"""Span identity and the active-span scope.

SpanContext is the immutable identity of a span. ScopeManager tracks which
span is active in the current thread of control; it is backed by a ContextVar,
so threads and asyncio tasks each see their own active span.
"""

from __future__ import annotations

import random
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from httptrace.observability.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from .span import Span

log = get_logger("httptrace.scope")

_EMPTY_BAGGAGE: Mapping[str, str] = MappingProxyType({})


def new_id() -> int:
    """Random non-zero 63-bit identifier (fits a signed 64-bit long)."""
    return random.getrandbits(63) or 1


@dataclass(frozen=True, slots=True)
class SpanContext:
    """Trace identity carried by a span and propagated to remote peers.

    Attributes:
        trace_id: Identifier shared by every span of the trace
        span_id: Identifier of this span
        parent_id: span_id of the parent, None for a root span
        baggage: Key/value items propagated alongside the identity
    """

    trace_id: int
    span_id: int
    parent_id: int | None = None
    baggage: Mapping[str, str] = field(default_factory=lambda: _EMPTY_BAGGAGE, compare=False)

    @classmethod
    def new_root(cls) -> SpanContext:
        """Context starting a fresh trace."""
        return cls(trace_id=new_id(), span_id=new_id())

    def child(self) -> SpanContext:
        """Context for a span parented to this one."""
        return SpanContext(trace_id=self.trace_id, span_id=new_id(), parent_id=self.span_id, baggage=self.baggage)

    def with_baggage_item(self, key: str, value: str) -> SpanContext:
        return SpanContext(self.trace_id, self.span_id, self.parent_id, MappingProxyType({**self.baggage, key: value}))


class Scope:
    """Activation of a span in the current thread of control.

    Closing restores the previously active span. Use as a context manager so
    release happens on every exit path.
    """

    __slots__ = ("_manager", "_span", "_previous", "_token", "_closed")

    def __init__(self, manager: ScopeManager, span: Span, previous: Scope | None) -> None:
        self._manager, self._span, self._previous = manager, span, previous
        self._token: Token[Scope | None] | None = None
        self._closed = False

    @property
    def span(self) -> Span:
        return self._span

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._manager.active is not self:
            log.warning("scope closed out of order", operation=self._span.operation_name)
        try:
            if self._token is not None:
                self._manager._var.reset(self._token)
        except ValueError:
            # token minted in another context (thread or task); restore explicitly
            self._manager._var.set(self._previous)

    def __enter__(self) -> Scope:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None) -> None:
        self.close()


class ScopeManager:
    """Holds the active scope per thread of control, with strict LIFO nesting."""

    __slots__ = ("_var",)

    def __init__(self) -> None:
        self._var: ContextVar[Scope | None] = ContextVar(f"active_scope_{id(self):x}", default=None)

    @property
    def active(self) -> Scope | None:
        return self._var.get()

    @property
    def active_span(self) -> Span | None:
        return scope.span if (scope := self._var.get()) else None

    def activate(self, span: Span) -> Scope:
        scope = Scope(self, span, self._var.get())
        scope._token = self._var.set(scope)
        return scope
