"""Standardized error handling for traced HTTP calls.

Provides error codes, the exception taxonomy, and a structured error record
used when failures are logged. Uses Pydantic for validation and serialization.
"""

from __future__ import annotations

import traceback
from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

if TYPE_CHECKING:
    from httptrace.http.models import Request


class ErrorCode(StrEnum):
    """Standard error codes for transport and instrumentation failures.

    Used for programmatic error handling and retry decisions.
    """
    CONNECTION_ERROR = "CONNECTION_ERROR"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    PROPAGATION_ERROR = "PROPAGATION_ERROR"
    DECORATOR_ERROR = "DECORATOR_ERROR"
    UNKNOWN = "UNKNOWN"


# Flattened pattern -> code mapping, checked in insertion order
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "timed out": ErrorCode.TIMEOUT,
    "connect": ErrorCode.CONNECTION_ERROR,
    "refused": ErrorCode.CONNECTION_ERROR,
    "unknownhost": ErrorCode.CONNECTION_ERROR,
    "name or service not known": ErrorCode.CONNECTION_ERROR,
    "nodename nor servname": ErrorCode.CONNECTION_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "socket": ErrorCode.NETWORK_ERROR,
    "protocol": ErrorCode.NETWORK_ERROR,
    "propagation": ErrorCode.PROPAGATION_ERROR,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES.keys())


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    """Cached classification by exception signature."""
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map exception to error code via its own code or pattern matching on name/message."""
    if isinstance(exc, HttptraceError):
        return exc.code
    return _classify_cached(f"{type(exc).__name__} {exc}")


# Codes that a retry might resolve
RETRYABLE_CODES: frozenset[ErrorCode] = frozenset({
    ErrorCode.CONNECTION_ERROR,
    ErrorCode.TIMEOUT,
    ErrorCode.NETWORK_ERROR,
})


class ErrorInfo(BaseModel):
    """Structured description of a failure, suitable for log entries.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        recoverable: Whether the failure might succeed on retry
        error_type: Exception class name
        details: Optional formatted traceback
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "Error Info",
            "examples": [{
                "message": "[Errno -2] Name or service not known",
                "code": "CONNECTION_ERROR",
                "recoverable": True,
                "error_type": "ConnectError",
            }],
        },
    )

    message: Annotated[str, Field(min_length=1)]
    code: ErrorCode = ErrorCode.UNKNOWN
    recoverable: bool = True
    error_type: str = "Exception"
    details: str | None = Field(default=None, repr=False)

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: object) -> str:
        """Accept exceptions and blank messages."""
        if isinstance(v, BaseException):
            v = str(v) or type(v).__name__
        return v if isinstance(v, str) and v.strip() else "unknown error"

    @computed_field
    @property
    def is_retryable(self) -> bool:
        """Whether the code is typically retryable."""
        return self.code in RETRYABLE_CODES

    @classmethod
    def from_exception(cls, exc: BaseException, *, include_trace: bool = False) -> Self:
        """Create from exception with auto-classification."""
        code = classify_exception(exc)
        return cls(
            message=str(exc) or type(exc).__name__,
            code=code,
            recoverable=getattr(exc, "recoverable", code in RETRYABLE_CODES),
            error_type=type(exc).__name__,
            details="".join(traceback.format_exception(exc)) if include_trace else None,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Exceptions
# ─────────────────────────────────────────────────────────────────────────────


class HttptraceError(Exception):
    """Base class for errors raised by httptrace."""

    code: ErrorCode = ErrorCode.UNKNOWN

    @property
    def recoverable(self) -> bool:
        return self.code in RETRYABLE_CODES


class TransportError(HttptraceError):
    """Failure signaled by an underlying HTTP client (refused, DNS, timeout).

    The tracing layer never raises this itself; it re-raises whatever the
    delegate raised. Transport adapters use it to normalize their library's
    exceptions.
    """

    __slots__ = ("code", "request")

    def __init__(self, message: str, code: ErrorCode = ErrorCode.NETWORK_ERROR, *, request: Request | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.request = request


class PropagationError(HttptraceError):
    """Unsupported or misconfigured propagation format. Raised at construction time."""

    code = ErrorCode.PROPAGATION_ERROR


class DecoratorError(HttptraceError):
    """A span decorator hook failed. Handed to the error callback, never raised to callers."""

    __slots__ = ("decorator", "hook", "cause")
    code = ErrorCode.DECORATOR_ERROR

    def __init__(self, decorator: object, hook: str, cause: Exception) -> None:
        self.decorator, self.hook, self.cause = decorator, hook, cause
        super().__init__(f"{type(decorator).__name__}.{hook} failed: {type(cause).__name__}: {cause}")
        self.__cause__ = cause
