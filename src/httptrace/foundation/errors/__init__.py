"""Unified error handling for httptrace.

- ErrorCode: Standard error codes for transport and instrumentation failures
- TransportError/PropagationError/DecoratorError: Exception taxonomy
- ErrorInfo: Structured failure record for logging
"""

from .errors import (
    RETRYABLE_CODES,
    DecoratorError,
    ErrorCode,
    ErrorInfo,
    HttptraceError,
    PropagationError,
    TransportError,
    classify_exception,
)
from .types import JsonDict, JsonPrimitive, JsonValue

__all__ = [
    "ErrorCode", "ErrorInfo", "RETRYABLE_CODES", "classify_exception",
    "HttptraceError", "TransportError", "PropagationError", "DecoratorError",
    "JsonDict", "JsonPrimitive", "JsonValue",
]
