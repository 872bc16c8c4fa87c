"""Configuration via environment variables (HTTPTRACE_ prefix)."""

from .settings import (
    HttpSettings,
    HttptraceSettings,
    LoggingSettings,
    RetrySettings,
    TracingSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "HttptraceSettings",
    "TracingSettings",
    "LoggingSettings",
    "RetrySettings",
    "HttpSettings",
    "get_settings",
    "clear_settings_cache",
]
