"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from httptrace.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.tracing.propagation
    'text_map'
    >>> settings.retry.max_attempts
    5

    # Or with environment variables:
    # HTTPTRACE_TRACING_COMPONENT=billing-client
    # HTTPTRACE_RETRY_MAX_ATTEMPTS=2
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, PositiveFloat, PositiveInt, computed_field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TracingSettings(BaseSettings):
    """Tracing configuration for the client decorator."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPTRACE_TRACING_",
        extra="ignore",
    )

    enabled: bool = True
    service_name: str = "httptrace"
    component: Annotated[str, Field(min_length=1, description="Value of the component tag")] = "httpx"
    propagation: Literal["text_map", "http_headers", "b3", "trace_context"] = "text_map"
    trace_id_header: str = Field(
        default="traceId",
        pattern=r"^[A-Za-z][A-Za-z0-9_-]*$",
        description="Carrier key for the trace identifier (text_map/http_headers formats)",
    )
    span_id_header: str = Field(
        default="spanId",
        pattern=r"^[A-Za-z][A-Za-z0-9_-]*$",
        description="Carrier key for the span identifier (text_map/http_headers formats)",
    )

    @field_validator("propagation", mode="before")
    @classmethod
    def _normalize_format(cls, v: str) -> str:
        return v.lower().replace("-", "_") if isinstance(v, str) else v

    @model_validator(mode="after")
    def _distinct_headers(self) -> TracingSettings:
        if self.trace_id_header.lower() == self.span_id_header.lower():
            raise ValueError("trace_id_header and span_id_header must differ")
        return self


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPTRACE_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class RetrySettings(BaseSettings):
    """Default retry configuration. Delays are in seconds."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPTRACE_RETRY_",
        extra="ignore",
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 5
    period: PositiveFloat = Field(default=0.1, description="Initial delay between attempts")
    max_period: PositiveFloat = Field(default=1.0, description="Maximum delay between attempts")
    multiplier: PositiveFloat = 1.5
    jitter: bool = False

    @computed_field
    @property
    def enabled(self) -> bool:
        """Whether more than one attempt is configured."""
        return self.max_attempts > 1


class HttpSettings(BaseSettings):
    """HTTP transport defaults."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPTRACE_HTTP_",
        extra="ignore",
    )

    timeout: PositiveFloat = Field(default=30.0, description="Default request timeout")
    verify_ssl: bool = True
    follow_redirects: bool = True
    max_redirects: PositiveInt = Field(default=10)
    user_agent: str = "httptrace/0.1"


class HttptraceSettings(BaseSettings):
    """Root settings for httptrace.

    Loads configuration from environment variables with HTTPTRACE_ prefix.
    Supports nested configuration and .env files.

    Example environment variables:
        HTTPTRACE_TRACING_PROPAGATION=b3
        HTTPTRACE_LOG_LEVEL=DEBUG
        HTTPTRACE_HTTP_TIMEOUT=5
        HTTPTRACE_RETRY_MAX_ATTEMPTS=2
    """

    model_config = SettingsConfigDict(
        env_prefix="HTTPTRACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Enable debug mode")

    tracing: TracingSettings = Field(default_factory=TracingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)


@lru_cache(maxsize=1)
def get_settings() -> HttptraceSettings:
    """Get the global settings instance (cached)."""
    return HttptraceSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
