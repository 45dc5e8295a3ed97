"""Configuration for the auth dispatch SDK.

Uses Pydantic v2 for validation with sensible defaults. Every model is
frozen; build a new one with ``with_overrides`` to change a value.
"""

from __future__ import annotations

import os
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    field_validator,
)

from .errors import InvalidConfigError

DEFAULT_ENV_PREFIX = "AUTH_DISPATCH_"


def _env(prefix: str, key: str, default: Any = None) -> Any:
    return os.environ.get(f"{prefix}{key}", default)


def _require_env(prefix: str, key: str) -> str:
    value = _env(prefix, key)
    if not value:
        msg = f"{prefix}{key} environment variable is required"
        raise InvalidConfigError(msg, field=key.lower())
    return value


def _env_bool(prefix: str, key: str, default: bool) -> bool:
    raw = _env(prefix, key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(prefix: str, key: str, default: float) -> float:
    raw = _env(prefix, key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as e:
        msg = f"{prefix}{key} must be a number, got {raw!r}"
        raise InvalidConfigError(msg, field=key.lower()) from e


class ClientCredentials(BaseModel):
    """OAuth client credentials sent with every token request."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1)
    client_secret: SecretStr

    def as_payload(self) -> dict[str, str]:
        """Credentials as token request body fields."""
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret.get_secret_value(),
        }

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX) -> Self:
        """Create credentials from environment variables."""
        return cls(
            client_id=_require_env(prefix, "CLIENT_ID"),
            client_secret=_require_env(prefix, "CLIENT_SECRET"),
        )


class TelemetryConfig(BaseModel):
    """Logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "auth-dispatch-sdk"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        supported = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in supported:
            msg = f"Unsupported log level: {v}. Supported: {supported}"
            raise ValueError(msg)
        return v.upper()


class TransportConfig(BaseModel):
    """Settings for the default httpx transport."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    base_url: HttpUrl
    timeout: Annotated[float, Field(gt=0, le=300)] = 20.0
    connect_timeout: Annotated[float, Field(gt=0, le=60)] = 10.0
    accept: str = "application/vnd.ccbchurch.v2+json"
    default_headers: dict[str, str] = Field(default_factory=dict)
    # camelCase in application code, snake_case on the wire
    transform_keys: bool = True

    @property
    def base_url_str(self) -> str:
        """Get base URL as string with exactly one trailing slash."""
        return str(self.base_url).rstrip("/") + "/"

    def resolved_headers(self) -> dict[str, str]:
        headers = dict(self.default_headers)
        headers["Accept"] = self.accept
        return headers

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX) -> Self:
        """Create config from environment variables."""
        return cls(
            base_url=_require_env(prefix, "BASE_URL"),
            timeout=_env_float(prefix, "TIMEOUT", 20.0),
            connect_timeout=_env_float(prefix, "CONNECT_TIMEOUT", 10.0),
            transform_keys=_env_bool(prefix, "TRANSFORM_KEYS", True),
        )


class DispatcherConfig(BaseModel):
    """Behavior of the request dispatcher."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    network_poll_interval: Annotated[float, Field(gt=0, le=300)] = 2.0
    propagate_errors: bool = False
    debug_cookie: SecretStr | None = None
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX) -> Self:
        """Create config from environment variables."""
        return cls(
            network_poll_interval=_env_float(prefix, "NETWORK_POLL_INTERVAL", 2.0),
            propagate_errors=_env_bool(prefix, "PROPAGATE_ERRORS", False),
            debug_cookie=_env(prefix, "DEBUG_COOKIE") or None,
            telemetry=TelemetryConfig(
                enabled=_env_bool(prefix, "TELEMETRY_ENABLED", True),
                log_level=_env(prefix, "LOG_LEVEL", "INFO"),
            ),
        )
