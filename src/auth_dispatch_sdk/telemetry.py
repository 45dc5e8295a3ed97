"""Logging and tracing for the auth dispatch SDK.

structlog for structured logs, OpenTelemetry for spans. Credentials never
reach a log line: ``redact_secrets`` masks them in every event when
``configure_telemetry`` installs the processor chain.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Generator, MutableMapping

    from .config import TelemetryConfig
    from .models import RequestDescriptor

SDK_NAME = "auth-dispatch-sdk"
SDK_VERSION = "0.1.0"

REDACTED = "***"
SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "cookie",
        "access_token",
        "refresh_token",
        "client_secret",
        "password",
        "auth_token",
    }
)

_tracer: trace.Tracer | None = None
_logger: structlog.stdlib.BoundLogger | None = None


def get_tracer() -> trace.Tracer:
    """Get or create the SDK tracer."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(SDK_NAME, SDK_VERSION)
    return _tracer


def get_logger() -> structlog.stdlib.BoundLogger:
    """Get or create the SDK logger."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(SDK_NAME)
    return _logger


def tracer_for(config: TelemetryConfig) -> trace.Tracer:
    """Tracer for one dispatcher; a no-op tracer when tracing is disabled."""
    if not config.enabled:
        return trace.NoOpTracer()
    return trace.get_tracer(config.service_name, SDK_VERSION)


def logger_for(config: TelemetryConfig) -> structlog.stdlib.BoundLogger:
    """SDK logger bound to the configured service name."""
    return get_logger().bind(service=config.service_name)


def _is_sensitive(key: Any) -> bool:
    return isinstance(key, str) and key.replace("-", "_").lower() in SENSITIVE_KEYS


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if _is_sensitive(k) else _redact(v) for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking token, password and cookie values."""
    for key, value in list(event_dict.items()):
        event_dict[key] = REDACTED if _is_sensitive(key) else _redact(value)
    return event_dict


def configure_telemetry(config: TelemetryConfig) -> None:
    """Install the SDK's structlog processors and tracer.

    Intended to be called once by the application at startup.

    Args:
        config: Telemetry configuration.
    """
    global _tracer, _logger

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            redact_secrets,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _log_level_to_int(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _tracer = tracer_for(config)
    _logger = structlog.get_logger(config.service_name)


def _log_level_to_int(level: str) -> int:
    """Convert log level string to integer."""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


def request_attributes(descriptor: RequestDescriptor) -> dict[str, Any]:
    """Span attributes describing a request, without header values."""
    return {
        "http.method": descriptor.method.value,
        "http.url": descriptor.url,
        "auth.caller_authorization": descriptor.has_header("Authorization"),
    }


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
    tracer: trace.Tracer | None = None,
) -> Generator[trace.Span, None, None]:
    """Context manager for tracing an operation.

    Args:
        name: Name of the operation.
        attributes: Optional span attributes.
        tracer: Tracer to use; the SDK tracer when omitted.

    Yields:
        The active span.
    """
    with (tracer or get_tracer()).start_as_current_span(name) as span:
        if attributes:
            span.set_attributes(attributes)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
