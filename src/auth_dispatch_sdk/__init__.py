"""Auth dispatch SDK: bearer-token requests with single-flight token refresh."""

from .config import ClientCredentials, DispatcherConfig, TelemetryConfig, TransportConfig
from .credentials import CredentialStore, InMemoryCredentialStore
from .dispatcher import AuthDispatcher
from .errors import (
    AuthDispatchError,
    ErrorCode,
    InvalidConfigError,
    NetworkError,
    RefreshUnavailableError,
    TokenRefreshError,
    TransportError,
)
from .models import HttpMethod, JwtAuthContext, Outcome, RawResponse, RequestDescriptor, Tokens
from .network import NetworkGate
from .strategies import AuthStrategy, BearerJwtStrategy, PasswordOAuthStrategy
from .telemetry import configure_telemetry
from .transport import HttpxTransport, Transport

__all__ = [
    "AuthDispatcher",
    "AuthStrategy",
    "PasswordOAuthStrategy",
    "BearerJwtStrategy",
    "ClientCredentials",
    "DispatcherConfig",
    "TelemetryConfig",
    "TransportConfig",
    "CredentialStore",
    "InMemoryCredentialStore",
    "Transport",
    "HttpxTransport",
    "NetworkGate",
    "HttpMethod",
    "JwtAuthContext",
    "Outcome",
    "RawResponse",
    "RequestDescriptor",
    "Tokens",
    "AuthDispatchError",
    "ErrorCode",
    "InvalidConfigError",
    "NetworkError",
    "RefreshUnavailableError",
    "TokenRefreshError",
    "TransportError",
    "configure_telemetry",
]

__version__ = "0.1.0"
