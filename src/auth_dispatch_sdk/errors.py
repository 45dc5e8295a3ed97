"""Error classes for the auth dispatch SDK.

Structured error hierarchy with stable error codes. Errors never cross the
public dispatcher operations unless ``propagate_errors`` is enabled; they are
carried on the error ``Outcome`` instead.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import RawResponse


class ErrorCode(StrEnum):
    """Standardized error codes for the auth dispatch SDK."""

    # Authentication errors (1xxx)
    TOKEN_REFRESH_FAILED = "AUTH_1002"
    REFRESH_UNAVAILABLE = "AUTH_1003"
    AUTHENTICATION_FAILED = "AUTH_1004"

    # Configuration errors (2xxx)
    INVALID_CONFIG = "CFG_2001"

    # Transport errors (3xxx)
    REQUEST_FAILED = "NET_3001"
    CONNECTION_ERROR = "NET_3002"


class AuthDispatchError(Exception):
    """Base error for the SDK with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = str(code)
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class TransportError(AuthDispatchError):
    """The transport could not complete a request.

    ``response`` is set when the server answered with a failure status and
    is ``None`` for connection-level failures.
    """

    def __init__(
        self,
        message: str = "Request failed",
        *,
        response: RawResponse | None = None,
        code: ErrorCode = ErrorCode.REQUEST_FAILED,
    ) -> None:
        super().__init__(
            message,
            code,
            status_code=response.status if response is not None else None,
        )
        self.response = response

    @property
    def status(self) -> int | None:
        """HTTP status of the failed response, if any."""
        return self.response.status if self.response is not None else None

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401


class NetworkError(TransportError):
    """Connection-level failure (no response received)."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONNECTION_ERROR)
        if cause is not None:
            self.details = {"cause": str(cause)}
        self.__cause__ = cause


class TokenRefreshError(AuthDispatchError):
    """A refresh or authenticate call failed."""

    def __init__(
        self,
        message: str = "Failed to refresh token",
        *,
        code: ErrorCode = ErrorCode.TOKEN_REFRESH_FAILED,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, code, status_code=status_code)


class RefreshUnavailableError(TokenRefreshError):
    """No refresh token is stored, so no refresh call was made."""

    def __init__(self, message: str = "No refresh token available") -> None:
        super().__init__(message, code=ErrorCode.REFRESH_UNAVAILABLE)


class InvalidConfigError(AuthDispatchError):
    """Invalid SDK configuration."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_CONFIG,
            details={"field": field} if field else None,
        )
