"""Password / refresh-token OAuth strategy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..errors import RefreshUnavailableError
from ..models import Outcome, RequestDescriptor, Tokens
from .base import AuthStrategy, TokenSession

if TYPE_CHECKING:
    from ..config import ClientCredentials


class PasswordOAuthStrategy(AuthStrategy):
    """Sign in with a password grant and renew with the refresh token."""

    auth_url = "oauth/token"

    def __init__(self, client_credentials: ClientCredentials) -> None:
        self.client_credentials = client_credentials

    async def authenticate(
        self,
        session: TokenSession,
        *,
        username: str,
        password: str,
        **params: Any,
    ) -> Outcome[Tokens]:
        """Exchange user credentials for tokens.

        Extra keyword arguments (e.g. ``subdomain``) are sent as-is.
        """
        payload = {
            "grant_type": "password",
            "username": username,
            "password": password,
            **params,
            **self.client_credentials.as_payload(),
        }
        return await session.request_tokens(self.token_request(payload))

    async def refresh_tokens(self, session: TokenSession) -> Outcome[Tokens]:
        tokens = await session.read_tokens(RequestDescriptor(url=self.auth_url))
        if tokens is None or not tokens.refresh_token:
            return Outcome.failure(RefreshUnavailableError())

        payload = {
            "refresh_token": tokens.refresh_token,
            "grant_type": "refresh_token",
            **self.client_credentials.as_payload(),
        }
        return await session.request_tokens(self.token_request(payload))
