"""Bearer-JWT re-identification strategy."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from ..credentials import maybe_await
from ..models import JwtAuthContext, Outcome, Tokens
from .base import AuthStrategy, TokenSession

JwtContextLike = JwtAuthContext | Mapping[str, Any]
JwtContextProvider = Callable[[], JwtContextLike | Awaitable[JwtContextLike]]


class BearerJwtStrategy(AuthStrategy):
    """Trade an externally issued JWT for API tokens.

    There is no refresh grant: refreshing re-runs the identity call, and the
    context provider is expected to hand back an up-to-date JWT.
    """

    auth_url = "internal/identity"

    def __init__(self, get_auth_context: JwtContextProvider) -> None:
        self._get_auth_context = get_auth_context

    async def auth_context(self) -> JwtAuthContext:
        raw = await maybe_await(self._get_auth_context())
        if isinstance(raw, JwtAuthContext):
            return raw
        return JwtAuthContext.model_validate(raw)

    async def authenticate(self, session: TokenSession, **kwargs: Any) -> Outcome[Tokens]:
        context = await self.auth_context()
        request = self.token_request(
            {"organization_key": context.organization_key},
            bearer_token=context.auth_token,
        )
        return await session.request_tokens(request)

    async def refresh_tokens(self, session: TokenSession) -> Outcome[Tokens]:
        return await self.authenticate(session)
