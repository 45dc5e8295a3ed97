"""Base abstractions for auth strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Protocol

from ..models import HttpMethod, Outcome, RequestDescriptor, Tokens


class TokenSession(Protocol):
    """What a strategy may ask of the dispatcher that drives it."""

    async def read_tokens(self, descriptor: RequestDescriptor) -> Tokens | None:
        """Current tokens from the credential store."""
        ...

    async def request_tokens(self, descriptor: RequestDescriptor) -> Outcome[Tokens]:
        """Send a token request and persist the issued tokens."""
        ...


class AuthStrategy(ABC):
    """Interface each authentication mechanism must implement."""

    auth_url: ClassVar[str]

    def get_auth_url(self) -> str:
        return self.auth_url

    def is_auth_request(self, descriptor: RequestDescriptor) -> bool:
        """Whether ``descriptor`` hits this strategy's token endpoint."""
        return descriptor.targets(self.auth_url)

    def token_request(
        self,
        payload: Mapping[str, Any],
        *,
        bearer_token: str | None = None,
    ) -> RequestDescriptor:
        """Build the POST sent to the token endpoint."""
        headers = {"Authorization": f"Bearer {bearer_token}"} if bearer_token else {}
        return RequestDescriptor(
            url=self.auth_url,
            method=HttpMethod.POST,
            headers=headers,
            data=dict(payload),
        )

    @abstractmethod
    async def authenticate(self, session: TokenSession, **kwargs: Any) -> Outcome[Tokens]:
        """Perform the initial sign-in."""

    @abstractmethod
    async def refresh_tokens(self, session: TokenSession) -> Outcome[Tokens]:
        """Obtain fresh tokens after an authorization failure."""
