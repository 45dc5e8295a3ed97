"""Credential store contract and an in-memory implementation."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

from .models import RequestDescriptor, Tokens

T = TypeVar("T")

TokensLike = Tokens | Mapping[str, Any] | None


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Resolve ``value`` whether a hook returned it directly or as an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


@runtime_checkable
class CredentialStore(Protocol):
    """Source of truth for tokens.

    Both methods may be plain or ``async``; the dispatcher awaits whichever
    it gets.
    """

    def get_tokens(
        self, descriptor: RequestDescriptor
    ) -> TokensLike | Awaitable[TokensLike]:
        ...

    def set_tokens(self, tokens: Tokens) -> None | Awaitable[None]:
        ...


class InMemoryCredentialStore:
    """Process-local token storage."""

    def __init__(self, tokens: TokensLike = None) -> None:
        self._tokens = Tokens.coerce(tokens)

    @property
    def tokens(self) -> Tokens | None:
        return self._tokens

    def get_tokens(self, descriptor: RequestDescriptor) -> Tokens | None:
        return self._tokens

    def set_tokens(self, tokens: Tokens) -> None:
        self._tokens = Tokens.coerce(tokens)

    def clear(self, error: BaseException | None = None) -> None:
        """Forget stored tokens.

        Signature matches ``on_auth_failure`` so it can be passed directly.
        """
        self._tokens = None
