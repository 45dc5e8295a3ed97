"""Data models for the auth dispatch SDK.

Uses Pydantic v2 frozen models for request descriptors and tokens, and a
plain dataclass for the ``Outcome`` result envelope.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .errors import TransportError

T = TypeVar("T")


class HttpMethod(StrEnum):
    """Methods the dispatcher accepts."""

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"


class RequestDescriptor(BaseModel):
    """Description of one outgoing request.

    Immutable once it enters the dispatch pipeline: header decoration and
    default merging return new instances.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    url: str = Field(..., min_length=1)
    method: HttpMethod = HttpMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    data: Any = None
    with_credentials: bool = False

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        """Accept ``"GET"`` as well as ``"get"``."""
        if isinstance(v, str):
            return v.lower()
        return v

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def has_header(self, name: str) -> bool:
        return self.header(name) is not None

    def with_header(self, name: str, value: str) -> Self:
        """Return a copy with ``name`` set to ``value``."""
        return self.model_copy(update={"headers": {**self.headers, name: value}})

    def merged_over(self, defaults: Mapping[str, Any]) -> Self:
        """Layer this descriptor's explicit fields over ``defaults``.

        ``headers`` and ``params`` merge key by key; for every other field an
        explicitly set value replaces the default.
        """
        if not defaults:
            return self

        merged: dict[str, Any] = dict(defaults)
        explicit = {name: getattr(self, name) for name in self.model_fields_set}
        for key in ("headers", "params"):
            merged[key] = {**(defaults.get(key) or {}), **getattr(self, key)}
            explicit.pop(key, None)
        merged.update(explicit)
        return self.__class__.model_validate(merged)

    def targets(self, url_fragment: str) -> bool:
        """Check whether this request's URL contains ``url_fragment``."""
        return url_fragment in self.url


class Tokens(BaseModel):
    """Bearer credentials as issued by the token endpoint.

    Accepts camelCase (``accessToken``) or snake_case keys. Stores may hold
    partial records (e.g. only a refresh token), so every field is optional
    here; ``is_usable`` tells whether an access token is present.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    access_token: str | None = Field(default=None, repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    token_type: str | None = None
    expires_in: int | None = None
    scope: str | None = None

    @field_validator("access_token", "refresh_token", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def coerce(cls, value: Tokens | Mapping[str, Any] | None) -> Self | None:
        """Normalize whatever a credential store returns."""
        if value is None or isinstance(value, cls):
            return value
        if not value:
            return None
        return cls.model_validate(value)

    @property
    def is_usable(self) -> bool:
        return self.access_token is not None

    @property
    def authorization(self) -> str | None:
        """``Authorization`` header value, or ``None`` without an access token."""
        if self.access_token is None:
            return None
        return f"Bearer {self.access_token}"


class JwtAuthContext(BaseModel):
    """Application-supplied context for bearer-JWT re-identification."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    auth_token: str = Field(..., min_length=1, repr=False)
    organization_key: str = Field(..., min_length=1)


class RawResponse(BaseModel):
    """Response as handed back by a transport."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: int
    data: Any = None
    headers: dict[str, str] = Field(default_factory=dict)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged success/error result returned by every public operation."""

    error: bool
    data: T | Any = None
    status: int | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    cause: BaseException | None = field(default=None, compare=False, repr=False)

    @property
    def ok(self) -> bool:
        return not self.error

    @classmethod
    def success(cls, response: RawResponse) -> Outcome[Any]:
        """Wrap a transport response."""
        return cls(
            error=False,
            data=response.data,
            status=response.status,
            headers=dict(response.headers),
        )

    @classmethod
    def failure(cls, exc: BaseException | None = None) -> Outcome[Any]:
        """Wrap a failure.

        Called without an exception this produces the bare ``error=True``
        outcome handed to callers whose queued request was cancelled.
        """
        if isinstance(exc, TransportError) and exc.response is not None:
            return cls(
                error=True,
                data=exc.response.data,
                status=exc.response.status,
                headers=dict(exc.response.headers),
                cause=exc,
            )
        return cls(error=True, cause=exc)
