"""Scripted transport for exercising dispatcher users in tests.

Example:
    transport = (
        MockTransport()
        .mock_response(url="users/me", data={"id": 1})
        .mock_error(url="oauth/token", status=400)
    )

Rules registered later take precedence. Unmatched requests get an empty
``200`` response. Every performed descriptor is recorded in ``calls``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Self

from .errors import TransportError
from .models import HttpMethod, RawResponse, RequestDescriptor


@dataclass(slots=True)
class MockRule:
    """One scripted reply."""

    url: str | None = None
    method: HttpMethod | None = None
    data: Any = None
    status: int = 200
    headers: dict[str, str] | None = None
    map_data: Callable[[RequestDescriptor], Any] | None = None
    delay: float = 0.0
    # None means the rule never runs out
    times: int | None = None

    def matches(self, descriptor: RequestDescriptor) -> bool:
        if self.times is not None and self.times <= 0:
            return False
        if self.url is not None and descriptor.url != self.url:
            return False
        return self.method is None or descriptor.method == self.method

    def reply(self, descriptor: RequestDescriptor) -> RawResponse:
        if self.times is not None:
            self.times -= 1
        data = self.map_data(descriptor) if self.map_data is not None else self.data
        return RawResponse(status=self.status, data=data, headers=self.headers or {})


class MockTransport:
    """In-memory ``Transport`` driven by ``MockRule`` entries."""

    def __init__(self) -> None:
        self.rules: list[MockRule] = []
        self.calls: list[RequestDescriptor] = []

    def mock_response(
        self,
        *,
        url: str | None = None,
        method: HttpMethod | str | None = None,
        data: Any = None,
        status: int = 200,
        headers: dict[str, str] | None = None,
        map_data: Callable[[RequestDescriptor], Any] | None = None,
        delay: float = 0.0,
        times: int | None = None,
    ) -> Self:
        """Register a reply; a ``status`` of 400 or above makes it a failure."""
        self.rules.insert(
            0,
            MockRule(
                url=url,
                method=HttpMethod(method.lower()) if isinstance(method, str) else method,
                data=data,
                status=status,
                headers=headers,
                map_data=map_data,
                delay=delay,
                times=times,
            ),
        )
        return self

    def mock_error(
        self,
        *,
        url: str | None = None,
        method: HttpMethod | str | None = None,
        status: int = 500,
        data: Any = None,
        delay: float = 0.0,
        times: int | None = None,
    ) -> Self:
        """Register a failing reply."""
        return self.mock_response(
            url=url, method=method, data=data, status=status, delay=delay, times=times
        )

    def calls_to(self, url: str) -> list[RequestDescriptor]:
        return [call for call in self.calls if call.url == url]

    def reset(self) -> None:
        self.rules.clear()
        self.calls.clear()

    async def perform(self, descriptor: RequestDescriptor) -> RawResponse:
        self.calls.append(descriptor)
        rule = next((r for r in self.rules if r.matches(descriptor)), None)
        if rule is None:
            await asyncio.sleep(0)
            return RawResponse(status=200, data={})

        response = rule.reply(descriptor)
        await asyncio.sleep(rule.delay)
        if response.status >= 400:
            raise TransportError(
                f"Request failed with status {response.status}",
                response=response,
            )
        return response
