"""Transport contract and the default httpx implementation.

A transport executes one ``RequestDescriptor`` and either returns a
``RawResponse`` or raises ``TransportError``. It owns connection concerns
(pooling, timeouts, base URL, serialization); the dispatcher owns auth.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
from pydantic.alias_generators import to_camel, to_snake

from .errors import NetworkError, TransportError
from .models import RawResponse, RequestDescriptor
from .telemetry import SDK_NAME, SDK_VERSION, get_logger

if TYPE_CHECKING:
    from .config import TransportConfig


@runtime_checkable
class Transport(Protocol):
    """Anything that can perform a request descriptor."""

    async def perform(self, descriptor: RequestDescriptor) -> RawResponse:
        """Execute the request or raise ``TransportError``."""
        ...


def _transform_keys(value: Any, convert: Callable[[str], str]) -> Any:
    if isinstance(value, Mapping):
        return {
            convert(k) if isinstance(k, str) else k: _transform_keys(v, convert)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_transform_keys(item, convert) for item in value]
    return value


def camelize_keys(value: Any) -> Any:
    """Recursively convert mapping keys to camelCase."""
    return _transform_keys(value, to_camel)


def decamelize_keys(value: Any) -> Any:
    """Recursively convert mapping keys to snake_case."""
    return _transform_keys(value, to_snake)


def create_async_http_client(config: TransportConfig) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        config: Transport configuration.

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        base_url=config.base_url_str,
        timeout=httpx.Timeout(
            connect=config.connect_timeout,
            read=config.timeout,
            write=config.timeout,
            pool=config.timeout,
        ),
        headers={
            "User-Agent": f"{SDK_NAME}/{SDK_VERSION} Python",
            **config.resolved_headers(),
        },
        follow_redirects=False,
    )


class HttpxTransport:
    """Default transport backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        config: TransportConfig,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            config: Transport configuration.
            client: Preconfigured client; built from ``config`` when omitted.
        """
        self.config = config
        self._http = client or create_async_http_client(config)
        self._logger = get_logger()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._http.aclose()

    async def perform(self, descriptor: RequestDescriptor) -> RawResponse:
        """Send ``descriptor`` and wrap the response.

        Raises:
            NetworkError: When no response was received.
            TransportError: When the server answered with a 4xx/5xx status.
        """
        kwargs: dict[str, Any] = {}
        if descriptor.params:
            kwargs["params"] = self._outgoing(descriptor.params)
        if descriptor.headers:
            kwargs["headers"] = descriptor.headers
        body = descriptor.data
        if isinstance(body, (bytes, str)):
            kwargs["content"] = body
        elif body is not None:
            kwargs["json"] = self._outgoing(body)

        try:
            response = await self._http.request(
                descriptor.method.value.upper(), descriptor.url, **kwargs
            )
        except httpx.HTTPError as e:
            self._logger.warning(
                "Transport failure",
                method=descriptor.method.value,
                url=descriptor.url,
                error=str(e),
            )
            raise NetworkError(str(e) or e.__class__.__name__, cause=e) from e

        raw = RawResponse(
            status=response.status_code,
            data=self._incoming(response),
            headers=dict(response.headers),
        )
        if response.is_error:
            raise TransportError(
                f"Request failed with status {response.status_code}",
                response=raw,
            )
        return raw

    def _outgoing(self, value: Any) -> Any:
        return decamelize_keys(value) if self.config.transform_keys else value

    def _incoming(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            data = response.json()
        except ValueError:
            return response.text
        return camelize_keys(data) if self.config.transform_keys else data
