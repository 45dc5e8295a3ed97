"""Connectivity gate applied before requests are dispatched."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from .credentials import maybe_await
from .telemetry import get_logger

DEFAULT_POLL_INTERVAL = 2.0

ConnectivityProbe = Callable[[], bool | Awaitable[bool]]


class NetworkGate:
    """Block until a connectivity probe reports the network reachable.

    The wait has no timeout: while the probe says unreachable, requests are
    held back and the probe is re-polled every ``poll_interval`` seconds.
    """

    def __init__(
        self,
        probe: ConnectivityProbe,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if poll_interval <= 0:
            msg = "poll_interval must be positive"
            raise ValueError(msg)
        self._probe = probe
        self.poll_interval = poll_interval
        self._logger = get_logger()

    async def is_reachable(self) -> bool:
        return bool(await maybe_await(self._probe()))

    async def wait_until_reachable(self) -> int:
        """Wait for connectivity.

        Returns:
            Number of intervals spent waiting.
        """
        waits = 0
        while not await self.is_reachable():
            waits += 1
            self._logger.debug(
                "Network unreachable, waiting",
                attempt=waits,
                delay=self.poll_interval,
            )
            await asyncio.sleep(self.poll_interval)
        return waits
