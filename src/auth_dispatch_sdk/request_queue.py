"""Buffer of callers suspended while a token refresh is in flight."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from .models import Outcome, RequestDescriptor


@dataclass(slots=True)
class QueuedRequest:
    """A suspended caller and the request it is waiting to replay."""

    descriptor: RequestDescriptor
    future: asyncio.Future[Outcome[Any]]

    def resolve(self, outcome: Outcome[Any]) -> None:
        if not self.future.done():
            self.future.set_result(outcome)

    def reject(self, exc: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(exc)


class RequestQueue:
    """Ordered, exclusively owned list of ``QueuedRequest`` entries."""

    def __init__(self) -> None:
        self._items: list[QueuedRequest] = []

    def __len__(self) -> int:
        return len(self._items)

    def enqueue(self, descriptor: RequestDescriptor) -> asyncio.Future[Outcome[Any]]:
        """Suspend a caller; the returned future resolves once drained."""
        future: asyncio.Future[Outcome[Any]] = asyncio.get_running_loop().create_future()
        self._items.append(QueuedRequest(descriptor, future))
        return future

    def drain(self) -> list[QueuedRequest]:
        """Remove and return every queued entry in arrival order."""
        items, self._items = self._items, []
        return items
