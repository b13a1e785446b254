from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque

from hostwatch.app.schemas.metrics import Sample


class TimeSeriesStore:
    """Bounded in-memory history of samples, oldest first.

    One collector appends while any number of request handlers read. Samples are
    frozen, so readers receive a shallow copy of the buffer taken under the lock.
    """

    def __init__(self, max_entries: int) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._lock = asyncio.Lock()
        self._items: Deque[Sample] = deque()

    async def append(self, sample: Sample) -> None:
        async with self._lock:
            self._items.append(sample)
            self._prune_locked()

    async def read_all(self) -> list[Sample]:
        async with self._lock:
            return list(self._items)

    async def latest(self) -> Sample | None:
        async with self._lock:
            if not self._items:
                return None
            return self._items[-1]

    def __len__(self) -> int:
        return len(self._items)

    def _prune_locked(self) -> None:
        while len(self._items) > self._max_entries:
            self._items.popleft()
