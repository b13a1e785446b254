from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque

from hostwatch.app.schemas.alerts import AlertCategory, AlertEvent, AlertLevel
from hostwatch.app.schemas.metrics import Sample

DEFAULT_LOG_ENTRIES = 20
DEFAULT_RECENT_COUNT = 10
DEFAULT_CPU_PERCENT = 80.0
DEFAULT_DISK_PERCENT = 90.0


class AlertLog:
    """Bounded history of persisted events such as newly discovered devices."""

    def __init__(self, max_entries: int = DEFAULT_LOG_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._lock = asyncio.Lock()
        self._items: Deque[AlertEvent] = deque()

    async def append(self, event: AlertEvent) -> None:
        async with self._lock:
            self._items.append(event)
            while len(self._items) > self._max_entries:
                self._items.popleft()

    async def read_all(self) -> list[AlertEvent]:
        async with self._lock:
            return list(self._items)

    async def recent(self, count: int) -> list[AlertEvent]:
        """Up to `count` newest events, newest first."""
        if count <= 0:
            return []
        async with self._lock:
            return list(reversed(self._items))[:count]

    def __len__(self) -> int:
        return len(self._items)


class AlertEvaluator:
    """Combines live threshold checks on the latest sample with the persisted log.

    Threshold alerts are recomputed on every call and never stored, so they vanish
    as soon as the condition clears.
    """

    def __init__(
        self,
        log: AlertLog,
        *,
        cpu_percent: float = DEFAULT_CPU_PERCENT,
        disk_percent: float = DEFAULT_DISK_PERCENT,
        recent_count: int = DEFAULT_RECENT_COUNT,
    ) -> None:
        self._log = log
        self._cpu_percent = cpu_percent
        self._disk_percent = disk_percent
        self._recent_count = recent_count

    def live_alerts(self, sample: Sample) -> list[AlertEvent]:
        alerts: list[AlertEvent] = []
        if sample.cpu_usage_percent > self._cpu_percent:
            alerts.append(
                AlertEvent(
                    type=AlertLevel.WARNING,
                    category=AlertCategory.CPU,
                    message=f"High CPU usage {sample.cpu_usage_percent:.1f}%",
                    timestamp=sample.timestamp,
                )
            )
        if sample.disk_used_percent > self._disk_percent:
            alerts.append(
                AlertEvent(
                    type=AlertLevel.CRITICAL,
                    category=AlertCategory.DISK,
                    message=f"Disk usage critical at {sample.disk_used_percent:.1f}%",
                    timestamp=sample.timestamp,
                )
            )
        return alerts

    async def evaluate(self, latest: Sample | None) -> list[AlertEvent]:
        if latest is None:
            return []
        return [*self.live_alerts(latest), *await self._log.recent(self._recent_count)]
