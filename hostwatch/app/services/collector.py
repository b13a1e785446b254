from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from pydantic import ValidationError

from hostwatch.app.schemas.metrics import Sample
from hostwatch.app.services.probe import CpuTicks, MetricsProbe, RawSnapshot, uptime_seconds
from hostwatch.app.services.storage import TimeSeriesStore


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 3.0


def compute_cpu_usage(previous: CpuTicks, current: CpuTicks) -> float:
    """Busy share of the ticks elapsed between two snapshots, in percent."""
    total_delta = current.total - previous.total
    if total_delta <= 0:
        return 0.0
    idle_delta = current.idle - previous.idle
    usage = (total_delta - idle_delta) / total_delta * 100
    return round(min(100.0, max(0.0, usage)), 1)


def _percent(used: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(min(100.0, max(0.0, used / total * 100)), 1)


def build_sample(raw: RawSnapshot, cpu_usage_percent: float, *, now: float) -> Sample:
    return Sample(
        timestamp=int(now),
        hostname=raw.hostname,
        platform=raw.platform,
        os_name=raw.os_name,
        cpu_core_count=raw.cpu_core_count,
        cpu_usage_percent=cpu_usage_percent,
        cpu_temperature_celsius=raw.cpu_temperature_celsius,
        memory_total_bytes=raw.memory_total_bytes,
        memory_used_bytes=raw.memory_used_bytes,
        memory_used_percent=_percent(raw.memory_used_bytes, raw.memory_total_bytes),
        disk_total_bytes=raw.disk_total_bytes,
        disk_used_bytes=raw.disk_used_bytes,
        disk_used_percent=_percent(raw.disk_used_bytes, raw.disk_total_bytes),
        network_sent_bytes_cumulative=raw.network_sent_bytes,
        network_recv_bytes_cumulative=raw.network_recv_bytes,
        uptime_seconds=uptime_seconds(raw.boot_time, now),
    )


class SampleCollector:
    """Background task that probes the host on a fixed cadence and feeds the store.

    Network counters are stored cumulatively; rates are derived by readers from
    adjacent samples, so the only state carried between ticks is the CPU tick total.
    """

    def __init__(
        self,
        probe: MetricsProbe,
        store: TimeSeriesStore,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._probe = probe
        self._store = store
        self._interval_seconds = max(0.1, interval_seconds)
        self._clock = clock
        self._previous: CpuTicks | None = None
        self._tick_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

    @property
    def previous_ticks(self) -> CpuTicks | None:
        return self._previous

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        logger.info("Starting sample collector (every %.1fs)", self._interval_seconds)
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="sample-collector")

    async def stop(self) -> None:
        if not self._task:
            return
        logger.info("Stopping sample collector")
        self._stop_event.set()
        await self._task
        self._task = None

    async def prime(self) -> None:
        """Take the reference CPU snapshot the first tick is measured against."""
        try:
            raw = await asyncio.to_thread(self._probe.snapshot)
        except Exception as exc:
            logger.warning("Initial metrics probe failed: %s", exc)
            return
        self._previous = raw.cpu

    async def _run(self) -> None:
        await self.prime()
        while not self._stop_event.is_set():
            await self._sleep()
            if self._stop_event.is_set():
                break
            try:
                await self.tick()
            except Exception:  # pragma: no cover
                logger.exception("Unexpected error during collection tick")

    async def _sleep(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_seconds)
        except asyncio.TimeoutError:
            pass

    async def tick(self) -> Sample | None:
        """Probe once and append the derived sample. Returns None when the tick is skipped."""
        if self._tick_lock.locked():
            logger.warning("Previous collection tick still running; skipping")
            return None
        async with self._tick_lock:
            try:
                raw = await asyncio.to_thread(self._probe.snapshot)
            except Exception as exc:
                logger.warning("Metrics probe failed, skipping tick: %s", exc)
                return None

            previous, self._previous = self._previous, raw.cpu
            usage = compute_cpu_usage(previous, raw.cpu) if previous is not None else 0.0

            try:
                sample = build_sample(raw, usage, now=self._clock())
            except ValidationError as exc:
                logger.warning("Discarding malformed sample: %s", exc)
                return None
            await self._store.append(sample)
            return sample
