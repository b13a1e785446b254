from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from hostwatch.app.schemas.alerts import AlertCategory, AlertEvent, AlertLevel
from hostwatch.app.schemas.network import (
    LOCAL_DEVICE_MAC,
    LOCAL_DEVICE_VENDOR,
    SENTINEL_MACS,
    UNKNOWN_HOSTNAME,
    NetworkDevice,
)
from hostwatch.app.services.alerts import AlertLog
from hostwatch.app.services.discovery import DiscoveryProbe, get_local_ip, resolve_network


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0
DEFAULT_WARMUP_SECONDS = 5.0
DEFAULT_CACHE_TTL_SECONDS = 5.0
FALLBACK_LOCAL_IP = "127.0.0.1"


@dataclass(frozen=True, slots=True)
class ScanSnapshot:
    devices: tuple[NetworkDevice, ...]
    captured_at: float
    local_ip: str | None


class NetworkScanCache:
    """Single slot holding the most recent completed scan."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._snapshot: ScanSnapshot | None = None

    async def get(self) -> ScanSnapshot | None:
        async with self._lock:
            return self._snapshot

    async def put(self, snapshot: ScanSnapshot) -> None:
        async with self._lock:
            self._snapshot = snapshot


class KnownDeviceSet:
    """MAC addresses seen in any earlier scan. Only ever grows."""

    def __init__(self, macs: Iterable[str] = ()) -> None:
        self._macs: set[str] = set(macs)

    def is_empty(self) -> bool:
        return not self._macs

    def difference(self, macs: Iterable[str]) -> set[str]:
        return set(macs) - self._macs

    def update(self, macs: Iterable[str]) -> None:
        self._macs.update(macs)

    def snapshot(self) -> frozenset[str]:
        return frozenset(self._macs)


def device_macs(devices: Iterable[NetworkDevice]) -> set[str]:
    return {device.mac for device in devices if device.mac and device.mac not in SENTINEL_MACS}


class NetworkScanner:
    """Discovers hosts on the local subnet and reports devices never seen before.

    `scan()` is shared by the background loop and API handlers; results are cached
    for a short TTL so a burst of requests costs a single discovery run.
    """

    def __init__(
        self,
        discovery: DiscoveryProbe,
        alert_log: AlertLog,
        *,
        cache: NetworkScanCache | None = None,
        known: KnownDeviceSet | None = None,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        warmup_seconds: float = DEFAULT_WARMUP_SECONDS,
        clock: Callable[[], float] = time.time,
        local_ip_resolver: Callable[[], str | None] = get_local_ip,
        network_resolver: Callable[[str], ipaddress.IPv4Network] = resolve_network,
        hostname_resolver: Callable[[], str] = socket.gethostname,
    ) -> None:
        self._discovery = discovery
        self._alert_log = alert_log
        self._cache = cache if cache is not None else NetworkScanCache()
        self._known = known if known is not None else KnownDeviceSet()
        self._cache_ttl_seconds = max(0.0, cache_ttl_seconds)
        self._interval_seconds = max(0.1, interval_seconds)
        self._warmup_seconds = max(0.0, warmup_seconds)
        self._clock = clock
        self._local_ip_resolver = local_ip_resolver
        self._network_resolver = network_resolver
        self._hostname_resolver = hostname_resolver
        self._scan_lock = asyncio.Lock()
        self._tick_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

    @property
    def known_devices(self) -> KnownDeviceSet:
        return self._known

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        logger.info(
            "Starting network scanner (every %.0fs after %.0fs warm-up)",
            self._interval_seconds,
            self._warmup_seconds,
        )
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="network-scanner")

    async def stop(self) -> None:
        if not self._task:
            return
        logger.info("Stopping network scanner")
        self._stop_event.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        if await self._sleep(self._warmup_seconds):
            return
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception:  # pragma: no cover
                logger.exception("Unexpected error during network scan")
            if await self._sleep(self._interval_seconds):
                return

    async def _sleep(self, seconds: float) -> bool:
        """Wait for `seconds`; True when a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def latest(self) -> ScanSnapshot | None:
        """Last completed scan without triggering a new one."""
        return await self._cache.get()

    async def refresh(self) -> ScanSnapshot:
        """Cached scan when younger than the TTL, otherwise a fresh discovery run."""
        async with self._scan_lock:
            cached = await self._cache.get()
            if cached is not None and self._clock() - cached.captured_at < self._cache_ttl_seconds:
                return cached
            local_ip, devices = await asyncio.to_thread(self._discover)
            snapshot = ScanSnapshot(devices=tuple(devices), captured_at=self._clock(), local_ip=local_ip)
            await self._cache.put(snapshot)
            return snapshot

    async def scan(self) -> list[NetworkDevice]:
        return list((await self.refresh()).devices)

    def _discover(self) -> tuple[str | None, list[NetworkDevice]]:
        local_ip = self._local_ip_resolver()
        if not local_ip:
            logger.warning("Local IP address unavailable; reporting this host only")
            return None, [self._local_device(None)]
        if not self._discovery.available():
            logger.warning("No discovery tool available; reporting this host only")
            return local_ip, [self._local_device(local_ip)]

        try:
            devices = self._discovery.discover(self._network_resolver(local_ip))
        except Exception as exc:
            logger.warning("Network discovery failed: %s", exc)
            devices = []
        if not devices:
            return local_ip, [self._local_device(local_ip)]
        return local_ip, [self._mark_local(device, local_ip) for device in devices]

    def _local_hostname(self) -> str:
        try:
            return self._hostname_resolver() or UNKNOWN_HOSTNAME
        except OSError:
            return UNKNOWN_HOSTNAME

    def _local_device(self, local_ip: str | None) -> NetworkDevice:
        return NetworkDevice(
            ip=local_ip or FALLBACK_LOCAL_IP,
            hostname=self._local_hostname(),
            mac=LOCAL_DEVICE_MAC,
            vendor=LOCAL_DEVICE_VENDOR,
            is_local=True,
        )

    def _mark_local(self, device: NetworkDevice, local_ip: str) -> NetworkDevice:
        if device.ip != local_ip:
            return device
        hostname = device.hostname if device.hostname != UNKNOWN_HOSTNAME else self._local_hostname()
        return device.model_copy(
            update={"hostname": hostname, "mac": LOCAL_DEVICE_MAC, "vendor": LOCAL_DEVICE_VENDOR, "is_local": True}
        )

    async def detect_new_devices(self, devices: Iterable[NetworkDevice]) -> list[AlertEvent]:
        """Diff a scan against the known set and log an event per unseen MAC."""
        devices = list(devices)
        current = device_macs(devices)
        if self._known.is_empty():
            self._known.update(current)
            if current:
                logger.info("Seeded known devices with %d addresses", len(current))
            return []

        new_macs = self._known.difference(current)
        events: list[AlertEvent] = []
        emitted: set[str] = set()
        for device in devices:
            if device.mac not in new_macs or device.mac in emitted:
                continue
            emitted.add(device.mac)
            event = AlertEvent(
                type=AlertLevel.INFO,
                category=AlertCategory.NETWORK,
                message=f"New Device: {device.display_name} ({device.vendor or 'Unknown'})",
                timestamp=int(self._clock()),
            )
            logger.info("%s [%s]", event.message, device.mac)
            await self._alert_log.append(event)
            events.append(event)
        self._known.update(new_macs)
        return events

    async def run_once(self) -> list[AlertEvent]:
        if self._tick_lock.locked():
            logger.warning("Previous network scan still running; skipping")
            return []
        async with self._tick_lock:
            devices = await self.scan()
            return await self.detect_new_devices(devices)
