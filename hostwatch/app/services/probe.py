from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import time
from dataclasses import dataclass
from typing import Protocol

import psutil

from hostwatch.app.core.config import Settings, settings as default_settings
from hostwatch.app.schemas.metrics import DiskVolume, InterfaceCounters


logger = logging.getLogger(__name__)

IGNORED_FSTYPES = frozenset({"tmpfs", "devtmpfs", "proc", "sysfs", "squashfs", "devfs", "autofs"})
LOOPBACK_NAMES = frozenset({"lo", "lo0"})
LOOPBACK_PREFIXES = ("loopback pseudo-interface",)
MACOS_DATA_VOLUME = "/System/Volumes/Data"


class ProbeError(RuntimeError):
    """Raised when a mandatory counter cannot be read from the operating system."""


@dataclass(frozen=True, slots=True)
class CpuTicks:
    total: float
    idle: float


@dataclass(frozen=True, slots=True)
class RawSnapshot:
    cpu: CpuTicks
    cpu_core_count: int
    cpu_temperature_celsius: float | None
    memory_total_bytes: int
    memory_used_bytes: int
    disk_total_bytes: int
    disk_used_bytes: int
    network_sent_bytes: int
    network_recv_bytes: int
    boot_time: float
    hostname: str
    platform: str
    os_name: str


class MetricsProbe(Protocol):
    def snapshot(self) -> RawSnapshot: ...

    def disks(self, min_bytes: int) -> list[DiskVolume]: ...

    def interfaces(self) -> list[InterfaceCounters]: ...


def _is_loopback(name: str) -> bool:
    lowered = name.lower()
    return lowered in LOOPBACK_NAMES or lowered.startswith(LOOPBACK_PREFIXES)


def _normalize_mount_path(path: str) -> str:
    cleaned = str(path).strip()
    if not cleaned:
        return "/"
    if cleaned != "/":
        cleaned = cleaned.rstrip("/")
    return cleaned or "/"


def _sum_cpu_ticks(per_core: list) -> CpuTicks:
    total = 0.0
    idle = 0.0
    for core in per_core:
        fields = core._asdict()
        # guest time is already accounted for in user/nice on Linux
        fields.pop("guest", None)
        fields.pop("guest_nice", None)
        total += sum(fields.values())
        idle += fields.get("idle", 0.0) + fields.get("iowait", 0.0)
    return CpuTicks(total=total, idle=idle)


def _get_cpu_temperature() -> float | None:
    try:
        temps = psutil.sensors_temperatures()
    except (AttributeError, NotImplementedError, OSError):
        return None
    if not temps:
        return None
    for key in ("coretemp", "k10temp", "cpu_thermal", "soc_thermal"):
        entries = temps.get(key)
        if entries:
            values = [entry.current for entry in entries if entry.current is not None]
            if values:
                return round(float(sum(values) / len(values)), 1)
    for entries in temps.values():
        values = [entry.current for entry in entries if entry.current is not None]
        if values:
            return round(float(sum(values) / len(values)), 1)
    return None


class PsutilProbe:
    """Reads raw host counters through psutil."""

    def __init__(self, root_mounts: list[str], host_root_target: str = "") -> None:
        self._root_mounts = [_normalize_mount_path(mount) for mount in root_mounts] or ["/"]
        self._host_root_target = host_root_target

    def _candidate_paths_for_mount(self, mount: str) -> list[str]:
        candidates: list[str] = []
        host_target = _normalize_mount_path(self._host_root_target) if self._host_root_target else ""
        normalized_mount = _normalize_mount_path(mount)
        if host_target and host_target != "/":
            if normalized_mount == "/":
                candidates.append(host_target)
            else:
                suffix = normalized_mount.lstrip("/")
                candidates.append(_normalize_mount_path(os.path.join(host_target, suffix)))
        candidates.append(normalized_mount)
        return candidates

    def _root_usage(self):
        for mount in self._root_mounts:
            for candidate in self._candidate_paths_for_mount(mount):
                try:
                    usage = psutil.disk_usage(candidate)
                except OSError:
                    continue
                if usage.total > 0:
                    return usage
        return None

    def _network_totals(self) -> tuple[int, int]:
        try:
            counters = psutil.net_io_counters(pernic=True)
        except (OSError, RuntimeError) as exc:
            logger.warning("Unable to read network counters: %s", exc)
            return 0, 0
        sent = 0
        recv = 0
        for name, stats in (counters or {}).items():
            if _is_loopback(name):
                continue
            sent += stats.bytes_sent
            recv += stats.bytes_recv
        return sent, recv

    def snapshot(self) -> RawSnapshot:
        try:
            per_core = psutil.cpu_times(percpu=True)
            memory = psutil.virtual_memory()
        except (OSError, RuntimeError) as exc:
            raise ProbeError(f"Unable to read CPU or memory counters: {exc}") from exc

        disk = self._root_usage()
        if disk is None:
            logger.warning("No readable root mount among %s", ", ".join(self._root_mounts))
        sent, recv = self._network_totals()

        return RawSnapshot(
            cpu=_sum_cpu_ticks(per_core),
            cpu_core_count=len(per_core),
            cpu_temperature_celsius=_get_cpu_temperature(),
            memory_total_bytes=int(memory.total),
            memory_used_bytes=int(max(0, memory.total - memory.available)),
            disk_total_bytes=int(disk.total) if disk else 0,
            disk_used_bytes=int(disk.used) if disk else 0,
            network_sent_bytes=sent,
            network_recv_bytes=recv,
            boot_time=psutil.boot_time(),
            hostname=socket.gethostname(),
            platform=platform.platform(),
            os_name=platform.system().lower() or sys.platform,
        )

    def disks(self, min_bytes: int) -> list[DiskVolume]:
        try:
            partitions = psutil.disk_partitions(all=False)
        except OSError as exc:
            logger.warning("Unable to list partitions: %s", exc)
            return []
        volumes: list[DiskVolume] = []
        seen: set[str] = set()
        for partition in partitions:
            mount = _normalize_mount_path(partition.mountpoint)
            if mount in seen or partition.fstype in IGNORED_FSTYPES:
                continue
            seen.add(mount)
            try:
                usage = psutil.disk_usage(mount)
            except OSError:
                continue
            if usage.total < min_bytes:
                continue
            volumes.append(
                DiskVolume(
                    device=partition.device,
                    mountpoint=mount,
                    total_bytes=usage.total,
                    used_bytes=usage.used,
                    free_bytes=usage.free,
                    used_percent=round(usage.percent, 1),
                    type=partition.fstype,
                )
            )
        return volumes

    def interfaces(self) -> list[InterfaceCounters]:
        try:
            counters = psutil.net_io_counters(pernic=True)
        except (OSError, RuntimeError) as exc:
            logger.warning("Unable to read interface counters: %s", exc)
            return []
        result: list[InterfaceCounters] = []
        for name, stats in (counters or {}).items():
            if _is_loopback(name) or (stats.bytes_sent == 0 and stats.bytes_recv == 0):
                continue
            result.append(
                InterfaceCounters(
                    interface=name,
                    bytes_sent=stats.bytes_sent,
                    bytes_recv=stats.bytes_recv,
                    packets_sent=stats.packets_sent,
                    packets_recv=stats.packets_recv,
                )
            )
        return result


def uptime_seconds(boot_time: float, now: float | None = None) -> int:
    current = time.time() if now is None else now
    return max(0, int(current - boot_time))


def create_probe(config: Settings | None = None) -> MetricsProbe:
    """Pick the probe flavour for the running platform."""
    config = config or default_settings
    if sys.platform == "darwin":
        # the APFS root is a read-only snapshot; user data lives on the data volume
        root_mounts = [MACOS_DATA_VOLUME, "/"]
    elif sys.platform.startswith("win"):
        root_mounts = [os.environ.get("SystemDrive", "C:") + "\\"]
    else:
        root_mounts = ["/"]
    return PsutilProbe(root_mounts, host_root_target=config.host_root_target)
