from __future__ import annotations

import ipaddress
from typing import Any

import pytest

from hostwatch.app.schemas.metrics import DiskVolume, InterfaceCounters, Sample
from hostwatch.app.schemas.network import NetworkDevice
from hostwatch.app.services.probe import CpuTicks, RawSnapshot


def _raw_snapshot(total: float = 100.0, idle: float = 80.0, **overrides: Any) -> RawSnapshot:
    base = dict(
        cpu=CpuTicks(total=total, idle=idle),
        cpu_core_count=4,
        cpu_temperature_celsius=None,
        memory_total_bytes=8 * 1024**3,
        memory_used_bytes=2 * 1024**3,
        disk_total_bytes=100 * 1024**3,
        disk_used_bytes=40 * 1024**3,
        network_sent_bytes=1_000,
        network_recv_bytes=5_000,
        boot_time=1_000.0,
        hostname="test-node",
        platform="Linux-6.1-x86_64",
        os_name="linux",
    )
    base.update(overrides)
    return RawSnapshot(**base)


def _sample(**overrides: Any) -> Sample:
    base = dict(
        timestamp=1_700_000_000,
        hostname="test-node",
        platform="Linux-6.1-x86_64",
        os_name="linux",
        cpu_core_count=4,
        cpu_usage_percent=10.0,
        cpu_temperature_celsius=None,
        memory_total_bytes=8 * 1024**3,
        memory_used_bytes=2 * 1024**3,
        memory_used_percent=25.0,
        disk_total_bytes=100 * 1024**3,
        disk_used_bytes=40 * 1024**3,
        disk_used_percent=40.0,
        network_sent_bytes_cumulative=1_000,
        network_recv_bytes_cumulative=5_000,
        uptime_seconds=3_600,
    )
    base.update(overrides)
    return Sample(**base)


class FakeProbe:
    def __init__(self, snapshots: list[RawSnapshot | Exception] | None = None) -> None:
        self._snapshots = list(snapshots or [])
        self.calls = 0

    def snapshot(self) -> RawSnapshot:
        self.calls += 1
        if not self._snapshots:
            return _raw_snapshot()
        item = self._snapshots.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def disks(self, min_bytes: int) -> list[DiskVolume]:
        return [
            DiskVolume(
                device="/dev/sda1",
                mountpoint="/",
                total_bytes=200 * 1024**3,
                used_bytes=50 * 1024**3,
                free_bytes=150 * 1024**3,
                used_percent=25.0,
                type="ext4",
            )
        ]

    def interfaces(self) -> list[InterfaceCounters]:
        return [InterfaceCounters(interface="eth0", bytes_sent=10, bytes_recv=20, packets_sent=1, packets_recv=2)]


class FakeDiscovery:
    def __init__(self, devices: list[NetworkDevice] | None = None, *, available: bool = True) -> None:
        self.devices = list(devices or [])
        self.is_available = available
        self.calls = 0
        self.error: Exception | None = None
        self.networks: list[ipaddress.IPv4Network] = []

    def available(self) -> bool:
        return self.is_available

    def discover(self, network: ipaddress.IPv4Network) -> list[NetworkDevice]:
        self.calls += 1
        self.networks.append(network)
        if self.error is not None:
            raise self.error
        return list(self.devices)


@pytest.fixture
def make_raw():
    return _raw_snapshot


@pytest.fixture
def make_sample():
    return _sample


@pytest.fixture
def fake_probe_cls():
    return FakeProbe


@pytest.fixture
def fake_discovery_cls():
    return FakeDiscovery
