from __future__ import annotations

import ipaddress
import logging
import re
import shutil
import socket
import subprocess
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Protocol

import ping3
from ping3.errors import PingError
import psutil

from hostwatch.app.core.config import Settings, settings as default_settings
from hostwatch.app.schemas.network import UNKNOWN_HOSTNAME, UNKNOWN_MAC, NetworkDevice


logger = logging.getLogger(__name__)

ARP_TABLE_PATH = Path("/proc/net/arp")
DEFAULT_PREFIX = 24
# anything wider than this is swept as the /24 around the local address
MIN_PREFIX = 22
PING_WORKERS = 64

_REPORT_RE = re.compile(
    r"^Nmap scan report for (?:(?P<host>\S+) \((?P<ip>\d{1,3}(?:\.\d{1,3}){3})\)|(?P<bare>\d{1,3}(?:\.\d{1,3}){3}))\s*$"
)
_MAC_RE = re.compile(r"^MAC Address: (?P<mac>[0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5})(?: \((?P<vendor>[^)]*)\))?")


class DiscoveryUnavailable(RuntimeError):
    """Raised when host discovery cannot run on this machine."""


class DiscoveryProbe(Protocol):
    def available(self) -> bool: ...

    def discover(self, network: ipaddress.IPv4Network) -> list[NetworkDevice]: ...


def get_local_ip() -> str | None:
    """Address of the interface carrying the default route, if any."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # no packet is sent for a UDP connect; the kernel only picks a route
        sock.connect(("192.0.2.1", 80))
        address = sock.getsockname()[0]
    except OSError:
        address = None
    finally:
        sock.close()
    if address and not address.startswith("127."):
        return address
    try:
        interfaces = psutil.net_if_addrs()
    except OSError:
        return None
    for entries in interfaces.values():
        for entry in entries:
            if entry.family == socket.AF_INET and entry.address and not entry.address.startswith("127."):
                return entry.address
    return None


def resolve_network(local_ip: str) -> ipaddress.IPv4Network:
    prefix = DEFAULT_PREFIX
    try:
        interfaces = psutil.net_if_addrs()
    except OSError:
        interfaces = {}
    for entries in interfaces.values():
        for entry in entries:
            if entry.family == socket.AF_INET and entry.address == local_ip and entry.netmask:
                try:
                    prefix = ipaddress.IPv4Network(f"0.0.0.0/{entry.netmask}").prefixlen
                except ValueError:
                    prefix = DEFAULT_PREFIX
    if prefix < MIN_PREFIX:
        prefix = DEFAULT_PREFIX
    return ipaddress.IPv4Network(f"{local_ip}/{prefix}", strict=False)


def _normalize_mac(value: str | None) -> str:
    if not value:
        return UNKNOWN_MAC
    mac = value.strip().upper().replace("-", ":")
    if not mac or mac == "00:00:00:00:00:00":
        return UNKNOWN_MAC
    return mac


def parse_nmap_output(output: str) -> list[NetworkDevice]:
    """Turn `nmap -sn` normal output into devices, in report order."""
    devices: list[NetworkDevice] = []
    current: dict | None = None
    for line in output.splitlines():
        line = line.strip()
        report = _REPORT_RE.match(line)
        if report:
            if current:
                devices.append(NetworkDevice(**current))
            ip = report.group("ip") or report.group("bare")
            current = {"ip": ip, "hostname": report.group("host") or UNKNOWN_HOSTNAME, "mac": UNKNOWN_MAC}
            continue
        mac = _MAC_RE.match(line)
        if mac and current:
            vendor = (mac.group("vendor") or "").strip()
            current["mac"] = _normalize_mac(mac.group("mac"))
            current["vendor"] = vendor if vendor and vendor.lower() != "unknown" else None
    if current:
        devices.append(NetworkDevice(**current))
    return devices


def read_arp_table(path: Path = ARP_TABLE_PATH) -> dict[str, str]:
    """Map of IP to MAC from the kernel neighbour cache; empty where unavailable."""
    try:
        lines = path.read_text().splitlines()
    except OSError:
        return {}
    table: dict[str, str] = {}
    for line in lines[1:]:
        parts = line.split()
        if len(parts) < 4:
            continue
        ip, _hw_type, flags, mac = parts[:4]
        if flags == "0x0":
            continue
        normalized = _normalize_mac(mac)
        if normalized != UNKNOWN_MAC:
            table[ip] = normalized
    return table


def _reverse_lookup(ip: str) -> str:
    try:
        return socket.gethostbyaddr(ip)[0] or UNKNOWN_HOSTNAME
    except OSError:
        return UNKNOWN_HOSTNAME


class NmapDiscovery:
    """Ping scan through the nmap binary."""

    def __init__(self, nmap_path: str = "nmap", timeout_seconds: int = 120) -> None:
        self._nmap_path = nmap_path
        self._timeout_seconds = timeout_seconds

    def _binary(self) -> str | None:
        return shutil.which(self._nmap_path)

    def available(self) -> bool:
        return self._binary() is not None

    def discover(self, network: ipaddress.IPv4Network) -> list[NetworkDevice]:
        binary = self._binary()
        if not binary:
            raise DiscoveryUnavailable(f"{self._nmap_path} not found")
        try:
            result = subprocess.run(
                [binary, "-sn", str(network)],
                check=False,
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise DiscoveryUnavailable(f"nmap failed: {exc}") from exc
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or str(result.returncode)).strip()
            raise DiscoveryUnavailable(f"nmap exited with {result.returncode}: {detail[:200]}")
        return parse_nmap_output(result.stdout)


class PingSweepDiscovery:
    """ICMP sweep of the subnet, with MACs taken from the ARP cache afterwards."""

    def __init__(self, timeout_seconds: float = 0.5, *, arp_table_path: Path = ARP_TABLE_PATH) -> None:
        self._timeout_seconds = timeout_seconds
        self._arp_table_path = arp_table_path

    def available(self) -> bool:
        return True

    def _is_up(self, ip: str) -> bool:
        try:
            delay = ping3.ping(ip, timeout=self._timeout_seconds)
        except (OSError, PingError):
            return False
        return isinstance(delay, float)

    def discover(self, network: ipaddress.IPv4Network) -> list[NetworkDevice]:
        hosts = [str(host) for host in network.hosts()]
        with ThreadPoolExecutor(max_workers=PING_WORKERS) as pool:
            alive = [ip for ip, up in zip(hosts, pool.map(self._is_up, hosts)) if up]
            names = list(pool.map(_reverse_lookup, alive))
        arp = read_arp_table(self._arp_table_path)
        return [
            NetworkDevice(ip=ip, hostname=name, mac=arp.get(ip, UNKNOWN_MAC))
            for ip, name in zip(alive, names)
        ]


def create_discovery(config: Settings | None = None) -> DiscoveryProbe:
    config = config or default_settings
    nmap = NmapDiscovery(config.nmap_path, config.scan_timeout_seconds)
    if nmap.available():
        return nmap
    logger.info("nmap not found; falling back to ICMP ping sweep for discovery")
    return PingSweepDiscovery(config.ping_timeout_seconds)
