from enum import Enum

from pydantic import BaseModel, ConfigDict

LOCAL_DEVICE_MAC = "THIS-DEVICE"
UNKNOWN_MAC = "--"
UNKNOWN_HOSTNAME = "Unknown"
LOCAL_DEVICE_VENDOR = "This device"

SENTINEL_MACS = frozenset({LOCAL_DEVICE_MAC, UNKNOWN_MAC})


class DeviceStatus(str, Enum):
    UP = "up"


class NetworkDevice(BaseModel):
    model_config = ConfigDict(frozen=True)

    ip: str
    hostname: str = UNKNOWN_HOSTNAME
    mac: str | None = UNKNOWN_MAC
    vendor: str | None = None
    is_local: bool = False
    status: DeviceStatus = DeviceStatus.UP

    @property
    def display_name(self) -> str:
        if self.hostname and self.hostname != UNKNOWN_HOSTNAME:
            return self.hostname
        return self.ip


class ScanResponse(BaseModel):
    devices: list[NetworkDevice]
    local_ip: str | None = None


class LatestScanResponse(BaseModel):
    devices: list[NetworkDevice]
    timestamp: int | None = None
    local_ip: str | None = None
