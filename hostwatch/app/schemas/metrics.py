from pydantic import BaseModel, ConfigDict, Field


class Sample(BaseModel):
    """One collection tick. Field names are consumed verbatim by the dashboard."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., description="Epoch seconds")
    hostname: str
    platform: str
    os_name: str
    cpu_core_count: int = Field(..., ge=0)
    cpu_usage_percent: float = Field(..., ge=0, le=100)
    cpu_temperature_celsius: float | None = None
    memory_total_bytes: int = Field(..., ge=0)
    memory_used_bytes: int = Field(..., ge=0)
    memory_used_percent: float = Field(..., ge=0, le=100)
    disk_total_bytes: int = Field(..., ge=0)
    disk_used_bytes: int = Field(..., ge=0)
    disk_used_percent: float = Field(..., ge=0, le=100)
    network_sent_bytes_cumulative: int = Field(..., ge=0)
    network_recv_bytes_cumulative: int = Field(..., ge=0)
    uptime_seconds: int = Field(..., ge=0)


class DiskVolume(BaseModel):
    device: str
    mountpoint: str = Field(..., examples=["/mnt/storage"])
    total_bytes: int = Field(..., ge=0)
    used_bytes: int = Field(..., ge=0)
    free_bytes: int = Field(0, ge=0)
    used_percent: float = Field(0.0, ge=0, le=100)
    type: str


class InterfaceCounters(BaseModel):
    interface: str
    bytes_sent: int = Field(..., ge=0)
    bytes_recv: int = Field(..., ge=0)
    packets_sent: int = Field(0, ge=0)
    packets_recv: int = Field(0, ge=0)


class NetworkRatePoint(BaseModel):
    timestamp: int
    sent_bytes_per_sec: float = Field(..., ge=0)
    recv_bytes_per_sec: float = Field(..., ge=0)
