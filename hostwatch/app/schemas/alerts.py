from enum import Enum

from pydantic import BaseModel, ConfigDict


class AlertLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertCategory(str, Enum):
    CPU = "cpu"
    DISK = "disk"
    NETWORK = "network"


class AlertEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: AlertLevel
    category: AlertCategory
    message: str
    timestamp: int


class AlertsResponse(BaseModel):
    alerts: list[AlertEvent]
    timestamp: int
