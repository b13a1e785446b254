from enum import Enum

from pydantic import BaseModel, Field


class ProcessSortKey(str, Enum):
    CPU = "cpu"
    MEM = "mem"


class ProcessInfo(BaseModel):
    pid: int
    user: str
    cpu_percent: float = Field(0.0, ge=0)
    mem_percent: float = Field(0.0, ge=0)
    command: str


class ProcessListResponse(BaseModel):
    processes: list[ProcessInfo]
    count: int


class KillResponse(BaseModel):
    success: bool
