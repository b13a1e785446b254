from functools import lru_cache
import json
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from hostwatch.app.version import HOSTWATCH_VERSION


def _bounded_float(value: Any, default: float, minimum: float) -> float:
    if value in (None, ""):
        return default
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, numeric)


def _bounded_int(value: Any, default: int, minimum: int) -> int:
    if value in (None, ""):
        return default
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, numeric)


class Settings(BaseSettings):
    """Service configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="HOSTWATCH_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Hostwatch"
    version: str = HOSTWATCH_VERSION
    debug: bool = False
    log_level: str = "INFO"

    # Leave unset to serve the dashboard API without authentication
    api_token: str | None = None
    cors_allow_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"])

    # Sample collection
    collect_interval_seconds: float = 3.0
    history_max_entries: int = 3_600
    host_root_target: str = "/hostfs"
    min_disk_bytes: int = 100 * 1024 * 1024

    # Network discovery
    scan_interval_seconds: float = 60.0
    scan_warmup_seconds: float = 5.0
    scan_cache_ttl_seconds: float = 5.0
    scan_timeout_seconds: int = 120
    nmap_path: str = "nmap"
    ping_timeout_seconds: float = 0.5

    # Alerts
    alert_log_max_entries: int = 20
    alert_recent_count: int = 10
    cpu_alert_percent: float = 80.0
    disk_alert_percent: float = 90.0

    allow_process_kill: bool = True

    bind_host: str = "0.0.0.0"
    bind_port: int = 8000

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: List[str] | str | None) -> List[str]:
        if isinstance(value, list):
            origins = [str(origin).strip() for origin in value if str(origin).strip()]
            return origins or ["*"]
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    parsed = json.loads(stripped)
                except json.JSONDecodeError:
                    parsed = None
                if isinstance(parsed, list):
                    origins = [str(origin).strip() for origin in parsed if str(origin).strip()]
                    return origins or ["*"]
            origins = [
                origin.strip().strip('"').strip("'")
                for origin in stripped.split(",")
                if origin.strip().strip('"').strip("'")
            ]
            return origins or ["*"]
        return ["*"]

    @field_validator("api_token", mode="before")
    @classmethod
    def _normalize_token(cls, value: str | None) -> str | None:
        if value is None:
            return None
        token = str(value).strip()
        return token or None

    @field_validator("host_root_target", mode="before")
    @classmethod
    def _normalize_host_root_target(cls, value: str | None) -> str:
        if value is None:
            return ""
        target = str(value).strip()
        if not target:
            return ""
        if not target.startswith("/"):
            target = f"/{target}"
        if target != "/":
            target = target.rstrip("/")
        return target

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str | None) -> str:
        level = str(value or "").strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            return "INFO"
        return level

    @field_validator("collect_interval_seconds", mode="before")
    @classmethod
    def _validate_collect_interval(cls, value: Any) -> float:
        return _bounded_float(value, 3.0, 0.5)

    @field_validator("history_max_entries", mode="before")
    @classmethod
    def _validate_max_entries(cls, value: Any) -> int:
        return _bounded_int(value, 3_600, 10)

    @field_validator("scan_interval_seconds", mode="before")
    @classmethod
    def _validate_scan_interval(cls, value: Any) -> float:
        return _bounded_float(value, 60.0, 5.0)

    @field_validator("scan_warmup_seconds", mode="before")
    @classmethod
    def _validate_scan_warmup(cls, value: Any) -> float:
        return _bounded_float(value, 5.0, 0.0)

    @field_validator("scan_cache_ttl_seconds", mode="before")
    @classmethod
    def _validate_scan_ttl(cls, value: Any) -> float:
        return _bounded_float(value, 5.0, 0.0)

    @field_validator("alert_log_max_entries", mode="before")
    @classmethod
    def _validate_alert_log_size(cls, value: Any) -> int:
        return _bounded_int(value, 20, 1)

    @field_validator("alert_recent_count", mode="before")
    @classmethod
    def _validate_alert_recent(cls, value: Any) -> int:
        return _bounded_int(value, 10, 0)


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
