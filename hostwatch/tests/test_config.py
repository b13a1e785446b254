import pytest

from hostwatch.app.core.config import Settings


def test_defaults_match_collection_model(monkeypatch):
    for key in ("HOSTWATCH_HISTORY_MAX_ENTRIES", "HOSTWATCH_ALERT_LOG_MAX_ENTRIES"):
        monkeypatch.delenv(key, raising=False)

    config = Settings(_env_file=None)

    assert config.history_max_entries == 3_600
    assert config.alert_log_max_entries == 20
    assert config.alert_recent_count == 10
    assert config.scan_cache_ttl_seconds == 5.0
    assert config.scan_interval_seconds == 60.0
    assert config.cpu_alert_percent == 80.0
    assert config.disk_alert_percent == 90.0
    assert config.api_token is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("HOSTWATCH_COLLECT_INTERVAL_SECONDS", "2")
    monkeypatch.setenv("HOSTWATCH_CORS_ALLOW_ORIGINS", "http://a.local, 'http://b.local'")
    monkeypatch.setenv("HOSTWATCH_API_TOKEN", "  ")

    config = Settings(_env_file=None)

    assert config.collect_interval_seconds == 2.0
    assert config.cors_allow_origins == ["http://a.local", "http://b.local"]
    assert config.api_token is None


@pytest.mark.parametrize(
    ("field", "value", "expected"),
    [
        ("history_max_entries", "abc", 3_600),
        ("history_max_entries", 2, 10),
        ("collect_interval_seconds", 0.01, 0.5),
        ("scan_interval_seconds", 1, 5.0),
        ("scan_cache_ttl_seconds", -3, 0.0),
        ("alert_log_max_entries", 0, 1),
        ("log_level", "chatty", "INFO"),
        ("log_level", "debug", "DEBUG"),
        ("host_root_target", "hostfs/", "/hostfs"),
        ("host_root_target", "  ", ""),
    ],
)
def test_validators_fall_back_to_safe_values(field, value, expected):
    config = Settings(_env_file=None, **{field: value})

    assert getattr(config, field) == expected


def test_cors_accepts_json_list():
    config = Settings(_env_file=None, cors_allow_origins='["http://x.local"]')

    assert config.cors_allow_origins == ["http://x.local"]
