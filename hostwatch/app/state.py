from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from hostwatch.app.core.config import Settings, settings as default_settings
from hostwatch.app.services.alerts import AlertEvaluator, AlertLog
from hostwatch.app.services.collector import SampleCollector
from hostwatch.app.services.discovery import DiscoveryProbe, create_discovery
from hostwatch.app.services.probe import MetricsProbe, create_probe
from hostwatch.app.services.processes import ProcessLister
from hostwatch.app.services.scanner import NetworkScanner
from hostwatch.app.services.storage import TimeSeriesStore


@dataclass(slots=True)
class MonitorState:
    """Everything shared between the background loops and the request handlers."""

    settings: Settings
    probe: MetricsProbe
    store: TimeSeriesStore
    alert_log: AlertLog
    collector: SampleCollector
    scanner: NetworkScanner
    evaluator: AlertEvaluator
    processes: ProcessLister

    async def start(self) -> None:
        await self.collector.start()
        await self.scanner.start()

    async def stop(self) -> None:
        await self.scanner.stop()
        await self.collector.stop()


def build_state(
    config: Settings | None = None,
    *,
    probe: MetricsProbe | None = None,
    discovery: DiscoveryProbe | None = None,
    processes: ProcessLister | None = None,
) -> MonitorState:
    config = config or default_settings
    probe = probe or create_probe(config)
    store = TimeSeriesStore(config.history_max_entries)
    alert_log = AlertLog(config.alert_log_max_entries)
    collector = SampleCollector(probe, store, interval_seconds=config.collect_interval_seconds)
    scanner = NetworkScanner(
        discovery or create_discovery(config),
        alert_log,
        cache_ttl_seconds=config.scan_cache_ttl_seconds,
        interval_seconds=config.scan_interval_seconds,
        warmup_seconds=config.scan_warmup_seconds,
    )
    evaluator = AlertEvaluator(
        alert_log,
        cpu_percent=config.cpu_alert_percent,
        disk_percent=config.disk_alert_percent,
        recent_count=config.alert_recent_count,
    )
    return MonitorState(
        settings=config,
        probe=probe,
        store=store,
        alert_log=alert_log,
        collector=collector,
        scanner=scanner,
        evaluator=evaluator,
        processes=processes or ProcessLister(allow_kill=config.allow_process_kill),
    )


def get_state(request: Request) -> MonitorState:
    return request.app.state.monitor
