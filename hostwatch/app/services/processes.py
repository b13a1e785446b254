from __future__ import annotations

import logging
import os
import time

import psutil

from hostwatch.app.schemas.processes import ProcessInfo, ProcessSortKey


logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SECONDS = 0.2
_PROCESS_ATTRS = ["pid", "username", "cpu_percent", "memory_percent", "cmdline", "name"]


def _command(info: dict) -> str:
    cmdline = info.get("cmdline")
    if cmdline:
        return " ".join(str(part) for part in cmdline)
    return info.get("name") or ""


def _to_process_info(info: dict) -> ProcessInfo:
    return ProcessInfo(
        pid=info["pid"],
        user=info.get("username") or "?",
        cpu_percent=round(float(info.get("cpu_percent") or 0.0), 1),
        mem_percent=round(float(info.get("memory_percent") or 0.0), 1),
        command=_command(info),
    )


class ProcessLister:
    """On-demand view of the process table. Nothing is kept between calls."""

    def __init__(self, *, sample_seconds: float = DEFAULT_SAMPLE_SECONDS, allow_kill: bool = True) -> None:
        self._sample_seconds = max(0.0, sample_seconds)
        self._allow_kill = allow_kill

    def _prime_cpu_counters(self) -> None:
        # cpu_percent() measures against the previous call on the same Process object
        for proc in psutil.process_iter():
            try:
                proc.cpu_percent(None)
            except psutil.Error:
                continue
        if self._sample_seconds:
            time.sleep(self._sample_seconds)

    def list_processes(self, sort_key: ProcessSortKey, limit: int) -> list[ProcessInfo]:
        self._prime_cpu_counters()
        processes: list[ProcessInfo] = []
        for proc in psutil.process_iter(_PROCESS_ATTRS):
            try:
                processes.append(_to_process_info(proc.info))
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping unreadable process entry: %s", exc)
        if sort_key == ProcessSortKey.MEM:
            processes.sort(key=lambda item: (item.mem_percent, item.cpu_percent), reverse=True)
        else:
            processes.sort(key=lambda item: (item.cpu_percent, item.mem_percent), reverse=True)
        return processes[: max(0, limit)]

    def kill(self, pid: int) -> bool:
        """Send SIGTERM to `pid`. Returns False instead of raising on any failure."""
        if not self._allow_kill:
            logger.warning("Refusing to terminate pid %s: process control disabled", pid)
            return False
        if pid <= 0 or pid == os.getpid():
            logger.warning("Refusing to terminate pid %s", pid)
            return False
        try:
            psutil.Process(pid).terminate()
        except (psutil.Error, OSError) as exc:
            logger.warning("Failed to terminate pid %s: %s", pid, exc)
            return False
        logger.info("Sent termination signal to pid %s", pid)
        return True
