from __future__ import annotations

import os
from types import SimpleNamespace

import pytest

from hostwatch.app.schemas.processes import ProcessSortKey
from hostwatch.app.services import processes


class FakeProcess:
    def __init__(self, pid, username, cpu, mem, cmdline=None, name="proc"):
        self.info = {
            "pid": pid,
            "username": username,
            "cpu_percent": cpu,
            "memory_percent": mem,
            "cmdline": cmdline,
            "name": name,
        }

    def cpu_percent(self, interval=None):
        return self.info["cpu_percent"]


@pytest.fixture
def fake_table(monkeypatch):
    table = [
        FakeProcess(1, "root", 0.0, 0.5, ["/sbin/init"]),
        FakeProcess(200, "alice", 45.2, 3.0, ["python", "train.py"]),
        FakeProcess(300, None, 5.0, 12.75, [], name="kworker"),
        FakeProcess(400, "bob", 12.0, 1.0, None, name="sshd"),
    ]
    monkeypatch.setattr(processes.psutil, "process_iter", lambda attrs=None: iter(table))
    return table


def test_list_sorts_by_cpu_descending_and_limits(fake_table):
    lister = processes.ProcessLister(sample_seconds=0)

    result = lister.list_processes(ProcessSortKey.CPU, 2)

    assert [item.pid for item in result] == [200, 400]
    assert result[0].command == "python train.py"
    assert result[0].cpu_percent == 45.2


def test_list_sorts_by_memory(fake_table):
    lister = processes.ProcessLister(sample_seconds=0)

    result = lister.list_processes(ProcessSortKey.MEM, 10)

    assert [item.pid for item in result] == [300, 200, 400, 1]
    kworker = result[0]
    assert kworker.user == "?"
    assert kworker.command == "kworker"
    assert kworker.mem_percent == 12.8


def test_kill_reports_success(monkeypatch):
    terminated = []
    monkeypatch.setattr(
        processes.psutil,
        "Process",
        lambda pid: SimpleNamespace(terminate=lambda: terminated.append(pid)),
    )

    assert processes.ProcessLister().kill(4242) is True
    assert terminated == [4242]


def test_kill_reports_failure_instead_of_raising(monkeypatch):
    def missing(pid):
        raise processes.psutil.NoSuchProcess(pid)

    monkeypatch.setattr(processes.psutil, "Process", missing)

    assert processes.ProcessLister().kill(999_999) is False


def test_kill_permission_denied_reports_failure(monkeypatch):
    def denied():
        raise processes.psutil.AccessDenied(1)

    monkeypatch.setattr(processes.psutil, "Process", lambda pid: SimpleNamespace(terminate=denied))

    assert processes.ProcessLister().kill(1) is False


@pytest.mark.parametrize("pid", [0, -5, os.getpid()])
def test_kill_refuses_invalid_or_own_pid(monkeypatch, pid):
    monkeypatch.setattr(processes.psutil, "Process", lambda pid: pytest.fail("should not signal"))

    assert processes.ProcessLister().kill(pid) is False


def test_kill_disabled_by_configuration(monkeypatch):
    monkeypatch.setattr(processes.psutil, "Process", lambda pid: pytest.fail("should not signal"))

    assert processes.ProcessLister(allow_kill=False).kill(4242) is False
