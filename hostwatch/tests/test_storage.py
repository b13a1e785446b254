from __future__ import annotations

import pytest
from pydantic import ValidationError

from hostwatch.app.services.storage import TimeSeriesStore


@pytest.mark.asyncio
async def test_read_all_on_empty_store_returns_empty_list():
    store = TimeSeriesStore(max_entries=5)

    assert await store.read_all() == []
    assert await store.latest() is None


@pytest.mark.asyncio
async def test_max_entries_enforced_keeps_most_recent_in_order(make_sample):
    store = TimeSeriesStore(max_entries=3)

    for offset in range(7):
        await store.append(make_sample(timestamp=1_000 + offset))

    items = await store.read_all()
    assert len(items) == 3
    assert [item.timestamp for item in items] == [1_004, 1_005, 1_006]
    latest = await store.latest()
    assert latest is not None
    assert latest.timestamp == 1_006


@pytest.mark.asyncio
async def test_read_all_returns_snapshot_not_live_view(make_sample):
    store = TimeSeriesStore(max_entries=10)
    await store.append(make_sample(timestamp=1))

    snapshot = await store.read_all()
    await store.append(make_sample(timestamp=2))

    assert [item.timestamp for item in snapshot] == [1]
    assert len(store) == 2


@pytest.mark.asyncio
async def test_stored_samples_are_immutable(make_sample):
    store = TimeSeriesStore(max_entries=2)
    await store.append(make_sample(hostname="host"))

    latest = await store.latest()
    with pytest.raises(ValidationError):
        latest.hostname = "mutated"

    newest = await store.latest()
    assert newest.hostname == "host"


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        TimeSeriesStore(max_entries=0)
