"""Tests for the automatic sync background task."""

import asyncio

import pytest

from claimsync.sync_scheduler import AutoSyncScheduler


class FakeInitiator:
    """Counts bulk passes; the first ``failures`` passes raise."""

    def __init__(self, failures=0):
        self.calls = 0
        self.failures = failures

    async def sync_all_workspaces(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("peer exploded")
        return {"success": True, "synced_workspaces": 2, "results": []}


async def wait_for_calls(initiator: FakeInitiator, expected: int) -> None:
    for _ in range(200):
        if initiator.calls >= expected:
            return
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_disabled_scheduler_never_starts():
    initiator = FakeInitiator()
    scheduler = AutoSyncScheduler(initiator, 0)

    await scheduler.start()

    assert scheduler.enabled is False
    assert scheduler.running is False
    await scheduler.stop()


@pytest.mark.asyncio
async def test_runs_passes_until_stopped():
    initiator = FakeInitiator()
    scheduler = AutoSyncScheduler(initiator, 0.01)

    await scheduler.start()
    await wait_for_calls(initiator, 2)
    await scheduler.stop()

    assert initiator.calls >= 2
    assert scheduler.running is False
    calls = initiator.calls
    await asyncio.sleep(0.05)
    assert initiator.calls == calls


@pytest.mark.asyncio
async def test_failed_pass_does_not_stop_the_loop():
    initiator = FakeInitiator(failures=1)
    scheduler = AutoSyncScheduler(initiator, 0.01)

    await scheduler.start()
    await wait_for_calls(initiator, 3)
    await scheduler.stop()

    assert initiator.calls >= 3


@pytest.mark.asyncio
async def test_run_once_returns_summary():
    scheduler = AutoSyncScheduler(FakeInitiator(), 0)

    summary = await scheduler.run_once()

    assert summary["synced_workspaces"] == 2
