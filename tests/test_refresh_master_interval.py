"""Тести master auto-refresh: clamp інтервалу, toggle, lifecycle таймерів."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import pytest

from app.refresh_orchestrator import (
    RefreshOrchestrator,
    RefreshSchedule,
    clamp_master_interval,
)
from app.telemetry import ActivityFeed, EventBus
from core.contracts.dashboard import ORIGIN_LIVE, Snapshot, SourceId


class DummyAdapter:
    def __init__(self, source: SourceId) -> None:
        self.source_id = source
        self.calls = 0

    async def fetch_snapshot(self) -> Snapshot[Any]:
        self.calls += 1
        return Snapshot(
            source=self.source_id,
            fetched_at=datetime(2025, 1, 1, tzinfo=UTC),
            origin=ORIGIN_LIVE,
            payload={},
        )


def _orchestrator(
    *, master: float = 20.0, poll: float = 60.0
) -> tuple[RefreshOrchestrator, DummyAdapter, DummyAdapter]:
    crypto = DummyAdapter(SourceId.CRYPTO)
    fx = DummyAdapter(SourceId.FX)
    schedule = RefreshSchedule(
        master_interval=master, source_intervals={SourceId.CRYPTO: poll}
    )
    orchestrator = RefreshOrchestrator(
        {SourceId.CRYPTO: crypto, SourceId.FX: fx},  # type: ignore[dict-item]
        schedule=schedule,
    )
    return orchestrator, crypto, fx


def test_clamp_master_interval() -> None:
    assert clamp_master_interval(0.2) == 1.0
    assert clamp_master_interval(-5) == 1.0
    assert clamp_master_interval(float("nan")) == 1.0
    assert clamp_master_interval(30) == 30.0
    assert clamp_master_interval("abc") == 20.0  # type: ignore[arg-type]
    assert RefreshSchedule(master_interval=0.1).master_interval == 1.0


@pytest.mark.asyncio
async def test_set_master_interval_clamps_to_one_second() -> None:
    orchestrator, _, _ = _orchestrator()

    assert orchestrator.set_master_interval(0.2) == 1.0
    assert orchestrator.schedule.master_interval == 1.0
    await orchestrator.dispose()


@pytest.mark.asyncio
async def test_toggle_master_flips_state() -> None:
    orchestrator, _, _ = _orchestrator()

    assert orchestrator.toggle_master() is True
    assert orchestrator.master_running
    assert orchestrator.toggle_master() is False
    assert not orchestrator.master_running
    await orchestrator.dispose()


@pytest.mark.asyncio
async def test_source_poll_refreshes_only_its_source() -> None:
    orchestrator, crypto, fx = _orchestrator(poll=0.02)

    orchestrator.start_source_polling()
    await asyncio.sleep(0.07)
    await orchestrator.dispose()

    assert crypto.calls >= 2
    assert fx.calls == 0
    assert orchestrator.latest_report is None


@pytest.mark.asyncio
async def test_master_timer_runs_full_hydrate_cycles() -> None:
    orchestrator, crypto, fx = _orchestrator()
    # set_master_interval не пускає нижче 1 с, тож стартуємо таймер напряму
    orchestrator._master_timer.start(0.02)
    await asyncio.sleep(0.07)
    await orchestrator.dispose()

    assert orchestrator.cycles_completed >= 2
    assert crypto.calls >= orchestrator.cycles_completed
    assert fx.calls >= orchestrator.cycles_completed


@pytest.mark.asyncio
async def test_disposed_orchestrator_refuses_to_start() -> None:
    orchestrator, _, _ = _orchestrator()
    orchestrator.start()
    assert orchestrator.master_running and orchestrator.source_polling

    await orchestrator.dispose()

    assert not orchestrator.master_running
    assert not orchestrator.source_polling
    with pytest.raises(RuntimeError):
        orchestrator.start_master()


class _SlowAdapter(DummyAdapter):
    async def fetch_snapshot(self) -> Snapshot[Any]:
        await asyncio.sleep(0.05)
        return await super().fetch_snapshot()


@pytest.mark.asyncio
async def test_dispose_cancels_inflight_cycle_without_publishing() -> None:
    events = EventBus()
    feed = ActivityFeed()
    events.subscribe(feed)
    reports: list[Any] = []
    orchestrator = RefreshOrchestrator(
        {SourceId.FX: _SlowAdapter(SourceId.FX)},  # type: ignore[dict-item]
        events=events,
    )
    orchestrator.add_report_listener(reports.append)

    pending = asyncio.create_task(orchestrator.hydrate())
    await asyncio.sleep(0.01)
    await orchestrator.dispose()
    await asyncio.sleep(0.1)

    assert pending.cancelled()
    assert feed.entries() == ()
    assert reports == []
    assert orchestrator.cycles_completed == 0
    assert orchestrator.latest == {}
    assert orchestrator.latest_report is None
    with pytest.raises(RuntimeError):
        await orchestrator.hydrate()
