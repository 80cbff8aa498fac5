"""Тести EventBus та стрічки активності."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from app.telemetry import ActivityFeed, EventBus
from core.contracts.dashboard import DashboardEvent

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def test_emit_fans_out_in_subscription_order() -> None:
    bus = EventBus(clock=lambda: NOW)
    seen: list[str] = []
    bus.subscribe(lambda e: seen.append(f"a:{e.kind}"))
    bus.subscribe(lambda e: seen.append(f"b:{e.kind}"))

    event = bus.emit("synced", "Data synced")

    assert event == DashboardEvent(kind="synced", detail="Data synced", ts=NOW)
    assert seen == ["a:synced", "b:synced"]


def test_failing_listener_is_isolated(caplog) -> None:
    bus = EventBus(clock=lambda: NOW)
    seen: list[DashboardEvent] = []

    def _boom(_event: DashboardEvent) -> None:
        raise RuntimeError("toast renderer down")

    bus.subscribe(_boom)
    bus.subscribe(seen.append)

    with caplog.at_level(logging.WARNING, logger="app.telemetry"):
        bus.emit("ai-error", "backend unavailable")

    assert len(seen) == 1
    assert any("Підписник" in rec.getMessage() for rec in caplog.records)


def test_unsubscribe_stops_delivery() -> None:
    bus = EventBus()
    seen: list[DashboardEvent] = []
    unsubscribe = bus.subscribe(seen.append)

    bus.emit("synced", "one")
    unsubscribe()
    unsubscribe()
    bus.emit("synced", "two")

    assert [e.detail for e in seen] == ["one"]


def test_activity_feed_is_capped_newest_first() -> None:
    feed = ActivityFeed()
    bus = EventBus(clock=lambda: NOW)
    bus.subscribe(feed)

    for i in range(45):
        bus.emit("synced", f"cycle {i}")

    entries = feed.entries()
    assert len(feed) == 40
    assert entries[0].detail == "cycle 44"
    assert entries[-1].detail == "cycle 5"

    feed.clear()
    assert feed.entries() == ()
