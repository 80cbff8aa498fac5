"""Оркестратор оновлення: конкурентний hydrate-цикл і незалежні таймери.

Ключові правила:
- `hydrate()` запускає `fetch_snapshot()` усіх адаптерів конкурентно і
  публікує звіт лише після того, як усі завершились (live або fallback);
- hydrate ніколи не падає: кожен адаптер сам поглинає свої збої;
- перекриття циклів: якщо цикл уже виконується, новий виклик не робить
  другого fan-out, а повертає звіт поточного циклу (coalescing);
- таймери двох класів: фіксований per-source poll і master-інтервал
  (керується користувачем, не менше MIN_MASTER_INTERVAL_SEC);
- ручний тригер — це просто `hydrate()`, таймери він не чіпає.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any

from rich.logging import RichHandler

from app.periodic import PeriodicTimer
from app.telemetry import EventBus
from config.config import (
    DEFAULT_MASTER_INTERVAL_MS,
    MIN_MASTER_INTERVAL_SEC,
    SOURCE_POLL_INTERVAL_SEC,
)
from core.contracts.dashboard import HydrateReport, Snapshot, SourceId
from core.serialization import utc_now
from data.sources import SourceAdapter
from utils.rich_console import get_rich_console

logger = logging.getLogger("app.refresh")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=get_rich_console(), show_path=False))
    logger.propagate = "pytest" in sys.modules

ReportListener = Callable[[HydrateReport], Any]
SnapshotListener = Callable[[Snapshot[Any]], Any]


class HydrateState(Enum):
    IDLE = auto()
    HYDRATING = auto()


def clamp_master_interval(seconds: float) -> float:
    """Обмежує master-інтервал знизу MIN_MASTER_INTERVAL_SEC."""

    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return DEFAULT_MASTER_INTERVAL_MS / 1000.0
    if value != value or value < MIN_MASTER_INTERVAL_SEC:  # NaN або замало
        return MIN_MASTER_INTERVAL_SEC
    return value


@dataclass
class RefreshSchedule:
    """Інтервали таймерів (секунди): master + per-source poll."""

    master_interval: float = DEFAULT_MASTER_INTERVAL_MS / 1000.0
    source_intervals: dict[SourceId, float] = field(
        default_factory=lambda: {SourceId.CRYPTO: SOURCE_POLL_INTERVAL_SEC}
    )

    def __post_init__(self) -> None:
        self.master_interval = clamp_master_interval(self.master_interval)


class RefreshOrchestrator:
    """Власник hydrate-циклів, останніх снапшотів і таймерів оновлення."""

    def __init__(
        self,
        adapters: Mapping[SourceId, SourceAdapter[Any]],
        *,
        events: EventBus | None = None,
        schedule: RefreshSchedule | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not adapters:
            raise ValueError("потрібен хоча б один адаптер")
        self._adapters = dict(adapters)
        self._events = events
        self._clock = clock
        self.schedule = schedule or RefreshSchedule()

        self._state = HydrateState.IDLE
        self._inflight: asyncio.Task[HydrateReport] | None = None
        self._report_listeners: list[ReportListener] = []
        self._snapshot_listeners: list[SnapshotListener] = []
        self._disposed = False

        self.latest: dict[SourceId, Snapshot[Any]] = {}
        self.latest_report: HydrateReport | None = None
        self.cycles_completed = 0

        self._master_timer = PeriodicTimer(
            "master_hydrate", self.hydrate, self.schedule.master_interval
        )
        self._source_timers: dict[SourceId, PeriodicTimer] = {}
        for source_id, interval in self.schedule.source_intervals.items():
            if source_id not in self._adapters:
                continue
            self._source_timers[source_id] = PeriodicTimer(
                f"poll_{source_id.value}",
                self._make_source_tick(source_id),
                interval,
            )

    # ── Стан ──────────────────────────────────────────────────────────────

    @property
    def state(self) -> HydrateState:
        return self._state

    @property
    def master_running(self) -> bool:
        return self._master_timer.running

    @property
    def source_polling(self) -> bool:
        return any(timer.running for timer in self._source_timers.values())

    def add_report_listener(self, listener: ReportListener) -> None:
        self._report_listeners.append(listener)

    def add_snapshot_listener(self, listener: SnapshotListener) -> None:
        self._snapshot_listeners.append(listener)

    # ── Hydrate ───────────────────────────────────────────────────────────

    async def hydrate(self) -> HydrateReport:
        """Один hydrate-цикл; під час активного циклу повертає його звіт."""

        self._ensure_alive()
        task = self._inflight
        if task is not None and not task.done():
            logger.debug("[Hydrate] Цикл уже виконується — приєднуюсь до нього")
        else:
            task = asyncio.create_task(self._run_cycle(), name="hydrate_cycle")
            task.add_done_callback(self._on_cycle_done)
            self._inflight = task
        # shield: скасування одного з очікувачів не скасовує спільний цикл
        return await asyncio.shield(task)

    def _on_cycle_done(self, task: asyncio.Task[HydrateReport]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "[Hydrate] Цикл завершився винятком",
                exc_info=task.exception(),
            )

    async def _run_cycle(self) -> HydrateReport:
        self._state = HydrateState.HYDRATING
        cycle_start = self._clock()
        try:
            snapshots = await asyncio.gather(
                *(adapter.fetch_snapshot() for adapter in self._adapters.values())
            )
        finally:
            self._state = HydrateState.IDLE
        if self._disposed:
            # утилізований оркестратор результатів не споживає
            raise asyncio.CancelledError()

        results = {snap.source: snap for snap in snapshots}
        failures = frozenset(snap.source for snap in snapshots if snap.is_fallback)
        report = HydrateReport(
            cycle_start=cycle_start, results=results, failures=failures
        )
        self.latest.update(results)
        self.latest_report = report
        self.cycles_completed += 1

        if failures:
            names = ", ".join(sorted(s.value for s in failures))
            detail = f"Data synced ({len(failures)} fallback: {names})"
        else:
            detail = "Data synced"
        if self._events is not None:
            self._events.emit("synced", detail)
        logger.info(
            "[Hydrate] Цикл #%d: live=%d fallback=%d",
            self.cycles_completed,
            len(results) - len(failures),
            len(failures),
        )
        await self._notify(self._report_listeners, report)
        return report

    async def refresh_source(self, source_id: SourceId) -> Snapshot[Any]:
        """Оновлює одне джерело поза hydrate-циклом (poll/кнопка ринків)."""

        adapter = self._adapters.get(source_id)
        if adapter is None:
            raise KeyError(f"Невідоме джерело: {source_id!r}")
        snapshot = await adapter.fetch_snapshot()
        self.latest[source_id] = snapshot
        logger.debug("[Hydrate] %s оновлено (%s)", source_id.value, snapshot.origin)
        await self._notify(self._snapshot_listeners, snapshot)
        return snapshot

    def _make_source_tick(self, source_id: SourceId) -> Callable[[], Any]:
        async def _tick() -> None:
            await self.refresh_source(source_id)

        return _tick

    @staticmethod
    async def _notify(listeners: list[Callable[[Any], Any]], item: Any) -> None:
        for listener in list(listeners):
            try:
                result = listener(item)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning(
                    "[Hydrate] Слухач %r впав — пропускаю", listener, exc_info=True
                )

    # ── Таймери ───────────────────────────────────────────────────────────

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise RuntimeError("RefreshOrchestrator вже утилізовано")

    def start_master(self) -> None:
        self._ensure_alive()
        self._master_timer.start(self.schedule.master_interval)
        logger.info(
            "[Hydrate] Auto-refresh увімкнено (кожні %.1fs)",
            self.schedule.master_interval,
        )

    def stop_master(self) -> None:
        if self._master_timer.running:
            logger.info("[Hydrate] Auto-refresh вимкнено")
        self._master_timer.stop()

    def toggle_master(self) -> bool:
        """Перемикає master-таймер; повертає новий стан (True = працює)."""

        if self.master_running:
            self.stop_master()
            return False
        self.start_master()
        return True

    def set_master_interval(self, seconds: float) -> float:
        """Змінює master-інтервал; працюючий таймер перезапускається."""

        clamped = clamp_master_interval(seconds)
        if clamped != seconds:
            logger.warning(
                "[Hydrate] master-інтервал %r обмежено до %.1fs", seconds, clamped
            )
        self.schedule.master_interval = clamped
        if self.master_running:
            self._master_timer.start(clamped)
        return clamped

    def start_source_polling(self) -> None:
        self._ensure_alive()
        for source_id, timer in self._source_timers.items():
            timer.start(self.schedule.source_intervals[source_id])

    def stop_source_polling(self) -> None:
        for timer in self._source_timers.values():
            timer.stop()

    def start(self) -> None:
        """Вмикає і per-source poll, і master auto-refresh."""

        self.start_source_polling()
        self.start_master()

    def stop(self) -> None:
        self.stop_source_polling()
        self.stop_master()

    async def dispose(self) -> None:
        """Зупиняє таймери, скасовує активний цикл і від'єднує слухачів."""

        self._disposed = True
        await self._master_timer.stop_and_wait()
        for timer in self._source_timers.values():
            await timer.stop_and_wait()
        task = self._inflight
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                logger.debug("[Hydrate] Активний цикл скасовано при утилізації")
        self._inflight = None
        self._report_listeners.clear()
        self._snapshot_listeners.clear()
        logger.info("[Hydrate] Оркестратор утилізовано")


__all__ = (
    "HydrateState",
    "RefreshOrchestrator",
    "RefreshSchedule",
    "clamp_master_interval",
)
