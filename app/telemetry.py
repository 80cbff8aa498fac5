"""Observability-події дашборду (synced / source-failed / ai-error).

`EventBus` — синхронний fan-out подій до підписників (тости, стрічка
активності, Redis-публішер). Збій одного підписника логуються і не заважає
іншим та викликачу.
"""

from __future__ import annotations

import logging
import sys
from collections import deque
from collections.abc import Callable
from datetime import datetime

from rich.logging import RichHandler

from config.config import ACTIVITY_FEED_LIMIT
from core.contracts.dashboard import DashboardEvent, EventKind
from core.serialization import utc_now
from utils.rich_console import get_rich_console

logger = logging.getLogger("app.telemetry")
if not logger.handlers:  # pragma: no cover - запобігання дублю логерів у тестах
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=get_rich_console(), show_path=False))
    logger.propagate = "pytest" in sys.modules

EventListener = Callable[[DashboardEvent], None]

_LOG_LEVEL_BY_KIND: dict[str, int] = {
    "synced": logging.INFO,
    "source-failed": logging.WARNING,
    "ai-error": logging.WARNING,
}


class EventBus:
    """Розсилає DashboardEvent усім підписникам у порядку підписки."""

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._listeners: list[EventListener] = []
        self._clock = clock

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Додає підписника; повертає функцію відписки."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, kind: EventKind, detail: str) -> DashboardEvent:
        event = DashboardEvent(kind=kind, detail=detail, ts=self._clock())
        logger.log(
            _LOG_LEVEL_BY_KIND.get(kind, logging.INFO),
            "[Telemetry] %s: %s",
            kind,
            detail,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.warning(
                    "[Telemetry] Підписник %r впав на події %s",
                    listener,
                    kind,
                    exc_info=True,
                )
        return event


class ActivityFeed:
    """Обмежена стрічка останніх подій (найновіша — перша)."""

    def __init__(self, limit: int = ACTIVITY_FEED_LIMIT) -> None:
        self._entries: deque[DashboardEvent] = deque(maxlen=max(1, int(limit)))

    def __call__(self, event: DashboardEvent) -> None:
        self._entries.appendleft(event)

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> tuple[DashboardEvent, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ("ActivityFeed", "EventBus", "EventListener")
