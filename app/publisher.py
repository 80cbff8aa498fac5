"""Публікація стану дашборду в Redis для зовнішніх UI-споживачів.

- HydrateReport → канал `REDIS_CHANNEL_REPORT` + снапшот-ключ з TTL;
- DashboardEvent → канал `REDIS_CHANNEL_EVENTS`.

Redis може коротко пропадати (restart/update): збої публікації лише
логуються з rate-limit, цикл оновлення не зупиняється.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from typing import Any

from redis.asyncio import Redis
from rich.logging import RichHandler

from config.config import (
    REDIS_CHANNEL_EVENTS,
    REDIS_CHANNEL_REPORT,
    REDIS_SNAPSHOT_KEY_REPORT,
    REPORT_SNAPSHOT_TTL_SEC,
)
from core.contracts.base import make_envelope
from core.contracts.dashboard import DashboardEvent, HydrateReport
from core.serialization import json_dumps, to_jsonable
from utils.rich_console import get_rich_console

logger = logging.getLogger("app.publisher")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=get_rich_console(), show_path=False))
    logger.propagate = "pytest" in sys.modules

_ERROR_LOG_INTERVAL_SEC = 30.0


def report_payload(report: HydrateReport) -> dict[str, Any]:
    """HydrateReport → plain dict для JSON (джерела — рядкові ключі)."""

    return {
        "cycle_start": to_jsonable(report.cycle_start),
        "fully_live": report.fully_live,
        "failures": sorted(source.value for source in report.failures),
        "results": {
            source.value: {
                "origin": snap.origin,
                "fetched_at": to_jsonable(snap.fetched_at),
                "payload": to_jsonable(snap.payload),
            }
            for source, snap in report.results.items()
        },
    }


class RedisStatePublisher:
    """Слухач оркестратора та EventBus, що дзеркалить стан у Redis."""

    def __init__(
        self,
        redis: Redis,
        *,
        report_channel: str = REDIS_CHANNEL_REPORT,
        snapshot_key: str = REDIS_SNAPSHOT_KEY_REPORT,
        events_channel: str = REDIS_CHANNEL_EVENTS,
        snapshot_ttl: int = REPORT_SNAPSHOT_TTL_SEC,
    ) -> None:
        self.redis = redis
        self.report_channel = report_channel
        self.snapshot_key = snapshot_key
        self.events_channel = events_channel
        self.snapshot_ttl = int(snapshot_ttl)
        self.published = 0
        self._pending: set[asyncio.Task[None]] = set()
        self._last_error_ts: float | None = None

    async def publish_report(self, report: HydrateReport) -> None:
        ts_ms = int(report.cycle_start.timestamp() * 1000)
        payload_json = json_dumps(
            make_envelope("report", report_payload(report), ts_ms=ts_ms)
        )
        try:
            await self.redis.set(
                name=self.snapshot_key, value=payload_json, ex=self.snapshot_ttl
            )
            await self.redis.publish(self.report_channel, payload_json)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._log_failure("report")
            return
        self.published += 1
        logger.debug("[Redis] Звіт опубліковано у %s", self.report_channel)

    async def publish_event(self, event: DashboardEvent) -> None:
        ts_ms = int(event.ts.timestamp() * 1000)
        payload_json = json_dumps(
            make_envelope(
                "event",
                {"kind": event.kind, "detail": event.detail},
                ts_ms=ts_ms,
            )
        )
        try:
            await self.redis.publish(self.events_channel, payload_json)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._log_failure(f"event {event.kind}")

    def on_event(self, event: DashboardEvent) -> None:
        """Синхронний підписник EventBus: ставить публікацію в чергу циклу."""

        try:
            task = asyncio.get_running_loop().create_task(self.publish_event(event))
        except RuntimeError:
            logger.debug("[Redis] Немає активного циклу — подію %s пропущено", event.kind)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Дочікується публікацій подій, що ще в польоті."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _log_failure(self, what: str) -> None:
        now = time.monotonic()
        last = self._last_error_ts
        self._last_error_ts = now
        if last is None or (now - last) > _ERROR_LOG_INTERVAL_SEC:
            logger.warning(
                "[Redis] Redis недоступний — не вдалося опублікувати %s",
                what,
                exc_info=True,
            )


__all__ = ("RedisStatePublisher", "report_payload")
