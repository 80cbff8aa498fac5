"""Періодичний asyncio-таймер з фіксованою сіткою дедлайнів.

Гарантії:
- дедлайни рахуються від моменту старту (`start + n * interval`), тож
  тривалість колбеку не накопичує дрейф;
- колбек ніколи не виконується паралельно сам із собою: якщо виклик
  перевищив інтервал, пропущені точки сітки просто відкидаються;
- `start()` на запущеному таймері спочатку скасовує попередню задачу,
  тож двох активних задач одного таймера не буває;
- `stop()` скасовує саму задачу (сон або колбек), а не лише ставить прапорець.
"""

from __future__ import annotations

import asyncio
import logging
import math
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from rich.logging import RichHandler

from utils.rich_console import get_rich_console

logger = logging.getLogger("app.periodic")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=get_rich_console(), show_path=False))
    logger.propagate = "pytest" in sys.modules


class PeriodicTimer:
    """Викликає `callback` кожні `interval` секунд до `stop()`.

    Args:
        name: ім'я для логів та asyncio-задачі
        callback: корутинна функція без аргументів
        interval: період, секунди (> 0)
        run_immediately: перший виклик одразу після старту, а не через interval
    """

    def __init__(
        self,
        name: str,
        callback: Callable[[], Awaitable[Any]],
        interval: float,
        *,
        run_immediately: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval має бути додатним")
        self.name = name
        self._callback = callback
        self._interval = float(interval)
        self._run_immediately = run_immediately
        self._task: asyncio.Task[None] | None = None
        self.ticks = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval: float | None = None) -> None:
        """Запускає таймер; повторний старт замінює попередню задачу."""

        if interval is not None:
            if interval <= 0:
                raise ValueError("interval має бути додатним")
            self._interval = float(interval)
        if self.running:
            logger.debug("[Timer] %s: рестарт — скасовую попередню задачу", self.name)
        self._cancel_task()
        self._task = asyncio.create_task(
            self._run(self._interval), name=f"timer:{self.name}"
        )
        logger.debug("[Timer] %s: старт interval=%.3fs", self.name, self._interval)

    def stop(self) -> None:
        """Зупиняє таймер. Безпечно викликати повторно."""

        if self.running:
            logger.debug("[Timer] %s: стоп", self.name)
        self._cancel_task()

    async def stop_and_wait(self) -> None:
        """Зупиняє таймер і дочікується завершення скасованої задачі."""

        task = self._task
        self._cancel_task()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self, interval: float) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        slot = 0 if self._run_immediately else 1
        while True:
            delay = started + slot * interval - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            self.ticks += 1
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("[Timer] %s: колбек впав", self.name, exc_info=True)
            elapsed = loop.time() - started
            # наступна точка сітки строго в майбутньому
            slot = max(slot + 1, math.floor(elapsed / interval) + 1)


__all__ = ("PeriodicTimer",)
