"""Вибір AI-бекенду та операції чату (respond / clear).

Стан вибору: UNPROBED → PROBING → {REMOTE_SELECTED | FALLBACK_SELECTED}.

- Проба — один GET `{base}/models` з обмеженим таймаутом; успіх → Remote,
  будь-який збій → Fallback (demo). Вибір фінальний до кінця процесу:
  повторних проб немає, навіть якщо Remote пізніше почне падати.
- `respond()`: порожній prompt ігнорується; busy=True на час виклику
  бекенду і гарантовано скидається у finally; BackendUnavailable стає
  коротким повідомленням у транскрипті, вибір бекенду не змінюється.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from enum import Enum, auto

from rich.logging import RichHandler

from app.telemetry import EventBus
from assistant.backends import (
    Backend,
    BackendKind,
    BackendUnavailable,
    FallbackBackend,
    RemoteBackend,
)
from assistant.session import ConversationSession
from config.config import (
    INFERENCE_BASE_URL,
    INFERENCE_CHAT_TIMEOUT_SEC,
    INFERENCE_MODEL,
    INFERENCE_PROBE_TIMEOUT_SEC,
)
from data.fetch_gateway import FetchError, FetchGateway
from utils.rich_console import get_rich_console

logger = logging.getLogger("assistant.selector")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=get_rich_console(), show_path=False))
    logger.propagate = "pytest" in sys.modules

REMOTE_GREETING = "Assistant online (local inference server). Ask me anything!"
DEMO_GREETING = "Assistant demo engine active. The full AI server is not running."
AI_ERROR_MESSAGE = "⚠ Assistant error. Try again."


class SelectorState(Enum):
    UNPROBED = auto()
    PROBING = auto()
    REMOTE_SELECTED = auto()
    FALLBACK_SELECTED = auto()


class AIBackendSelector:
    """Проба inference-сервера, вибір бекенду та обробка реплік сесії."""

    def __init__(
        self,
        gateway: FetchGateway,
        *,
        base_url: str = INFERENCE_BASE_URL,
        model: str = INFERENCE_MODEL,
        probe_timeout: float = INFERENCE_PROBE_TIMEOUT_SEC,
        chat_timeout: float = INFERENCE_CHAT_TIMEOUT_SEC,
        events: EventBus | None = None,
    ) -> None:
        self.gateway = gateway
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.probe_timeout = probe_timeout
        self.chat_timeout = chat_timeout
        self._events = events
        self._probe_lock = asyncio.Lock()
        self._probing = False
        self.probe_count = 0

    @property
    def models_url(self) -> str:
        return f"{self.base_url}/models"

    def state(self, session: ConversationSession) -> SelectorState:
        backend = session.backend
        if backend is None:
            return SelectorState.PROBING if self._probing else SelectorState.UNPROBED
        if backend.kind is BackendKind.REMOTE:
            return SelectorState.REMOTE_SELECTED
        return SelectorState.FALLBACK_SELECTED

    async def ensure_backend(self, session: ConversationSession) -> Backend:
        """Повертає вибраний бекенд; при першому виклику виконує пробу."""

        if session.backend is not None:
            return session.backend
        async with self._probe_lock:
            # інший виклик міг завершити пробу, поки ми чекали на lock
            if session.backend is not None:
                return session.backend
            self._probing = True
            try:
                live = await self._probe()
            finally:
                self._probing = False

            backend: Backend
            if live:
                backend = RemoteBackend(
                    self.gateway,
                    base_url=self.base_url,
                    model=self.model,
                    timeout=self.chat_timeout,
                )
                session.greeting = REMOTE_GREETING
                logger.info("[AI] Inference-сервер доступний → remote (%s)", self.base_url)
            else:
                backend = FallbackBackend()
                session.greeting = DEMO_GREETING
                logger.warning("[AI] Inference-сервер недоступний → demo engine")
            session.backend = backend
            return backend

    async def _probe(self) -> bool:
        self.probe_count += 1
        try:
            await self.gateway.get_json(self.models_url, timeout=self.probe_timeout)
        except FetchError as exc:
            logger.debug("[AI] Проба %s не вдалася: %s", self.models_url, exc)
            return False
        return True

    async def respond(self, session: ConversationSession, prompt: str) -> str | None:
        """Додає репліку користувача і відповідь бекенду до транскрипту.

        Повертає текст відповіді; None — якщо prompt порожній або бекенд
        недоступний (тоді у транскрипті з'являється повідомлення про помилку).
        """

        text = (prompt or "").strip()
        if not text:
            return None

        history = session.transcript()
        session.append("user", text)
        try:
            backend = await self.ensure_backend(session)
            session.busy = True
            reply = await backend.respond(history, text)
        except BackendUnavailable as exc:
            logger.warning("[AI] Бекенд не відповів: %s", exc)
            session.append("assistant", AI_ERROR_MESSAGE)
            if self._events is not None:
                self._events.emit("ai-error", str(exc) or "backend unavailable")
            return None
        finally:
            session.busy = False

        session.append("assistant", reply)
        return reply

    def clear(self, session: ConversationSession) -> None:
        """Очищає транскрипт; вибраний бекенд і greeting лишаються."""

        session.reset()
        logger.debug("[AI] Транскрипт очищено")


__all__ = [
    "AI_ERROR_MESSAGE",
    "AIBackendSelector",
    "DEMO_GREETING",
    "REMOTE_GREETING",
    "SelectorState",
]
