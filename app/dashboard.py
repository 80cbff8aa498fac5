"""DashboardCore — власник усіх компонентів дашборду та диспетчер команд.

Життєвий цикл явний: `start()` створює HTTP-сесію, адаптери, оркестратор,
AI-селектор та (опційно) Redis-публішер; `dispose()` усе це закриває.
Рендерери (консоль, Redis) лише читають звіти і транскрипт, а дії
користувача приходять як іменовані команди через `dispatch()`.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Any

import aiohttp
from redis.asyncio import Redis
from rich.logging import RichHandler

from app.preferences import PreferenceStore, Preferences
from app.publisher import RedisStatePublisher
from app.refresh_orchestrator import RefreshOrchestrator, RefreshSchedule
from app.settings import Settings, settings as default_settings
from app.telemetry import ActivityFeed, EventBus
from assistant.selector import AIBackendSelector
from assistant.session import ConversationSession
from core.contracts.dashboard import SourceId
from core.serialization import utc_now
from data.fetch_gateway import FetchGateway
from data.sources import SourceAdapter, build_default_adapters
from utils.rich_console import get_rich_console

logger = logging.getLogger("app.dashboard")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=get_rich_console(), show_path=False))
    logger.propagate = "pytest" in sys.modules

AdapterFactory = Callable[..., Mapping[SourceId, SourceAdapter[Any]]]
CommandHandler = Callable[..., Awaitable[Any]]

COMMANDS: tuple[str, ...] = (
    "hydrate",
    "refresh_markets",
    "toggle_auto_refresh",
    "respond",
    "clear",
    "save_settings",
    "reset_settings",
)


class DashboardCore:
    """Явний контейнер стану дашборду.

    Args:
        config: pydantic Settings (дефолт — глобальний `app.settings.settings`)
        http_session: готова aiohttp-сесія; якщо None — створюється і
            закривається самим DashboardCore
        redis: готовий Redis-клієнт; якщо None і `redis_enabled` — створюється
        preference_store: сховище налаштувань (дефолт — YAML з Settings)
        adapter_factory: фабрика адаптерів `(gateway, *, emit) -> {SourceId: adapter}`
    """

    def __init__(
        self,
        *,
        config: Settings | None = None,
        http_session: aiohttp.ClientSession | None = None,
        redis: Redis | None = None,
        preference_store: PreferenceStore | None = None,
        adapter_factory: AdapterFactory = build_default_adapters,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config or default_settings
        self._http_session = http_session
        self._owns_http_session = http_session is None
        self._redis = redis
        self._owns_redis = redis is None
        self._adapter_factory = adapter_factory
        self._clock = clock

        self.preference_store = preference_store or PreferenceStore(
            self.config.preferences_path
        )
        self.preferences: Preferences = self.preference_store.load()

        self.events = EventBus(clock=clock)
        self.feed = ActivityFeed()
        self.events.subscribe(self.feed)
        self.session = ConversationSession()

        self.gateway: FetchGateway | None = None
        self.orchestrator: RefreshOrchestrator | None = None
        self.selector: AIBackendSelector | None = None
        self.publisher: RedisStatePublisher | None = None
        self._started = False
        self._disposed = False

        self._commands: dict[str, CommandHandler] = {
            "hydrate": self._cmd_hydrate,
            "refresh_markets": self._cmd_refresh_markets,
            "toggle_auto_refresh": self._cmd_toggle_auto_refresh,
            "respond": self._cmd_respond,
            "clear": self._cmd_clear,
            "save_settings": self._cmd_save_settings,
            "reset_settings": self._cmd_reset_settings,
        }

    # ── Життєвий цикл ─────────────────────────────────────────────────────

    @property
    def started(self) -> bool:
        return self._started

    async def start(self, *, auto_refresh: bool = True, hydrate: bool = True) -> None:
        """Збирає компоненти; опційно робить перший hydrate і вмикає таймери."""

        if self._disposed:
            raise RuntimeError("DashboardCore вже утилізовано")
        if self._started:
            return

        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self.gateway = FetchGateway(self._http_session, timeout=self.config.http_timeout)

        adapters = self._adapter_factory(self.gateway, emit=self.events.emit)
        schedule = RefreshSchedule(master_interval=self.preferences.master_interval_sec)
        self.orchestrator = RefreshOrchestrator(
            adapters, events=self.events, schedule=schedule, clock=self._clock
        )
        self.selector = AIBackendSelector(
            self.gateway,
            base_url=self.config.inference_base_url,
            model=self.config.inference_model,
            probe_timeout=self.config.inference_probe_timeout,
            chat_timeout=self.config.inference_chat_timeout,
            events=self.events,
        )
        self._attach_publisher()
        self._started = True
        logger.info(
            "[Dashboard] Старт: джерела=%s master=%.1fs redis=%s",
            ",".join(source.value for source in adapters),
            schedule.master_interval,
            "on" if self.publisher is not None else "off",
        )

        if hydrate:
            await self.orchestrator.hydrate()
        if auto_refresh:
            self.orchestrator.start()

    def _attach_publisher(self) -> None:
        if self._redis is None and self.config.redis_enabled:
            self._redis = Redis(
                host=self.config.redis_host,
                port=self.config.redis_port,
                decode_responses=True,
            )
            logger.info(
                "[Dashboard] Redis async клієнт створено (%s:%s)",
                self.config.redis_host,
                self.config.redis_port,
            )
        if self._redis is None:
            return
        assert self.orchestrator is not None
        self.publisher = RedisStatePublisher(self._redis)
        self.orchestrator.add_report_listener(self.publisher.publish_report)
        self.events.subscribe(self.publisher.on_event)

    def stop(self) -> None:
        """Зупиняє таймери; компоненти лишаються придатними до повторного start."""

        if self.orchestrator is not None:
            self.orchestrator.stop()

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self.orchestrator is not None:
            await self.orchestrator.dispose()
        if self.publisher is not None:
            await self.publisher.drain()
        if self._redis is not None and self._owns_redis:
            await self._redis.aclose()
        if self._http_session is not None and self._owns_http_session:
            await self._http_session.close()
        logger.info("[Dashboard] Утилізовано")

    async def __aenter__(self) -> DashboardCore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()

    # ── Команди ───────────────────────────────────────────────────────────

    async def dispatch(self, name: str, **kwargs: Any) -> Any:
        """Виконує іменовану команду користувача; невідома назва → ValueError."""

        handler = self._commands.get(name)
        if handler is None:
            raise ValueError(f"Невідома команда: {name!r}")
        if self._disposed:
            raise RuntimeError("DashboardCore вже утилізовано")
        if not self._started:
            raise RuntimeError("DashboardCore не запущено: спочатку start()")
        logger.debug("[Dashboard] Команда %s %s", name, kwargs or "")
        return await handler(**kwargs)

    def _require(self) -> tuple[RefreshOrchestrator, AIBackendSelector]:
        assert self.orchestrator is not None and self.selector is not None
        return self.orchestrator, self.selector

    async def _cmd_hydrate(self) -> Any:
        orchestrator, _ = self._require()
        return await orchestrator.hydrate()

    async def _cmd_refresh_markets(self) -> Any:
        orchestrator, _ = self._require()
        return await orchestrator.refresh_source(SourceId.CRYPTO)

    async def _cmd_toggle_auto_refresh(self) -> bool:
        orchestrator, _ = self._require()
        return orchestrator.toggle_master()

    async def _cmd_respond(self, prompt: str) -> str | None:
        _, selector = self._require()
        return await selector.respond(self.session, prompt)

    async def _cmd_clear(self) -> None:
        _, selector = self._require()
        selector.clear(self.session)

    async def _cmd_save_settings(
        self,
        *,
        theme: str | None = None,
        master_interval_ms: int | None = None,
    ) -> Preferences:
        updates: dict[str, Any] = {}
        if theme is not None:
            updates["theme"] = theme
        if master_interval_ms is not None:
            updates["master_interval_ms"] = master_interval_ms
        prefs = Preferences(**{**self.preferences.model_dump(), **updates})
        return self._apply_preferences(self.preference_store.save(prefs))

    async def _cmd_reset_settings(self) -> Preferences:
        return self._apply_preferences(self.preference_store.reset())

    def _apply_preferences(self, prefs: Preferences) -> Preferences:
        orchestrator, _ = self._require()
        self.preferences = prefs
        orchestrator.set_master_interval(prefs.master_interval_sec)
        return prefs


__all__ = ("COMMANDS", "DashboardCore")
