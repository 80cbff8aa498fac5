"""Інтеграційні тести DashboardCore: lifecycle та диспетчер команд.

HTTP повністю офлайн (фейкова aiohttp-сесія кидає ClientConnectionError), тож
усі джерела йдуть у fallback, а чат — у demo engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import aiohttp
import pytest

from app.dashboard import COMMANDS, DashboardCore
from app.preferences import PreferenceStore, Preferences
from app.settings import Settings
from assistant.backends import BackendKind
from assistant.selector import DEMO_GREETING
from core.contracts.dashboard import SourceId


class _OfflineRequest:
    async def __aenter__(self) -> Any:
        raise aiohttp.ClientConnectionError("offline")

    async def __aexit__(self, *_exc: object) -> bool:
        return False


class OfflineSession:
    def __init__(self) -> None:
        self.requests: list[tuple[str, str]] = []
        self.closed = False

    def request(self, method: str, url: str, **_kwargs: Any) -> _OfflineRequest:
        self.requests.append((method, url))
        return _OfflineRequest()

    async def close(self) -> None:
        self.closed = True


class DummyRedis:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self.sets: list[str] = []

    async def publish(self, channel: str, payload: str) -> None:
        self.messages.append((channel, payload))

    async def set(self, name: str, value: str, ex: int | None = None) -> None:
        self.sets.append(name)


def _core(tmp_path: Path, **kwargs: Any) -> tuple[DashboardCore, OfflineSession]:
    session = OfflineSession()
    core = DashboardCore(
        config=Settings(_env_file=None, redis_enabled=False),
        http_session=session,  # type: ignore[arg-type]
        preference_store=PreferenceStore(tmp_path / "preferences.yaml"),
        **kwargs,
    )
    return core, session


@pytest.mark.asyncio
async def test_start_hydrates_and_dispose_keeps_injected_session(tmp_path: Path) -> None:
    core, session = _core(tmp_path)

    async with core:
        await core.start(auto_refresh=False)
        assert core.orchestrator is not None
        report = core.orchestrator.latest_report
        assert report is not None
        assert report.failures == frozenset(SourceId)
        assert not core.orchestrator.master_running
        assert any(e.kind == "synced" for e in core.feed.entries())

    assert not session.closed


@pytest.mark.asyncio
async def test_dispatch_requires_start_and_known_command(tmp_path: Path) -> None:
    core, _ = _core(tmp_path)

    with pytest.raises(ValueError):
        await core.dispatch("explode")
    with pytest.raises(RuntimeError):
        await core.dispatch("hydrate")
    await core.dispose()
    with pytest.raises(RuntimeError):
        await core.start()


@pytest.mark.asyncio
async def test_market_refresh_and_auto_refresh_toggle(tmp_path: Path) -> None:
    core, _ = _core(tmp_path)
    await core.start(auto_refresh=False, hydrate=False)

    snap = await core.dispatch("refresh_markets")
    assert snap.source is SourceId.CRYPTO and snap.is_fallback

    assert await core.dispatch("toggle_auto_refresh") is True
    assert core.orchestrator is not None and core.orchestrator.master_running
    assert await core.dispatch("toggle_auto_refresh") is False
    await core.dispose()


@pytest.mark.asyncio
async def test_chat_commands_use_demo_engine_when_server_is_down(tmp_path: Path) -> None:
    core, _ = _core(tmp_path)
    await core.start(auto_refresh=False, hydrate=False)

    reply = await core.dispatch("respond", prompt="hello")

    assert reply is not None and "hello" in reply
    assert len(core.session.transcript()) == 2
    assert core.session.greeting == DEMO_GREETING
    assert core.session.backend is not None
    assert core.session.backend.kind is BackendKind.FALLBACK

    await core.dispatch("clear")
    assert core.session.transcript() == ()
    await core.dispose()


@pytest.mark.asyncio
async def test_settings_commands_persist_and_apply_interval(tmp_path: Path) -> None:
    core, _ = _core(tmp_path)
    await core.start(auto_refresh=False, hydrate=False)
    assert core.orchestrator is not None

    prefs = await core.dispatch("save_settings", theme="light", master_interval_ms=5_000)
    assert prefs == Preferences(theme="light", master_interval_ms=5_000)
    assert core.orchestrator.schedule.master_interval == 5.0
    assert core.preference_store.load() == prefs

    prefs = await core.dispatch("reset_settings")
    assert prefs == Preferences()
    assert core.orchestrator.schedule.master_interval == 20.0
    await core.dispose()


@pytest.mark.asyncio
async def test_saved_interval_is_used_on_next_start(tmp_path: Path) -> None:
    PreferenceStore(tmp_path / "preferences.yaml").save(
        Preferences(master_interval_ms=3_000)
    )
    core, _ = _core(tmp_path)
    await core.start(auto_refresh=False, hydrate=False)

    assert core.orchestrator is not None
    assert core.orchestrator.schedule.master_interval == 3.0
    await core.dispose()


@pytest.mark.asyncio
async def test_injected_redis_receives_reports(tmp_path: Path) -> None:
    redis = DummyRedis()
    core, _ = _core(tmp_path, redis=redis)

    await core.start(auto_refresh=False)
    await core.dispose()

    assert core.publisher is not None
    assert core.publisher.published == 1
    assert len(redis.sets) == 1
    channels = {channel for channel, _ in redis.messages}
    assert any(channel.endswith(":report") for channel in channels)
    assert any(channel.endswith(":events") for channel in channels)


def test_command_names_are_stable() -> None:
    assert COMMANDS == (
        "hydrate",
        "refresh_markets",
        "toggle_auto_refresh",
        "respond",
        "clear",
        "save_settings",
        "reset_settings",
    )


@pytest.mark.asyncio
async def test_dispatch_after_dispose_is_refused(tmp_path: Path) -> None:
    core, _ = _core(tmp_path)
    await core.start(auto_refresh=False, hydrate=False)
    await core.dispose()

    with pytest.raises(RuntimeError):
        await core.dispatch("hydrate")
    assert core.orchestrator is not None
    assert core.orchestrator.latest_report is None
