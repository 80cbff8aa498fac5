"""Тести AIBackendSelector: одноразова проба, fallback-чат, відновлення після помилок."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from app.telemetry import ActivityFeed, EventBus
from assistant.backends import BackendKind
from assistant.selector import (
    AI_ERROR_MESSAGE,
    DEMO_GREETING,
    REMOTE_GREETING,
    AIBackendSelector,
    SelectorState,
)
from assistant.session import ConversationSession
from data.fetch_gateway import HttpError, TransportError

BASE = "http://localhost:1234/v1"


def _reply(text: str) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


class DummyGateway:
    """Фейковий FetchGateway для inference-сервера."""

    def __init__(self, *, server_up: bool, chat: Any = None) -> None:
        self.server_up = server_up
        self.chat = chat if chat is not None else _reply("Hi there")
        self.gets: list[tuple[str, float | None]] = []
        self.posts: list[tuple[str, dict[str, Any]]] = []
        self.busy_seen: list[bool] = []
        self.sent_history: list[list[dict[str, Any]]] = []
        self.session: ConversationSession | None = None

    async def get_json(self, url: str, *, params: Any = None, timeout: float | None = None) -> Any:
        self.gets.append((url, timeout))
        await asyncio.sleep(0)
        if not self.server_up:
            raise TransportError(url, "connection refused")
        return {"data": [{"id": "local-model"}]}

    async def post_json(self, url: str, body: dict[str, Any], *, timeout: float | None = None) -> Any:
        self.posts.append((url, body))
        if self.session is not None:
            self.busy_seen.append(self.session.busy)
            self.sent_history.append(self.session.history_payload())
        if isinstance(self.chat, BaseException):
            raise self.chat
        return self.chat


def _selector(gateway: DummyGateway, events: EventBus | None = None) -> AIBackendSelector:
    return AIBackendSelector(
        gateway,  # type: ignore[arg-type]
        base_url=BASE,
        model="local-model",
        probe_timeout=3.0,
        chat_timeout=60.0,
        events=events,
    )


@pytest.mark.asyncio
async def test_fallback_scenario_echoes_prompt() -> None:
    gateway = DummyGateway(server_up=False)
    selector = _selector(gateway)
    session = ConversationSession()

    reply = await selector.respond(session, "hello")

    assert reply is not None and "hello" in reply
    assert len(session.transcript()) == 2
    assert [m.role for m in session.transcript()] == ["user", "assistant"]
    assert session.transcript()[1].content == reply
    assert session.backend is not None and session.backend.kind is BackendKind.FALLBACK
    assert session.greeting == DEMO_GREETING
    assert selector.state(session) is SelectorState.FALLBACK_SELECTED
    assert not session.busy


@pytest.mark.asyncio
async def test_remote_backend_receives_history_and_prompt() -> None:
    gateway = DummyGateway(server_up=True)
    selector = _selector(gateway)
    session = ConversationSession()
    gateway.session = session

    first = await selector.respond(session, "  hi  ")
    await selector.respond(session, "again")

    assert first == "Hi there"
    assert session.greeting == REMOTE_GREETING
    assert gateway.gets == [(f"{BASE}/models", 3.0)]
    url, body = gateway.posts[1]
    assert url == f"{BASE}/chat/completions"
    assert body["model"] == "local-model"
    assert body["messages"] == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "Hi there"},
        {"role": "user", "content": "again"},
    ]
    assert gateway.busy_seen == [True, True]
    # на бекенд іде рівно транскрипт сесії на момент запиту
    assert [sent["messages"] for _, sent in gateway.posts] == gateway.sent_history
    assert not session.busy


@pytest.mark.asyncio
async def test_probe_happens_once_even_for_concurrent_callers() -> None:
    gateway = DummyGateway(server_up=True)
    selector = _selector(gateway)
    session = ConversationSession()

    b1, b2 = await asyncio.gather(
        selector.ensure_backend(session), selector.ensure_backend(session)
    )

    assert b1 is b2
    assert selector.probe_count == 1
    assert len(gateway.gets) == 1


@pytest.mark.asyncio
async def test_empty_prompt_is_ignored_without_probe() -> None:
    gateway = DummyGateway(server_up=True)
    selector = _selector(gateway)
    session = ConversationSession()

    assert await selector.respond(session, "   ") is None
    assert await selector.respond(session, "") is None

    assert session.transcript() == ()
    assert selector.probe_count == 0
    assert selector.state(session) is SelectorState.UNPROBED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        HttpError(f"{BASE}/chat/completions", 500),
        TransportError(f"{BASE}/chat/completions", "reset"),
        {"choices": []},
    ],
)
async def test_remote_failure_appends_error_and_keeps_remote(failure: Any) -> None:
    events = EventBus()
    feed = ActivityFeed()
    events.subscribe(feed)
    gateway = DummyGateway(server_up=True, chat=failure)
    selector = _selector(gateway, events)
    session = ConversationSession()

    reply = await selector.respond(session, "question")

    assert reply is None
    assert [m.content for m in session.transcript()] == ["question", AI_ERROR_MESSAGE]
    assert session.backend is not None and session.backend.kind is BackendKind.REMOTE
    assert not session.busy
    assert [e.kind for e in feed.entries()] == ["ai-error"]

    # наступна спроба йде на той самий remote, без повторної проби
    gateway.chat = _reply("ok now")
    assert await selector.respond(session, "retry") == "ok now"
    assert selector.probe_count == 1


@pytest.mark.asyncio
async def test_clear_empties_transcript_but_keeps_backend() -> None:
    gateway = DummyGateway(server_up=False)
    selector = _selector(gateway)
    session = ConversationSession()
    await selector.respond(session, "hello")
    backend = session.backend

    selector.clear(session)

    assert session.transcript() == ()
    assert session.backend is backend
    assert session.greeting == DEMO_GREETING
    await selector.respond(session, "hello again")
    assert selector.probe_count == 1
    assert len(session) == 2
