"""Тести бекендів чату: формат запиту Remote і відповідь Fallback."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from assistant.backends import (
    BackendKind,
    BackendUnavailable,
    FallbackBackend,
    RemoteBackend,
)
from core.contracts.dashboard import Message
from data.fetch_gateway import DecodeError


class DummyGateway:
    def __init__(self, result: Any) -> None:
        self.result = result
        self.calls: list[tuple[str, dict[str, Any], float | None]] = []

    async def post_json(self, url: str, body: dict[str, Any], *, timeout: float | None = None) -> Any:
        self.calls.append((url, body, timeout))
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def test_fallback_backend_echoes_prompt() -> None:
    backend = FallbackBackend()
    reply = asyncio.run(backend.respond((), "hello"))

    assert backend.kind is BackendKind.FALLBACK
    assert reply == (
        "Demo engine active.\n\n"
        'You said: "hello".\n\n'
        "Start the local inference server to enable the full AI model."
    )


def test_remote_backend_posts_openai_style_body() -> None:
    gateway = DummyGateway({"choices": [{"message": {"content": "pong"}}]})
    backend = RemoteBackend(
        gateway,  # type: ignore[arg-type]
        base_url="http://ai.local/v1/",
        model="m1",
        timeout=42.0,
    )
    history = (Message(role="user", content="ping?"), Message(role="assistant", content="..."))

    reply = asyncio.run(backend.respond(history, "ping"))

    assert reply == "pong"
    url, body, timeout = gateway.calls[0]
    assert url == "http://ai.local/v1/chat/completions"
    assert timeout == 42.0
    assert body == {
        "model": "m1",
        "messages": [
            {"role": "user", "content": "ping?"},
            {"role": "assistant", "content": "..."},
            {"role": "user", "content": "ping"},
        ],
    }


@pytest.mark.parametrize(
    "result",
    [
        DecodeError("http://ai.local/v1/chat/completions", "bad json"),
        {"choices": [{"message": {"content": None}}]},
        {"error": "model not loaded"},
        ["not", "a", "mapping"],
    ],
)
def test_remote_backend_wraps_failures(result: Any) -> None:
    backend = RemoteBackend(
        DummyGateway(result),  # type: ignore[arg-type]
        base_url="http://ai.local/v1",
        model="m1",
        timeout=1.0,
    )

    with pytest.raises(BackendUnavailable):
        asyncio.run(backend.respond((), "ping"))
