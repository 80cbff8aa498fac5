"""AI-бекенди чату: закритий інтерфейс `Backend` з двома варіантами.

- RemoteBackend — локальний OpenAI-сумісний inference-сервер
  (`POST {base}/chat/completions`);
- FallbackBackend — локальний echo-відповідач, ніколи не падає.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from core.contracts.dashboard import Message
from data.fetch_gateway import FetchError, FetchGateway


class BackendUnavailable(Exception):
    """Бекенд не зміг відповісти на конкретний запит."""


class BackendKind(Enum):
    REMOTE = "remote"
    FALLBACK = "fallback"


class Backend(ABC):
    """Перетворює історію розмови + новий prompt у відповідь асистента."""

    kind: BackendKind

    @abstractmethod
    async def respond(self, history: Sequence[Message], prompt: str) -> str:
        """Повертає текст відповіді або кидає BackendUnavailable."""


def _extract_reply(raw: Any) -> str:
    """`{choices: [{message: {content}}]}` → content."""

    choices = raw.get("choices") if isinstance(raw, Mapping) else None
    if not isinstance(choices, list) or not choices:
        raise BackendUnavailable("відповідь без choices")
    first = choices[0]
    message = first.get("message") if isinstance(first, Mapping) else None
    content = message.get("content") if isinstance(message, Mapping) else None
    if not isinstance(content, str):
        raise BackendUnavailable("відповідь без message.content")
    return content


class RemoteBackend(Backend):
    kind = BackendKind.REMOTE

    def __init__(
        self,
        gateway: FetchGateway,
        *,
        base_url: str,
        model: str,
        timeout: float,
    ) -> None:
        self.gateway = gateway
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    async def respond(self, history: Sequence[Message], prompt: str) -> str:
        messages = [msg.as_dict() for msg in history]
        messages.append({"role": "user", "content": prompt})
        body = {"model": self.model, "messages": messages}
        try:
            raw = await self.gateway.post_json(
                self.chat_url, body, timeout=self.timeout
            )
        except FetchError as exc:
            raise BackendUnavailable(str(exc)) from exc
        return _extract_reply(raw)


class FallbackBackend(Backend):
    kind = BackendKind.FALLBACK

    async def respond(self, history: Sequence[Message], prompt: str) -> str:
        return (
            "Demo engine active.\n\n"
            f'You said: "{prompt}".\n\n'
            "Start the local inference server to enable the full AI model."
        )


__all__ = [
    "Backend",
    "BackendKind",
    "BackendUnavailable",
    "FallbackBackend",
    "RemoteBackend",
]
