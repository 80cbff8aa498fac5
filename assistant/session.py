"""Стан однієї розмови: транскрипт, busy-прапорець, вибраний бекенд."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from core.contracts.dashboard import Message, MessageRole

if TYPE_CHECKING:  # pragma: no cover - лише для тайпінгу
    from assistant.backends import Backend


@dataclass
class ConversationSession:
    """Чистий контейнер стану; мутується лише через AIBackendSelector.

    `backend is None` означає "ще не пробували". `greeting` — вітальна
    репліка після проби: рендериться над транскриптом, але в історію,
    що йде на бекенд, не потрапляє.
    """

    messages: list[Message] = field(default_factory=list)
    busy: bool = False
    backend: Backend | None = None
    greeting: str | None = None

    def append(self, role: MessageRole, content: str) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def reset(self) -> None:
        self.messages.clear()

    def transcript(self) -> tuple[Message, ...]:
        return tuple(self.messages)

    def history_payload(self) -> list[dict[str, Any]]:
        return [message.as_dict() for message in self.messages]

    def __len__(self) -> int:
        return len(self.messages)


__all__ = ["ConversationSession"]
