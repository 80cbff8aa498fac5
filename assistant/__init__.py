"""Чат-асистент дашборду: сесія, бекенди та селектор."""

from .backends import (
    Backend,
    BackendKind,
    BackendUnavailable,
    FallbackBackend,
    RemoteBackend,
)
from .selector import AIBackendSelector, SelectorState
from .session import ConversationSession

__all__ = [
    "AIBackendSelector",
    "Backend",
    "BackendKind",
    "BackendUnavailable",
    "ConversationSession",
    "FallbackBackend",
    "RemoteBackend",
    "SelectorState",
]
