"""Контракти (schemas) між модулями проєкту.

Тут зберігаються dataclass-описання снапшотів, звітів і повідомлень, а також
базовий конверт із версіонуванням схеми для зовнішніх консюмерів.

Принцип: contract-first — спочатку описуємо payload, потім імплементуємо.
"""

from __future__ import annotations

from .base import SCHEMA_VERSION, Envelope, make_envelope
from .dashboard import (  # noqa: F401
    ORIGIN_FALLBACK,
    ORIGIN_LIVE,
    AssetQuote,
    CryptoPayload,
    DailyForecast,
    DashboardEvent,
    EventKind,
    FxPayload,
    HydrateReport,
    Message,
    MessageRole,
    PriceSeries,
    Snapshot,
    SnapshotOrigin,
    SourceId,
    WeatherPayload,
)

__all__ = [
    "Envelope",
    "SCHEMA_VERSION",
    "make_envelope",
    "AssetQuote",
    "CryptoPayload",
    "DailyForecast",
    "DashboardEvent",
    "EventKind",
    "FxPayload",
    "HydrateReport",
    "Message",
    "MessageRole",
    "ORIGIN_FALLBACK",
    "ORIGIN_LIVE",
    "PriceSeries",
    "Snapshot",
    "SnapshotOrigin",
    "SourceId",
    "WeatherPayload",
]
