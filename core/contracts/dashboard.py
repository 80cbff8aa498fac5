"""Канонічні контракти дашборду: снапшоти джерел, звіт циклу, чат, події.

Призначення:
- SSOT для типів, якими обмінюються адаптери джерел, оркестратор, чат і
  рендерери;
- усі типи незмінні (frozen): новий цикл створює новий об'єкт, старий не
  мутується.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Generic, Literal, TypeVar

# ── Джерела ────────────────────────────────────────────────────────────────


class SourceId(Enum):
    """Фіксований набір зовнішніх джерел даних."""

    CRYPTO = "crypto"
    WEATHER = "weather"
    FX = "fx"


SnapshotOrigin = Literal["live", "fallback"]
ORIGIN_LIVE: SnapshotOrigin = "live"
ORIGIN_FALLBACK: SnapshotOrigin = "fallback"


# ── Payload-и ──────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class PriceSeries:
    """Часовий ряд цін (погодинні точки, за зростанням часу)."""

    timestamps: tuple[datetime, ...]
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.timestamps) != len(self.values):
            raise ValueError("timestamps і values мають бути однакової довжини")


@dataclass(frozen=True, slots=True)
class AssetQuote:
    """Нормалізований рядок таблиці ринків для одного активу."""

    asset_id: str
    name: str
    symbol: str
    price_usd: float
    change_pct_24h: float
    high_24h: float
    low_24h: float
    market_cap_usd: float
    history: PriceSeries


@dataclass(frozen=True, slots=True)
class CryptoPayload:
    assets: tuple[AssetQuote, ...]

    def asset(self, symbol: str) -> AssetQuote | None:
        wanted = symbol.upper()
        for quote in self.assets:
            if quote.symbol == wanted:
                return quote
        return None


@dataclass(frozen=True, slots=True)
class DailyForecast:
    """Прогноз на кілька днів: мітки та max/min температури."""

    labels: tuple[str, ...]
    max_temps: tuple[float, ...]
    min_temps: tuple[float, ...]

    def __post_init__(self) -> None:
        if not (len(self.labels) == len(self.max_temps) == len(self.min_temps)):
            raise ValueError("labels/max_temps/min_temps мають бути однакової довжини")


@dataclass(frozen=True, slots=True)
class WeatherPayload:
    temperature_c: float
    windspeed_kmh: float
    humidity_pct: float
    weathercode: int
    forecast: DailyForecast


@dataclass(frozen=True, slots=True)
class FxPayload:
    """Курси валют відносно `base` (USD)."""

    base: str
    rates: Mapping[str, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))


PayloadT = TypeVar("PayloadT")


@dataclass(frozen=True)
class Snapshot(Generic[PayloadT]):
    """Одне нормалізоване читання джерела, позначене live або fallback.

    Інваріант: `payload` завжди повністю заповнений, навіть для fallback.
    """

    source: SourceId
    fetched_at: datetime
    origin: SnapshotOrigin
    payload: PayloadT

    @property
    def is_fallback(self) -> bool:
        return self.origin == ORIGIN_FALLBACK


# ── Звіт циклу ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class HydrateReport:
    """Результат одного hydrate-циклу по всіх джерелах."""

    cycle_start: datetime
    results: Mapping[SourceId, Snapshot]
    failures: frozenset[SourceId] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # знімок мапи: пізніші зміни вихідного dict на звіт не впливають
        object.__setattr__(self, "results", MappingProxyType(dict(self.results)))
        object.__setattr__(self, "failures", frozenset(self.failures))

    @property
    def fully_live(self) -> bool:
        return not self.failures


# ── Чат ────────────────────────────────────────────────────────────────────

MessageRole = Literal["user", "assistant"]


@dataclass(frozen=True, slots=True)
class Message:
    role: MessageRole
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


# ── Observability ──────────────────────────────────────────────────────────

EventKind = Literal["synced", "source-failed", "ai-error"]


@dataclass(frozen=True, slots=True)
class DashboardEvent:
    """Подія для тостів/стрічки активності (auto-dismiss робить рендерер)."""

    kind: EventKind
    detail: str
    ts: datetime


__all__ = [
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
