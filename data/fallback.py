"""Детерміновані синтетичні payload-и для джерел, що впали.

Контракт:
- кожен генератор повертає ПОВНИЙ, схемно-валідний payload;
- генератори чисті та тотальні: не роблять I/O, не блокують і не кидають
  винятків для будь-яких вхідних чисел;
- однакові аргументи → однаковий результат (jitter — `random.Random` із
  сідом від бази).
"""

from __future__ import annotations

import math
import random
from datetime import UTC, datetime, timedelta

from config.config import (
    CRYPTO_ASSETS,
    CRYPTO_HISTORY_POINTS,
    FALLBACK_FX_RATES,
    FALLBACK_WEATHER,
    SYNTHETIC_JITTER_AMPLITUDE,
)
from core.contracts.dashboard import (
    AssetQuote,
    CryptoPayload,
    DailyForecast,
    FxPayload,
    PriceSeries,
    WeatherPayload,
)
from data.utils import compute_change_pct, series_high_low


def _hour_anchor(now: datetime) -> datetime:
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(UTC).replace(minute=0, second=0, microsecond=0)


def synthetic_history(
    base: float,
    *,
    now: datetime,
    points: int = CRYPTO_HISTORY_POINTS,
) -> PriceSeries:
    """Погодинний ряд із `points` точок, що закінчується годиною `now`.

    value(i) = max(1, base + (sin(i / 3) + jitter(i)) * amplitude),
    де i — кількість годин до `now`, jitter ∈ [0, 0.5).
    """

    if not math.isfinite(base) or base <= 0:
        base = 1.0
    points = max(0, int(points))
    anchor = _hour_anchor(now)
    rng = random.Random(int(base * 100))

    timestamps: list[datetime] = []
    values: list[float] = []
    for i in range(points - 1, -1, -1):
        jitter = math.sin(i / 3) + rng.random() * 0.5
        timestamps.append(anchor - timedelta(hours=i))
        values.append(round(max(1.0, base + jitter * SYNTHETIC_JITTER_AMPLITUDE), 2))
    return PriceSeries(timestamps=tuple(timestamps), values=tuple(values))


def fallback_asset(symbol: str, *, now: datetime) -> AssetQuote:
    """Синтетичний рядок таблиці ринків для відомого символу."""

    asset_id, name, base_price, market_cap = CRYPTO_ASSETS[symbol]
    history = synthetic_history(base_price, now=now)
    high, low = series_high_low(history.values, default=base_price)
    return AssetQuote(
        asset_id=asset_id,
        name=name,
        symbol=symbol,
        price_usd=base_price,
        change_pct_24h=compute_change_pct(history.values),
        high_24h=high,
        low_24h=low,
        market_cap_usd=market_cap,
        history=history,
    )


def fallback_crypto(*, now: datetime) -> CryptoPayload:
    return CryptoPayload(
        assets=tuple(fallback_asset(symbol, now=now) for symbol in CRYPTO_ASSETS)
    )


def fallback_forecast() -> DailyForecast:
    return DailyForecast(
        labels=tuple(FALLBACK_WEATHER["labels"]),  # type: ignore[arg-type]
        max_temps=tuple(FALLBACK_WEATHER["max_temps"]),  # type: ignore[arg-type]
        min_temps=tuple(FALLBACK_WEATHER["min_temps"]),  # type: ignore[arg-type]
    )


def fallback_weather() -> WeatherPayload:
    return WeatherPayload(
        temperature_c=float(FALLBACK_WEATHER["temperature_c"]),  # type: ignore[arg-type]
        windspeed_kmh=float(FALLBACK_WEATHER["windspeed_kmh"]),  # type: ignore[arg-type]
        humidity_pct=float(FALLBACK_WEATHER["humidity_pct"]),  # type: ignore[arg-type]
        weathercode=int(FALLBACK_WEATHER["weathercode"]),  # type: ignore[call-overload]
        forecast=fallback_forecast(),
    )


def fallback_fx() -> FxPayload:
    return FxPayload(base="USD", rates=dict(FALLBACK_FX_RATES))


__all__ = [
    "fallback_asset",
    "fallback_crypto",
    "fallback_forecast",
    "fallback_fx",
    "fallback_weather",
    "synthetic_history",
]
