"""Адаптери зовнішніх джерел (Crypto, Weather, FX) → нормалізовані снапшоти.

Контракт `SourceAdapter.fetch_snapshot()`:
- ніколи не кидає (окрім скасування задачі);
- будь-який збій (TransportError/HttpError/DecodeError/PayloadError або
  несподіваний виняток парсера) логуються, породжує подію `source-failed` і
  замінюється детермінованим fallback-payload з `origin="fallback"`;
- успіх → `origin="live"`.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, ClassVar, Generic

import pandas as pd
from rich.logging import RichHandler

from config.config import (
    CRYPTO_ASSETS,
    CRYPTO_HISTORY_POINTS,
    CRYPTO_HISTORY_URL,
    CRYPTO_PRICES_URL,
    FALLBACK_WEATHER,
    FX_SYMBOLS,
    FX_URL,
    WEATHER_PARAMS,
    WEATHER_URL,
)
from core.contracts.dashboard import (
    ORIGIN_FALLBACK,
    ORIGIN_LIVE,
    AssetQuote,
    CryptoPayload,
    DailyForecast,
    EventKind,
    FxPayload,
    PayloadT,
    PriceSeries,
    Snapshot,
    SourceId,
    WeatherPayload,
)
from core.serialization import safe_float, utc_now
from data.fallback import fallback_crypto, fallback_fx, fallback_weather
from data.fetch_gateway import FetchError, FetchGateway, PayloadError
from data.utils import compute_change_pct, series_high_low
from utils.rich_console import get_rich_console

logger = logging.getLogger("data.sources")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=get_rich_console(), show_path=False))
    # Під pytest caplog навішує handler на root logger, тож вмикаємо propagate.
    logger.propagate = "pytest" in sys.modules

EmitFn = Callable[[EventKind, str], None]
Clock = Callable[[], datetime]

_SOURCE_TITLES: dict[SourceId, str] = {
    SourceId.CRYPTO: "Crypto prices",
    SourceId.WEATHER: "Weather",
    SourceId.FX: "FX rates",
}


class SourceAdapter(ABC, Generic[PayloadT]):
    """Базовий контракт адаптера одного джерела."""

    source_id: ClassVar[SourceId]

    def __init__(
        self,
        gateway: FetchGateway,
        *,
        emit: EmitFn | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.gateway = gateway
        self._emit = emit
        self._clock = clock

    async def fetch_snapshot(self) -> Snapshot[PayloadT]:
        fetched_at = self._clock()
        try:
            payload = await self.collect()
        except FetchError as exc:
            return self._fallback_snapshot(fetched_at, exc)
        except Exception as exc:
            logger.warning(
                "[Source] %s: несподівана помилка парсера",
                self.source_id.value,
                exc_info=True,
            )
            return self._fallback_snapshot(fetched_at, exc)
        return Snapshot(
            source=self.source_id,
            fetched_at=fetched_at,
            origin=ORIGIN_LIVE,
            payload=payload,
        )

    def _fallback_snapshot(
        self, fetched_at: datetime, exc: BaseException
    ) -> Snapshot[PayloadT]:
        logger.warning(
            "[Source] %s недоступне → fallback: %s", self.source_id.value, exc
        )
        if self._emit is not None:
            self._emit(
                "source-failed",
                f"{_SOURCE_TITLES[self.source_id]} unavailable",
            )
        return Snapshot(
            source=self.source_id,
            fetched_at=fetched_at,
            origin=ORIGIN_FALLBACK,
            payload=self.fallback_payload(fetched_at),
        )

    @abstractmethod
    async def collect(self) -> PayloadT:
        """Забирає та нормалізує live-дані; збій → FetchError."""

    @abstractmethod
    def fallback_payload(self, now: datetime) -> PayloadT:
        """Повний детермінований payload на випадок збою."""


# ── Crypto ─────────────────────────────────────────────────────────────────


def _parse_prices(raw: Any, url: str) -> dict[str, float]:
    if not isinstance(raw, Mapping):
        raise PayloadError(url, "очікувалась мапа цін")
    prices: dict[str, float] = {}
    for symbol in CRYPTO_ASSETS:
        entry = raw.get(symbol)
        value = safe_float(entry.get("USD"), finite=True) if isinstance(entry, Mapping) else None
        if value is None or value <= 0:
            raise PayloadError(url, f"немає ціни {symbol}/USD")
        prices[symbol] = value
    return prices


def _parse_history(raw: Any, url: str) -> PriceSeries:
    """Перетворює `Data.Data[*].{time, close}` у PriceSeries.

    Порядок — строго за зростанням часу, без дублікатів; рядки з
    некоректними числами відкидаються.
    """

    data = raw.get("Data") if isinstance(raw, Mapping) else None
    points = data.get("Data") if isinstance(data, Mapping) else None
    if not isinstance(points, list) or not points:
        raise PayloadError(url, "порожня історія")
    if not all(isinstance(p, Mapping) for p in points):
        raise PayloadError(url, "некоректні точки історії")

    df = pd.DataFrame([{"time": p.get("time"), "close": p.get("close")} for p in points])
    df["time"] = pd.to_numeric(df["time"], errors="coerce")
    df["close"] = pd.to_numeric(df["close"], errors="coerce")
    df = (
        df.dropna(subset=["time", "close"])
        .sort_values("time")
        .drop_duplicates(subset=["time"], keep="last")
        .reset_index(drop=True)
    )
    if df.empty:
        raise PayloadError(url, "історія без валідних точок")
    if len(df) > CRYPTO_HISTORY_POINTS + 1:
        df = df.tail(CRYPTO_HISTORY_POINTS + 1).reset_index(drop=True)

    timestamps = tuple(datetime.fromtimestamp(int(t), tz=UTC) for t in df["time"])
    values = tuple(float(v) for v in df["close"])
    return PriceSeries(timestamps=timestamps, values=values)


class CryptoAdapter(SourceAdapter[CryptoPayload]):
    """Ціни BTC/ETH + погодинні історії, 24h зміна з власного ряду."""

    source_id = SourceId.CRYPTO

    async def collect(self) -> CryptoPayload:
        symbols = list(CRYPTO_ASSETS)
        requests = [
            self.gateway.get_json(
                CRYPTO_PRICES_URL,
                params={"fsyms": ",".join(symbols), "tsyms": "USD"},
            )
        ]
        requests.extend(
            self.gateway.get_json(
                CRYPTO_HISTORY_URL,
                params={"fsym": symbol, "tsym": "USD", "limit": CRYPTO_HISTORY_POINTS},
            )
            for symbol in symbols
        )
        results = await asyncio.gather(*requests, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

        raw_prices, *raw_histories = results
        prices = _parse_prices(raw_prices, CRYPTO_PRICES_URL)
        assets: list[AssetQuote] = []
        for symbol, raw_history in zip(symbols, raw_histories):
            history = _parse_history(raw_history, CRYPTO_HISTORY_URL)
            asset_id, name, _base, market_cap = CRYPTO_ASSETS[symbol]
            high, low = series_high_low(history.values, default=prices[symbol])
            assets.append(
                AssetQuote(
                    asset_id=asset_id,
                    name=name,
                    symbol=symbol,
                    price_usd=prices[symbol],
                    change_pct_24h=compute_change_pct(history.values),
                    high_24h=high,
                    low_24h=low,
                    market_cap_usd=market_cap,
                    history=history,
                )
            )
        return CryptoPayload(assets=tuple(assets))

    def fallback_payload(self, now: datetime) -> CryptoPayload:
        return fallback_crypto(now=now)


# ── Weather ────────────────────────────────────────────────────────────────


def _parse_forecast(daily: Any, url: str) -> DailyForecast:
    if not isinstance(daily, Mapping):
        raise PayloadError(url, "немає daily прогнозу")
    days = daily.get("time")
    highs = daily.get("temperature_2m_max")
    lows = daily.get("temperature_2m_min")
    if not all(isinstance(col, list) for col in (days, highs, lows)):
        raise PayloadError(url, "daily прогноз неповний")
    if not days or not (len(days) == len(highs) == len(lows)):
        raise PayloadError(url, "daily колонки різної довжини")

    max_temps = [safe_float(v, finite=True) for v in highs]
    min_temps = [safe_float(v, finite=True) for v in lows]
    if any(v is None for v in max_temps + min_temps):
        raise PayloadError(url, "daily містить нечислові температури")
    # "2025-01-07" → "01-07"
    labels = tuple(str(d)[5:] if len(str(d)) > 5 else str(d) for d in days)
    return DailyForecast(
        labels=labels,
        max_temps=tuple(max_temps),  # type: ignore[arg-type]
        min_temps=tuple(min_temps),  # type: ignore[arg-type]
    )


class WeatherAdapter(SourceAdapter[WeatherPayload]):
    """Поточна погода, вологість і 5-денний прогноз (Open-Meteo)."""

    source_id = SourceId.WEATHER

    async def collect(self) -> WeatherPayload:
        raw = await self.gateway.get_json(WEATHER_URL, params=dict(WEATHER_PARAMS))
        if not isinstance(raw, Mapping):
            raise PayloadError(WEATHER_URL, "очікувався JSON-об'єкт")
        current = raw.get("current_weather")
        if not isinstance(current, Mapping):
            raise PayloadError(WEATHER_URL, "немає current_weather")
        temperature = safe_float(current.get("temperature"), finite=True)
        windspeed = safe_float(current.get("windspeed"), finite=True)
        if temperature is None or windspeed is None:
            raise PayloadError(WEATHER_URL, "current_weather неповний")

        # Вологість і код погоди необов'язкові: беремо дефолт, як і UI.
        humidity = None
        hourly = raw.get("hourly")
        if isinstance(hourly, Mapping):
            series = hourly.get("relativehumidity_2m")
            if isinstance(series, list) and series:
                humidity = safe_float(series[0], finite=True)
        if humidity is None:
            humidity = float(FALLBACK_WEATHER["humidity_pct"])  # type: ignore[arg-type]
        code = safe_float(current.get("weathercode"), finite=True)

        return WeatherPayload(
            temperature_c=temperature,
            windspeed_kmh=windspeed,
            humidity_pct=humidity,
            weathercode=int(code) if code is not None else int(FALLBACK_WEATHER["weathercode"]),  # type: ignore[call-overload]
            forecast=_parse_forecast(raw.get("daily"), WEATHER_URL),
        )

    def fallback_payload(self, now: datetime) -> WeatherPayload:
        return fallback_weather()


# ── FX ─────────────────────────────────────────────────────────────────────


class FxAdapter(SourceAdapter[FxPayload]):
    """Курси USD → EUR/GBP (Frankfurter)."""

    source_id = SourceId.FX

    async def collect(self) -> FxPayload:
        raw = await self.gateway.get_json(
            FX_URL, params={"from": "USD", "to": ",".join(FX_SYMBOLS)}
        )
        rates_raw = raw.get("rates") if isinstance(raw, Mapping) else None
        if not isinstance(rates_raw, Mapping):
            raise PayloadError(FX_URL, "немає rates")
        rates: dict[str, float] = {}
        for symbol in FX_SYMBOLS:
            value = safe_float(rates_raw.get(symbol), finite=True)
            if value is None or value <= 0:
                raise PayloadError(FX_URL, f"немає курсу {symbol}")
            rates[symbol] = value
        return FxPayload(base="USD", rates=rates)

    def fallback_payload(self, now: datetime) -> FxPayload:
        return fallback_fx()


def build_default_adapters(
    gateway: FetchGateway, *, emit: EmitFn | None = None
) -> dict[SourceId, SourceAdapter[Any]]:
    """Повний набір адаптерів у фіксованому порядку SourceId."""

    return {
        SourceId.CRYPTO: CryptoAdapter(gateway, emit=emit),
        SourceId.WEATHER: WeatherAdapter(gateway, emit=emit),
        SourceId.FX: FxAdapter(gateway, emit=emit),
    }


__all__ = [
    "CryptoAdapter",
    "FxAdapter",
    "SourceAdapter",
    "WeatherAdapter",
    "build_default_adapters",
]
