"""Тести детермінованих fallback-генераторів і розрахунку 24h зміни."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from config.config import CRYPTO_ASSETS, FALLBACK_FX_RATES
from data.fallback import (
    fallback_crypto,
    fallback_fx,
    fallback_weather,
    synthetic_history,
)
from data.utils import compute_change_pct, series_high_low

NOW = datetime(2025, 3, 4, 15, 42, 10, tzinfo=UTC)


def test_compute_change_pct_first_to_last() -> None:
    assert compute_change_pct([100.0, 100.0, 130.0]) == 30.0
    assert compute_change_pct([200.0, 150.0]) == -25.0


def test_compute_change_pct_degenerate_series_is_zero() -> None:
    assert compute_change_pct([100.0]) == 0.0
    assert compute_change_pct([]) == 0.0
    assert compute_change_pct([0.0, 10.0]) == 0.0


def test_series_high_low_defaults_on_empty() -> None:
    assert series_high_low([3.0, 1.0, 2.0]) == (3.0, 1.0)
    assert series_high_low([], default=7.0) == (7.0, 7.0)


def test_synthetic_history_is_deterministic_and_hourly() -> None:
    first = synthetic_history(68_000.0, now=NOW)
    second = synthetic_history(68_000.0, now=NOW)
    assert first == second
    assert len(first.values) == 24
    assert all(v >= 1.0 for v in first.values)
    # остання точка: початок поточної години, крок рівно година
    assert first.timestamps[-1] == NOW.replace(minute=0, second=0)
    steps = {b - a for a, b in zip(first.timestamps, first.timestamps[1:])}
    assert steps == {timedelta(hours=1)}


def test_synthetic_history_is_total_for_bad_bases() -> None:
    for base in (0.0, -5.0, float("nan"), float("inf")):
        series = synthetic_history(base, now=NOW)
        assert len(series.values) == 24
        assert all(v >= 1.0 for v in series.values)


def test_fallback_payloads_are_complete() -> None:
    crypto = fallback_crypto(now=NOW)
    assert [quote.symbol for quote in crypto.assets] == list(CRYPTO_ASSETS)
    btc = crypto.asset("btc")
    assert btc is not None
    assert btc.price_usd == CRYPTO_ASSETS["BTC"][2]
    assert btc.low_24h <= btc.high_24h
    assert btc.change_pct_24h == compute_change_pct(btc.history.values)

    weather = fallback_weather()
    assert len(weather.forecast.labels) == len(weather.forecast.max_temps) == 5

    fx = fallback_fx()
    assert fx.base == "USD"
    assert dict(fx.rates) == FALLBACK_FX_RATES
