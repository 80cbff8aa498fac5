"""Центральне джерело конфігурації Pulseboard.

У модулі зібрані константи джерел даних (URL, fallback-бази), інтервали
оновлення та Redis-ключі. Значення можна перевизначити через ENV.
"""

from __future__ import annotations

import os

__all__ = [
    "PULSE_MODE",
    "NAMESPACE",
    "CRYPTO_PRICES_URL",
    "CRYPTO_HISTORY_URL",
    "CRYPTO_HISTORY_POINTS",
    "CRYPTO_ASSETS",
    "WEATHER_URL",
    "WEATHER_PARAMS",
    "FX_URL",
    "FX_SYMBOLS",
    "FALLBACK_FX_RATES",
    "FALLBACK_WEATHER",
    "SYNTHETIC_JITTER_AMPLITUDE",
    "HTTP_TIMEOUT_SEC",
    "SOURCE_POLL_INTERVAL_SEC",
    "DEFAULT_MASTER_INTERVAL_MS",
    "MIN_MASTER_INTERVAL_SEC",
    "ACTIVITY_FEED_LIMIT",
    "INFERENCE_BASE_URL",
    "INFERENCE_MODEL",
    "INFERENCE_PROBE_TIMEOUT_SEC",
    "INFERENCE_CHAT_TIMEOUT_SEC",
    "REDIS_CHANNEL_REPORT",
    "REDIS_SNAPSHOT_KEY_REPORT",
    "REDIS_CHANNEL_EVENTS",
    "REPORT_SNAPSHOT_TTL_SEC",
]


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = str(raw).strip()
    return value or default


def _env_float(name: str, default: float) -> float:
    """Читає float із ENV; некоректне значення → дефолт."""

    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(str(raw).strip())
    except ValueError:
        return default


def _env_run_mode(default: str = "local") -> str:
    """Повертає режим запуску: `prod` або `local`.

    Пріоритети:
    - якщо `PULSE_MODE` задано → беремо його;
    - інакше → дефолт.
    """

    raw = os.getenv("PULSE_MODE")
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in {"local", "dev"}:
        return "local"
    if value in {"prod", "production"}:
        return "prod"
    return default


PULSE_MODE: str = _env_run_mode("local")


def _default_namespace_for_mode(mode: str) -> str:
    mode_norm = str(mode or "").strip().lower()
    if mode_norm == "local":
        return "pulseboard_local"
    return "pulseboard"


NAMESPACE: str = _env_str("PULSE_NAMESPACE", _default_namespace_for_mode(PULSE_MODE))

# ──────────────────────────────────────────────────────────────────────────────
# ДЖЕРЕЛА ДАНИХ
# ──────────────────────────────────────────────────────────────────────────────
#: Поточні ціни BTC/ETH у USD (CryptoCompare)
CRYPTO_PRICES_URL: str = _env_str(
    "PULSE_CRYPTO_PRICES_URL",
    "https://min-api.cryptocompare.com/data/pricemulti",
)

#: Погодинна історія (CryptoCompare v2 histohour)
CRYPTO_HISTORY_URL: str = _env_str(
    "PULSE_CRYPTO_HISTORY_URL",
    "https://min-api.cryptocompare.com/data/v2/histohour",
)
CRYPTO_HISTORY_POINTS: int = 24

#: Активи крипто-панелі: symbol -> (asset_id, name, fallback-ціна, market cap)
CRYPTO_ASSETS: dict[str, tuple[str, str, float, float]] = {
    "BTC": ("bitcoin", "Bitcoin", 68_000.0, 1_340_000_000_000.0),
    "ETH": ("ethereum", "Ethereum", 3_600.0, 440_000_000_000.0),
}

#: Open-Meteo прогноз (поточна погода + 5 днів)
WEATHER_URL: str = _env_str(
    "PULSE_WEATHER_URL", "https://api.open-meteo.com/v1/forecast"
)
WEATHER_PARAMS: dict[str, str] = {
    "latitude": _env_str("PULSE_WEATHER_LAT", "54.28"),
    "longitude": _env_str("PULSE_WEATHER_LON", "-0.40"),
    "current_weather": "true",
    "hourly": "relativehumidity_2m",
    "daily": "temperature_2m_max,temperature_2m_min,wind_speed_10m_max",
    "forecast_days": "5",
    "timezone": "auto",
}

#: Frankfurter курси від USD
FX_URL: str = _env_str("PULSE_FX_URL", "https://api.frankfurter.app/latest")
FX_SYMBOLS: tuple[str, ...] = ("EUR", "GBP")

# ── Fallback-дані (детерміновані) ──
FALLBACK_FX_RATES: dict[str, float] = {"EUR": 0.92, "GBP": 0.79}
FALLBACK_WEATHER: dict[str, object] = {
    "temperature_c": 12.0,
    "windspeed_kmh": 4.0,
    "humidity_pct": 68.0,
    "weathercode": 0,
    "labels": ("D1", "D2", "D3", "D4", "D5"),
    "max_temps": (13.0, 14.0, 15.0, 14.0, 13.0),
    "min_temps": (8.0, 9.0, 9.0, 8.0, 7.0),
}
#: Амплітуда синтетичного "шуму" для fallback-історії цін
SYNTHETIC_JITTER_AMPLITUDE: float = 120.0

# ──────────────────────────────────────────────────────────────────────────────
# ІНТЕРВАЛИ
# ──────────────────────────────────────────────────────────────────────────────
HTTP_TIMEOUT_SEC: float = _env_float("PULSE_HTTP_TIMEOUT_SEC", 10.0)
#: Фіксований фоновий інтервал для ціни/таблиці ринків (незалежно від master)
SOURCE_POLL_INTERVAL_SEC: float = _env_float("PULSE_SOURCE_POLL_SEC", 60.0)
DEFAULT_MASTER_INTERVAL_MS: int = 20_000
MIN_MASTER_INTERVAL_SEC: float = 1.0
ACTIVITY_FEED_LIMIT: int = 40

# ──────────────────────────────────────────────────────────────────────────────
# ЛОКАЛЬНИЙ INFERENCE-СЕРВЕР
# ──────────────────────────────────────────────────────────────────────────────
INFERENCE_BASE_URL: str = "http://localhost:1234/v1"
INFERENCE_MODEL: str = "local-model"
INFERENCE_PROBE_TIMEOUT_SEC: float = 3.0
INFERENCE_CHAT_TIMEOUT_SEC: float = 60.0

# ──────────────────────────────────────────────────────────────────────────────
# REDIS: КАНАЛИ ТА КЛЮЧІ
# ──────────────────────────────────────────────────────────────────────────────
#: Канал публікації свіжого HydrateReport
REDIS_CHANNEL_REPORT: str = f"{NAMESPACE}:report"

#: Ключ снапшота останнього HydrateReport
REDIS_SNAPSHOT_KEY_REPORT: str = f"{NAMESPACE}:report:snapshot"

#: Канал observability-подій (synced/source-failed/ai-error)
REDIS_CHANNEL_EVENTS: str = f"{NAMESPACE}:events"

REPORT_SNAPSHOT_TTL_SEC: int = 180
