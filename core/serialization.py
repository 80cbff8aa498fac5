"""SSOT для серіалізації (JSON) та часу.

Мета: один консервативний набір функцій для `json.dumps/json.loads` та
UTC-часу, щоб звіти, події та Redis-снапшоти мали однаковий формат.

Принципи:
- без "магії" та прихованих перетворень;
- максимально сумісно зі stdlib `json`;
- fallback у `str(obj)` тільки коли інакше не можна.
"""

from __future__ import annotations

# ── Imports ───────────────────────────────────────────────────────────────
import json
import math
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from datetime import UTC, date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

# ── Time ──────────────────────────────────────────────────────────────────


def utc_now() -> datetime:
    """Повертає поточний aware datetime у UTC."""

    return datetime.now(tz=UTC)


def dt_to_iso_z(dt: datetime) -> str:
    """Конвертує datetime у RFC3339 рядок із суфіксом `Z` (UTC).

    - Якщо `dt` naive (tzinfo=None), трактуємо як UTC.
    - Якщо `dt` має tzinfo, переводимо у UTC.
    """

    if dt.tzinfo is None:
        dt_utc = dt.replace(tzinfo=UTC)
    else:
        dt_utc = dt.astimezone(UTC)
    return dt_utc.isoformat().replace("+00:00", "Z")


def safe_float(value: Any, *, finite: bool = False) -> float | None:
    """Безпечно приводить значення до float.

    bool не вважаємо числом. Якщо `finite=True`, відкидає NaN/inf.
    """

    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if finite and not math.isfinite(result):
        return None
    return result


# ── JSON-friendly conversion ──────────────────────────────────────────────


def _key_to_str(key: Any) -> str:
    if isinstance(key, Enum):
        return key.name
    return str(key)


def to_jsonable(obj: Any) -> Any:
    """Конвертує об'єкт у JSON-friendly значення (консервативно).

    - datetime -> RFC3339 з `Z` (UTC)
    - date -> ISO YYYY-MM-DD
    - Enum -> name (і як значення, і як ключ мапи)
    - Path -> str
    - dataclass -> dict по полях + рекурсія (read-only мапи теж)
    - колекції/мапи обробляються рекурсивно; крайній fallback: `str(obj)`.
    """

    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, datetime):
        return dt_to_iso_z(obj)

    if isinstance(obj, date):
        return obj.isoformat()

    if isinstance(obj, Enum):
        return obj.name

    if isinstance(obj, Path):
        return str(obj)

    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}

    if isinstance(obj, Mapping):
        return {_key_to_str(k): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (set, frozenset)):
        return sorted((to_jsonable(v) for v in obj), key=str)

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]

    return str(obj)


# ── JSON I/O ──────────────────────────────────────────────────────────────


def json_dumps(obj: Any, *, pretty: bool = False) -> str:
    """Серіалізує об'єкт у JSON-рядок (deterministic, UTF-8 friendly).

    `pretty=True` додає індентацію (для debug/файлів), не для гарячого I/O.
    """

    payload = to_jsonable(obj)
    if pretty:
        return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)
    return json.dumps(
        payload,
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    )


def json_loads(data: str | bytes | bytearray) -> Any:
    """Десеріалізує JSON у Python-об'єкт.

    Для bytes використовуємо UTF-8 з ``errors='replace'``.
    """

    if isinstance(data, (bytes, bytearray)):
        text = data.decode("utf-8", errors="replace")
    else:
        text = data
    return json.loads(text)


__all__ = [
    "dt_to_iso_z",
    "json_dumps",
    "json_loads",
    "safe_float",
    "to_jsonable",
    "utc_now",
]
