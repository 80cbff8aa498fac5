"""SSOT для форматування чисел/часу в консолі та логах дашборду.

Лише presentation-формати, без бізнес-логіки.

Принципи:
- однаковий формат у всіх місцях;
- контрольоване округлення (явні `digits`);
- некоректне значення → плейсхолдер, а не виняток.
"""

from __future__ import annotations

# ── Imports ───────────────────────────────────────────────────────────────
import math
from datetime import datetime
from typing import Any, Final

from core.serialization import dt_to_iso_z

# ── Helpers ───────────────────────────────────────────────────────────────

_PLACEHOLDER: Final[str] = "-"


def _to_finite(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


# ── Numbers ───────────────────────────────────────────────────────────────


def fmt_usd(value: Any) -> str:
    """`$68,000.00`; некоректне значення → `$-`."""

    num = _to_finite(value)
    if num is None:
        return f"${_PLACEHOLDER}"
    return f"${num:,.2f}"


def fmt_number(value: Any, *, digits: int = 2) -> str:
    """Число з роздільником тисяч і не більше `digits` знаків після коми."""

    num = _to_finite(value)
    if num is None:
        return _PLACEHOLDER
    text = f"{num:,.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def fmt_change(value: Any) -> str:
    """Відсоткова зміна зі знаком: `+30.00%`, `-1.25%`; None → `0.00%`."""

    num = _to_finite(value)
    if num is None:
        return "0.00%"
    sign = "+" if num > 0 else ""
    return f"{sign}{num:.2f}%"


def fmt_compact_usd(value: Any) -> str:
    """Капіталізація у короткій формі (K/M/B/T)."""

    num = _to_finite(value)
    if num is None:
        return _PLACEHOLDER
    if num >= 1e12:
        return f"${num / 1e12:.2f}T"
    if num >= 1e9:
        return f"${num / 1e9:.2f}B"
    if num >= 1e6:
        return f"${num / 1e6:.2f}M"
    if num >= 1e3:
        return f"${num / 1e3:.2f}K"
    return f"${num:.2f}"


def fmt_rate(value: Any, *, digits: int = 3) -> str:
    num = _to_finite(value)
    if num is None or num <= 0:
        return _PLACEHOLDER
    return f"{num:.{digits}f}"


# ── Time ──────────────────────────────────────────────────────────────────


def fmt_clock(dt: datetime) -> str:
    """HH:MM:SS (UTC) для стрічки активності."""

    return dt_to_iso_z(dt)[11:19]


__all__ = [
    "fmt_change",
    "fmt_clock",
    "fmt_compact_usd",
    "fmt_number",
    "fmt_rate",
    "fmt_usd",
]
