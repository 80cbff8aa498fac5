"""Базовий конверт для payload, що виходить за межі процесу (Redis, UI).

Нічого доменного тут не додаємо: лише спільна форма з версією схеми.
"""

from __future__ import annotations

# ── Imports ───────────────────────────────────────────────────────────────
from typing import Any, TypedDict

# ── Versioning ────────────────────────────────────────────────────────────

SCHEMA_VERSION: str = "pulseboard.contracts.v1"


class Envelope(TypedDict):
    """Конверт для передачі payload консюмерам.

    Поля:
    - schema_version: версія контракту (напр. `pulseboard.contracts.v1`);
    - payload_ts_ms: час формування payload (UTC, мс);
    - kind: тип payload (`report` або `event`);
    - payload: сам payload як JSON-friendly dict.
    """

    schema_version: str
    payload_ts_ms: int
    kind: str
    payload: dict[str, Any]


def make_envelope(kind: str, payload: dict[str, Any], *, ts_ms: int) -> Envelope:
    return Envelope(
        schema_version=SCHEMA_VERSION,
        payload_ts_ms=int(ts_ms),
        kind=kind,
        payload=payload,
    )
