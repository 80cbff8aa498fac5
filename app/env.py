"""Вибір env-файлу для запуску.

Політика:
- Є **один** перемикач профілю: `PULSE_ENV_FILE`.
- Його можна задати:
    1) у process-ENV (найвищий пріоритет)
    2) у dispatcher-файлі `.env` (рядок `PULSE_ENV_FILE=.env.local|.env.prod`)
- Інакше використовується `.env`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_SWITCH = "PULSE_ENV_FILE"


@dataclass(frozen=True, slots=True)
class EnvFileSelection:
    """Результат вибору env-файлу.

    source:
    - process_env: `PULSE_ENV_FILE` заданий у process-ENV
    - dispatcher_env: `PULSE_ENV_FILE` взято з dispatcher `.env`
    - fallback: дефолт `.env`
    """

    path: Path
    source: str
    exists: bool
    ref: str | None = None


def _read_dispatch_value(project_root: Path) -> str | None:
    """Читає лише рядок-перемикач із dispatcher `.env`.

    Повний python-dotenv тут не підходить: `.env` може містити не-ENV шматки.
    """

    env_path = project_root / ".env"
    if not env_path.exists():
        return None
    try:
        text = env_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        if key.strip() == ENV_SWITCH:
            return value.strip().strip('"').strip("'") or None
    return None


def _resolve(project_root: Path, ref: str) -> Path:
    candidate = Path(ref).expanduser()
    if not candidate.is_absolute():
        candidate = project_root / candidate
    return candidate


def select_env_file_with_trace(project_root: Path) -> EnvFileSelection:
    """Повертає вибраний env-файл разом із трасою рішення."""

    override = os.getenv(ENV_SWITCH)
    if override:
        path = _resolve(project_root, override)
        return EnvFileSelection(path, "process_env", path.exists(), override)

    dispatch = _read_dispatch_value(project_root)
    if dispatch:
        path = _resolve(project_root, dispatch)
        return EnvFileSelection(path, "dispatcher_env", path.exists(), dispatch)

    path = project_root / ".env"
    return EnvFileSelection(path, "fallback", path.exists())


def select_env_file(project_root: Path) -> Path:
    """Повертає шлях до env-файлу для поточного запуску."""

    return select_env_file_with_trace(project_root).path
