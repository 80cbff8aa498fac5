"""Користувацькі налаштування дашборду (тема, master-інтервал) у YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, field_validator

from config.config import DEFAULT_MASTER_INTERVAL_MS, MIN_MASTER_INTERVAL_SEC

logger = logging.getLogger("app.preferences")
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

MIN_MASTER_INTERVAL_MS = int(MIN_MASTER_INTERVAL_SEC * 1000)


class Preferences(BaseModel):
    theme: Literal["dark", "light"] = "dark"
    master_interval_ms: int = DEFAULT_MASTER_INTERVAL_MS

    @field_validator("master_interval_ms")
    @classmethod
    def _check_interval(cls, v: int) -> int:
        if v < MIN_MASTER_INTERVAL_MS:
            raise ValueError(
                f"master_interval_ms має бути >= {MIN_MASTER_INTERVAL_MS}, отримано {v}"
            )
        return v

    @property
    def master_interval_sec(self) -> float:
        return self.master_interval_ms / 1000.0


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as fh:
        loaded = yaml.safe_load(fh)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Файл налаштувань {path} має бути мапою, а не {type(loaded)!r}")
    return loaded


class PreferenceStore:
    """Читає/пише Preferences у YAML-файл; відсутній файл → дефолти."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> Preferences:
        if not self.path.exists():
            logger.info("Файл %s не знайдено, використовуємо налаштування за замовчуванням", self.path)
            return Preferences()
        try:
            payload = _read_yaml(self.path)
            return Preferences(**payload)
        except FileNotFoundError:
            return Preferences()
        except (yaml.YAMLError, ValueError) as exc:
            logger.warning("Некоректні налаштування у %s (%s) — беремо дефолти", self.path, exc)
            return Preferences()

    def save(self, prefs: Preferences) -> Preferences:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            yaml.safe_dump(prefs.model_dump(), fh, sort_keys=True, allow_unicode=True)
        logger.info("Налаштування збережено у %s", self.path)
        return prefs

    def reset(self) -> Preferences:
        """Повертає дефолти і перезаписує ними файл."""

        return self.save(Preferences())


__all__ = ("MIN_MASTER_INTERVAL_MS", "PreferenceStore", "Preferences")
