"""Конфігураційні моделі застосунку (inference, HTTP, Redis, preferences).

Шлях: ``app/settings.py``

Використовує pydantic-settings для ENV/.env. Базові константи (URL, таймаути)
тягнемо з `config.config` як єдиного джерела правди.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.env import select_env_file
from config.config import (
    HTTP_TIMEOUT_SEC,
    INFERENCE_BASE_URL,
    INFERENCE_CHAT_TIMEOUT_SEC,
    INFERENCE_MODEL,
    INFERENCE_PROBE_TIMEOUT_SEC,
)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DEFAULT_PREFERENCES_PATH = _PROJECT_ROOT / "config" / "preferences.yaml"
logger = logging.getLogger("app.settings")
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

_ENV_FILE = select_env_file(_PROJECT_ROOT)
load_dotenv(_ENV_FILE)

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PULSE_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",  # ігноруємо невідомі змінні замість ValidationError
    )

    inference_base_url: str = INFERENCE_BASE_URL
    inference_model: str = INFERENCE_MODEL
    inference_probe_timeout: float = INFERENCE_PROBE_TIMEOUT_SEC
    inference_chat_timeout: float = INFERENCE_CHAT_TIMEOUT_SEC
    http_timeout: float = HTTP_TIMEOUT_SEC

    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379

    preferences_path: Path = _DEFAULT_PREFERENCES_PATH
    log_level: str = "INFO"

    @field_validator("inference_base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, v):  # type: ignore[no-untyped-def]
        if v is None:
            return INFERENCE_BASE_URL
        text = str(v).strip().rstrip("/")
        return text or INFERENCE_BASE_URL

    @field_validator("inference_model", mode="before")
    @classmethod
    def _normalize_model(cls, v):  # type: ignore[no-untyped-def]
        text = str(v or "").strip()
        return text or INFERENCE_MODEL

    @field_validator(
        "inference_probe_timeout",
        "inference_chat_timeout",
        "http_timeout",
    )
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("таймаут має бути додатним")
        return v

    # Робастний парсер для redis_enabled з ENV (обробляє пробіли/регістр)
    @field_validator("redis_enabled", mode="before")
    @classmethod
    def _coerce_redis_enabled(cls, v):  # type: ignore[no-untyped-def]
        if v is None:
            return False
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            s = v.strip().lower()
            if s in _TRUE_STRINGS:
                return True
            if s in _FALSE_STRINGS:
                return False
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v):  # type: ignore[no-untyped-def]
        text = str(v or "").strip().upper()
        return text if text in logging.getLevelNamesMapping() else "INFO"


settings = Settings()  # буде валідовано під час імпорту
