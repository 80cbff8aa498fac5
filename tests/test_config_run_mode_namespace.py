"""Тести для профілю запуску PULSE_MODE (prod/local) у config.config.

Важливо: `config.config` обчислює NAMESPACE на імпорті, тому в тесті
використовуємо importlib.reload.
"""

from __future__ import annotations

import importlib

import pytest


def _reload_config():
    import config.config as cfg

    return importlib.reload(cfg)


@pytest.fixture(autouse=True)
def _restore_config(monkeypatch: pytest.MonkeyPatch):
    yield
    monkeypatch.undo()
    _reload_config()


@pytest.mark.parametrize(
    ("mode", "expected_mode", "expected_ns"),
    [
        ("local", "local", "pulseboard_local"),
        ("dev", "local", "pulseboard_local"),
        ("prod", "prod", "pulseboard"),
        ("weird", "local", "pulseboard_local"),
    ],
)
def test_mode_selects_default_namespace(
    monkeypatch: pytest.MonkeyPatch, mode: str, expected_mode: str, expected_ns: str
) -> None:
    monkeypatch.setenv("PULSE_MODE", mode)
    monkeypatch.delenv("PULSE_NAMESPACE", raising=False)

    cfg = _reload_config()

    assert cfg.PULSE_MODE == expected_mode
    assert cfg.NAMESPACE == expected_ns
    assert cfg.REDIS_CHANNEL_REPORT == f"{expected_ns}:report"
    assert cfg.REDIS_SNAPSHOT_KEY_REPORT == f"{expected_ns}:report:snapshot"
    assert cfg.REDIS_CHANNEL_EVENTS == f"{expected_ns}:events"


def test_explicit_namespace_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PULSE_MODE", "prod")
    monkeypatch.setenv("PULSE_NAMESPACE", "  dash_staging ")

    cfg = _reload_config()

    assert cfg.NAMESPACE == "dash_staging"


def test_env_float_override_falls_back_on_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PULSE_SOURCE_POLL_SEC", "abc")
    assert _reload_config().SOURCE_POLL_INTERVAL_SEC == 60.0

    monkeypatch.setenv("PULSE_SOURCE_POLL_SEC", "15")
    assert _reload_config().SOURCE_POLL_INTERVAL_SEC == 15.0
