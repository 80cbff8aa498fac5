"""Спільний Rich Console для логів і консольного рендерера дашборду.

RichHandler (логи) і `app.console_view` (таблиці звіту, чат) мають писати в
ОДИН Console, інакше вивід таблиць і рядки логів перемішуються.
"""

from __future__ import annotations

from rich.console import Console

_RICH_CONSOLE: Console | None = None


def get_rich_console() -> Console:
    """Повертає singleton Console(stderr=True) для Rich."""

    global _RICH_CONSOLE
    if _RICH_CONSOLE is None:
        _RICH_CONSOLE = Console(stderr=True, color_system="standard")
    return _RICH_CONSOLE


__all__ = ("get_rich_console",)
