"""Точка входу Pulseboard: `python -m app.main {run,hydrate,chat}`.

- run — hydrate + таймери (master auto-refresh і poll ринків), звіт у консоль
  після кожного циклу;
- hydrate — один цикл, звіт і стрічка подій, вихід;
- chat — інтерактивний чат з асистентом (`/clear`, `/quit`).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from app.console_view import ConsoleView
from app.dashboard import DashboardCore
from app.env import select_env_file
from app.settings import settings
from core.contracts.dashboard import HydrateReport

logger = logging.getLogger("app.main")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(logging.StreamHandler())
    # Під pytest caplog навішує handler на root logger; щоб він бачив записи,
    # вмикаємо propagate лише у тестовому середовищі.
    logger.propagate = "pytest" in sys.modules

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(select_env_file(_PROJECT_ROOT))

_LOGGER_PREFIXES = ("app.", "data.", "assistant.")


def _apply_log_level(level_name: str) -> None:
    """Застосовує PULSE_LOG_LEVEL до всіх логерів проєкту."""

    level = logging.getLevelNamesMapping().get(level_name.upper(), logging.INFO)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(_LOGGER_PREFIXES):
            logging.getLogger(name).setLevel(level)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pulseboard",
        description="Дашборд: ринки, погода, FX та чат з локальним AI.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Hydrate + автооновлення до Ctrl+C")
    run.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Скільки секунд працювати (default: до Ctrl+C)",
    )
    run.add_argument(
        "--no-auto-refresh",
        action="store_true",
        help="Не вмикати master auto-refresh (poll ринків працює)",
    )

    sub.add_parser("hydrate", help="Один hydrate-цикл і вихід")
    sub.add_parser("chat", help="Інтерактивний чат з асистентом")
    return parser.parse_args(argv)


async def run_dashboard(duration: float | None, *, auto_refresh: bool = True) -> None:
    view = ConsoleView()
    async with DashboardCore() as core:

        def _print_report(report: HydrateReport) -> None:
            view.show_report(report)

        await core.start(auto_refresh=False, hydrate=False)
        assert core.orchestrator is not None
        core.orchestrator.add_report_listener(_print_report)
        await core.dispatch("hydrate")
        core.orchestrator.start_source_polling()
        if auto_refresh:
            core.orchestrator.start_master()
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(max(0.0, duration))
        finally:
            core.stop()
            view.show_feed(core.feed.entries())


async def hydrate_once() -> HydrateReport:
    view = ConsoleView()
    async with DashboardCore() as core:
        await core.start(auto_refresh=False, hydrate=False)
        report: HydrateReport = await core.dispatch("hydrate")
        view.show_report(report)
        view.show_feed(core.feed.entries())
        return report


async def chat_loop() -> None:
    view = ConsoleView()
    async with DashboardCore() as core:
        await core.start(auto_refresh=False, hydrate=False)
        assert core.selector is not None
        await core.selector.ensure_backend(core.session)
        view.show_transcript((), greeting=core.session.greeting)
        while True:
            try:
                line = await asyncio.to_thread(input, "you> ")
            except EOFError:
                break
            command = line.strip()
            if command in {"/quit", "/exit"}:
                break
            if command == "/clear":
                await core.dispatch("clear")
                view.show_transcript(core.session.transcript(), greeting=core.session.greeting)
                continue
            reply = await core.dispatch("respond", prompt=line)
            view.show_reply(reply, core.session.transcript())


async def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _apply_log_level(settings.log_level)
    logger.info("[Launch] Команда: %s", args.command)
    if args.command == "run":
        await run_dashboard(args.duration, auto_refresh=not args.no_auto_refresh)
    elif args.command == "hydrate":
        await hydrate_once()
    elif args.command == "chat":
        await chat_loop()
    return 0


def cli() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Pulseboard зупинено користувачем")
        sys.exit(0)
    except Exception as exc:
        logger.error("Помилка виконання: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
