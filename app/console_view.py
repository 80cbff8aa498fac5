"""Консольний рендерер дашборду (rich).

Лише читає HydrateReport / транскрипт / стрічку подій і будує rich-рендерабли.
Жодних мутацій стану тут немає.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.contracts.dashboard import (
    CryptoPayload,
    DashboardEvent,
    FxPayload,
    HydrateReport,
    Message,
    Snapshot,
    SourceId,
    WeatherPayload,
)
from core.formatters import (
    fmt_change,
    fmt_clock,
    fmt_compact_usd,
    fmt_number,
    fmt_rate,
    fmt_usd,
)
from utils.rich_console import get_rich_console

_ORIGIN_STYLE = {"live": "green", "fallback": "yellow"}
_EVENT_STYLE = {"synced": "green", "source-failed": "yellow", "ai-error": "red"}


def _origin_text(snapshot: Snapshot) -> Text:
    return Text(snapshot.origin, style=_ORIGIN_STYLE.get(snapshot.origin, "dim"))


def _change_style(value: float) -> str:
    if value > 0:
        return "green"
    if value < 0:
        return "red"
    return "dim"


def render_markets(snapshot: Snapshot[CryptoPayload]) -> Table:
    table = Table(title="Markets", title_justify="left", expand=False)
    table.add_column("Asset")
    table.add_column("Price", justify="right")
    table.add_column("24h", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Low", justify="right")
    table.add_column("Mkt cap", justify="right")
    for quote in snapshot.payload.assets:
        table.add_row(
            f"{quote.name} ({quote.symbol})",
            fmt_usd(quote.price_usd),
            Text(
                fmt_change(quote.change_pct_24h),
                style=_change_style(quote.change_pct_24h),
            ),
            fmt_usd(quote.high_24h),
            fmt_usd(quote.low_24h),
            fmt_compact_usd(quote.market_cap_usd),
        )
    table.caption = Text.assemble(("origin=", "dim"), _origin_text(snapshot))
    return table


def render_weather(snapshot: Snapshot[WeatherPayload]) -> Table:
    payload = snapshot.payload
    table = Table(title="Weather", title_justify="left", expand=False)
    table.add_column("Day")
    table.add_column("Max °C", justify="right")
    table.add_column("Min °C", justify="right")
    forecast = payload.forecast
    for label, hi, lo in zip(forecast.labels, forecast.max_temps, forecast.min_temps):
        table.add_row(label, fmt_number(hi, digits=1), fmt_number(lo, digits=1))
    table.caption = Text.assemble(
        (f"now {fmt_number(payload.temperature_c, digits=1)}°C", "bold"),
        ("  wind ", "dim"),
        f"{fmt_number(payload.windspeed_kmh, digits=1)} km/h",
        ("  humidity ", "dim"),
        f"{fmt_number(payload.humidity_pct, digits=0)}%",
        ("  origin=", "dim"),
        _origin_text(snapshot),
    )
    return table


def render_fx(snapshot: Snapshot[FxPayload]) -> Table:
    table = Table(title=f"FX ({snapshot.payload.base})", title_justify="left")
    table.add_column("Currency")
    table.add_column("Rate", justify="right")
    for currency, rate in sorted(snapshot.payload.rates.items()):
        table.add_row(currency, fmt_rate(rate))
    table.caption = Text.assemble(("origin=", "dim"), _origin_text(snapshot))
    return table


_RENDERERS = {
    SourceId.CRYPTO: render_markets,
    SourceId.WEATHER: render_weather,
    SourceId.FX: render_fx,
}


def render_report(report: HydrateReport) -> RenderableType:
    """Повний звіт hydrate-циклу: таблиця на кожне джерело."""

    parts: list[RenderableType] = []
    for source in SourceId:
        snapshot = report.results.get(source)
        if snapshot is None:
            continue
        parts.append(_RENDERERS[source](snapshot))
    status = "all live" if report.fully_live else (
        "fallback: " + ", ".join(sorted(s.value for s in report.failures))
    )
    return Panel(
        Group(*parts),
        title=f"Pulseboard · {fmt_clock(report.cycle_start)} UTC",
        subtitle=status,
        border_style="green" if report.fully_live else "yellow",
    )


def render_transcript(
    messages: Sequence[Message], *, greeting: str | None = None, busy: bool = False
) -> RenderableType:
    lines: list[Text] = []
    if greeting:
        lines.append(Text(greeting, style="italic cyan"))
    for message in messages:
        style = "bold" if message.role == "user" else ""
        prefix = "you" if message.role == "user" else "ai"
        lines.append(Text.assemble((f"{prefix}> ", "dim"), (message.content, style)))
    if busy:
        lines.append(Text("ai> …", style="dim"))
    return Group(*lines)


def render_feed(events: Sequence[DashboardEvent]) -> Table:
    table = Table(title="Activity", title_justify="left", show_header=False)
    table.add_column("ts", style="dim")
    table.add_column("kind")
    table.add_column("detail")
    for event in events:
        table.add_row(
            fmt_clock(event.ts),
            Text(event.kind, style=_EVENT_STYLE.get(event.kind, "dim")),
            event.detail,
        )
    return table


class ConsoleView:
    """Тонка обгортка над rich Console для CLI-команд."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console if console is not None else get_rich_console()

    def show_report(self, report: HydrateReport) -> None:
        self.console.print(render_report(report))

    def show_transcript(
        self, messages: Sequence[Message], *, greeting: str | None = None
    ) -> None:
        self.console.print(render_transcript(messages, greeting=greeting))

    def show_reply(self, reply: str | None, messages: Sequence[Message]) -> None:
        # None → відповіді немає; останнє повідомлення може бути помилкою
        if reply is None and messages and messages[-1].role == "assistant":
            self.console.print(Text(messages[-1].content, style="red"))
        elif reply is not None:
            self.console.print(Text.assemble(("ai> ", "dim"), reply))

    def show_feed(self, events: Sequence[DashboardEvent]) -> None:
        if events:
            self.console.print(render_feed(events))


__all__ = (
    "ConsoleView",
    "render_feed",
    "render_fx",
    "render_markets",
    "render_report",
    "render_transcript",
    "render_weather",
)
