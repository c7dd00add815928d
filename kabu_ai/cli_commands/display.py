"""Rich console tables and panels for market scans and analysis reports."""
from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from kabu_ai.models import AnalysisReport, MarketSnapshot, ModelDescriptor, StockRecord
from kabu_ai.utils.formatting import MARKET_GROWTH, MARKET_PRIME
from kabu_ai.view import SCAN_SOURCE_LIMIT, model_options, report_view, source_links, stock_rows

MARKET_STYLES = {MARKET_PRIME: "cyan", MARKET_GROWTH: "magenta"}
VERDICT_COLORS = {"buy": "green", "neutral": "yellow", "sell": "red"}


def _stock_table(title: str, stocks: list[StockRecord]) -> Table:
    table = Table(title=title, show_header=True, expand=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("コード", style="bold")
    table.add_column("銘柄名")
    table.add_column("市場")
    table.add_column("株価", justify="right")
    table.add_column("前日比", justify="right")
    table.add_column("材料")
    for row in stock_rows(stocks):
        change_color = "green" if row["change_class"] == "change-positive" else "red"
        market_style = MARKET_STYLES.get(row["market_class"], "white")
        table.add_row(
            str(row["index"]),
            escape(row["code"]),
            escape(row["name"]),
            f"[{market_style}]{escape(row['market'])}[/{market_style}]",
            f"{escape(row['price'])}円",
            f"[{change_color}]{escape(row['change_display'])}[/{change_color}]",
            escape(row["material"]),
        )
    return table


def show_snapshot(console: Console, snapshot: MarketSnapshot) -> None:
    date_label = f" ({escape(snapshot.date)})" if snapshot.date else ""
    if snapshot.stop_highs:
        console.print(_stock_table(f"ストップ高銘柄{date_label} {len(snapshot.stop_highs)}件", snapshot.stop_highs))
    else:
        console.print("[yellow]ストップ高銘柄はありません[/yellow]")
    if snapshot.soaring:
        console.print(_stock_table(f"急騰銘柄{date_label} {len(snapshot.soaring)}件", snapshot.soaring))
    else:
        console.print("[yellow]急騰銘柄はありません[/yellow]")

    links = source_links(snapshot.citations, SCAN_SOURCE_LIMIT)
    if links:
        console.print("[bold]📎 参照ソース[/bold]")
        for link in links:
            console.print(f"  ・{escape(link['label'])} [dim]{escape(link['url'])}[/dim]")


def show_report(console: Console, report: AnalysisReport) -> None:
    view = report_view(report)
    h = view["header"]
    vd = view["verdict"]
    change_color = "green" if h["change_class"] == "change-positive" else "red"

    console.print(
        Panel(
            f"[bold]{escape(h['name'])}[/bold]  {escape(h['code'])}  {escape(h['market'])}\n"
            f"{escape(h['price'])}円  [{change_color}]{escape(h['change'])}[/{change_color}]\n"
            f"📌 ストップ高理由: {escape(h['stop_high_reason'])}",
            title="[bold]銘柄[/bold]",
            border_style="blue",
        )
    )
    color = VERDICT_COLORS.get(vd["class"], "yellow")
    console.print(Panel(f"[bold {color}]{vd['icon']} {escape(vd['label'])}[/bold {color}]", title="📌 総合投資判断", expand=False))

    for card in view["cards"]:
        table = Table(title=f"{card['icon']} {card['title']}", show_header=False, expand=False)
        table.add_column("項目", style="dim")
        table.add_column("値")
        for row in card["rows"]:
            value = f"[bold]{escape(row['value'])}[/bold]" if row["highlight"] else escape(row["value"])
            table.add_row(row["label"], value)
        console.print(table)
        if card["comment"]:
            console.print(f"  [dim]{escape(card['comment'])}[/dim]")

    mat = view["material"]
    table = Table(title="🔥 材料の評価", show_header=False, expand=False)
    table.add_column("項目", style="dim")
    table.add_column("値")
    for row in mat["rows_before"]:
        table.add_row(row["label"], escape(row["value"]))
    table.add_row("強度", f"{mat['score']}% ({mat['strength_class']})")
    for row in mat["rows_after"]:
        table.add_row(row["label"], escape(row["value"]))
    console.print(table)
    if mat["comment"]:
        console.print(f"  [dim]{escape(mat['comment'])}[/dim]")

    if view["risks"]:
        console.print("[bold]⚠️ リスク要因[/bold]")
        for risk in view["risks"]:
            console.print(f"  • {escape(risk)}")
    if view["cautions"]:
        console.print(f"  📌 注意点: {escape(view['cautions'])}")

    if vd["reasons"]:
        console.print("[bold]🎯 判断理由[/bold]")
        for i, reason in enumerate(vd["reasons"], start=1):
            console.print(f"  {i}. {escape(reason)}")
    for s in vd["strategies"]:
        console.print(f"  {s['icon']} {s['label']}: {escape(s['value'])}")

    if view["data_note"]:
        console.print(f"[dim]ℹ️ {escape(view['data_note'])}[/dim]")
    if view["sources"]:
        console.print("[bold]📎 参照ソース[/bold]")
        for link in view["sources"]:
            console.print(f"  ・{escape(link['label'])} [dim]{escape(link['url'])}[/dim]")
    console.print(f"\n[dim]⚠️ {view['disclaimer']}[/dim]")


def show_models(console: Console, models: list[ModelDescriptor], selected: str) -> None:
    table = Table(show_header=True, expand=False)
    table.add_column("", width=1)
    table.add_column("Model ID", style="cyan")
    table.add_column("表示名")
    for opt in model_options(models, selected):
        table.add_row("*" if opt["selected"] and opt["value"] else "", escape(opt["value"]), escape(opt["label"]))
    console.print(table)
