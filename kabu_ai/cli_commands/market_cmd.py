"""
Market commands: scan, analyze, models.

Each command drives the same AppController the dashboard uses, so busy
guards, error messages and settings behave identically in both surfaces.
"""
from __future__ import annotations

import typer
from rich.console import Console

from kabu_ai.config import load_settings
from kabu_ai.controller import ActionResult, AppController
from kabu_ai.cli_commands.display import show_models, show_report, show_snapshot
from kabu_ai.utils.dates import format_jp_long
from kabu_ai.utils.logging import log_event, setup_logging


def _controller() -> AppController:
    settings = load_settings()
    setup_logging(settings.log_level)
    return AppController.from_settings(settings)


def _fail(console: Console, result: ActionResult) -> None:
    console.print(f"[red]{result.message}[/red]")
    if result.status == "needs_settings":
        console.print("[dim]Try: kabu config set --api-key <GEMINI_API_KEY>[/dim]")
    raise typer.Exit(1)


def register_market(app: typer.Typer) -> None:
    """Register market commands directly on the main app."""

    @app.command("scan")
    def scan(
        raw: bool = typer.Option(False, "--raw", help="Also dump the parsed snapshot as JSON"),
    ):
        """
        Stop-high and soaring stocks for the target trading day.

        Before 15:30 the previous day is scanned, from 15:30 on today.

        Examples:
            kabu scan
        """
        console = Console()
        ctl = _controller()
        console.print(f"[bold cyan]取得対象日: {format_jp_long(ctl.target_date())}[/bold cyan] (model: {ctl.state.credentials.selected_model})")
        with console.status("データ取得中..."):
            result = ctl.scan_market()
        if not result.ok:
            _fail(console, result)
        show_snapshot(console, result.payload)
        if raw:
            log_event("MARKET_SCAN", {"target_date": ctl.target_date(), "snapshot": result.payload})
        console.print(f"[green]{result.message}[/green]")

    @app.command("analyze")
    def analyze(
        query: str = typer.Argument(..., help="4-digit code (e.g. 7203) or company name"),
        raw: bool = typer.Option(False, "--raw", help="Also dump the parsed report as JSON"),
    ):
        """
        Fundamental analysis + buy/neutral/sell verdict for one stock.

        Examples:
            kabu analyze 7203
            kabu analyze トヨタ自動車
        """
        console = Console()
        ctl = _controller()
        with console.status("分析中..."):
            result = ctl.analyze_query(query)
        if not result.ok:
            _fail(console, result)
        show_report(console, result.payload)
        if raw:
            log_event("ANALYSIS", {"query": query, "report": result.payload})

    @app.command("models")
    def models(
        api_key: str = typer.Option(None, "--api-key", help="Use this key instead of the saved one"),
    ):
        """List Gemini models that support generateContent (newest first)."""
        console = Console()
        ctl = _controller()
        with console.status("モデルを取得中..."):
            result = ctl.fetch_models(api_key)
        if not result.ok:
            _fail(console, result)
        show_models(console, result.payload, ctl.state.credentials.selected_model)
        console.print(f"[green]{result.message}[/green]")
