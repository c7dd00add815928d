"""Settings commands: API key, model, theme."""
from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from kabu_ai.config import load_settings
from kabu_ai.controller import AppController
from kabu_ai.settings_store import SettingsStore

config_app = typer.Typer(add_completion=False, help="Saved settings (API key, model, theme)")


def _mask(key: str) -> str:
    if not key:
        return "(未設定)"
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}…{key[-4:]}"


@config_app.command("show")
def show():
    """Show saved settings (API key masked)."""
    settings = load_settings()
    store = SettingsStore.from_settings(settings)
    creds = store.load_credentials(settings)

    table = Table(show_header=False, expand=False)
    table.add_column("key", style="dim")
    table.add_column("value")
    table.add_row("settings file", str(store.path))
    table.add_row("api key", _mask(creds.api_key))
    table.add_row("model", creds.selected_model or "未選択")
    table.add_row("theme", store.load_theme())
    Console().print(table)


@config_app.command("set")
def set_(
    api_key: str = typer.Option(..., "--api-key", prompt="Gemini API key", hide_input=True, help="Gemini API key"),
    model: str = typer.Option(None, "--model", "-m", help="Model id, e.g. gemini-2.5-flash"),
):
    """Save the API key (required) and optionally the model."""
    console = Console()
    result = AppController.from_settings(load_settings()).save_settings(api_key, model)
    if not result.ok:
        console.print(f"[red]{result.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{result.message}[/green]")


def register_config(app: typer.Typer) -> None:
    app.add_typer(config_app, name="config")

    @app.command("theme")
    def theme():
        """Toggle the dashboard theme between dark and light."""
        new_theme = AppController.from_settings(load_settings()).toggle_theme()
        Console().print(f"theme: [bold]{new_theme}[/bold]")
