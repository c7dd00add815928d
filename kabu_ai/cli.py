"""
kabu-ai CLI

Primary commands:
- kabu scan / kabu analyze / kabu models
- kabu config show|set, kabu theme
- kabu dashboard
"""
from __future__ import annotations

import typer

app = typer.Typer(
    add_completion=False,
    help="""kabu-ai: ストップ高・急騰銘柄スキャンとAI銘柄分析 (Gemini)

\b
  kabu scan                  Stop-high + soaring stocks (target day)
  kabu analyze 7203          Analysis report + verdict
  kabu models                Models that support generateContent
  kabu config set            Save API key / model
  kabu dashboard             Local HTML dashboard

\b
Run 'kabu <command> --help' for details.
""",
)


@app.command("dashboard")
def dashboard_cmd(
    port: int = typer.Option(None, "--port", "-p", help="Port (default: DASHBOARD_PORT or 5001)"),
    open_browser: bool = typer.Option(True, "--open/--no-open", help="Open the dashboard in a browser"),
):
    """Serve the HTML dashboard on localhost."""
    import threading
    import webbrowser

    from dashboard.app import create_app
    from kabu_ai.config import load_settings
    from kabu_ai.utils.logging import setup_logging

    settings = load_settings()
    setup_logging(settings.log_level)
    flask_app = create_app(settings=settings)
    chosen = port or settings.dashboard_port
    url = f"http://127.0.0.1:{chosen}/"
    typer.echo(f"Dashboard: {url}")
    if open_browser:
        threading.Timer(1.0, webbrowser.open, args=(url,)).start()
    flask_app.run(host="127.0.0.1", port=chosen, threaded=True)


from kabu_ai.cli_commands.config_cmd import register_config  # noqa: E402
from kabu_ai.cli_commands.market_cmd import register_market  # noqa: E402

register_market(app)
register_config(app)


if __name__ == "__main__":
    app()
