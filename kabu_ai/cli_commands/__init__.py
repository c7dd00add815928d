"""Command registrations for the Typer CLI.

`kabu_ai/cli.py` stays the entrypoint module (pyproject points the `kabu`
script at `kabu_ai.cli:app`); commands live here and are registered from it.
"""
