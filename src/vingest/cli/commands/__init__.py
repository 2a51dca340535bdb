"""Command registration utilities for the vingest CLI."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from vingest.cli.commands import ingest, serve
from vingest.cli.commands.ingest import ServiceFactory


def register_commands(
    app: typer.Typer,
    console: Console,
    *,
    service_factory: Optional[ServiceFactory] = None,
) -> None:
    """Attach command groups to the provided Typer application."""

    ingest.register(app, console, service_factory=service_factory)
    serve.register(app, console)

    @app.callback(invoke_without_command=True)
    def main_callback(ctx: typer.Context) -> None:
        """Display a default message when no subcommand is provided."""

        if ctx.invoked_subcommand is None:
            console.print("[bold green]vingest CLI ready for commands.[/bold green]")


__all__ = ["ServiceFactory", "register_commands"]
