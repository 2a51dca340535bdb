"""CLI command that runs the HTTP trigger surface under uvicorn."""

from __future__ import annotations

import typer
import uvicorn
from rich.console import Console

from vingest.api.app import create_app
from vingest.config.settings import get_settings


def register(app: typer.Typer, console: Console) -> None:
    """Register the ``serve`` command."""

    @app.command("serve")
    def serve(
        host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
        port: int = typer.Option(8787, "--port", help="Port to listen on"),
    ) -> None:
        settings = get_settings()
        console.print(f"[bold green]Serving vingest on http://{host}:{port}[/bold green]")
        uvicorn.run(create_app(settings, console=console), host=host, port=port, log_level=settings.log_level.lower())


__all__ = ["register"]
