"""CLI entry point and application wiring."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from vingest.cli.commands import ServiceFactory, register_commands


class CLIApplication:
    """Builds the `vingest` command group around a console and an optional ingestion service factory."""

    def __init__(self, console: Optional[Console] = None, service_factory: Optional[ServiceFactory] = None) -> None:
        self.console = console or Console()
        self._app = typer.Typer(add_completion=False, rich_markup_mode="rich")
        register_commands(self._app, self.console, service_factory=service_factory)

    @property
    def app(self) -> typer.Typer:
        """Typer app with `ingest`, `status` and `health` registered."""

        return self._app

    def run(self, *, prog_name: Optional[str] = None, args: Optional[list[str]] = None) -> None:
        """Parse `args` (default: `sys.argv`) and dispatch to the matching command."""

        self._app(prog_name=prog_name, args=args)


def create_app(console: Optional[Console] = None, service_factory: Optional[ServiceFactory] = None) -> typer.Typer:
    """Return the command group; tests pass `service_factory` to avoid live YouTube and R2 clients."""

    return CLIApplication(console=console, service_factory=service_factory).app


def main() -> None:
    """Entry point for the `vingest` console script."""

    CLIApplication().run(prog_name="vingest")


__all__ = ["CLIApplication", "create_app", "main"]
