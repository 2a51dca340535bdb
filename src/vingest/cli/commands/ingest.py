"""CLI commands for ingesting channels or playlists and inspecting the ledger."""

from __future__ import annotations

import asyncio
import json
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.table import Table

from vingest.config.settings import ConfigurationError, get_settings
from vingest.models.report import HealthReport, IngestionReport, StatusReport
from vingest.models.source import ChannelSource, IngestionSource, PlaylistSource
from vingest.services.catalog import EmptyPlaylistError, RemoteApiError
from vingest.services.ingestion import IngestionService
from vingest.services.resolver import ChannelNotFoundError
from vingest.services.storage import StorageError
from vingest.utils.progress import ProgressUpdate
from vingest.utils.validation import InvalidMaxResultsError, InvalidPlaylistFormatError

ServiceFactory = Callable[[], IngestionService]
ResultT = TypeVar("ResultT")


class IngestExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    INVALID_INPUT = 1
    NOT_FOUND = 2
    NETWORK_ERROR = 3
    CONFIGURATION_ERROR = 4
    STORAGE_ERROR = 5
    PARTIAL_FAILURE = 6
    UNEXPECTED_ERROR = 7


def register(app: typer.Typer, console: Console, *, service_factory: Optional[ServiceFactory] = None) -> None:
    """Register CLI commands for ingestion, status and health."""

    def build_service() -> IngestionService:
        if service_factory is not None:
            return service_factory()
        return IngestionService.from_settings(get_settings(), console=console)

    def run_with_service(action: Callable[[IngestionService], Awaitable[ResultT]]) -> ResultT:
        async def runner() -> ResultT:
            service = build_service()
            try:
                return await action(service)
            finally:
                await service.close()

        return asyncio.run(runner())

    def run_guarded(action: Callable[[IngestionService], Awaitable[ResultT]]) -> ResultT:
        try:
            return run_with_service(action)
        except ConfigurationError as exc:
            console.print(f"[red]Configuration error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.CONFIGURATION_ERROR) from exc
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.STORAGE_ERROR) from exc
        except Exception as exc:
            console.print(f"[red]Unexpected error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.UNEXPECTED_ERROR) from exc

    @app.command("ingest")
    def ingest(
        channel: Optional[str] = typer.Option(
            None, "--channel", "-c", help="Channel handle (@name), channel ID, legacy username or channel name"
        ),
        playlist: Optional[str] = typer.Option(None, "--playlist", "-p", help="Playlist URL or ID"),
        max_results: Optional[int] = typer.Option(None, "--max-results", "-n", help="Newest videos to consider"),
        json_output: bool = typer.Option(False, "--json", help="Output the ingestion report as JSON"),
    ) -> None:
        if channel and playlist:
            console.print("[red]Error:[/red] Provide either --channel or --playlist, not both.")
            raise typer.Exit(code=IngestExitCode.INVALID_INPUT)

        source: IngestionSource
        if playlist:
            source = PlaylistSource(reference=playlist)
        else:
            source = ChannelSource(identifier=channel or get_settings().default_channel)

        try:
            if json_output:
                report = run_with_service(lambda service: service.ingest(source, max_results))
            else:
                progress = Progress(
                    TextColumn("{task.description}"),
                    BarColumn(),
                    TextColumn("{task.percentage:>3.0f}%"),
                    console=console,
                    transient=True,
                )
                with progress as running_progress:
                    task_id = running_progress.add_task("Starting", total=100)
                    handler = _progress_handler_factory(running_progress, task_id)
                    report = run_with_service(
                        lambda service: service.ingest(source, max_results, on_progress=handler)
                    )
        except (InvalidPlaylistFormatError, InvalidMaxResultsError) as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.INVALID_INPUT) from exc
        except (ChannelNotFoundError, EmptyPlaylistError) as exc:
            console.print(f"[red]Not found:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.NOT_FOUND) from exc
        except ConfigurationError as exc:
            console.print(f"[red]Configuration error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.CONFIGURATION_ERROR) from exc
        except (RemoteApiError, httpx.HTTPError) as exc:
            console.print(f"[red]YouTube API error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.NETWORK_ERROR) from exc
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.STORAGE_ERROR) from exc
        except Exception as exc:
            console.print(f"[red]Unexpected error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.UNEXPECTED_ERROR) from exc

        if json_output:
            typer.echo(json.dumps(report.to_document(), ensure_ascii=False, indent=2))
        else:
            _render_report(console, report)

        if report.failed:
            raise typer.Exit(code=IngestExitCode.PARTIAL_FAILURE)

    @app.command("status")
    def status(
        json_output: bool = typer.Option(False, "--json", help="Output ledger statistics as JSON"),
    ) -> None:
        report = run_guarded(lambda service: service.status())

        if json_output:
            typer.echo(json.dumps(report.to_document(), ensure_ascii=False, indent=2))
            return

        _render_status(console, report)

    @app.command("health")
    def health(
        json_output: bool = typer.Option(False, "--json", help="Output health checks as JSON"),
    ) -> None:
        report = run_guarded(lambda service: service.health())

        if json_output:
            typer.echo(json.dumps(report.to_document(), ensure_ascii=False, indent=2))
        else:
            _render_health(console, report)

        if not report.healthy:
            raise typer.Exit(code=1)


def _progress_handler_factory(progress: Progress, task_id: TaskID) -> Callable[[ProgressUpdate], None]:
    def handler(update: ProgressUpdate) -> None:
        progress.update(
            task_id,
            completed=update.overall_progress,
            description=f"{update.stage.value.title()}...",
        )

    return handler


def _render_report(console: Console, report: IngestionReport) -> None:
    border = "green" if not report.failed else "yellow"
    console.print(Panel.fit(f"{report.message}\nSource: [bold]{report.source}[/bold] ({report.source_id})", border_style=border))
    console.print(
        f"Found: {report.total_found} | Already processed: {report.already_processed} | "
        f"Processed: {report.processed} | Failed: {report.failed} | In ledger: {report.total_in_database}"
    )

    if report.items:
        table = Table(title="Videos")
        table.add_column("Video ID")
        table.add_column("Title", overflow="fold")
        table.add_column("Status")
        table.add_column("Error", overflow="fold")
        for item in report.items:
            table.add_row(item.video_id, item.title, item.status.value, item.error or "")
        console.print(table)


def _render_status(console: Console, report: StatusReport) -> None:
    console.print(Panel.fit(f"Status: [bold]{report.status}[/bold]", border_style="green"))
    console.print(f"Total videos processed: {report.stats.total_videos_processed}")
    console.print(f"Last updated: {report.stats.last_updated}")

    table = Table(title="Recent Videos")
    table.add_column("Video ID")
    table.add_column("Title", overflow="fold")
    table.add_column("Processed At")
    for video in report.stats.recent_videos:
        table.add_row(video.video_id, video.title, video.processed_at)
    console.print(table)


def _render_health(console: Console, report: HealthReport) -> None:
    table = Table(title=f"Health: {report.status.value}")
    table.add_column("Check")
    table.add_column("Result")
    for name, result in report.checks.items():
        style = "green" if result in {"present", "accessible"} else "red"
        table.add_row(name, f"[{style}]{result}[/{style}]")
    console.print(table)
    if report.error:
        console.print(f"[red]{report.error}[/red]")


__all__ = ["IngestExitCode", "ServiceFactory", "register"]
