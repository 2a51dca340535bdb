"""FastAPI application exposing ``/ingest``, ``/status`` and ``/health``."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ConfigDict, Field
from rich.console import Console
from starlette.exceptions import HTTPException as StarletteHTTPException

from vingest import __version__
from vingest.api.errors import error_response, status_for
from vingest.config.settings import Settings, get_settings
from vingest.models.base import VingestBaseModel
from vingest.models.source import ChannelSource, IngestionSource, PlaylistSource
from vingest.services.ingestion import IngestionService

CORS_METHODS = ("GET", "POST", "OPTIONS")
CORS_HEADERS = ("Content-Type", "Authorization")


class IngestRequest(VingestBaseModel):
    """Body accepted by ``POST /ingest``; ``playlistUrl`` selects playlist mode."""

    channel_handle: Optional[str] = None
    playlist_url: Optional[str] = None
    max_results: Optional[int] = Field(default=None)

    model_config = ConfigDict(extra="ignore")

    def to_source(self, default_channel: str) -> IngestionSource:
        if self.playlist_url:
            return PlaylistSource(reference=self.playlist_url)
        return ChannelSource(identifier=self.channel_handle or default_channel)


def create_app(
    settings: Optional[Settings] = None,
    *,
    service: Optional[IngestionService] = None,
    console: Optional[Console] = None,
) -> FastAPI:
    """Build the HTTP application around a single :class:`IngestionService`."""

    settings = settings or get_settings()
    console = console or Console()
    ingestion_service = service or IngestionService.from_settings(settings, console=console)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await ingestion_service.close()

    app = FastAPI(title="vingest", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.service = ingestion_service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=list(CORS_METHODS),
        allow_headers=list(CORS_HEADERS),
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 405:
            hint = "Use POST to trigger ingestion" if request.url.path == "/ingest" else "Use GET for this endpoint"
            return error_response("Method not allowed", hint, 405)
        return error_response(str(exc.detail), f"{request.method} {request.url.path}", exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
            for error in exc.errors()
        )
        return error_response("Invalid request", details or "Malformed request body", 400)

    @app.post("/ingest")
    async def ingest(request: Request, payload: Optional[IngestRequest] = None) -> JSONResponse:
        service: IngestionService = request.app.state.service
        body = payload or IngestRequest()
        source = body.to_source(settings.default_channel)
        console.log(f"[blue]API:[/blue] starting ingestion for {source.description}")
        try:
            report = await asyncio.wait_for(
                service.ingest(source, body.max_results),
                timeout=settings.ingest_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return error_response(
                "Ingestion timed out",
                f"{source.description} did not finish within {settings.ingest_timeout_seconds:g}s",
                504,
            )
        except Exception as exc:
            console.log(f"[red]API:[/red] ingestion error: {exc}")
            return error_response("Ingestion failed", str(exc), status_for(exc))
        return JSONResponse(report.to_document())

    @app.get("/status")
    async def status(request: Request) -> JSONResponse:
        service: IngestionService = request.app.state.service
        try:
            report = await service.status()
        except Exception as exc:
            return error_response("Failed to get status", str(exc), status_for(exc))
        return JSONResponse(report.to_document())

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        service: IngestionService = request.app.state.service
        report = await service.health()
        return JSONResponse(report.to_document(), status_code=200 if report.healthy else 500)

    # Preflights carrying Origin are answered by CORSMiddleware; bare OPTIONS requests land here.
    async def preflight() -> Response:
        return Response(
            status_code=204,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": ", ".join(CORS_METHODS),
                "Access-Control-Allow-Headers": ", ".join(CORS_HEADERS),
            },
        )

    for path in ("/ingest", "/status", "/health"):
        app.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)

    return app


__all__ = ["IngestRequest", "create_app"]
