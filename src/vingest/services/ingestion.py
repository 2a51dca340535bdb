"""End-to-end channel and playlist ingestion pipeline."""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from rich.console import Console

from vingest import __version__
from vingest.config.settings import REQUIRED_SECRETS, Settings
from vingest.models.ledger import Ledger, utc_now_iso
from vingest.models.report import (
    HealthReport,
    HealthState,
    IngestionReport,
    LedgerStats,
    RecentVideo,
    StatusReport,
    VideoOutcome,
)
from vingest.models.source import IngestionSource, PlaylistSource
from vingest.models.video import SourceType, VideoMetadata, VideoStatus
from vingest.services.catalog import YouTubeCatalogClient
from vingest.services.resolver import ChannelResolver
from vingest.services.storage import LedgerStore, ObjectStore, R2ObjectStore, VideoMetadataWriter, filter_unseen
from vingest.services.transform import to_video_metadata
from vingest.utils.concurrency import Settled, gather_settled
from vingest.utils.progress import ProcessingStage, ProgressHandler, emit_progress
from vingest.utils.validation import extract_playlist_id, validate_max_results

RECENT_VIDEOS_LIMIT = 5


class IngestionService:
    """Resolve a source, fetch its videos, skip already-ingested ones and persist the rest.

    Ledger read-modify-write is serialised per service instance so overlapping runs in the same process
    cannot overwrite each other's entries.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        catalog: YouTubeCatalogClient,
        object_store: ObjectStore,
        resolver: Optional[ChannelResolver] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._settings = settings
        self._console = console or Console()
        self._catalog = catalog
        self._resolver = resolver or ChannelResolver(catalog, console=self._console)
        self._object_store = object_store
        self._ledger_store = LedgerStore(object_store, console=self._console)
        self._writer = VideoMetadataWriter(object_store, console=self._console)
        self._ledger_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, *, console: Optional[Console] = None) -> "IngestionService":
        """Wire the production catalog client and R2 object store."""

        console = console or Console()
        return cls(
            settings=settings,
            catalog=YouTubeCatalogClient(settings=settings, console=console),
            object_store=R2ObjectStore(settings=settings),
            console=console,
        )

    @property
    def ledger_store(self) -> LedgerStore:
        return self._ledger_store

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    async def ingest(
        self,
        source: IngestionSource,
        max_results: Optional[int] = None,
        *,
        on_progress: Optional[ProgressHandler] = None,
    ) -> IngestionReport:
        """Run the ingestion pipeline for a single channel or playlist.

        Parameters
        ----------
        source:
            Channel or playlist to ingest.
        max_results:
            Number of newest videos to consider; defaults to ``DEFAULT_MAX_RESULTS``.
        on_progress:
            Optional callback invoked with progress updates.

        Returns
        -------
        IngestionReport
            Counts of processed, failed and already-known videos plus per-video errors.

        Raises
        ------
        ConfigurationError
            If the YouTube API key is missing.
        ChannelNotFoundError, InvalidPlaylistFormatError, EmptyPlaylistError, RemoteApiError
            If the source cannot be resolved or listed.
        StorageWriteError
            If the updated ledger cannot be saved.
        """

        limit = validate_max_results(
            max_results if max_results is not None else self._settings.default_max_results,
            self._settings.max_results_ceiling,
        )
        self._settings.require_youtube_api_key()
        description = source.description
        self._console.log(f"[blue]Ingestion:[/blue] starting ingestion for {description} (maxResults={limit})")

        try:
            emit_progress(on_progress, ProcessingStage.RESOLVING, 0, 5, "Resolving source", description)
            source_type, source_id = await self._resolve(source)

            emit_progress(on_progress, ProcessingStage.LISTING, 0, 20, f"Listing videos for {source_id}", description)
            video_ids = await self._list(source_type, source_id, limit)

            emit_progress(
                on_progress, ProcessingStage.FETCHING, 0, 40, f"Fetching details for {len(video_ids)} videos", description
            )
            raw_records = await self._catalog.fetch_video_details(video_ids)
            videos = _unique_by_id(
                to_video_metadata(record, source_type=source_type, source_id=source_id) for record in raw_records
            )

            async with self._ledger_lock:
                report = await self._persist(videos, source_type, source_id, description, on_progress)
        except Exception as exc:
            emit_progress(on_progress, ProcessingStage.FAILED, 0, 0, str(exc), description)
            self._console.log(f"[red]Ingestion:[/red] {description} failed: {exc}")
            raise

        emit_progress(on_progress, ProcessingStage.COMPLETE, 100, 100, report.message, description)
        self._console.log(
            f"[green]Ingestion:[/green] {description} completed "
            f"(processed={report.processed}, failed={report.failed}, total={report.total_in_database})"
        )
        return report

    async def status(self) -> StatusReport:
        """Summarise the ledger for ``GET /status``."""

        ledger = await asyncio.to_thread(self._ledger_store.load)
        recent = [
            RecentVideo(video_id=video_id, processed_at=entry.processed_at, title=entry.title, status=entry.status)
            for video_id, entry in ledger.recent(RECENT_VIDEOS_LIMIT)
        ]
        return StatusReport(
            timestamp=utc_now_iso(),
            stats=LedgerStats(
                total_videos_processed=ledger.total_videos,
                last_updated=ledger.last_updated,
                recent_videos=recent,
            ),
        )

    async def health(self) -> HealthReport:
        """Report credential presence and object store reachability."""

        missing = self._settings.missing_secrets()
        checks: Dict[str, str] = {
            name: ("missing" if name in missing else "present")
            for name in REQUIRED_SECRETS
        }
        checks["r2_access"] = await asyncio.to_thread(self._object_store.check_access)

        problems: List[str] = []
        if missing:
            problems.append(f"Missing required secrets: {', '.join(missing)}")
        if checks["r2_access"] != "accessible":
            problems.append(f"Object store unreachable: {checks['r2_access']}")

        return HealthReport(
            status=HealthState.UNHEALTHY if problems else HealthState.HEALTHY,
            timestamp=utc_now_iso(),
            version=__version__,
            checks=checks,
            error="; ".join(problems) or None,
        )

    async def close(self) -> None:
        await self._catalog.close()

    # ------------------------------------------------------------------ #
    # Pipeline steps                                                     #
    # ------------------------------------------------------------------ #
    async def _resolve(self, source: IngestionSource) -> Tuple[SourceType, str]:
        if isinstance(source, PlaylistSource):
            playlist_id = extract_playlist_id(source.reference)
            self._console.log(f"[blue]Ingestion:[/blue] processing playlist ID {playlist_id}")
            return SourceType.PLAYLIST, playlist_id
        channel_id = await self._resolver.resolve_channel_id(source.identifier)
        return SourceType.CHANNEL, channel_id

    async def _list(self, source_type: SourceType, source_id: str, limit: int) -> List[str]:
        if source_type is SourceType.PLAYLIST:
            return await self._catalog.list_playlist_videos(source_id, limit)
        return await self._catalog.list_channel_videos(source_id, limit)

    async def _persist(
        self,
        videos: Sequence[VideoMetadata],
        source_type: SourceType,
        source_id: str,
        description: str,
        on_progress: Optional[ProgressHandler],
    ) -> IngestionReport:
        ledger = await asyncio.to_thread(self._ledger_store.load)
        unseen = filter_unseen(videos, ledger)
        already_processed = len(videos) - len(unseen)
        self._console.log(
            f"[blue]Ingestion:[/blue] found {len(videos)} total videos, {len(unseen)} new videos to process"
        )

        if not unseen:
            return IngestionReport(
                message="No new videos to process",
                source=description,
                source_type=source_type,
                source_id=source_id,
                total_found=len(videos),
                already_processed=already_processed,
                total_in_database=ledger.total_videos,
            )

        emit_progress(
            on_progress, ProcessingStage.STORING, 0, 60, f"Storing {len(unseen)} new videos", description
        )
        settled = await gather_settled(unseen, self._store_video, limit=self._settings.storage_concurrency)
        outcomes = self._apply_outcomes(settled, ledger)
        succeeded = sum(1 for outcome in outcomes if outcome.status is VideoStatus.PROCESSED)

        if succeeded:
            emit_progress(on_progress, ProcessingStage.STORING, 90, 95, "Updating ledger", description)
            await asyncio.to_thread(self._ledger_store.save, ledger)

        return IngestionReport(
            message="Ingestion completed",
            source=description,
            source_type=source_type,
            source_id=source_id,
            processed=succeeded,
            failed=len(outcomes) - succeeded,
            total_found=len(videos),
            already_processed=already_processed,
            total_in_database=ledger.total_videos,
            errors=[f"{outcome.video_id}: {outcome.error}" for outcome in outcomes if outcome.error],
            items=outcomes,
        )

    async def _store_video(self, video: VideoMetadata) -> str:
        return await asyncio.to_thread(self._writer.store, video)

    def _apply_outcomes(
        self,
        settled: Sequence[Settled[VideoMetadata, str]],
        ledger: Ledger,
    ) -> List[VideoOutcome]:
        """Promote each video by its own write result and record only the successful ones."""

        outcomes: List[VideoOutcome] = []
        for result in settled:
            video = result.item
            if result.ok:
                ledger.record(video)
                status = VideoStatus.PROCESSED
                error = None
            else:
                status = VideoStatus.FAILED
                error = str(result.error) or result.error.__class__.__name__
                self._console.log(f"[red]Ingestion:[/red] failed to store {video.video_id}: {error}")
            video.status = status
            outcomes.append(VideoOutcome(video_id=video.video_id, title=video.title, status=status, error=error))
        return outcomes


def _unique_by_id(videos: Iterable[VideoMetadata]) -> List[VideoMetadata]:
    seen: set[str] = set()
    unique: List[VideoMetadata] = []
    for video in videos:
        if video.video_id in seen:
            continue
        seen.add(video.video_id)
        unique.append(video)
    return unique


__all__ = ["IngestionService", "RECENT_VIDEOS_LIMIT"]
