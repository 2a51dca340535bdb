"""Models for the persisted ledger of ingested video identifiers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pydantic import ConfigDict, Field, computed_field

from vingest.models.base import VingestBaseModel
from vingest.models.video import VideoMetadata, VideoStatus


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with millisecond precision."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class LedgerEntry(VingestBaseModel):
    """Record kept for each ingested video identifier."""

    processed_at: str
    title: str = ""
    status: VideoStatus = VideoStatus.PROCESSED


class Ledger(VingestBaseModel):
    """Singleton document stored at ``processed_videos.json``.

    ``totalVideos`` is derived from ``videos`` so the two can never disagree. Stored documents may carry
    a stale ``totalVideos`` value; it is ignored on load.
    """

    last_updated: str = Field(default_factory=utc_now_iso)
    videos: Dict[str, LedgerEntry] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @computed_field(alias="totalVideos")  # type: ignore[prop-decorator]
    @property
    def total_videos(self) -> int:
        return len(self.videos)

    def __contains__(self, video_id: object) -> bool:
        return video_id in self.videos

    def record(self, video: VideoMetadata, *, processed_at: Optional[str] = None) -> LedgerEntry:
        """Add a processed entry for ``video`` and return it."""

        entry = LedgerEntry(
            processed_at=processed_at or utc_now_iso(),
            title=video.title,
            status=VideoStatus.PROCESSED,
        )
        self.videos = {**self.videos, video.video_id: entry}
        return entry

    def touch(self) -> None:
        self.last_updated = utc_now_iso()

    def recent(self, limit: int = 5) -> List[Tuple[str, LedgerEntry]]:
        """Return the newest ``limit`` entries ordered by ``processedAt`` descending."""

        ordered = sorted(self.videos.items(), key=lambda item: _sort_key(item[1].processed_at), reverse=True)
        return ordered[:limit]


def _sort_key(timestamp: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["Ledger", "LedgerEntry", "utc_now_iso"]
