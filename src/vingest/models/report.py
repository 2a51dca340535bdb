"""Result payloads returned by ingestion, status and health operations."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from vingest.models.base import VingestBaseModel
from vingest.models.video import SourceType, VideoStatus


class VideoOutcome(VingestBaseModel):
    """Per-video result of the persistence fan-out."""

    video_id: str
    title: str = ""
    status: VideoStatus
    error: Optional[str] = None


class IngestionReport(VingestBaseModel):
    """Aggregate counts and per-item errors for a single ingestion run."""

    success: bool = True
    message: str
    source: str
    source_type: SourceType
    source_id: str
    processed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    total_found: int = Field(default=0, ge=0)
    already_processed: int = Field(default=0, ge=0)
    total_in_database: int = Field(default=0, ge=0)
    errors: List[str] = Field(default_factory=list)
    items: List[VideoOutcome] = Field(default_factory=list)


class RecentVideo(VingestBaseModel):
    """Ledger entry flattened with its video identifier."""

    video_id: str
    processed_at: str
    title: str = ""
    status: VideoStatus


class LedgerStats(VingestBaseModel):
    total_videos_processed: int = Field(ge=0)
    last_updated: str
    recent_videos: List[RecentVideo] = Field(default_factory=list)


class StatusReport(VingestBaseModel):
    """Payload served by ``GET /status``."""

    status: str = "operational"
    timestamp: str
    stats: LedgerStats


class HealthState(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthReport(VingestBaseModel):
    """Payload served by ``GET /health``.

    ``checks`` keeps the environment-style credential names as keys, so it is not camelCased.
    """

    status: HealthState
    timestamp: str
    version: str
    checks: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.status is HealthState.HEALTHY


__all__ = [
    "HealthReport",
    "HealthState",
    "IngestionReport",
    "LedgerStats",
    "RecentVideo",
    "StatusReport",
    "VideoOutcome",
]
