"""Pydantic models describing ingested YouTube video metadata."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import Field

from vingest.models.base import VingestBaseModel


class VideoStatus(str, Enum):
    """Lifecycle states for an ingested video."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class SourceType(str, Enum):
    """Kind of collection a video was ingested from."""

    CHANNEL = "channel"
    PLAYLIST = "playlist"


class VideoMetadata(VingestBaseModel):
    """Metadata document stored at ``videos/{videoId}/metadata.json``.

    Instances are produced by :func:`vingest.services.transform.to_video_metadata` and written once by
    :class:`vingest.services.storage.VideoMetadataWriter`.
    """

    video_id: str = Field(min_length=1)
    title: str = ""
    description: str = ""
    published_at: str = ""
    duration: str = ""
    view_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)
    channel_id: str = ""
    channel_title: str = ""
    thumbnails: Dict[str, str] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    category_id: str = ""
    default_language: str = "en"
    captions_available: bool = False
    processed_at: str
    status: VideoStatus = VideoStatus.PENDING
    source_type: SourceType
    source_id: str


__all__ = ["SourceType", "VideoMetadata", "VideoStatus"]
