"""Normalise raw YouTube Data API video records into :class:`VideoMetadata`."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from vingest.models.ledger import utc_now_iso
from vingest.models.video import SourceType, VideoMetadata, VideoStatus

DEFAULT_LANGUAGE = "en"


def safe_int(value: object) -> int:
    """Coerce API counters (sent as strings) to a non-negative int, defaulting to 0."""

    if value is None or isinstance(value, bool):
        return 0
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return parsed if parsed >= 0 else 0


def _thumbnail_urls(raw: object) -> Dict[str, str]:
    if not isinstance(raw, Mapping):
        return {}
    urls: Dict[str, str] = {}
    for label, value in raw.items():
        if isinstance(value, Mapping) and value.get("url"):
            urls[str(label)] = str(value["url"])
        elif isinstance(value, str):
            urls[str(label)] = value
    return urls


def to_video_metadata(
    raw: Mapping[str, Any],
    *,
    source_type: SourceType,
    source_id: str,
    processed_at: Optional[str] = None,
) -> VideoMetadata:
    """Build a :class:`VideoMetadata` document from a ``videos.list`` item."""

    snippet = raw.get("snippet") or {}
    statistics = raw.get("statistics") or {}
    content_details = raw.get("contentDetails") or {}

    return VideoMetadata(
        video_id=str(raw["id"]),
        title=snippet.get("title") or "",
        description=snippet.get("description") or "",
        published_at=snippet.get("publishedAt") or "",
        duration=content_details.get("duration") or "",
        view_count=safe_int(statistics.get("viewCount")),
        like_count=safe_int(statistics.get("likeCount")),
        channel_id=snippet.get("channelId") or "",
        channel_title=snippet.get("channelTitle") or "",
        thumbnails=_thumbnail_urls(snippet.get("thumbnails")),
        tags=[str(tag) for tag in snippet.get("tags") or []],
        category_id=snippet.get("categoryId") or "",
        default_language=snippet.get("defaultLanguage") or DEFAULT_LANGUAGE,
        captions_available=False,
        processed_at=processed_at or utc_now_iso(),
        status=VideoStatus.PENDING,
        source_type=source_type,
        source_id=source_id,
    )


__all__ = ["DEFAULT_LANGUAGE", "safe_int", "to_video_metadata"]
