"""Validation helpers for playlist references, channel identifiers and request limits."""

from __future__ import annotations

import re


class InvalidPlaylistFormatError(ValueError):
    """Raised when a value is neither a playlist ID nor a recognised playlist URL."""

    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid playlist format: {value}. Expected playlist URL or ID starting with 'PL'"
        )
        self.value = value


class InvalidMaxResultsError(ValueError):
    """Raised when a requested result count falls outside the permitted range."""


_PLAYLIST_URL_PATTERNS = (
    re.compile(r"[?&]list=([^&]+)"),
    re.compile(r"youtube\.com/playlist\?list=([^&]+)"),
    re.compile(r"youtu\.be/.*[?&]list=([^&]+)"),
)

CHANNEL_ID_PREFIX = "UC"
CHANNEL_ID_LENGTH = 24


def extract_playlist_id(value: str) -> str:
    """Extract a playlist ID from a raw identifier or one of the supported URL shapes."""

    stripped = value.strip()
    if stripped.startswith("PL") and len(stripped) > 10:
        return stripped

    for pattern in _PLAYLIST_URL_PATTERNS:
        match = pattern.search(stripped)
        if match and match.group(1):
            return match.group(1).split("&")[0]

    raise InvalidPlaylistFormatError(value)


def is_channel_id(value: str) -> bool:
    """Return ``True`` when ``value`` has the shape of a canonical ``UC...`` channel ID."""

    return value.startswith(CHANNEL_ID_PREFIX) and len(value) == CHANNEL_ID_LENGTH


def validate_max_results(value: int, ceiling: int = 50) -> int:
    """Validate a caller-supplied result count against the configured ceiling."""

    if value < 1 or value > ceiling:
        raise InvalidMaxResultsError(f"maxResults must be between 1 and {ceiling}, got {value}")
    return value


__all__ = [
    "CHANNEL_ID_LENGTH",
    "CHANNEL_ID_PREFIX",
    "InvalidMaxResultsError",
    "InvalidPlaylistFormatError",
    "extract_playlist_id",
    "is_channel_id",
    "validate_max_results",
]
