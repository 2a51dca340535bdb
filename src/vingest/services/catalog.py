"""YouTube Data API v3 client covering channel resolution, listings and batched detail lookups."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx
from rich.console import Console

from vingest.config.settings import Settings
from vingest.utils.rate_limit import RateLimiter, limiter_from_config

RETRY_BACKOFF_SECONDS = 1.5
MAX_IDS_PER_DETAILS_CALL = 50
CHANNEL_SEARCH_CANDIDATES = 5
DETAIL_PARTS = "snippet,statistics,contentDetails"

RawRecord = Dict[str, Any]


class CatalogError(RuntimeError):
    """Base exception raised for catalog lookups."""


class RemoteApiError(CatalogError):
    """Raised when the YouTube Data API answers with a non-success status."""

    def __init__(self, status_code: int, message: str, *, endpoint: str = "") -> None:
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        location = f" ({endpoint})" if endpoint else ""
        super().__init__(f"YouTube API error{location}: {status_code} - {message}")


class EmptyPlaylistError(CatalogError):
    """Raised when a playlist lookup returns no items."""

    def __init__(self, playlist_id: str) -> None:
        super().__init__(f"No videos found in playlist: {playlist_id}")
        self.playlist_id = playlist_id


class YouTubeCatalogClient:
    """Thin async wrapper around the YouTube Data API endpoints the ingestion pipeline needs.

    Every request requires ``YOUTUBE_API_KEY``; a missing key raises
    :class:`vingest.config.settings.ConfigurationError` before any network traffic.
    Transport failures are retried with a linear backoff. Non-2xx responses are surfaced
    immediately as :class:`RemoteApiError` and never retried.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        console: Optional[Console] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._settings = settings
        self._console = console or Console()
        self._base_url = settings.youtube_api_base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_seconds))
        self._owns_client = http_client is None
        self._rate_limiter = rate_limiter or limiter_from_config(settings.rate_limits.services.get("youtube_api"))
        self._attempts = settings.youtube_retry_attempts

    # ------------------------------------------------------------------ #
    # Channel lookups                                                    #
    # ------------------------------------------------------------------ #
    async def find_channel_by_handle(self, handle: str) -> Optional[str]:
        """Return the channel ID registered for ``@handle``, if any."""

        payload = await self._get("channels", {"part": "id,snippet", "forHandle": handle})
        return self._first_channel_id(payload)

    async def find_channel_by_id(self, channel_id: str) -> Optional[str]:
        """Confirm that ``channel_id`` exists and return it."""

        payload = await self._get("channels", {"part": "id,snippet", "id": channel_id})
        return self._first_channel_id(payload)

    async def find_channel_by_username(self, username: str) -> Optional[str]:
        """Return the channel ID registered for a legacy username, if any."""

        payload = await self._get("channels", {"part": "id,snippet", "forUsername": username})
        return self._first_channel_id(payload)

    async def search_channels(self, query: str, *, limit: int = CHANNEL_SEARCH_CANDIDATES) -> List[str]:
        """Return candidate channel IDs for a free-text query in relevance order."""

        payload = await self._get(
            "search",
            {"part": "snippet", "q": query, "type": "channel", "maxResults": limit},
        )
        candidates: List[str] = []
        for item in payload.get("items") or []:
            snippet = item.get("snippet") or {}
            channel_id = snippet.get("channelId") or (item.get("id") or {}).get("channelId")
            if channel_id:
                candidates.append(channel_id)
                self._console.log(f"[dim]Catalog:[/dim] search candidate {snippet.get('title', '?')} ({channel_id})")
        return candidates

    # ------------------------------------------------------------------ #
    # Listings                                                           #
    # ------------------------------------------------------------------ #
    async def list_channel_videos(self, channel_id: str, max_results: int) -> List[str]:
        """Return the newest video IDs uploaded to ``channel_id``."""

        payload = await self._get(
            "search",
            {
                "part": "snippet",
                "channelId": channel_id,
                "maxResults": max_results,
                "order": "date",
                "type": "video",
            },
        )
        video_ids = [
            item["id"]["videoId"]
            for item in payload.get("items") or []
            if (item.get("id") or {}).get("videoId")
        ]
        self._console.log(f"[blue]Catalog:[/blue] channel {channel_id} listed {len(video_ids)} videos")
        return video_ids

    async def list_playlist_videos(self, playlist_id: str, max_results: int) -> List[str]:
        """Return the video IDs contained in ``playlist_id`` in playlist order.

        Raises
        ------
        EmptyPlaylistError
            If the playlist returns no items.
        """

        payload = await self._get(
            "playlistItems",
            {"part": "snippet", "playlistId": playlist_id, "maxResults": max_results},
        )
        items = payload.get("items") or []
        if not items:
            raise EmptyPlaylistError(playlist_id)

        video_ids: List[str] = []
        for item in items:
            resource = (item.get("snippet") or {}).get("resourceId") or {}
            video_id = resource.get("videoId")
            if video_id:
                video_ids.append(video_id)
        self._console.log(f"[blue]Catalog:[/blue] playlist {playlist_id} listed {len(video_ids)} videos")
        return video_ids

    async def fetch_video_details(self, video_ids: Sequence[str]) -> List[RawRecord]:
        """Fetch snippet, statistics and content details for ``video_ids`` in a single request."""

        if not video_ids:
            return []
        if len(video_ids) > MAX_IDS_PER_DETAILS_CALL:
            raise ValueError(
                f"fetch_video_details accepts at most {MAX_IDS_PER_DETAILS_CALL} ids per call, got {len(video_ids)}"
            )

        payload = await self._get("videos", {"part": DETAIL_PARTS, "id": ",".join(video_ids)})
        return list(payload.get("items") or [])

    async def close(self) -> None:
        """Release the underlying HTTP client when this instance created it."""

        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _get(self, endpoint: str, params: Mapping[str, object]) -> Dict[str, Any]:
        api_key = self._settings.require_youtube_api_key()
        url = f"{self._base_url}/{endpoint}"
        query = {**params, "key": api_key}

        attempt = 0
        while True:
            attempt += 1
            if self._rate_limiter is not None:
                await self._rate_limiter.acquire()
            try:
                response = await self._client.get(url, params=query)
                break
            except httpx.TransportError as exc:
                if attempt >= self._attempts:
                    self._console.log(
                        f"[red]Catalog request failed after {attempt} attempts:[/red] {exc} (endpoint={endpoint})"
                    )
                    raise
                delay = min(RETRY_BACKOFF_SECONDS * attempt, 10.0)
                self._console.log(
                    f"[yellow]Catalog request attempt {attempt} failed:[/yellow] {exc}; "
                    f"retrying in {delay:.1f}s (endpoint={endpoint})"
                )
                await asyncio.sleep(delay)

        if not response.is_success:
            raise RemoteApiError(response.status_code, _error_message(response), endpoint=endpoint)
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteApiError(response.status_code, "malformed JSON response", endpoint=endpoint) from exc
        if not isinstance(payload, dict):
            raise RemoteApiError(response.status_code, "unexpected response shape", endpoint=endpoint)
        return payload

    @staticmethod
    def _first_channel_id(payload: Mapping[str, Any]) -> Optional[str]:
        items = payload.get("items") or []
        if not items:
            return None
        return items[0].get("id") or None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or response.text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.reason_phrase or str(body)


__all__ = [
    "CatalogError",
    "EmptyPlaylistError",
    "RemoteApiError",
    "YouTubeCatalogClient",
]
