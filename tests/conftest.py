from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set

import httpx
import pytest
from rich.console import Console

from vingest.config.settings import RateLimitConfig, Settings
from vingest.services.catalog import YouTubeCatalogClient
from vingest.services.ingestion import IngestionService
from vingest.services.storage import StorageReadError, StorageWriteError


def make_record(video_id: str, title: Optional[str] = None, **overrides: Any) -> Dict[str, Any]:
    """Build a ``videos.list`` item shaped like the YouTube Data API response."""

    record: Dict[str, Any] = {
        "kind": "youtube#video",
        "id": video_id,
        "snippet": {
            "publishedAt": "2024-05-01T12:00:00Z",
            "channelId": "UCabcdefghijklmnopqrstuv",
            "title": title or f"Video {video_id}",
            "description": f"Description for {video_id}",
            "thumbnails": {
                "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg", "width": 120, "height": 90},
                "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg", "width": 480, "height": 360},
            },
            "channelTitle": "Test Channel",
            "tags": ["jump", "training"],
            "categoryId": "17",
        },
        "contentDetails": {"duration": "PT4M13S"},
        "statistics": {"viewCount": "1523", "likeCount": "87"},
    }
    record.update(overrides)
    return record


@dataclass
class FakeYouTube:
    """In-process stand-in for the YouTube Data API served through ``httpx.MockTransport``."""

    handles: Dict[str, str] = field(default_factory=dict)
    channel_ids: Set[str] = field(default_factory=set)
    usernames: Dict[str, str] = field(default_factory=dict)
    search_results: Dict[str, List[str]] = field(default_factory=dict)
    channel_videos: Dict[str, List[str]] = field(default_factory=dict)
    playlists: Dict[str, List[str]] = field(default_factory=dict)
    records: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    failures: Dict[str, int] = field(default_factory=dict)
    garbled: Set[str] = field(default_factory=set)
    requests: List[httpx.Request] = field(default_factory=list)

    def add_videos(self, *video_ids: str) -> None:
        for video_id in video_ids:
            self.records[video_id] = make_record(video_id)

    def calls(self, endpoint: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(f"/{endpoint}")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        params = request.url.params

        if endpoint in self.failures:
            status_code = self.failures[endpoint]
            return httpx.Response(status_code, json={"error": {"code": status_code, "message": f"{endpoint} failed"}})

        if endpoint in self.garbled:
            return httpx.Response(200, text="<html>gateway</html>", headers={"Content-Type": "text/html"})

        if endpoint == "channels":
            channel_id: Optional[str] = None
            if "forHandle" in params:
                channel_id = self.handles.get(params["forHandle"])
            elif "id" in params:
                channel_id = params["id"] if params["id"] in self.channel_ids else None
            elif "forUsername" in params:
                channel_id = self.usernames.get(params["forUsername"])
            items = [{"kind": "youtube#channel", "id": channel_id, "snippet": {"title": "Channel"}}] if channel_id else []
            return httpx.Response(200, json={"items": items})

        if endpoint == "search":
            limit = int(params.get("maxResults", "5"))
            if params.get("type") == "channel":
                matches = self.search_results.get(params["q"], [])[:limit]
                items = [{"id": {"channelId": cid}, "snippet": {"channelId": cid, "title": cid}} for cid in matches]
            else:
                videos = self.channel_videos.get(params["channelId"], [])[:limit]
                items = [{"id": {"kind": "youtube#video", "videoId": vid}} for vid in videos]
            return httpx.Response(200, json={"items": items})

        if endpoint == "playlistItems":
            limit = int(params.get("maxResults", "5"))
            videos = self.playlists.get(params["playlistId"], [])[:limit]
            items = [{"snippet": {"resourceId": {"kind": "youtube#video", "videoId": vid}}} for vid in videos]
            return httpx.Response(200, json={"items": items})

        if endpoint == "videos":
            ids = [value for value in params["id"].split(",") if value]
            return httpx.Response(200, json={"items": [self.records[vid] for vid in ids if vid in self.records]})

        return httpx.Response(404, json={"error": {"code": 404, "message": "unknown endpoint"}})


class MemoryObjectStore:
    """Dictionary-backed object store with switchable failures."""

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.metadata: Dict[str, Dict[str, str]] = {}
        self.writes: List[str] = []
        self.failing_keys: Set[str] = set()
        self.read_error = False
        self.access = "accessible"

    def get_bytes(self, key: str) -> Optional[bytes]:
        if self.read_error:
            raise StorageReadError(f"Failed to read {key}: simulated outage")
        return self.objects.get(key)

    def put_bytes(
        self,
        key: str,
        body: bytes,
        *,
        content_type: str = "application/json",
        cache_control: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.writes.append(key)
        if key in self.failing_keys:
            raise StorageWriteError(f"Failed to write {key}: simulated outage")
        self.objects[key] = body
        self.metadata[key] = dict(metadata or {})

    def check_access(self) -> str:
        return self.access


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        YOUTUBE_API_KEY="test-api-key",
        CLOUDFLARE_ACCOUNT_ID="account123",
        R2_ACCESS_KEY_ID="access-key",
        R2_SECRET_ACCESS_KEY="secret-key",
        rate_limits=RateLimitConfig(),
    )


@pytest.fixture
def youtube() -> FakeYouTube:
    return FakeYouTube()


@pytest.fixture
def object_store() -> MemoryObjectStore:
    return MemoryObjectStore()


def build_catalog(settings: Settings, youtube: FakeYouTube, console: Console) -> YouTubeCatalogClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(youtube.handler))
    return YouTubeCatalogClient(settings=settings, console=console, http_client=http_client)


@pytest.fixture
def catalog(settings: Settings, youtube: FakeYouTube, console: Console) -> YouTubeCatalogClient:
    return build_catalog(settings, youtube, console)


@pytest.fixture
def service(
    settings: Settings,
    catalog: YouTubeCatalogClient,
    object_store: MemoryObjectStore,
    console: Console,
) -> IngestionService:
    return IngestionService(settings=settings, catalog=catalog, object_store=object_store, console=console)
