"""Persistence layer for video metadata documents and the ingestion ledger."""

from __future__ import annotations

import json
from typing import Any, Iterable, List, Mapping, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError
from rich.console import Console

from vingest.config.settings import ConfigurationError, Settings
from vingest.models.ledger import Ledger
from vingest.models.video import VideoMetadata

LEDGER_KEY = "processed_videos.json"
HEALTH_CHECK_KEY = "health-check"
JSON_CONTENT_TYPE = "application/json"
_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


def video_metadata_key(video_id: str) -> str:
    return f"videos/{video_id}/metadata.json"


class StorageError(RuntimeError):
    """Base exception raised when persistence fails."""


class StorageReadError(StorageError):
    """Raised when an object cannot be read from the store."""


class StorageWriteError(StorageError):
    """Raised when an object cannot be written to the store."""


class ObjectStore(Protocol):
    """Minimal key/value interface over a bucket of JSON documents."""

    def get_bytes(self, key: str) -> Optional[bytes]:
        """Return the object body, or ``None`` if the key does not exist."""

    def put_bytes(
        self,
        key: str,
        body: bytes,
        *,
        content_type: str = JSON_CONTENT_TYPE,
        cache_control: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Overwrite ``key`` with ``body``."""

    def check_access(self) -> str:
        """Return ``"accessible"`` or an ``"error: ..."`` description."""


class R2ObjectStore:
    """Cloudflare R2 bucket accessed through the S3-compatible API with boto3."""

    def __init__(self, *, settings: Settings, client: Optional[Any] = None) -> None:
        self._settings = settings
        self._bucket = settings.r2_bucket_name
        self._client = client

    @property
    def bucket(self) -> str:
        return self._bucket

    def get_bytes(self, key: str) -> Optional[bytes]:
        try:
            response = self._s3().get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if _error_code(exc) in _MISSING_KEY_CODES:
                return None
            raise StorageReadError(f"Failed to read {key}: {exc}") from exc
        except (BotoCoreError, ConfigurationError) as exc:
            raise StorageReadError(f"Failed to read {key}: {exc}") from exc

    def put_bytes(
        self,
        key: str,
        body: bytes,
        *,
        content_type: str = JSON_CONTENT_TYPE,
        cache_control: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> None:
        request: dict[str, Any] = {
            "Bucket": self._bucket,
            "Key": key,
            "Body": body,
            "ContentType": content_type,
        }
        if cache_control:
            request["CacheControl"] = cache_control
        if metadata:
            request["Metadata"] = dict(metadata)
        try:
            self._s3().put_object(**request)
        except (ClientError, BotoCoreError, ConfigurationError) as exc:
            raise StorageWriteError(f"Failed to write {key}: {exc}") from exc

    def check_access(self) -> str:
        try:
            self._s3().head_object(Bucket=self._bucket, Key=HEALTH_CHECK_KEY)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_KEY_CODES:
                return "accessible"
            return f"error: {exc}"
        except (BotoCoreError, ConfigurationError) as exc:
            return f"error: {exc}"
        return "accessible"

    def _s3(self) -> Any:
        if self._client is None:
            access_key = self._settings.r2_access_key_id
            secret_key = self._settings.r2_secret_access_key
            if not (access_key and access_key.get_secret_value() and secret_key and secret_key.get_secret_value()):
                raise ConfigurationError("R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY must be configured")
            self._client = boto3.client(
                "s3",
                endpoint_url=self._settings.r2_endpoint(),
                aws_access_key_id=access_key.get_secret_value(),
                aws_secret_access_key=secret_key.get_secret_value(),
                region_name="auto",
            )
        return self._client


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class LedgerStore:
    """Read and overwrite the singleton ``processed_videos.json`` ledger document."""

    def __init__(self, store: ObjectStore, *, console: Optional[Console] = None) -> None:
        self._store = store
        self._console = console or Console()

    def load(self) -> Ledger:
        """Return the persisted ledger, or a fresh empty one if it is missing or unreadable."""

        try:
            body = self._store.get_bytes(LEDGER_KEY)
        except StorageError as exc:
            self._console.log(f"[red]Storage:[/red] error reading ledger, starting empty: {exc}")
            return Ledger()

        if body is None:
            self._console.log("[yellow]Storage:[/yellow] no ledger found, starting empty")
            return Ledger()

        try:
            return Ledger.model_validate(json.loads(body))
        except (ValueError, ValidationError) as exc:
            self._console.log(f"[red]Storage:[/red] ledger document is malformed, starting empty: {exc}")
            return Ledger()

    def save(self, ledger: Ledger) -> None:
        """Stamp ``lastUpdated`` and overwrite the stored ledger.

        Raises
        ------
        StorageWriteError
            If the object store rejects the write.
        """

        ledger.touch()
        body = json.dumps(ledger.to_document(), indent=2).encode("utf-8")
        self._store.put_bytes(LEDGER_KEY, body, content_type=JSON_CONTENT_TYPE, cache_control="no-cache")
        self._console.log(f"[green]Storage:[/green] ledger saved (totalVideos={ledger.total_videos})")


def filter_unseen(videos: Iterable[VideoMetadata], ledger: Ledger) -> List[VideoMetadata]:
    """Return the videos whose IDs are absent from ``ledger``, keeping their order."""

    return [video for video in videos if video.video_id not in ledger]


class VideoMetadataWriter:
    """Write one metadata document per video under ``videos/{videoId}/``."""

    def __init__(self, store: ObjectStore, *, console: Optional[Console] = None) -> None:
        self._store = store
        self._console = console or Console()

    def store(self, video: VideoMetadata) -> str:
        """Persist ``video`` and return the object key it was written to."""

        key = video_metadata_key(video.video_id)
        body = json.dumps(video.to_document(), indent=2, ensure_ascii=False).encode("utf-8")
        self._store.put_bytes(
            key,
            body,
            content_type=JSON_CONTENT_TYPE,
            cache_control="public, max-age=3600",
            metadata={
                "videoId": video.video_id,
                "title": _ascii_header(video.title)[:100],
                "processedAt": video.processed_at,
                "channelId": video.channel_id,
            },
        )
        self._console.log(f"[green]Storage:[/green] stored metadata for {video.video_id} - {video.title}")
        return key


def _ascii_header(value: str) -> str:
    # S3 user metadata travels as HTTP headers.
    return value.encode("ascii", errors="ignore").decode("ascii")


__all__ = [
    "HEALTH_CHECK_KEY",
    "LEDGER_KEY",
    "LedgerStore",
    "ObjectStore",
    "R2ObjectStore",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "VideoMetadataWriter",
    "filter_unseen",
    "video_metadata_key",
]
