import io
import json

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from vingest.config.settings import Settings
from vingest.models.ledger import Ledger
from vingest.models.video import SourceType
from vingest.services.storage import (
    LEDGER_KEY,
    LedgerStore,
    R2ObjectStore,
    StorageReadError,
    StorageWriteError,
    VideoMetadataWriter,
    filter_unseen,
    video_metadata_key,
)
from vingest.services.transform import to_video_metadata

from conftest import MemoryObjectStore, make_record


def _video(video_id: str, title: str = ""):
    return to_video_metadata(
        make_record(video_id, title=title or None),
        source_type=SourceType.CHANNEL,
        source_id="UCabcdefghijklmnopqrstuv",
    )


def test_ledger_load_returns_empty_when_missing(object_store: MemoryObjectStore, console) -> None:
    ledger = LedgerStore(object_store, console=console).load()

    assert ledger.videos == {}
    assert ledger.total_videos == 0


def test_ledger_load_degrades_on_read_error(object_store: MemoryObjectStore, console) -> None:
    object_store.objects[LEDGER_KEY] = b'{"videos": {"v1": {"processedAt": "2024-01-01T00:00:00.000Z"}}}'
    object_store.read_error = True

    assert LedgerStore(object_store, console=console).load().videos == {}


def test_ledger_load_degrades_on_malformed_document(object_store: MemoryObjectStore, console) -> None:
    object_store.objects[LEDGER_KEY] = b"{not json"

    assert LedgerStore(object_store, console=console).load().videos == {}


def test_ledger_load_ignores_stale_total(object_store: MemoryObjectStore, console) -> None:
    object_store.objects[LEDGER_KEY] = json.dumps(
        {
            "lastUpdated": "2024-01-01T00:00:00.000Z",
            "totalVideos": 99,
            "videos": {
                "v1": {"processedAt": "2024-01-01T00:00:00.000Z", "title": "One", "status": "processed"},
            },
        }
    ).encode()

    ledger = LedgerStore(object_store, console=console).load()

    assert "v1" in ledger
    assert ledger.total_videos == 1
    assert ledger.videos["v1"].title == "One"


def test_ledger_save_round_trip(object_store: MemoryObjectStore, console) -> None:
    store = LedgerStore(object_store, console=console)
    ledger = Ledger(last_updated="2000-01-01T00:00:00.000Z")
    ledger.record(_video("v1", "First"))
    ledger.record(_video("v2", "Second"))

    store.save(ledger)

    document = json.loads(object_store.objects[LEDGER_KEY])
    assert document["totalVideos"] == 2
    assert document["totalVideos"] == len(document["videos"])
    assert document["lastUpdated"] != "2000-01-01T00:00:00.000Z"
    assert document["videos"]["v1"]["title"] == "First"
    assert document["videos"]["v1"]["status"] == "processed"
    assert set(store.load().videos) == {"v1", "v2"}


def test_ledger_recent_orders_by_processed_at() -> None:
    ledger = Ledger()
    for index in range(7):
        ledger.record(_video(f"v{index}"), processed_at=f"2024-01-0{index + 1}T00:00:00.000Z")

    assert [video_id for video_id, _ in ledger.recent(5)] == ["v6", "v5", "v4", "v3", "v2"]


def test_filter_unseen_drops_known_ids() -> None:
    ledger = Ledger()
    ledger.record(_video("v1"))

    unseen = filter_unseen([_video("v1"), _video("v2")], ledger)

    assert [video.video_id for video in unseen] == ["v2"]


def test_metadata_writer_stores_document_and_headers(object_store: MemoryObjectStore, console) -> None:
    title = "Pliométricos para saltar más alto " + "x" * 120
    video = _video("abc123", title)

    key = VideoMetadataWriter(object_store, console=console).store(video)

    assert key == video_metadata_key("abc123") == "videos/abc123/metadata.json"
    document = json.loads(object_store.objects[key])
    assert document["videoId"] == "abc123"
    assert document["title"] == title
    metadata = object_store.metadata[key]
    assert metadata["videoId"] == "abc123"
    assert metadata["channelId"] == "UCabcdefghijklmnopqrstuv"
    assert metadata["processedAt"] == video.processed_at
    assert len(metadata["title"]) == 100
    assert metadata["title"].isascii()


def test_metadata_writer_propagates_write_errors(object_store: MemoryObjectStore, console) -> None:
    object_store.failing_keys.add(video_metadata_key("bad"))

    with pytest.raises(StorageWriteError):
        VideoMetadataWriter(object_store, console=console).store(_video("bad"))


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        endpoint_url="https://account123.r2.cloudflarestorage.com",
        aws_access_key_id="access-key",
        aws_secret_access_key="secret-key",
    )


@pytest.fixture
def r2_store(settings: Settings, s3_client) -> R2ObjectStore:
    return R2ObjectStore(settings=settings, client=s3_client)


def test_r2_get_bytes_reads_body(r2_store: R2ObjectStore, s3_client) -> None:
    payload = b'{"videos": {}}'
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(payload), len(payload))},
            {"Bucket": "video-ingestion", "Key": LEDGER_KEY},
        )
        assert r2_store.get_bytes(LEDGER_KEY) == payload
        stubber.assert_no_pending_responses()


def test_r2_get_bytes_returns_none_for_missing_key(r2_store: R2ObjectStore, s3_client) -> None:
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        assert r2_store.get_bytes(LEDGER_KEY) is None


def test_r2_get_bytes_wraps_other_errors(r2_store: R2ObjectStore, s3_client) -> None:
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(StorageReadError):
            r2_store.get_bytes(LEDGER_KEY)


def test_r2_put_bytes_sends_headers(r2_store: R2ObjectStore, s3_client) -> None:
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "put_object",
            {},
            {
                "Bucket": "video-ingestion",
                "Key": "videos/abc/metadata.json",
                "Body": ANY,
                "ContentType": "application/json",
                "CacheControl": "public, max-age=3600",
                "Metadata": {"videoId": "abc"},
            },
        )
        r2_store.put_bytes(
            "videos/abc/metadata.json",
            b"{}",
            cache_control="public, max-age=3600",
            metadata={"videoId": "abc"},
        )
        stubber.assert_no_pending_responses()


def test_r2_put_bytes_wraps_errors(r2_store: R2ObjectStore, s3_client) -> None:
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("put_object", service_error_code="InternalError", http_status_code=500)
        with pytest.raises(StorageWriteError, match="videos/abc/metadata.json"):
            r2_store.put_bytes("videos/abc/metadata.json", b"{}")


def test_r2_check_access_treats_missing_marker_object_as_accessible(r2_store: R2ObjectStore, s3_client) -> None:
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        assert r2_store.check_access() == "accessible"


def test_r2_check_access_reports_errors(r2_store: R2ObjectStore, s3_client) -> None:
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("head_object", service_error_code="403", http_status_code=403)
        assert r2_store.check_access().startswith("error:")


def test_r2_store_requires_credentials() -> None:
    settings = Settings(_env_file=None, CLOUDFLARE_ACCOUNT_ID="account123", R2_ACCESS_KEY_ID="", R2_SECRET_ACCESS_KEY="")
    store = R2ObjectStore(settings=settings)

    with pytest.raises(StorageWriteError, match="R2_ACCESS_KEY_ID"):
        store.put_bytes("key", b"{}")
    assert store.check_access().startswith("error:")
