import pytest
from pydantic import ValidationError

from vingest.config.settings import ConfigurationError, RateLimitConfig, ServiceRateLimit, Settings
from vingest.utils.rate_limit import RateLimiter, limiter_from_config


def test_settings_defaults() -> None:
    settings = Settings(_env_file=None, YOUTUBE_API_KEY="key", DEFAULT_CHANNEL="Isaiah Rivera")

    assert settings.default_channel == "Isaiah Rivera"
    assert settings.default_max_results == 10
    assert settings.max_results_ceiling == 50
    assert settings.r2_bucket_name == "video-ingestion"
    assert settings.youtube_api_base_url == "https://www.googleapis.com/youtube/v3"
    assert settings.require_youtube_api_key() == "key"


def test_rate_limits_loaded_from_bundled_yaml() -> None:
    settings = Settings(_env_file=None)

    youtube = settings.rate_limits.services["youtube_api"]
    assert youtube.requests_per_minute == 60
    assert youtube.burst == 10


def test_require_youtube_api_key_raises_when_blank() -> None:
    settings = Settings(_env_file=None, YOUTUBE_API_KEY="")

    with pytest.raises(ConfigurationError, match="YOUTUBE_API_KEY"):
        settings.require_youtube_api_key()


def test_r2_endpoint_derivation() -> None:
    derived = Settings(_env_file=None, CLOUDFLARE_ACCOUNT_ID="abc123", R2_ENDPOINT_URL=None)
    assert derived.r2_endpoint() == "https://abc123.r2.cloudflarestorage.com"

    explicit = Settings(_env_file=None, R2_ENDPOINT_URL="http://localhost:9000/")
    assert explicit.r2_endpoint() == "http://localhost:9000"

    with pytest.raises(ConfigurationError):
        Settings(_env_file=None, CLOUDFLARE_ACCOUNT_ID="", R2_ENDPOINT_URL=None).r2_endpoint()


def test_missing_secrets_lists_blank_values() -> None:
    settings = Settings(
        _env_file=None,
        YOUTUBE_API_KEY="key",
        CLOUDFLARE_ACCOUNT_ID="",
        R2_ACCESS_KEY_ID="id",
        R2_SECRET_ACCESS_KEY="",
    )

    assert settings.missing_secrets() == ["CLOUDFLARE_ACCOUNT_ID", "R2_SECRET_ACCESS_KEY"]


def test_settings_are_frozen() -> None:
    settings = Settings(_env_file=None, YOUTUBE_API_KEY="key")

    with pytest.raises(ValidationError):
        settings.default_channel = "someone else"


def test_max_results_ceiling_is_capped() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, MAX_RESULTS_CEILING=100)


def test_limiter_from_config() -> None:
    assert limiter_from_config(None) is None

    limiter = limiter_from_config(ServiceRateLimit(requests_per_minute=120, burst=4))
    assert isinstance(limiter, RateLimiter)
    assert limiter.requests_per_minute == 120
    assert limiter.burst == 4


async def test_rate_limiter_consumes_burst_tokens() -> None:
    limiter = RateLimiter(requests_per_minute=60, burst=3)

    for _ in range(3):
        await limiter.acquire()

    assert limiter.available_tokens < 1.0


def test_empty_rate_limit_config() -> None:
    assert RateLimitConfig().services == {}


@pytest.mark.parametrize("field", ["requests_per_day", "requests_per_hour"])
def test_service_rate_limit_rejects_unused_windows(field: str) -> None:
    with pytest.raises(ValidationError):
        ServiceRateLimit(**{field: 1})
