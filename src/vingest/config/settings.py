"""Application settings loaded from environment variables and config files."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, PositiveFloat, PositiveInt, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from vingest.config import CONFIG_ROOT


class ConfigurationError(RuntimeError):
    """Raised when a required credential or setting is missing."""


class ServiceRateLimit(BaseModel):
    """Token bucket settings for an external service: refill rate per minute and bucket size."""

    requests_per_minute: Optional[PositiveInt] = None
    burst: Optional[PositiveInt] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class RateLimitConfig(BaseModel):
    """Top-level configuration for all service rate limits."""

    services: Dict[str, ServiceRateLimit] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)


def _load_rate_limits(rate_limit_path: Path) -> RateLimitConfig:
    if not rate_limit_path.exists():
        return RateLimitConfig()

    raw_data = yaml.safe_load(rate_limit_path.read_text(encoding="utf-8")) or {}

    services: Dict[str, ServiceRateLimit] = {}
    for service_name, config in raw_data.get("services", {}).items():
        services[service_name] = ServiceRateLimit(**config)
    return RateLimitConfig(services=services)


# Credentials reported by the health check, keyed by their environment name.
REQUIRED_SECRETS = (
    "YOUTUBE_API_KEY",
    "CLOUDFLARE_ACCOUNT_ID",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
)


class Settings(BaseSettings):
    """Immutable worker settings, built once at process start and passed explicitly."""

    youtube_api_key: Optional[SecretStr] = Field(default=None, alias="YOUTUBE_API_KEY")
    cloudflare_account_id: Optional[str] = Field(default=None, alias="CLOUDFLARE_ACCOUNT_ID")
    r2_access_key_id: Optional[SecretStr] = Field(default=None, alias="R2_ACCESS_KEY_ID")
    r2_secret_access_key: Optional[SecretStr] = Field(default=None, alias="R2_SECRET_ACCESS_KEY")
    r2_bucket_name: str = Field(default="video-ingestion", alias="R2_BUCKET_NAME")
    r2_endpoint_url: Optional[HttpUrl] = Field(default=None, alias="R2_ENDPOINT_URL")

    youtube_api_base_url: str = Field(default="https://www.googleapis.com/youtube/v3", alias="YOUTUBE_API_BASE_URL")
    default_channel: str = Field(default="Isaiah Rivera", alias="DEFAULT_CHANNEL")
    default_max_results: PositiveInt = Field(default=10, alias="DEFAULT_MAX_RESULTS")
    max_results_ceiling: PositiveInt = Field(default=50, le=50, alias="MAX_RESULTS_CEILING")
    storage_concurrency: PositiveInt = Field(default=8, alias="STORAGE_CONCURRENCY")
    request_timeout_seconds: PositiveFloat = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")
    ingest_timeout_seconds: PositiveFloat = Field(default=120.0, alias="INGEST_TIMEOUT_SECONDS")
    youtube_retry_attempts: PositiveInt = Field(default=3, alias="YOUTUBE_RETRY_ATTEMPTS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    rate_limits: RateLimitConfig = Field(default_factory=lambda: _load_rate_limits(CONFIG_ROOT / "rate_limits.yaml"))

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True)

    def require_youtube_api_key(self) -> str:
        """Return the YouTube Data API key or raise :class:`ConfigurationError`."""

        if self.youtube_api_key is None or not self.youtube_api_key.get_secret_value():
            raise ConfigurationError("YOUTUBE_API_KEY is not configured")
        return self.youtube_api_key.get_secret_value()

    def r2_endpoint(self) -> str:
        """Return the S3-compatible endpoint for the configured R2 account."""

        if self.r2_endpoint_url is not None:
            return str(self.r2_endpoint_url).rstrip("/")
        if not self.cloudflare_account_id:
            raise ConfigurationError("CLOUDFLARE_ACCOUNT_ID or R2_ENDPOINT_URL must be configured")
        return f"https://{self.cloudflare_account_id}.r2.cloudflarestorage.com"

    def missing_secrets(self) -> List[str]:
        """Return the names of required credentials that are absent."""

        values = {
            "YOUTUBE_API_KEY": self.youtube_api_key,
            "CLOUDFLARE_ACCOUNT_ID": self.cloudflare_account_id,
            "R2_ACCESS_KEY_ID": self.r2_access_key_id,
            "R2_SECRET_ACCESS_KEY": self.r2_secret_access_key,
        }
        missing: List[str] = []
        for name in REQUIRED_SECRETS:
            value = values[name]
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            if not value:
                missing.append(name)
        return missing


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()


__all__ = [
    "ConfigurationError",
    "REQUIRED_SECRETS",
    "RateLimitConfig",
    "ServiceRateLimit",
    "Settings",
    "get_settings",
]
