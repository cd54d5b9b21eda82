from typing import Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    docs_base_url: Optional[AnyHttpUrl] = None

    # Remote layout of an MkDocs site
    search_index_path: str = "search/search_index.json"
    versions_manifest_path: str = "versions.json"

    # Index cache bounds
    cache_max_size: int = 50
    cache_max_memory_mb: float = 500
    cache_ttl_minutes: float = 60

    # Version manifest / transport
    versions_cache_timeout_seconds: float = 300
    retry_attempts: int = 3
    retry_base_delay_ms: int = 1000
    http_timeout_seconds: float = 15.0

    # Ranking
    search_confidence_threshold: float = 0.1
    suggestion_min_results: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )


class CacheOptions(BaseModel):
    """Bounds applied by IndexCache."""

    max_size: int = Field(default=50, ge=1)
    max_memory_mb: float = Field(default=500, gt=0)
    ttl_minutes: float = Field(default=60, gt=0)

    @classmethod
    def from_settings(cls, s: "Settings") -> "CacheOptions":
        return cls(
            max_size=s.cache_max_size,
            max_memory_mb=s.cache_max_memory_mb,
            ttl_minutes=s.cache_ttl_minutes,
        )


class VersionManagerOptions(BaseModel):
    """Manifest caching for VersionManager."""

    cache_timeout_seconds: float = Field(default=300, ge=0)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_settings(cls, s: "Settings") -> "VersionManagerOptions":
        return cls(cache_timeout_seconds=s.versions_cache_timeout_seconds)


class ClientOptions(BaseModel):
    """Retry policy and timeout for DocsSiteClient."""

    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay_ms: int = Field(default=1000, ge=0)
    timeout_seconds: float = Field(default=15.0, gt=0)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_settings(cls, s: "Settings") -> "ClientOptions":
        return cls(
            retry_attempts=s.retry_attempts,
            retry_base_delay_ms=s.retry_base_delay_ms,
            timeout_seconds=s.http_timeout_seconds,
        )


settings = Settings()
