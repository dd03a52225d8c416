import logging
import tempfile
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables or `.env` file."""

    env: Literal["dev", "docker", "production"] = Field(
        default="dev",
        description="Runtime environment: dev (local), docker (docker-compose), or production",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Upstream scripture site
    upstream_base_url: str = Field(default="https://www.bible.com")
    upstream_timeout: float = Field(default=10.0, description="Per-request timeout in seconds")

    # Speech synthesis
    speech_api_url: str = Field(default="https://audio.api.speechify.com/generateAudioFiles")
    speech_timeout: float = Field(default=60.0, description="Per-chunk synthesis timeout in seconds")
    speech_char_limit: int = Field(default=3000, gt=0, description="Hard character budget per chunk")
    synthesis_concurrency: int = Field(
        default=4, gt=0, description="Maximum simultaneous synthesis calls per request"
    )
    single_flight_enabled: bool = Field(
        default=True, description="Coalesce concurrent generation of the same chapter"
    )
    staging_dir: str = Field(default_factory=tempfile.gettempdir)

    # S3-compatible object storage
    storage_key: str | None = None
    storage_secret: str | None = None
    storage_region: str | None = None
    storage_bucket: str = Field(default="data-biblia-chat")
    storage_endpoint: str | None = Field(default=None, validate_default=True)
    storage_public_url: str | None = Field(
        default=None, description="Base URL of published objects (defaults to endpoint/bucket)"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("storage_endpoint", mode="after")
    @classmethod
    def validate_storage_endpoint(cls, v: str | None, values) -> str | None:
        """Derive the endpoint from the region when only the region is given."""
        if not v:
            region = values.data.get("storage_region")
            if region:
                return f"https://s3.{region}.backblazeb2.com"
        return v


@lru_cache
def get_settings() -> Settings:  # pragma: no cover
    """Return a cached instance of Settings."""
    s = Settings()
    logging.basicConfig(level=s.log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info(f"Starting Scriptura in {s.env.upper()} environment")
    logger.info("=" * 60)
    logger.info(f"Upstream: {s.upstream_base_url}")
    logger.info(f"Storage bucket: {s.storage_bucket} ({s.storage_endpoint})")
    logger.info(f"Speech chunk limit: {s.speech_char_limit}, concurrency: {s.synthesis_concurrency}")
    logger.info("=" * 60)

    if s.env == "production":
        if not s.storage_key or not s.storage_secret:
            logger.warning("Object storage credentials not set in production!")
        if not s.storage_public_url:
            logger.warning("STORAGE_PUBLIC_URL not set; published URLs will use the S3 endpoint")

    return s
