import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

from template_cache.utils import parse_size, truthy

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Cache storage
    cache_dir: str = os.getenv("CACHE_DIR", "/tmp/template-cache")
    index_backend: str = os.getenv("INDEX_BACKEND", "file")  # "file" or "redis"
    temp_file_max_age: int = int(os.getenv("TEMP_FILE_MAX_AGE", "3600"))

    # Redis (only used when index_backend == "redis")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")
    cache_index_prefix: str = os.getenv("CACHE_INDEX_PREFIX", "template_cache")

    # Uploads
    upload_field_name: str = os.getenv("UPLOAD_FIELD_NAME", "template")
    upload_file_size: str = os.getenv("UPLOAD_FILE_SIZE", "25MB")

    # Rendering engine
    renderer_url: str = os.getenv("RENDERER_URL", "http://localhost:3000")
    renderer_timeout: float = float(os.getenv("RENDERER_TIMEOUT", "60"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = truthy(os.getenv("API_RELOAD", "false"))

    @property
    def max_upload_bytes(self) -> int:
        """Upload size limit in bytes, parsed from ``upload_file_size``."""
        return parse_size(self.upload_file_size)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.index_backend not in ("file", "redis"):
            raise ValueError(f"INDEX_BACKEND must be 'file' or 'redis', got {self.index_backend!r}")

        if self.temp_file_max_age < 0:
            raise ValueError("TEMP_FILE_MAX_AGE must not be negative")

        # Fail at startup rather than on the first upload
        parse_size(self.upload_file_size)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client(config: Settings | None = None) -> redis.Redis:
    """Create a Redis client instance."""
    config = config or settings
    return redis.from_url(
        config.redis_url,
        password=config.redis_password,
        decode_responses=True,
    )


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
