"""
Configuration and settings for the monitoring API.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api/v1")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    log_level: str = Field(default="INFO")
    cors_origins: str = Field(default="*")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Firestore (record store)
    google_cloud_project: Optional[str] = Field(default=None)
    firebase_credentials_path: Optional[str] = Field(default=None)

    # Self-hosted alternative to Firestore (any SQLAlchemy URL)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible object storage for media
    storage_bucket: Optional[str] = Field(default=None)
    storage_endpoint: str = Field(default="https://storage.googleapis.com")
    storage_region: str = Field(default="auto")
    storage_public_host: str = Field(default="storage.googleapis.com")
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Spreadsheet mirror
    sheets_credentials_path: Optional[str] = Field(default=None)

    # Auth
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    access_token_ttl_seconds: int = Field(default=3600)
    refresh_token_ttl_seconds: int = Field(default=7 * 24 * 3600)

    # Sync queue (Redis optional)
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="rice_monitor:sync")
    sync_queue_max_size: int = Field(default=1000)
    sync_workers: int = Field(default=2)
    sync_shutdown_timeout_seconds: float = Field(default=10.0)
    run_sync_workers_in_app: bool = Field(default=True)

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )
