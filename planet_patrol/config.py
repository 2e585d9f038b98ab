"""
Configuration and settings for the review backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Cloudant document store
    cloudant_url: Optional[str] = Field(default=None)
    cloudant_api_key: Optional[str] = Field(default=None)
    cloudant_database: str = Field(default="planet-patrol-db")
    cloudant_iam_url: str = Field(default="https://iam.cloud.ibm.com/identity/token")
    candidate_partition: str = Field(default="tic")

    # Google Drive evidence files (service account)
    google_client_email: Optional[str] = Field(default=None)
    google_private_key: Optional[str] = Field(default=None)
    drive_root_folder_id: str = Field(default="1Z74BU-ijJy710QA3M9YwE_l1cE_dpSHA")
    drive_page_size: int = Field(default=1000, ge=1, le=1000)

    # Applied to every remote request.
    remote_timeout_seconds: float = Field(default=30.0, gt=0)

    # Candidate snapshot refresh
    candidate_refresh_interval_seconds: float = Field(default=5 * 60, gt=0)
    candidate_page_delay_seconds: float = Field(default=1.0, ge=0)
    candidate_retry_backoff_seconds: float = Field(default=5.0, ge=0)
    candidate_retry_max_attempts: Optional[int] = Field(default=None, ge=1)

    # Folder index refresh
    folder_refresh_interval_seconds: float = Field(default=60 * 60, gt=0)

    # CSV export
    csv_reviewer_key: str = Field(default="user:paper")

    # Development toggles
    start_refresh_loops: bool = Field(default=True)
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
