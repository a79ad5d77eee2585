"""
Configuration and settings for the travel site backend.
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
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Document store. Any SQLAlchemy URL (Postgres in production, SQLite locally).
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Tokens and sessions
    secret_key: str = Field(default="dev-secret-change-me")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24 * 7)
    session_cookie_name: str = Field(default="session")
    session_max_age_seconds: int = Field(default=60 * 60)
    cookie_secure: bool = Field(default=False)

    # Hosted images (Cloudinary upload API)
    cloudinary_cloud_name: Optional[str] = Field(default=None)
    cloudinary_api_key: Optional[str] = Field(default=None)
    cloudinary_api_secret: Optional[str] = Field(default=None)
    cloudinary_folder: str = Field(default="travel-website")

    # Local uploads for user stories
    upload_dir: str = Field(default="public/uploads")
    upload_public_prefix: str = Field(default="/uploads")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
