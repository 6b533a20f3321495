"""
Runtime configuration helpers for the message board.

Loads DATABASE_URL, session and image storage settings from the environment
and the optional .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_MAX_IMAGE_BYTES, SESSION_COOKIE_NAME

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite+pysqlite:///./board.db", alias="DATABASE_URL")

    app_name: str = Field(default="Message Board", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # Sessions
    session_cookie_name: str = Field(default=SESSION_COOKIE_NAME, alias="SESSION_COOKIE_NAME")
    session_ttl_minutes: int = Field(default=60 * 24, alias="SESSION_TTL_MINUTES")
    session_cookie_secure: bool = Field(default=False, alias="SESSION_COOKIE_SECURE")
    session_algorithm: str = Field(default="HS256", alias="SESSION_ALGORITHM")

    # Images
    image_storage: str = Field(default="local", alias="IMAGE_STORAGE")
    media_root: Path = Field(default=Path("media"), alias="MEDIA_ROOT")
    media_url_prefix: str = Field(default="/media", alias="MEDIA_URL_PREFIX")
    max_image_bytes: int = Field(default=DEFAULT_MAX_IMAGE_BYTES, alias="MAX_IMAGE_BYTES")

    # S3-compatible bucket used when IMAGE_STORAGE=spaces; keys are read as secrets
    spaces_region: str | None = Field(default=None, alias="DO_SPACES_REGION")
    spaces_bucket: str | None = Field(default=None, alias="DO_SPACES_NAME")
    spaces_endpoint: str | None = Field(default=None, alias="DO_SPACES_ENDPOINT")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def allowed_origins(self) -> list[str]:
        if not self.cors_origins:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
