from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration derived from environment variables."""

    api_port: int = Field(default=8000, alias="API_PORT")
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:4200"], alias="CORS_ORIGINS")
    frontend_base_url: Optional[HttpUrl] = Field(default=None, alias="FRONTEND_BASE_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    tmdb_api_base: str = Field(default="https://api.themoviedb.org/3", alias="TMDB_API_BASE")
    tmdb_image_base: str = Field(default="https://image.tmdb.org/t/p/original", alias="TMDB_IMAGE_BASE")
    tmdb_language: str = Field(default="fr-FR", alias="TMDB_LANGUAGE")
    tmdb_timeout_seconds: float = Field(default=20.0, alias="TMDB_TIMEOUT_SECONDS")
    tmdb_token: Optional[str] = Field(default=None, alias="TMDB_TOKEN")
    catalog_cache_ttl_seconds: int = Field(default=3_600, alias="CATALOG_CACHE_TTL_SECONDS")

    seen_ttl_hours: int = Field(default=48, alias="SEEN_TTL_HOURS")
    search_debounce_ms: int = Field(default=300, alias="SEARCH_DEBOUNCE_MS")
    suggestion_limit: int = Field(default=5, alias="SUGGESTION_LIMIT")
    suggestion_min_length: int = Field(default=2, alias="SUGGESTION_MIN_LENGTH")

    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")

    database_url: str = Field(default="sqlite:///./posterguess.db", alias="DATABASE_URL")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")
    database_connect_retries: int = Field(default=5, alias="DATABASE_CONNECT_RETRIES")
    database_connect_retry_interval_seconds: float = Field(
        default=2.0, alias="DATABASE_CONNECT_RETRY_INTERVAL_SECONDS"
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
