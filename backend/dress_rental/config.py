"""Dress Rental — Application configuration via pydantic-settings."""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Hosted backend (PostgREST + RPC)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = "change-me"
    SUPABASE_TIMEOUT_SECONDS: float = 10.0

    # Scanner session
    SCAN_COOLDOWN_MS: int = Field(default=1500, ge=0)
    SCAN_HISTORY_CAPACITY: int = Field(default=10, ge=1)
    SCAN_FPS: int = Field(default=10, ge=1)
    SCAN_QRBOX: int = Field(default=250, ge=1)
    SCAN_AWAIT_REFRESH: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
