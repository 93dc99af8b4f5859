"""
Voice Interview - Configuration Management.

Uses pydantic-settings for environment variable loading with validation.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Gemini Configuration
    # -------------------------------------------------------------------------
    GEMINI_API_KEY: str = ""
    GEMINI_TURN_MODEL: str = "gemini-2.0-flash-lite"
    GEMINI_FEEDBACK_MODEL: str = "gemini-2.0-flash"
    TURN_TEMPERATURE: float = 0.4
    TURN_MAX_OUTPUT_TOKENS: int = 100

    # -------------------------------------------------------------------------
    # Sarvam Streaming STT Configuration
    # -------------------------------------------------------------------------
    SARVAM_API_KEY: str = ""
    SARVAM_STT_URL: str = "wss://api.sarvam.ai/speech-to-text/ws"
    STT_FLUSH_TIMEOUT_SECONDS: float = 3.0

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------
    JWT_SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    AUTH_COOKIE_NAME: str = "usertoken"

    # -------------------------------------------------------------------------
    # Session Store (Redis)
    # -------------------------------------------------------------------------
    REDIS_URL: str = "redis://127.0.0.1:6379/0"
    CONFIG_CACHE_TTL_SECONDS: int = 6 * 3600
    TIMING_WINDOW_TTL_SECONDS: int = 3600

    # -------------------------------------------------------------------------
    # Durable Record Store (MongoDB)
    # -------------------------------------------------------------------------
    MONGODB_URI: str = "mongodb://127.0.0.1:27017"
    MONGODB_DATABASE: str = "interview"

    # -------------------------------------------------------------------------
    # Interview Configuration
    # -------------------------------------------------------------------------
    DEFAULT_INTERVIEW_DURATION_MINUTES: int = 10
    ENFORCE_INTERVIEW_DEADLINE: bool = False
    INTERVIEW_GRACE_MINUTES: int = 2

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging() -> None:
    """Configure application logging based on settings."""
    settings = get_settings()

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format=log_format,
        datefmt=date_format,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
