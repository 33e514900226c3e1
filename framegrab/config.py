"""
Configuration module for the recording frame-extraction service.

This module centralizes all environment variables, constants, and runtime configuration
using pydantic-settings for type-safe configuration management.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="http://localhost:5173",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    # API Authentication
    api_key: str = Field(
        default="",
        validation_alias="API_KEY",
        description="API key for endpoint authentication"
    )

    # Storage Configuration
    storage_root: str = Field(
        default=".",
        validation_alias="STORAGE_ROOT",
        description="Root directory holding uploads/recordings, uploads/thumbnails, uploads/event-screenshots"
    )

    storage_backend: str = Field(
        default="local",
        validation_alias="STORAGE_BACKEND",
        description="Screenshot storage backend selected at startup"
    )

    # FFmpeg Configuration
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        validation_alias="FFMPEG_BINARY",
        description="Path to the ffmpeg binary (or name resolved on PATH)"
    )

    ffprobe_binary: str = Field(
        default="ffprobe",
        validation_alias="FFPROBE_BINARY",
        description="Path to the ffprobe binary (or name resolved on PATH)"
    )

    ffmpeg_timeout_seconds: Optional[float] = Field(
        default=None,
        validation_alias="FFMPEG_TIMEOUT_SECONDS",
        description="Optional timeout per ffmpeg/ffprobe process; unset waits indefinitely"
    )

    # Frame extraction policy
    default_video_duration_seconds: float = Field(
        default=60.0,
        validation_alias="DEFAULT_VIDEO_DURATION_SECONDS",
        description="Duration assumed when the ffprobe duration probe fails"
    )

    minimum_timestamp_seconds: float = Field(
        default=1.0,
        validation_alias="MINIMUM_TIMESTAMP_SECONDS",
        description="Earliest timestamp used for event frames (avoids black first keyframe)"
    )

    max_duration_ratio: float = Field(
        default=0.95,
        validation_alias="MAX_DURATION_RATIO",
        description="Fraction of duration used when a timestamp is at or past end of stream"
    )

    thumbnail_timestamp: str = Field(
        default="00:00:02",
        validation_alias="THUMBNAIL_TIMESTAMP",
        description="Nominal thumbnail position: HH:MM:SS[.mmm] or float seconds"
    )

    default_screenshot_timestamp: float = Field(
        default=0.0,
        validation_alias="DEFAULT_SCREENSHOT_TIMESTAMP",
        description="Timestamp used for fallback extraction and non-finite input"
    )

    thumbnail_size: str = Field(
        default="640x400",
        validation_alias="THUMBNAIL_SIZE",
        description="Thumbnail output size WIDTHxHEIGHT"
    )

    screenshot_size: str = Field(
        default="1920x1080",
        validation_alias="SCREENSHOT_SIZE",
        description="Event screenshot output size WIDTHxHEIGHT"
    )

    jpeg_quality: int = Field(
        default=2,
        ge=1,
        le=31,
        validation_alias="JPEG_QUALITY",
        description="FFmpeg JPEG quality (1-31, lower=better)"
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level for the framegrab logger"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("max_duration_ratio")
    @classmethod
    def _check_ratio(cls, value: float) -> float:
        if not 0.0 < value < 1.0:
            raise ValueError(f"MAX_DURATION_RATIO must be between 0 and 1, got {value}")
        return value

    @field_validator("thumbnail_size", "screenshot_size")
    @classmethod
    def _check_size(cls, value: str) -> str:
        parse_size(value)
        return value


def parse_size(size: str) -> tuple:
    """
    Parse a "WIDTHxHEIGHT" string into a (width, height) tuple.

    Raises:
        ValueError: If the string is not two positive integers joined by 'x'
    """
    parts = size.lower().split("x")
    if len(parts) != 2 or not all(p.strip().isdigit() for p in parts):
        raise ValueError(f"Size must look like 640x400, got {size!r}")
    width, height = int(parts[0]), int(parts[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"Size must be positive, got {size!r}")
    return width, height


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()

