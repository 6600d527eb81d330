"""
Configuration module for the RingPing ringtone API.

This module centralizes all environment variables and runtime configuration
using pydantic-settings for type-safe configuration management. Settings are
handed to endpoints and services through ``Depends(get_settings)`` so tests
can swap them out per request.
"""

import os
import shutil
import logging
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


# Ringtone length limits (seconds)
MIN_RINGTONE_SECONDS = 5
MAX_RINGTONE_SECONDS = 60

# File name limits
MAX_FILE_NAME_LENGTH = 50

# Audio formats accepted by yt-dlp --audio-format
AUDIO_FORMATS = ("mp3", "aac", "flac", "m4a", "opus", "vorbis", "wav")
DEFAULT_AUDIO_FORMAT = "mp3"
DEFAULT_AUDIO_QUALITY = "192K"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="http://localhost:3001",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    server_base_url: str = Field(
        default="http://localhost:8000",
        validation_alias="SERVER_BASE_URL",
        description="Public base URL clients prepend to relative download URLs"
    )

    # Directory Configuration
    downloads_dir: str = Field(
        default="./public/downloads",
        validation_alias="DOWNLOADS_DIR",
        description="Public downloads root; ringtones live in per-user subdirectories"
    )

    # yt-dlp Configuration
    ytdlp_binary: str = Field(
        default="yt-dlp",
        validation_alias="YTDLP_BINARY",
        description="Path to yt-dlp binary (defaults to the one installed with the yt-dlp package)"
    )

    ytdlp_cookies_file: Optional[str] = Field(
        default=None,
        validation_alias="YTDLP_COOKIES_FILE",
        description="Path to cookies.txt for authenticated downloads"
    )

    # FFmpeg Configuration
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        validation_alias="FFMPEG_BINARY",
        description="Path to ffmpeg binary used for precise trimming"
    )

    # Subprocess timeouts (seconds)
    video_info_timeout: int = Field(
        default=30,
        validation_alias="VIDEO_INFO_TIMEOUT",
        description="Timeout for metadata-only yt-dlp calls"
    )

    download_timeout: int = Field(
        default=120,
        validation_alias="DOWNLOAD_TIMEOUT",
        description="Timeout for section downloads"
    )

    trim_timeout: int = Field(
        default=60,
        validation_alias="TRIM_TIMEOUT",
        description="Timeout for ffmpeg trimming"
    )

    # Trimming
    precise_trim: bool = Field(
        default=False,
        validation_alias="PRECISE_TRIM",
        description="Download a buffered window and cut it exactly with ffmpeg"
    )

    trim_buffer_seconds: int = Field(
        default=5,
        validation_alias="TRIM_BUFFER_SECONDS",
        description="Seconds added on each side of the section when precise_trim is on"
    )

    # Supabase Configuration
    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias="SUPABASE_URL",
        description="Supabase project URL"
    )

    supabase_service_key: Optional[str] = Field(
        default=None,
        validation_alias="SUPABASE_SERVICE_KEY",
        description="Supabase service role key"
    )

    ringtones_table: str = Field(
        default="ringtone",
        validation_alias="RINGTONES_TABLE",
        description="Table holding ringtone records"
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root log level for the ringping logger"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


def log_startup_status(settings: Settings, logger: logging.Logger) -> None:
    """Log binary availability and storage configuration on startup."""
    os.makedirs(settings.downloads_dir, exist_ok=True)
    logger.info(f"Downloads directory: {os.path.abspath(settings.downloads_dir)}")

    for name, binary in (("yt-dlp", settings.ytdlp_binary), ("ffmpeg", settings.ffmpeg_binary)):
        if shutil.which(binary) or os.path.exists(binary):
            logger.info(f"{name} binary: {binary}")
        else:
            logger.warning(f"{name} binary not found at {binary}")

    if settings.precise_trim:
        logger.info(f"Precise trimming enabled (buffer: {settings.trim_buffer_seconds}s)")

    if settings.supabase_configured:
        logger.info("Supabase configuration detected")
    else:
        logger.warning("Supabase not configured (SUPABASE_URL/SUPABASE_SERVICE_KEY missing) - ringtone storage disabled")
