"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

import sys
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.music.value_objects import PROVIDER_PRIORITY, SourcePlatform
from ..domain.shared.messages import ErrorMessages


class AudioSettings(BaseModel):
    """Audio playback configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    default_volume: float = Field(default=0.5, strict=False, ge=0.0, le=1.0)
    max_queue_size: int = Field(default=100, strict=False, ge=1, le=1000)
    stream_mode: Literal["url", "download"] = "url"
    temp_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "discord-music-engine",
        validation_alias=AliasChoices("temp_dir", "tmp_dir"),
    )
    ffmpeg_before_options: str = "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5"
    ffmpeg_options: str = "-vn"
    ytdlp_format: str = "bestaudio/best"

    @field_validator("stream_mode", mode="before")
    @classmethod
    def validate_stream_mode(cls, v: str) -> str:
        if not isinstance(v, str) or v.lower() not in {"url", "download"}:
            raise ValueError(ErrorMessages.INVALID_STREAM_MODE)
        return v.lower()

    @field_validator("temp_dir", mode="before")
    @classmethod
    def coerce_temp_dir(cls, v: str | Path) -> Path:
        return Path(v)


class ExtractionSettings(BaseModel):
    """yt-dlp subprocess configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    executable: tuple[str, ...] = Field(
        default_factory=lambda: (sys.executable, "-m", "yt_dlp"),
        validation_alias=AliasChoices("executable", "ytdlp_command"),
    )
    metadata_timeout_seconds: float = Field(default=30.0, strict=False, gt=0.0, le=600.0)
    stream_timeout_seconds: float = Field(default=60.0, strict=False, gt=0.0, le=1800.0)

    @field_validator("executable", mode="before")
    @classmethod
    def split_executable(cls, v: str | list[str] | tuple[str, ...]) -> tuple[str, ...]:
        """Accept ``"python -m yt_dlp"`` style strings as well as sequences."""
        if isinstance(v, str):
            v = v.split()
        return tuple(v)


class SpotifySettings(BaseModel):
    """Spotify Web API configuration (optional)."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    client_id: str = Field(default="", validation_alias=AliasChoices("client_id", "spotify_client_id"))
    client_secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("client_secret", "spotify_client_secret"),
    )
    market: str = Field(default="US", min_length=2, max_length=2)

    @field_validator("client_secret", mode="before")
    @classmethod
    def wrap_secret(cls, v: str | SecretStr) -> SecretStr:
        return v if isinstance(v, SecretStr) else SecretStr(v)

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret.get_secret_value())


class MatchingSettings(BaseModel):
    """Alternative matching configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    candidate_limit: int = Field(default=5, strict=False, ge=1, le=25)
    provider_priority: tuple[SourcePlatform, ...] = PROVIDER_PRIORITY

    @field_validator("provider_priority", mode="before")
    @classmethod
    def parse_priority(
        cls, v: str | list[str] | tuple[str | SourcePlatform, ...]
    ) -> tuple[SourcePlatform, ...]:
        if isinstance(v, str):
            v = [part.strip() for part in v.split(",") if part.strip()]
        return tuple(SourcePlatform(p) if isinstance(p, str) else p for p in v)


class PlaybackSettings(BaseModel):
    """Session lifecycle configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    inactivity_timeout_seconds: float = Field(default=300.0, strict=False, gt=0.0)
    connect_timeout_seconds: float = Field(default=10.0, strict=False, gt=0.0, le=60.0)


class HttpSettings(BaseModel):
    """Shared HTTP client configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    timeout_seconds: float = Field(default=10.0, strict=False, gt=0.0, le=120.0)
    user_agent: str = "discord-music-engine/0.1"


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, LOG_LEVEL (top-level)
    - AUDIO__STREAM_MODE, AUDIO__TEMP_DIR, etc. (nested with ``__``)
    - EXTRACTION__EXECUTABLE, MATCHING__PROVIDER_PRIORITY (JSON arrays, e.g. ``["yt-dlp"]``)
    - SPOTIFY__CLIENT_ID, SPOTIFY__CLIENT_SECRET
    - PLAYBACK__INACTIVITY_TIMEOUT_SECONDS
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        strict=True,
    )

    environment: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"

    audio: AudioSettings = Field(default_factory=AudioSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
