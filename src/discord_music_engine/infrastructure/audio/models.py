"""Pydantic models for yt-dlp output and command-line options.

These are infrastructure-specific models for parsing the JSON yt-dlp prints
and for building its argument lists.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, field_validator

from discord_music_engine.domain.shared.datetime_utils import coerce_duration_seconds
from discord_music_engine.domain.shared.types import HttpUrlStr, NonEmptyStr

LOG_TARGET_TRUNCATE: Final[int] = 80
STDERR_TAIL_LINES: Final[int] = 3


class YtDlpTrackInfo(BaseModel):
    """Trimmed ``--dump-json`` entry.

    Extra fields from yt-dlp are silently ignored. Before-validators coerce
    garbage from external data gracefully.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: NonEmptyStr | None = None
    webpage_url: HttpUrlStr | None = None
    original_url: HttpUrlStr | None = None
    url: NonEmptyStr | None = None
    title: NonEmptyStr = "Unknown Title"
    duration: int | None = None
    thumbnail: HttpUrlStr | None = None
    artist: NonEmptyStr | None = None
    creator: NonEmptyStr | None = None
    uploader: NonEmptyStr | None = None
    channel: NonEmptyStr | None = None
    description: str | None = None

    @field_validator(
        "id", "url", "artist", "creator", "uploader", "channel", "description",
        mode="before",
    )
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        """Convert empty / whitespace-only / non-string values to None."""
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str) or not v.strip():
            return None
        return v

    @field_validator("webpage_url", "original_url", "thumbnail", mode="before")
    @classmethod
    def _coerce_http_url(cls, v: Any) -> str | None:
        """Keep only absolute http(s) URLs."""
        if not isinstance(v, str) or not v.startswith(("http://", "https://")):
            return None
        return v

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, v: Any) -> str:
        """Fall back to default when yt-dlp sends empty or non-string title."""
        if not isinstance(v, str) or not v.strip():
            return "Unknown Title"
        return v.strip()

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v: Any) -> int | None:
        """Coerce to non-negative int; return None for garbage values."""
        return coerce_duration_seconds(v)

    @property
    def page_url(self) -> str | None:
        return self.webpage_url or self.original_url

    @property
    def performer(self) -> str | None:
        return self.artist or self.creator or self.uploader or self.channel


class YtDlpCommand(BaseModel):
    """One yt-dlp invocation, rendered to an argv list by :meth:`argv`."""

    model_config = ConfigDict(frozen=True)

    executable: tuple[str, ...]
    target: NonEmptyStr
    dump_json: bool = False
    get_url: bool = False
    extract_audio: bool = False
    output_template: str | None = None
    print_field: str | None = None
    format: str | None = None

    def argv(self) -> list[str]:
        args = [*self.executable, "--no-playlist", "--no-warnings", "--quiet"]
        if self.format:
            args += ["-f", self.format]
        if self.dump_json:
            args.append("--dump-json")
        if self.get_url:
            args.append("--get-url")
        if self.extract_audio:
            args.append("-x")
        if self.output_template:
            args += ["-o", self.output_template]
        if self.print_field:
            args += ["--print", self.print_field, "--no-simulate"]
        # "--" keeps search targets like "scsearch5:-foo" from parsing as flags
        args += ["--", self.target]
        return args


def output_template(dest_dir: Path, stem: str) -> str:
    return str(dest_dir / f"{stem}.%(ext)s")
