"""URL recognition for the supported and unsupported platforms."""

from __future__ import annotations

import re
from typing import Final

from discord_music_engine.domain.music.value_objects import SourcePlatform

SOUNDCLOUD_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^https?://(?:www\.|m\.)?(?:soundcloud\.com|on\.soundcloud\.com)/\S+",
    re.IGNORECASE,
)

SPOTIFY_TRACK_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:https?://open\.spotify\.com/(?:intl-[a-z]+/)?track/|spotify:track:)([a-zA-Z0-9]{22})",
    re.IGNORECASE,
)

YOUTUBE_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^https?://(?:(?:www\.|m\.|music\.)?youtube\.com/(?:watch\?\S*v=|shorts/|embed/)|youtu\.be/)"
    r"[a-zA-Z0-9_-]{11}",
    re.IGNORECASE,
)

_URL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(?:https?://|www\.)\S+$", re.IGNORECASE)

_PLATFORM_PATTERNS: Final[dict[SourcePlatform, re.Pattern[str]]] = {
    SourcePlatform.SOUNDCLOUD: SOUNDCLOUD_URL_PATTERN,
    SourcePlatform.SPOTIFY: SPOTIFY_TRACK_URL_PATTERN,
    SourcePlatform.YOUTUBE: YOUTUBE_URL_PATTERN,
}


def is_url(text: str) -> bool:
    return bool(_URL_PATTERN.match(text.strip()))


def detect_platform(text: str) -> SourcePlatform | None:
    """Return the platform ``text`` links to, or None for free text and unknown sites."""
    candidate = text.strip()
    for platform, pattern in _PLATFORM_PATTERNS.items():
        if pattern.match(candidate):
            return platform
    return None


def spotify_track_id(url: str) -> str | None:
    match = SPOTIFY_TRACK_URL_PATTERN.match(url.strip())
    return match.group(1) if match else None
