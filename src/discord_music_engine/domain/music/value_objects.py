"""Immutable value objects for the music bounded context."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

from discord_music_engine.domain.shared.messages import ErrorMessages

HASH_ID_LENGTH: Final[int] = 16

_PLATFORM_ID_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/(?:embed|shorts)/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"open\.spotify\.com/(?:intl-[a-z]+/)?track/([a-zA-Z0-9]{22})"),
    re.compile(r"spotify:track:([a-zA-Z0-9]{22})"),
]


@dataclass(frozen=True)
class TrackId:
    """Platform-native id (YouTube video id, Spotify track id) or a hash of the URL."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError(ErrorMessages.EMPTY_TRACK_ID)

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_url(cls, url: str) -> TrackId:
        for pattern in _PLATFORM_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return cls(match.group(1))

        url_hash = hashlib.sha256(url.encode()).hexdigest()[:HASH_ID_LENGTH]
        return cls(url_hash)


class SourcePlatform(Enum):
    """External music platforms a track can come from."""

    SOUNDCLOUD = "soundcloud"
    SPOTIFY = "spotify"
    YOUTUBE = "youtube"

    @property
    def display_name(self) -> str:
        return {
            SourcePlatform.SOUNDCLOUD: "SoundCloud",
            SourcePlatform.SPOTIFY: "Spotify",
            SourcePlatform.YOUTUBE: "YouTube",
        }[self]


# Score ties in alternative matching go to the platform listed first.
PROVIDER_PRIORITY: Final[tuple[SourcePlatform, ...]] = (
    SourcePlatform.SOUNDCLOUD,
    SourcePlatform.SPOTIFY,
)


class LoopMode(Enum):
    """Loop mode settings for queue playback."""

    OFF = "off"
    TRACK = "track"  # Replay current track
    QUEUE = "queue"  # Wrap to the start after the last track

    def next_mode(self) -> LoopMode:
        """Cycle off -> track -> queue -> off."""
        modes = list(LoopMode)
        return modes[(modes.index(self) + 1) % len(modes)]


class PlaybackState(Enum):
    """Playback state of a guild session.

    State transitions:
    - IDLE -> CONNECTED (join)
    - CONNECTED -> PLAYING (track starts)
    - PLAYING -> PAUSED (pause)
    - PAUSED -> PLAYING (resume)
    - PLAYING/PAUSED -> CONNECTED (queue exhausted or stop)
    - Any -> IDLE (leave, disconnect, inactivity)
    """

    IDLE = "idle"
    CONNECTED = "connected"
    PLAYING = "playing"
    PAUSED = "paused"

    def can_transition_to(self, target: PlaybackState) -> bool:
        valid_transitions = {
            PlaybackState.IDLE: {PlaybackState.CONNECTED},
            PlaybackState.CONNECTED: {PlaybackState.PLAYING, PlaybackState.IDLE},
            PlaybackState.PLAYING: {
                PlaybackState.PAUSED,
                PlaybackState.CONNECTED,
                PlaybackState.IDLE,
                PlaybackState.PLAYING,
            },
            PlaybackState.PAUSED: {
                PlaybackState.PLAYING,
                PlaybackState.CONNECTED,
                PlaybackState.IDLE,
            },
        }
        return target in valid_transitions.get(self, set())

    @property
    def is_active(self) -> bool:
        return self in {PlaybackState.PLAYING, PlaybackState.PAUSED}

    @property
    def has_connection(self) -> bool:
        return self != PlaybackState.IDLE


class SessionDestroyReason(Enum):
    """Reasons a session can be destroyed."""

    LEAVE = "leave"
    DISCONNECT = "disconnect"
    INACTIVITY = "inactivity"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class StreamHandle:
    """Opaque reference to a playable audio source.

    ``location`` is either a direct stream URL or a local file path. Local
    files produced for one playback attempt carry a ``cleanup_path`` and are
    deleted once that attempt ends.
    """

    location: str
    is_local_file: bool = False
    cleanup_path: Path | None = None

    def __post_init__(self) -> None:
        if not self.location or not self.location.strip():
            raise ValueError(ErrorMessages.EMPTY_STREAM_LOCATION)

    @classmethod
    def for_url(cls, url: str) -> StreamHandle:
        return cls(location=url)

    @classmethod
    def for_file(cls, path: Path) -> StreamHandle:
        return cls(location=str(path), is_local_file=True, cleanup_path=path)
