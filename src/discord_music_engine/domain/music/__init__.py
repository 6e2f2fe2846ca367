"""
Music Bounded Context

Tracks, the per-guild queue and playback value objects.
"""

from discord_music_engine.domain.music.entities import Queue, Track
from discord_music_engine.domain.music.value_objects import (
    PROVIDER_PRIORITY,
    LoopMode,
    PlaybackState,
    SessionDestroyReason,
    SourcePlatform,
    StreamHandle,
    TrackId,
)

__all__ = [
    "PROVIDER_PRIORITY",
    "LoopMode",
    "PlaybackState",
    "Queue",
    "SessionDestroyReason",
    "SourcePlatform",
    "StreamHandle",
    "Track",
    "TrackId",
]
