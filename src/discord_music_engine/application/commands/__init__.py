"""Application commands."""

from discord_music_engine.application.commands.playback_control import (
    PlaybackAction,
    PlaybackCommand,
    PlaybackControlResult,
)

__all__ = [
    "PlaybackAction",
    "PlaybackCommand",
    "PlaybackControlResult",
]
