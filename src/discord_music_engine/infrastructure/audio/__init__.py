"""Audio extraction infrastructure."""

from discord_music_engine.infrastructure.audio.media_store import TempMediaStore
from discord_music_engine.infrastructure.audio.ytdlp_runner import YtDlpProcessRunner

__all__ = [
    "TempMediaStore",
    "YtDlpProcessRunner",
]
