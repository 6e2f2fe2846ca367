"""Application queries."""

from discord_music_engine.application.queries.get_queue import NowPlaying, QueueSnapshot

__all__ = [
    "NowPlaying",
    "QueueSnapshot",
]
