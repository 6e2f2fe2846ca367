"""Application services."""

from discord_music_engine.application.services.alternative_matcher import AlternativeMatcher
from discord_music_engine.application.services.catalog_service import (
    CatalogService,
    QueryKind,
    ResolvedQuery,
)
from discord_music_engine.application.services.music_service import MusicApplicationService
from discord_music_engine.application.services.playback_session import (
    EnqueueOutcome,
    PlaybackSession,
)
from discord_music_engine.application.services.session_registry import SessionRegistry

__all__ = [
    "AlternativeMatcher",
    "CatalogService",
    "EnqueueOutcome",
    "MusicApplicationService",
    "PlaybackSession",
    "QueryKind",
    "ResolvedQuery",
    "SessionRegistry",
]
