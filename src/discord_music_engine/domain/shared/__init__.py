"""
Shared Domain Kernel

Exceptions, annotated types and events shared across all bounded contexts.
"""

from discord_music_engine.domain.shared.exceptions import (
    ConnectFailedError,
    DomainError,
    InvalidOperationError,
    InvalidQueueIndexError,
    NoAlternativeFoundError,
    NoResultsFoundError,
    NothingToPlayError,
    NotPausedError,
    NotPlayingError,
    ProviderUnavailableError,
    QueueFullError,
    StreamUnavailableError,
    TitleExtractionFailedError,
    UnsupportedOperationError,
)

__all__ = [
    "ConnectFailedError",
    "DomainError",
    "InvalidOperationError",
    "InvalidQueueIndexError",
    "NoAlternativeFoundError",
    "NoResultsFoundError",
    "NotPausedError",
    "NotPlayingError",
    "NothingToPlayError",
    "ProviderUnavailableError",
    "QueueFullError",
    "StreamUnavailableError",
    "TitleExtractionFailedError",
    "UnsupportedOperationError",
]
