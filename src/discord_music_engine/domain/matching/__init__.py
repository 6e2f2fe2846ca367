"""
Matching Bounded Context

Finds the closest track on a supported catalog for a title taken from an
unsupported one.
"""

from discord_music_engine.domain.matching.services import (
    MatchingDomainService,
    MatchResult,
    ScoredCandidate,
    similarity_score,
)
from discord_music_engine.domain.matching.title_utils import clean_title, normalize_title

__all__ = [
    "MatchResult",
    "MatchingDomainService",
    "ScoredCandidate",
    "clean_title",
    "normalize_title",
    "similarity_score",
]
