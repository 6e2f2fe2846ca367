"""
Matching Domain Services

Similarity scoring and candidate ranking used to find a playable
alternative for a track from an unsupported platform.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict
from rapidfuzz.distance import Levenshtein

from discord_music_engine.domain.matching.title_utils import comparable_text
from discord_music_engine.domain.music.entities import Track
from discord_music_engine.domain.music.value_objects import PROVIDER_PRIORITY, SourcePlatform
from discord_music_engine.domain.shared.types import NonNegativeInt, UnitInterval


class ScoredCandidate(BaseModel):
    """A search result paired with its similarity to the query title."""

    model_config = ConfigDict(frozen=True, strict=True)

    track: Track
    score: UnitInterval
    platform: SourcePlatform
    position: NonNegativeInt = 0


class MatchResult(BaseModel):
    """The winning alternative for an unsupported link."""

    model_config = ConfigDict(frozen=True, strict=True)

    track: Track
    score: UnitInterval
    platform: SourcePlatform
    query_title: str
    source_url: str


def similarity_score(a: str, b: str) -> float:
    """Normalised Levenshtein similarity in [0, 1].

    Both sides are lower-cased and stripped of anything but letters, digits
    and spaces first. Two empty strings are identical.
    """
    left = comparable_text(a)
    right = comparable_text(b)
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    distance = Levenshtein.distance(left, right)
    return (longest - distance) / longest


def candidate_score(query_title: str, track: Track) -> float:
    """Best of the bare title and "artist title" against the query."""
    score = similarity_score(query_title, track.title)
    if track.artist:
        score = max(score, similarity_score(query_title, f"{track.artist} {track.title}"))
    return score


class MatchingDomainService:
    """Domain service for ranking alternative candidates."""

    @staticmethod
    def score_candidates(
        query_title: str,
        results: Iterable[tuple[SourcePlatform, Sequence[Track]]],
    ) -> list[ScoredCandidate]:
        scored: list[ScoredCandidate] = []
        for platform, tracks in results:
            for position, track in enumerate(tracks):
                scored.append(
                    ScoredCandidate(
                        track=track,
                        score=candidate_score(query_title, track),
                        platform=platform,
                        position=position,
                    )
                )
        return scored

    @staticmethod
    def rank(
        candidates: Iterable[ScoredCandidate],
        priority: Sequence[SourcePlatform] = PROVIDER_PRIORITY,
    ) -> list[ScoredCandidate]:
        """Sort by score descending; ties go to provider priority, then result order."""

        def priority_of(platform: SourcePlatform) -> int:
            try:
                return priority.index(platform)
            except ValueError:
                return len(priority)

        return sorted(
            candidates,
            key=lambda c: (-c.score, priority_of(c.platform), c.position),
        )

    @classmethod
    def best_match(
        cls,
        query_title: str,
        results: Iterable[tuple[SourcePlatform, Sequence[Track]]],
        priority: Sequence[SourcePlatform] = PROVIDER_PRIORITY,
    ) -> ScoredCandidate | None:
        ranked = cls.rank(cls.score_candidates(query_title, results), priority)
        return ranked[0] if ranked else None
