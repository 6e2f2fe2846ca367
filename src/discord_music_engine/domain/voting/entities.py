"""Core domain entities for the voting bounded context."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from discord_music_engine.domain.shared.types import NonNegativeInt, PositiveInt


class SkipVoteSet(BaseModel):
    """Distinct voters wanting to skip one specific playback of a track.

    ``track_key`` identifies the playback the votes belong to; votes never
    carry over to the next track.
    """

    track_key: str | None = None
    voters: set[int] = Field(default_factory=set)

    @property
    def vote_count(self) -> int:
        return len(self.voters)

    def bind(self, track_key: str | None) -> None:
        """Point the set at a new playback, dropping votes for any other one."""
        if track_key != self.track_key:
            self.voters.clear()
            self.track_key = track_key

    def add_vote(self, user_id: int) -> bool:
        """Record a vote. Returns False when the user had already voted."""
        if user_id in self.voters:
            return False
        self.voters.add(user_id)
        return True

    def has_voted(self, user_id: int) -> bool:
        return user_id in self.voters

    def clear(self) -> None:
        self.voters.clear()
        self.track_key = None


class VoteSkipOutcome(BaseModel):
    """Result of a vote-skip attempt."""

    model_config = ConfigDict(frozen=True, strict=True)

    skipped: bool
    votes: NonNegativeInt
    required: PositiveInt
    already_voted: bool = False

    def get_progress_string(self) -> str:
        return f"{self.votes}/{self.required} votes"
