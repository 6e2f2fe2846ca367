"""
Voting Domain Services

Domain services containing voting business logic.
"""

from __future__ import annotations

import math

from discord_music_engine.domain.shared.messages import ErrorMessages
from discord_music_engine.domain.voting.entities import SkipVoteSet, VoteSkipOutcome


class VotingDomainService:
    """Domain service for skip-vote quorum rules."""

    MINIMUM_THRESHOLD = 1

    @classmethod
    def calculate_threshold(cls, listener_count: int) -> int:
        """Votes needed to skip: half the non-bot listeners, rounded up.

        Args:
            listener_count: Number of non-bot members in the voice channel.

        Returns:
            The number of votes required to pass, never less than 1.
        """
        if listener_count < 0:
            raise ValueError(ErrorMessages.INVALID_LISTENER_COUNT)
        return max(cls.MINIMUM_THRESHOLD, math.ceil(listener_count / 2))

    @classmethod
    def cast_vote(cls, votes: SkipVoteSet, user_id: int, listener_count: int) -> VoteSkipOutcome:
        """Record ``user_id``'s vote and report whether the quorum is reached.

        The caller performs the skip and clears the set when ``skipped`` is True.
        """
        required = cls.calculate_threshold(listener_count)
        added = votes.add_vote(user_id)
        return VoteSkipOutcome(
            skipped=votes.vote_count >= required,
            votes=votes.vote_count,
            required=required,
            already_voted=not added,
        )
