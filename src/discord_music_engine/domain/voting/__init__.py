"""
Voting Bounded Context

Skip-vote bookkeeping and quorum rules.
"""

from discord_music_engine.domain.voting.entities import SkipVoteSet, VoteSkipOutcome
from discord_music_engine.domain.voting.services import VotingDomainService

__all__ = [
    "SkipVoteSet",
    "VoteSkipOutcome",
    "VotingDomainService",
]
