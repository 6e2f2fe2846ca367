"""
Domain Layer

Pure business logic organized by bounded contexts:
- shared/: exceptions, annotated types, events and log templates
- music/: tracks, the queue and playback value objects
- matching/: title normalisation and similarity ranking
- voting/: skip-vote quorum rules
"""

from discord_music_engine.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
