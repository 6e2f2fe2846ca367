"""Domain event bus for publishing and subscribing to events."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from discord_music_engine.domain.music.value_objects import SourcePlatform, TrackId
from discord_music_engine.domain.shared.datetime_utils import utcnow
from discord_music_engine.domain.shared.messages import LogTemplates
from discord_music_engine.domain.shared.types import (
    DiscordSnowflake,
    NonEmptyStr,
    NonNegativeInt,
    UtcDatetimeField,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="DomainEvent")
EventHandler = Callable[[T], Awaitable[None]]


class DomainEvent(BaseModel):
    """Base class for all domain events."""

    model_config = ConfigDict(frozen=True)

    event_id: NonEmptyStr = Field(default_factory=lambda: str(uuid4()))
    occurred_at: UtcDatetimeField = Field(default_factory=utcnow)


# === Playback Events ===


class TrackStartedPlaying(DomainEvent):
    guild_id: DiscordSnowflake
    track_id: TrackId | None = None
    track_title: str = ""
    track_url: str = ""
    source: SourcePlatform | None = None
    queue_index: NonNegativeInt = 0


class TrackFinishedPlaying(DomainEvent):
    guild_id: DiscordSnowflake
    track_id: TrackId | None = None
    track_title: str = ""
    failed: bool = False
    error: str | None = None


class TrackSkipped(DomainEvent):
    guild_id: DiscordSnowflake
    track_id: TrackId | None = None
    track_title: str = ""
    skipped_by_id: DiscordSnowflake | None = None
    via_vote: bool = False


class QueueExhausted(DomainEvent):
    guild_id: DiscordSnowflake
    last_track_title: str = ""


# === Vote Events ===


class VoteSkipCast(DomainEvent):
    guild_id: DiscordSnowflake
    voter_id: DiscordSnowflake
    current_votes: NonNegativeInt = 0
    votes_needed: NonNegativeInt = 0


# === Session Events ===


class SessionCreated(DomainEvent):
    guild_id: DiscordSnowflake


class SessionDestroyed(DomainEvent):
    guild_id: DiscordSnowflake
    reason: str = ""


# === Event Bus ===


class EventBus:
    """In-memory pub/sub event bus for domain events.

    Handlers are called concurrently. Exceptions in handlers are logged
    but do not prevent other handlers from running.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler[Any]]] = defaultdict(list)

    def subscribe(self, event_type: type[T], handler: EventHandler[T]) -> None:
        self._handlers[event_type].append(handler)
        logger.debug("Subscribed handler to: %s", event_type.__name__)

    def unsubscribe(self, event_type: type[T], handler: EventHandler[T]) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)
            logger.debug("Unsubscribed handler from %s", event_type.__name__)

    async def publish(self, event: DomainEvent) -> None:
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            return

        logger.debug("Publishing %s to %d handlers", event_type.__name__, len(handlers))

        async def safe_call(handler: EventHandler[Any]) -> None:
            try:
                await handler(event)
            except Exception as e:
                logger.exception(LogTemplates.EVENT_HANDLER_ERROR, event_type.__name__, e)

        async with asyncio.TaskGroup() as tg:
            for handler in handlers:
                tg.create_task(safe_call(handler))

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()
        logger.debug("Cleared all event handlers")
