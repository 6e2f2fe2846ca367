"""Read models for the queue and the now-playing track."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from discord_music_engine.domain.music.entities import Track
from discord_music_engine.domain.music.value_objects import LoopMode, PlaybackState
from discord_music_engine.domain.shared.types import (
    DiscordSnowflake,
    NonNegativeInt,
    PageSize,
    PositiveInt,
    UnitInterval,
)

if TYPE_CHECKING:
    from ..services.playback_session import PlaybackSession

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50


class QueueSnapshot(BaseModel):
    """One page of a guild's queue plus its playback modifiers."""

    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake
    tracks: list[Track] = Field(default_factory=list)
    current_index: NonNegativeInt = 0
    total_tracks: NonNegativeInt = 0
    page: PositiveInt = 1
    page_size: PageSize = DEFAULT_PAGE_SIZE
    total_pages: NonNegativeInt = 0
    loop_mode: LoopMode = LoopMode.OFF
    shuffle_enabled: bool = False
    volume: UnitInterval = 0.5
    total_duration_seconds: NonNegativeInt = 0
    state: PlaybackState = PlaybackState.IDLE

    @property
    def is_empty(self) -> bool:
        return self.total_tracks == 0

    @property
    def first_position(self) -> int:
        """0-based queue index of the first track on this page."""
        return (self.page - 1) * self.page_size

    @classmethod
    def empty(cls, guild_id: DiscordSnowflake, page: int = 1) -> QueueSnapshot:
        return cls(guild_id=guild_id, page=max(page, 1))

    @classmethod
    def from_session(
        cls,
        session: PlaybackSession,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> QueueSnapshot:
        queue = session.queue
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
        tracks, total_pages = queue.page(page, page_size)
        return cls(
            guild_id=session.guild_id,
            tracks=list(tracks),
            current_index=queue.current_index,
            total_tracks=len(queue),
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            loop_mode=queue.loop_mode,
            shuffle_enabled=queue.shuffle_enabled,
            volume=queue.volume,
            total_duration_seconds=queue.total_duration_seconds,
            state=session.state,
        )


class NowPlaying(BaseModel):
    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake
    track: Track | None = None
    state: PlaybackState = PlaybackState.IDLE
    queue_index: NonNegativeInt = 0
    skip_votes: NonNegativeInt = 0
    up_next: Track | None = None
    loading: bool = False
    idle_seconds_remaining: float | None = None

    @property
    def is_playing(self) -> bool:
        return self.track is not None and self.state is PlaybackState.PLAYING and not self.loading

    @classmethod
    def from_session(cls, session: PlaybackSession) -> NowPlaying:
        return cls(
            guild_id=session.guild_id,
            track=session.now_playing,
            state=session.state,
            queue_index=session.queue.current_index,
            skip_votes=session.skip_votes,
            up_next=next(iter(session.queue.upcoming), None),
            loading=session.is_loading,
            idle_seconds_remaining=session.idle_seconds_remaining,
        )
