"""Port interface for Discord voice operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from discord_music_engine.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from ...domain.music.value_objects import StreamHandle

TrackEndCallback = Callable[[DiscordSnowflake, int], Awaitable[None]]
TrackErrorCallback = Callable[[DiscordSnowflake, int, Exception], Awaitable[None]]
DisconnectCallback = Callable[[DiscordSnowflake], Awaitable[None]]


class VoiceAdapter(ABC):
    """Interface for Discord voice channel operations.

    Every ``play`` call carries a token chosen by the caller; the track-end and
    track-error callbacks hand that token back so stale notifications can be
    told apart from the current playback.
    """

    @abstractmethod
    async def connect(self, guild_id: DiscordSnowflake, channel_id: DiscordSnowflake) -> bool:
        """Connect to a voice channel, moving if already connected elsewhere."""
        ...

    @abstractmethod
    async def disconnect(self, guild_id: DiscordSnowflake) -> bool:
        """Disconnect from voice in a guild."""
        ...

    @abstractmethod
    async def play(
        self,
        guild_id: DiscordSnowflake,
        handle: "StreamHandle",
        volume: float,
        *,
        token: int,
    ) -> bool:
        """Start playing an audio source at ``volume`` (0.0 - 1.0)."""
        ...

    @abstractmethod
    async def stop(self, guild_id: DiscordSnowflake) -> bool:
        """Stop current playback; the track-end callback still fires."""
        ...

    @abstractmethod
    async def pause(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    async def resume(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    async def set_volume(self, guild_id: DiscordSnowflake, volume: float) -> bool:
        """Adjust the volume of the live audio source, if any."""
        ...

    @abstractmethod
    def is_connected(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    async def listener_count(self, guild_id: DiscordSnowflake) -> int:
        """Number of non-bot members in the connected voice channel."""
        ...

    @abstractmethod
    def set_callbacks(
        self,
        on_track_end: TrackEndCallback,
        on_track_error: TrackErrorCallback,
        on_disconnect: DisconnectCallback,
    ) -> None:
        """Register the handlers for playback and connection notifications."""
        ...
