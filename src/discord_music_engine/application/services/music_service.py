"""Music Application Service - the façade the command layer talks to."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ...domain.music.value_objects import SessionDestroyReason, SourcePlatform
from ...domain.shared.exceptions import NotPlayingError
from ...domain.shared.types import DiscordSnowflake
from ..commands.playback_control import PlaybackAction, PlaybackCommand, PlaybackControlResult
from ..queries.get_queue import DEFAULT_PAGE_SIZE, NowPlaying, QueueSnapshot

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ..interfaces.voice_adapter import VoiceAdapter
    from .catalog_service import CatalogService, ResolvedQuery
    from .playback_session import EnqueueOutcome, PlaybackSession
    from .session_registry import SessionRegistry

logger = logging.getLogger(__name__)

AUTO_PLATFORM = "auto"


class MusicApplicationService:
    """Single entry point for searching, queueing and controlling playback."""

    def __init__(
        self,
        *,
        catalog: CatalogService,
        registry: SessionRegistry,
        voice_adapter: VoiceAdapter,
    ) -> None:
        self._catalog = catalog
        self._registry = registry
        self._voice = voice_adapter

    async def search(
        self, platform: SourcePlatform | str, query: str, limit: int = 5
    ) -> list[Track]:
        """Search one platform, or every platform when ``platform`` is ``"auto"``."""
        if isinstance(platform, str):
            platform = None if platform == AUTO_PLATFORM else SourcePlatform(platform)
        return await self._catalog.search(query, platform, limit)

    async def resolve_query(self, query: str) -> ResolvedQuery:
        return await self._catalog.resolve_query(query)

    async def join(self, guild_id: DiscordSnowflake, channel_id: DiscordSnowflake) -> PlaybackSession:
        session = await self._registry.get_or_create(guild_id)
        await session.join(channel_id)
        return session

    async def enqueue(
        self,
        guild_id: DiscordSnowflake,
        track: Track,
        requester_id: DiscordSnowflake | None = None,
        requester_name: str | None = None,
    ) -> EnqueueOutcome:
        session = await self._registry.get_or_create(guild_id)
        return await session.enqueue_and_maybe_start(track, requester_id, requester_name)

    async def playback_control(
        self, guild_id: DiscordSnowflake, command: PlaybackCommand
    ) -> PlaybackControlResult:
        """Apply ``command`` to the guild's session.

        Raises:
            NotPlayingError: The guild has no session.
            InvalidOperationError, InvalidQueueIndexError: From the session.
        """
        session = self._registry.get(guild_id)
        if session is None or session.is_destroyed:
            raise NotPlayingError(command.action.value, "idle")

        value = await self._dispatch(guild_id, session, command)
        return PlaybackControlResult(action=command.action, value=value)

    def queue_snapshot(
        self, guild_id: DiscordSnowflake, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
    ) -> QueueSnapshot:
        session = self._registry.get(guild_id)
        if session is None:
            return QueueSnapshot.empty(guild_id, page)
        return QueueSnapshot.from_session(session, page, page_size)

    def now_playing(self, guild_id: DiscordSnowflake) -> NowPlaying:
        session = self._registry.get(guild_id)
        if session is None:
            return NowPlaying(guild_id=guild_id)
        return NowPlaying.from_session(session)

    async def leave(self, guild_id: DiscordSnowflake) -> bool:
        session = self._registry.get(guild_id)
        if session is None:
            return False
        return await session.leave(SessionDestroyReason.LEAVE)

    async def _dispatch(
        self, guild_id: DiscordSnowflake, session: PlaybackSession, command: PlaybackCommand
    ) -> Any:
        match command.action:
            case PlaybackAction.PAUSE:
                await session.pause()
            case PlaybackAction.RESUME:
                await session.resume()
            case PlaybackAction.STOP:
                return await session.stop()
            case PlaybackAction.SKIP:
                return await session.skip(command.user_id)
            case PlaybackAction.VOTE_SKIP:
                assert command.user_id is not None
                listeners = command.listener_count
                if listeners is None:
                    listeners = await self._voice.listener_count(guild_id)
                return await session.vote_skip(command.user_id, listeners)
            case PlaybackAction.SET_VOLUME:
                assert command.volume is not None
                return await session.set_volume(command.volume)
            case PlaybackAction.SET_LOOP:
                assert command.loop_mode is not None
                return await session.set_loop(command.loop_mode)
            case PlaybackAction.TOGGLE_LOOP:
                return await session.toggle_loop()
            case PlaybackAction.SET_SHUFFLE:
                assert command.enabled is not None
                return await session.set_shuffle(command.enabled)
            case PlaybackAction.TOGGLE_SHUFFLE:
                return await session.toggle_shuffle()
            case PlaybackAction.SKIP_TO:
                assert command.index is not None
                return await session.skip_to(command.index)
            case PlaybackAction.MOVE:
                assert command.index is not None and command.to_index is not None
                return await session.move_track(command.index, command.to_index)
            case PlaybackAction.REMOVE:
                assert command.index is not None
                return await session.remove_track(command.index)
            case PlaybackAction.RESET_IDLE_TIMER:
                return await session.reset_idle_timer()
        return None
