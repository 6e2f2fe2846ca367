"""Session Registry - one PlaybackSession per guild."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ...config.settings import AudioSettings, PlaybackSettings
from ...domain.music.value_objects import SessionDestroyReason
from ...domain.shared.events import SessionCreated
from ...domain.shared.messages import LogTemplates
from ...domain.shared.types import DiscordSnowflake
from ...utils.logging import guild_context
from .playback_session import PlaybackSession

if TYPE_CHECKING:
    from ...domain.shared.events import EventBus
    from ..interfaces.voice_adapter import VoiceAdapter
    from .catalog_service import CatalogService

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps guild ids to live sessions and routes voice callbacks to them.

    The registry lock only guards the map itself; it is never held while a
    session does work, so guilds never wait on each other.
    """

    def __init__(
        self,
        *,
        voice_adapter: VoiceAdapter,
        catalog: CatalogService,
        event_bus: EventBus,
        audio_settings: AudioSettings | None = None,
        playback_settings: PlaybackSettings | None = None,
    ) -> None:
        self._voice = voice_adapter
        self._catalog = catalog
        self._event_bus = event_bus
        self._audio_settings = audio_settings or AudioSettings()
        self._playback_settings = playback_settings or PlaybackSettings()

        self._sessions: dict[DiscordSnowflake, PlaybackSession] = {}
        self._lock = asyncio.Lock()

        self._voice.set_callbacks(
            on_track_end=self._on_track_end,
            on_track_error=self._on_track_error,
            on_disconnect=self._on_disconnect,
        )

    def get(self, guild_id: DiscordSnowflake) -> PlaybackSession | None:
        return self._sessions.get(guild_id)

    async def get_or_create(self, guild_id: DiscordSnowflake) -> PlaybackSession:
        async with self._lock:
            session = self._sessions.get(guild_id)
            if session is not None and not session.is_destroyed:
                return session

            session = PlaybackSession(
                guild_id,
                voice_adapter=self._voice,
                catalog=self._catalog,
                event_bus=self._event_bus,
                audio_settings=self._audio_settings,
                playback_settings=self._playback_settings,
                on_destroy=self.remove,
            )
            self._sessions[guild_id] = session

        with guild_context(guild_id):
            logger.info(LogTemplates.SESSION_CREATED, guild_id)
        await self._event_bus.publish(SessionCreated(guild_id=guild_id))
        return session

    async def remove(self, guild_id: DiscordSnowflake) -> PlaybackSession | None:
        """Forget a guild's session. Only destroyed sessions are dropped."""
        async with self._lock:
            session = self._sessions.get(guild_id)
            if session is None or not session.is_destroyed:
                return None
            return self._sessions.pop(guild_id)

    def active_guild_ids(self) -> list[DiscordSnowflake]:
        return [gid for gid, s in self._sessions.items() if not s.is_destroyed]

    def __len__(self) -> int:
        return len(self._sessions)

    async def shutdown(self) -> None:
        """Leave every session."""
        sessions = list(self._sessions.values())
        logger.info(LogTemplates.REGISTRY_SHUTDOWN, len(sessions))
        for session in sessions:
            await session.leave(SessionDestroyReason.SHUTDOWN)

    # ── Voice callback routing ─────────────────────────────────────────

    async def _on_track_end(self, guild_id: DiscordSnowflake, token: int) -> None:
        session = self._sessions.get(guild_id)
        if session is not None:
            await session.on_track_end(token)

    async def _on_track_error(self, guild_id: DiscordSnowflake, token: int, error: Exception) -> None:
        session = self._sessions.get(guild_id)
        if session is not None:
            await session.on_track_error(token, error)

    async def _on_disconnect(self, guild_id: DiscordSnowflake) -> None:
        session = self._sessions.get(guild_id)
        if session is not None:
            await session.handle_disconnect()
