"""Discord voice adapter implementing VoiceAdapter for connection and playback."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import discord

from discord_music_engine.application.interfaces.voice_adapter import (
    DisconnectCallback,
    TrackEndCallback,
    TrackErrorCallback,
    VoiceAdapter,
)
from discord_music_engine.config.settings import AudioSettings, PlaybackSettings
from discord_music_engine.domain.shared.messages import LogTemplates
from discord_music_engine.utils.logging import guild_context

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from ....domain.music.value_objects import StreamHandle

logger = logging.getLogger(__name__)

MAX_SOURCE_VOLUME: float = 1.0


class DiscordVoiceAdapter(VoiceAdapter):
    """Plays StreamHandles through FFmpeg on discord.py voice clients.

    discord.py invokes the ``after`` hook on its audio thread; the adapter
    hands the notification back to the bot's event loop together with the
    token the session passed to ``play``.
    """

    def __init__(
        self,
        bot: discord.Client,
        audio_settings: AudioSettings | None = None,
        playback_settings: PlaybackSettings | None = None,
    ) -> None:
        self._bot = bot
        self._audio = audio_settings or AudioSettings()
        self._connect_timeout = (playback_settings or PlaybackSettings()).connect_timeout_seconds
        self._on_track_end: TrackEndCallback | None = None
        self._on_track_error: TrackErrorCallback | None = None
        self._on_disconnect: DisconnectCallback | None = None
        self._expected_disconnects: set[int] = set()

    def set_callbacks(
        self,
        on_track_end: TrackEndCallback,
        on_track_error: TrackErrorCallback,
        on_disconnect: DisconnectCallback,
    ) -> None:
        self._on_track_end = on_track_end
        self._on_track_error = on_track_error
        self._on_disconnect = on_disconnect

    def _get_voice_client(self, guild_id: int) -> discord.VoiceClient | None:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            return None

        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    async def connect(self, guild_id: int, channel_id: int) -> bool:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            logger.warning(LogTemplates.VOICE_CHANNEL_NOT_FOUND, channel_id)
            return False

        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.VoiceChannel | discord.StageChannel):
            logger.warning(LogTemplates.VOICE_CHANNEL_NOT_FOUND, channel_id)
            return False

        vc = self._get_voice_client(guild_id)
        if vc is not None and not vc.is_connected():
            await self.disconnect(guild_id)
            vc = None

        try:
            async with asyncio.timeout(self._connect_timeout):
                if vc is None:
                    await channel.connect(self_deaf=True)
                    logger.info(LogTemplates.VOICE_CONNECTED, channel.name, guild.name)
                elif vc.channel is None or vc.channel.id != channel_id:
                    await vc.move_to(channel)
                    logger.info(LogTemplates.VOICE_MOVED, channel.name)
            return True
        except TimeoutError:
            logger.error(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel_id)
            return False
        except discord.Forbidden:
            logger.error(LogTemplates.VOICE_NO_PERMISSION, channel_id)
            return False
        except discord.ClientException as e:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
            return False

    async def disconnect(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc:
            return False

        if vc.is_connected():
            self._expected_disconnects.add(guild_id)
        try:
            await vc.disconnect(force=True)
        except discord.ClientException as e:
            self._expected_disconnects.discard(guild_id)
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
            return False
        logger.info(LogTemplates.VOICE_DISCONNECTED, guild_id)
        return True

    async def play(
        self,
        guild_id: int,
        handle: StreamHandle,
        volume: float,
        *,
        token: int,
    ) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc or not vc.is_connected():
            logger.warning(LogTemplates.VOICE_NOT_CONNECTED, guild_id)
            return False

        if vc.is_playing() or vc.is_paused():
            vc.stop()

        # Reconnect flags only make sense for network streams.
        before_options = None if handle.is_local_file else self._audio.ffmpeg_before_options
        try:
            source = discord.FFmpegPCMAudio(
                handle.location,
                before_options=before_options,
                options=self._audio.ffmpeg_options,
            )
            volume_source = discord.PCMVolumeTransformer(source, volume=_clamp(volume))

            def after_callback(error: Exception | None = None) -> None:
                if error is not None and self._on_track_error is not None:
                    coro = self._on_track_error(guild_id, token, error)
                elif self._on_track_end is not None:
                    coro = self._on_track_end(guild_id, token)
                else:
                    return
                self._dispatch(guild_id, coro)

            vc.play(volume_source, after=after_callback)
            return True
        except discord.ClientException as e:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
            return False

    async def stop(self, guild_id: int) -> bool:
        """Stop the live source. Returns False when nothing was playing."""
        vc = self._get_voice_client(guild_id)
        if not vc or not (vc.is_playing() or vc.is_paused()):
            return False
        vc.stop()
        return True

    async def pause(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc or not vc.is_playing():
            return False
        vc.pause()
        return True

    async def resume(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc or not vc.is_paused():
            return False
        vc.resume()
        return True

    async def set_volume(self, guild_id: int, volume: float) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc or not isinstance(vc.source, discord.PCMVolumeTransformer):
            return False
        vc.source.volume = _clamp(volume)
        return True

    def is_connected(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        return vc is not None and vc.is_connected()

    async def listener_count(self, guild_id: int) -> int:
        vc = self._get_voice_client(guild_id)
        if not vc or not vc.channel:
            return 0
        return sum(1 for member in vc.channel.members if not member.bot)

    async def handle_voice_state_update(
        self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState
    ) -> None:
        """Forward the bot's own forced disconnects; wire to ``on_voice_state_update``."""
        if self._bot.user is None or member.id != self._bot.user.id:
            return
        if before.channel is not None and after.channel is None:
            if member.guild.id in self._expected_disconnects:
                self._expected_disconnects.discard(member.guild.id)
                logger.debug(LogTemplates.VOICE_DISCONNECT_EXPECTED, member.guild.id)
                return
            await self.notify_disconnected(member.guild.id)

    async def notify_disconnected(self, guild_id: int) -> None:
        if self._on_disconnect is None:
            return
        with guild_context(guild_id):
            logger.info(LogTemplates.VOICE_DISCONNECT_DETECTED, guild_id)
        await self._on_disconnect(guild_id)

    def _dispatch(self, guild_id: int, coro: Coroutine[Any, Any, None]) -> None:
        """Schedule ``coro`` on the bot loop from discord.py's audio thread."""
        future = asyncio.run_coroutine_threadsafe(coro, self._bot.loop)

        def _log_failure(done: Any) -> None:
            if not done.cancelled() and done.exception() is not None:
                logger.error(LogTemplates.VOICE_CALLBACK_ERROR, guild_id, exc_info=done.exception())

        future.add_done_callback(_log_failure)


def _clamp(volume: float) -> float:
    return max(0.0, min(MAX_SOURCE_VOLUME, float(volume)))
