"""Shared stream resolution through the extraction utility."""

from __future__ import annotations

import logging

from discord_music_engine.application.interfaces.media_store import MediaStore
from discord_music_engine.application.interfaces.stream_extractor import StreamExtractor
from discord_music_engine.config.settings import AudioSettings, ExtractionSettings
from discord_music_engine.domain.music.entities import Track
from discord_music_engine.domain.music.value_objects import StreamHandle
from discord_music_engine.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)


class ExtractorStreamResolver:
    """Turns an extraction target into a StreamHandle.

    In ``url`` mode the handle is a direct media URL; in ``download`` mode the
    audio is written to the guild's temp directory and the handle owns that
    file.
    """

    def __init__(
        self,
        extractor: StreamExtractor,
        media_store: MediaStore,
        audio_settings: AudioSettings,
        extraction_settings: ExtractionSettings,
    ) -> None:
        self._extractor = extractor
        self._media_store = media_store
        self._mode = audio_settings.stream_mode
        self._timeout = extraction_settings.stream_timeout_seconds

    @property
    def mode(self) -> str:
        return self._mode

    async def resolve(self, target: str, track: Track, scope: int) -> StreamHandle:
        logger.debug(LogTemplates.PLAYBACK_RESOLVING, track.title, scope)
        if self._mode == "download":
            path = await self._extractor.download_audio(
                target,
                self._media_store.guild_dir(scope),
                self._media_store.new_stem(track),
                self._timeout,
            )
            return StreamHandle.for_file(path)

        url = await self._extractor.get_stream_url(target, self._timeout)
        return StreamHandle.for_url(url)
