"""Title lookup for YouTube links through the public oEmbed endpoint."""

from __future__ import annotations

import logging
from typing import Final

import aiohttp
from pydantic import BaseModel, ConfigDict, ValidationError

from discord_music_engine.application.interfaces.title_extractor import TitleExtractor
from discord_music_engine.domain.music.value_objects import SourcePlatform
from discord_music_engine.domain.shared.exceptions import TitleExtractionFailedError
from discord_music_engine.domain.shared.messages import LogTemplates
from discord_music_engine.infrastructure.catalog.url_patterns import YOUTUBE_URL_PATTERN

logger = logging.getLogger(__name__)

OEMBED_URL: Final[str] = "https://www.youtube.com/oembed"


class OEmbedPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str = ""
    author_name: str = ""


class YouTubeOEmbedExtractor(TitleExtractor):
    def __init__(self, session: aiohttp.ClientSession) -> None:
        self._session = session

    @property
    def platform(self) -> SourcePlatform:
        return SourcePlatform.YOUTUBE

    def is_recognized_url(self, text: str) -> bool:
        return bool(YOUTUBE_URL_PATTERN.match(text.strip()))

    async def extract_title(self, url: str) -> str:
        """Return ``"{author} - {title}"``, or just the title when there is no author."""
        try:
            async with self._session.get(OEMBED_URL, params={"format": "json", "url": url}) as response:
                response.raise_for_status()
                payload = OEmbedPayload.model_validate(await response.json(content_type=None))
        except (aiohttp.ClientError, TimeoutError, ValueError, ValidationError) as exc:
            raise TitleExtractionFailedError(url) from exc

        title = payload.title.strip()
        author = payload.author_name.strip()
        if not title:
            raise TitleExtractionFailedError(url)

        result = f"{author} - {title}" if author else title
        logger.debug(LogTemplates.MATCH_TITLE_EXTRACTED, result, url)
        return result
