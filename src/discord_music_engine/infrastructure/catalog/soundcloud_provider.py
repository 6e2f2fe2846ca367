"""SoundCloud catalog backed by the yt-dlp extraction utility."""

from __future__ import annotations

import logging
from typing import Any, Final

from pydantic import ValidationError

from discord_music_engine.application.interfaces.catalog_provider import CatalogProvider
from discord_music_engine.application.interfaces.stream_extractor import StreamExtractor
from discord_music_engine.config.settings import ExtractionSettings
from discord_music_engine.domain.music.entities import Track
from discord_music_engine.domain.music.value_objects import SourcePlatform, StreamHandle, TrackId
from discord_music_engine.domain.shared.exceptions import NoResultsFoundError, StreamUnavailableError
from discord_music_engine.domain.shared.messages import LogTemplates
from discord_music_engine.domain.shared.types import DurationSeconds
from discord_music_engine.infrastructure.audio.models import YtDlpTrackInfo
from discord_music_engine.infrastructure.catalog.streaming import ExtractorStreamResolver
from discord_music_engine.infrastructure.catalog.url_patterns import SOUNDCLOUD_URL_PATTERN

logger = logging.getLogger(__name__)

MIN_MUSIC_SECONDS: Final[int] = 20
MAX_MUSIC_SECONDS: Final[int] = 20 * 60
MAX_TRACK_SECONDS: Final[int] = 86_400
SEARCH_OVERFETCH: Final[int] = 2

NON_MUSIC_KEYWORDS: Final[tuple[str, ...]] = (
    "podcast",
    "interview",
    "talk",
    "speech",
    "commentary",
    "review",
    "tutorial",
    "lesson",
    "comedy",
    "audiobook",
    "news",
    "radio show",
)

# Weighted hints used to float likely music to the top of the results.
MUSIC_KEYWORD_WEIGHTS: Final[dict[str, int]] = {
    "remix": 3,
    "music": 2,
    "mix": 1,
    "original": 1,
    "edit": 1,
    "version": 1,
    "cover": 1,
    "bootleg": 1,
    "mashup": 1,
    "live": 1,
    "set": 1,
    "track": 1,
    "song": 1,
    "beat": 1,
}


def is_music_content(info: YtDlpTrackInfo) -> bool:
    if info.duration is not None and not MIN_MUSIC_SECONDS <= info.duration <= MAX_MUSIC_SECONDS:
        return False
    text = " ".join(filter(None, (info.title, info.description, info.uploader))).lower()
    return not any(keyword in text for keyword in NON_MUSIC_KEYWORDS)


def music_score(info: YtDlpTrackInfo) -> int:
    text = " ".join(filter(None, (info.title, info.description, info.uploader))).lower()
    return sum(weight for keyword, weight in MUSIC_KEYWORD_WEIGHTS.items() if keyword in text)


def info_to_track(info: YtDlpTrackInfo) -> Track | None:
    url = info.page_url or (info.url if info.url and info.url.startswith("http") else None)
    if not url:
        return None

    duration: DurationSeconds | None = info.duration
    if duration is not None and duration > MAX_TRACK_SECONDS:
        duration = None

    return Track(
        id=TrackId(info.id) if info.id else TrackId.from_url(url),
        title=info.title[:500],
        url=url,
        source=SourcePlatform.SOUNDCLOUD,
        artist=info.performer,
        duration_seconds=duration,
        thumbnail_url=info.thumbnail,
    )


class SoundCloudProvider(CatalogProvider):
    supports_direct_links = True

    def __init__(
        self,
        extractor: StreamExtractor,
        stream_resolver: ExtractorStreamResolver,
        settings: ExtractionSettings | None = None,
    ) -> None:
        self._extractor = extractor
        self._stream_resolver = stream_resolver
        self._timeout = (settings or ExtractionSettings()).metadata_timeout_seconds

    @property
    def platform(self) -> SourcePlatform:
        return SourcePlatform.SOUNDCLOUD

    def is_recognized_url(self, text: str) -> bool:
        return bool(SOUNDCLOUD_URL_PATTERN.match(text.strip()))

    async def search(self, query: str, limit: int) -> list[Track]:
        query = query.strip()
        if not query or limit <= 0:
            return []

        logger.debug(LogTemplates.CATALOG_SEARCH, self.platform.display_name, query, limit)
        try:
            entries = await self._extractor.dump_json(
                f"scsearch{limit * SEARCH_OVERFETCH}:{query}", self._timeout
            )
        except StreamUnavailableError as exc:
            logger.warning(LogTemplates.CATALOG_SEARCH_FAILED, self.platform.display_name, query, exc)
            return []

        infos = _parse_entries(entries)
        music = [info for info in infos if is_music_content(info)]
        if len(music) < len(infos):
            logger.debug(
                LogTemplates.CATALOG_FILTERED, self.platform.display_name, len(infos) - len(music), query
            )
        music.sort(key=music_score, reverse=True)

        tracks = [t for t in (info_to_track(info) for info in music) if t is not None][:limit]
        logger.debug(LogTemplates.CATALOG_RESULTS, self.platform.display_name, len(tracks), query)
        return tracks

    async def get_track_by_url(self, url: str) -> Track:
        try:
            entries = await self._extractor.dump_json(url, self._timeout)
        except StreamUnavailableError as exc:
            raise NoResultsFoundError(url) from exc

        for info in _parse_entries(entries):
            track = info_to_track(info)
            if track is not None:
                return track
        raise NoResultsFoundError(url)

    async def resolve_stream_source(self, track: Track, scope: int) -> StreamHandle:
        return await self._stream_resolver.resolve(track.url, track, scope)


def _parse_entries(entries: list[dict[str, Any]]) -> list[YtDlpTrackInfo]:
    infos: list[YtDlpTrackInfo] = []
    for entry in entries:
        try:
            infos.append(YtDlpTrackInfo.model_validate(entry))
        except ValidationError:
            continue
    return infos
