"""Spotify catalog backed by the Web API (client-credentials flow)."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Final

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from discord_music_engine.application.interfaces.catalog_provider import CatalogProvider
from discord_music_engine.config.settings import SpotifySettings
from discord_music_engine.domain.music.entities import Track
from discord_music_engine.domain.music.value_objects import SourcePlatform, StreamHandle, TrackId
from discord_music_engine.domain.shared.datetime_utils import coerce_duration_seconds
from discord_music_engine.domain.shared.exceptions import ProviderUnavailableError
from discord_music_engine.domain.shared.messages import ErrorMessages, LogTemplates
from discord_music_engine.infrastructure.catalog.streaming import ExtractorStreamResolver
from discord_music_engine.infrastructure.catalog.url_patterns import SPOTIFY_TRACK_URL_PATTERN

logger = logging.getLogger(__name__)

TOKEN_URL: Final[str] = "https://accounts.spotify.com/api/token"
SEARCH_URL: Final[str] = "https://api.spotify.com/v1/search"
MAX_API_LIMIT: Final[int] = 50
TOKEN_EXPIRY_MARGIN: Final[float] = 30.0

MIN_MUSIC_SECONDS: Final[int] = 30
MAX_MUSIC_SECONDS: Final[int] = 15 * 60

NON_MUSIC_KEYWORDS: Final[tuple[str, ...]] = (
    "podcast",
    "audiobook",
    "interview",
    "talk",
    "speech",
    "commentary",
    "review",
    "meditation",
    "sleep",
    "nature sounds",
    "white noise",
    "rain sounds",
    "ocean sounds",
    "asmr",
)


# ── Web API payload models ─────────────────────────────────────────────


class SpotifyImage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str


class SpotifyNamed(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""


class SpotifyAlbum(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    images: list[SpotifyImage] = Field(default_factory=list)


class SpotifyTrackItem(BaseModel):
    """One entry of ``tracks.items`` in a search response."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    duration_ms: int | None = None
    popularity: int = 0
    artists: list[SpotifyNamed] = Field(default_factory=list)
    album: SpotifyAlbum = Field(default_factory=SpotifyAlbum)
    external_urls: dict[str, str] = Field(default_factory=dict)

    @field_validator("duration_ms", mode="before")
    @classmethod
    def _coerce_duration(cls, v: Any) -> int | None:
        return coerce_duration_seconds(v)

    @property
    def duration_seconds(self) -> int | None:
        return None if self.duration_ms is None else self.duration_ms // 1000

    @property
    def artist_names(self) -> str:
        return ", ".join(a.name for a in self.artists if a.name)

    @property
    def page_url(self) -> str:
        return self.external_urls.get("spotify") or f"https://open.spotify.com/track/{self.id}"


def is_music_track(item: SpotifyTrackItem) -> bool:
    text = f"{item.name} {item.artist_names} {item.album.name}".lower()
    if any(keyword in text for keyword in NON_MUSIC_KEYWORDS):
        return False
    seconds = item.duration_seconds
    return seconds is None or MIN_MUSIC_SECONDS <= seconds <= MAX_MUSIC_SECONDS


def item_to_track(item: SpotifyTrackItem) -> Track | None:
    if not item.id or not item.name.strip():
        return None
    thumbnail = next((img.url for img in item.album.images if img.url.startswith("http")), None)
    return Track(
        id=TrackId(item.id),
        title=item.name[:500],
        url=item.page_url,
        source=SourcePlatform.SPOTIFY,
        artist=item.artist_names or None,
        duration_seconds=item.duration_seconds,
        thumbnail_url=thumbnail,
    )


class SpotifyProvider(CatalogProvider):
    """Searches Spotify; playback goes through a SoundCloud rendition of the track.

    Without client credentials the provider stays registered but every
    search returns an empty list.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        stream_resolver: ExtractorStreamResolver,
        settings: SpotifySettings | None = None,
    ) -> None:
        self._session = session
        self._stream_resolver = stream_resolver
        self._settings = settings or SpotifySettings()
        self._access_token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

        if not self._settings.is_configured:
            logger.info(LogTemplates.SPOTIFY_DISABLED)

    @property
    def platform(self) -> SourcePlatform:
        return SourcePlatform.SPOTIFY

    @property
    def is_available(self) -> bool:
        return self._settings.is_configured

    def is_recognized_url(self, text: str) -> bool:
        return bool(SPOTIFY_TRACK_URL_PATTERN.match(text.strip()))

    async def search(self, query: str, limit: int) -> list[Track]:
        query = query.strip()
        if not query or limit <= 0 or not self.is_available:
            return []

        logger.debug(LogTemplates.CATALOG_SEARCH, self.platform.display_name, query, limit)
        try:
            payload = await self._search_request(query, min(limit * 2, MAX_API_LIMIT))
        except (aiohttp.ClientError, TimeoutError, ValueError, ProviderUnavailableError) as exc:
            logger.warning(LogTemplates.CATALOG_SEARCH_FAILED, self.platform.display_name, query, exc)
            return []

        tracks_page = payload.get("tracks")
        raw_items = tracks_page.get("items", []) if isinstance(tracks_page, dict) else []
        items: list[SpotifyTrackItem] = []
        for raw in raw_items if isinstance(raw_items, list) else []:
            try:
                items.append(SpotifyTrackItem.model_validate(raw))
            except ValidationError:
                continue

        music = [item for item in items if is_music_track(item)]
        if len(music) < len(items):
            logger.debug(
                LogTemplates.CATALOG_FILTERED, self.platform.display_name, len(items) - len(music), query
            )
        music.sort(key=lambda item: item.popularity, reverse=True)

        tracks = [t for t in (item_to_track(item) for item in music) if t is not None][:limit]
        logger.debug(LogTemplates.CATALOG_RESULTS, self.platform.display_name, len(tracks), query)
        return tracks

    async def resolve_stream_source(self, track: Track, scope: int) -> StreamHandle:
        query = f"{track.artist} {track.title}" if track.artist else track.title
        return await self._stream_resolver.resolve(f"scsearch1:{query}", track, scope)

    async def _search_request(self, query: str, limit: int) -> dict[str, Any]:
        params = {"q": query, "type": "track", "limit": str(limit), "market": self._settings.market}

        for attempt in range(2):
            token = await self._get_token(force_refresh=attempt > 0)
            async with self._session.get(
                SEARCH_URL, params=params, headers={"Authorization": f"Bearer {token}"}
            ) as response:
                if response.status == 401 and attempt == 0:
                    continue
                response.raise_for_status()
                data = await response.json(content_type=None)
                return data if isinstance(data, dict) else {}
        return {}

    async def _get_token(self, *, force_refresh: bool = False) -> str:
        async with self._token_lock:
            now = time.monotonic()
            if not force_refresh and self._access_token and now < self._token_expires_at:
                return self._access_token

            auth = aiohttp.BasicAuth(
                self._settings.client_id, self._settings.client_secret.get_secret_value()
            )
            async with self._session.post(
                TOKEN_URL, data={"grant_type": "client_credentials"}, auth=auth
            ) as response:
                if response.status != 200:
                    raise ProviderUnavailableError(
                        self.platform.value, ErrorMessages.SPOTIFY_TOKEN_FAILED
                    )
                body = await response.json(content_type=None)

            token = body.get("access_token") if isinstance(body, dict) else None
            if not token:
                raise ProviderUnavailableError(self.platform.value, ErrorMessages.SPOTIFY_TOKEN_FAILED)

            expires_in = float(body.get("expires_in", 3600))
            self._access_token = token
            self._token_expires_at = now + max(expires_in - TOKEN_EXPIRY_MARGIN, 0.0)
            logger.debug(LogTemplates.SPOTIFY_TOKEN_REFRESHED, int(expires_in))
            return token
