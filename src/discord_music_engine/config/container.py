"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for catalogs, adapters and services. Components
are created on demand and cached for reuse.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    import aiohttp
    from discord import Client

    from ..application.interfaces.catalog_provider import CatalogProvider
    from ..application.interfaces.media_store import MediaStore
    from ..application.interfaces.stream_extractor import StreamExtractor
    from ..application.interfaces.voice_adapter import VoiceAdapter
    from ..application.services.alternative_matcher import AlternativeMatcher
    from ..application.services.catalog_service import CatalogService
    from ..application.services.music_service import MusicApplicationService
    from ..application.services.session_registry import SessionRegistry
    from ..domain.shared.events import EventBus
    from ..infrastructure.catalog.soundcloud_provider import SoundCloudProvider
    from ..infrastructure.catalog.spotify_provider import SpotifyProvider
    from ..infrastructure.catalog.streaming import ExtractorStreamResolver
    from ..infrastructure.catalog.youtube_oembed import YouTubeOEmbedExtractor
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed. The voice adapter
    needs a Discord client (``set_bot``); everything on the catalog side
    works without one.
    """

    settings: Settings
    _bot: Client | None = None

    # Shared infrastructure
    _http_session: aiohttp.ClientSession | None = None
    _event_bus: EventBus | None = None
    _media_store: MediaStore | None = None
    _extractor: StreamExtractor | None = None
    _stream_resolver: ExtractorStreamResolver | None = None

    # Catalogs
    _soundcloud_provider: SoundCloudProvider | None = None
    _spotify_provider: SpotifyProvider | None = None
    _youtube_extractor: YouTubeOEmbedExtractor | None = None

    # Adapters
    _voice_adapter: VoiceAdapter | None = None

    # Application services
    _matcher: AlternativeMatcher | None = None
    _catalog_service: CatalogService | None = None
    _session_registry: SessionRegistry | None = None
    _music_service: MusicApplicationService | None = None

    def set_bot(self, bot: Client) -> None:
        """Set the Discord client instance."""
        self._bot = bot

    @property
    def bot(self) -> Client:
        if self._bot is None:
            raise RuntimeError("Bot not initialized. Call set_bot() first.")
        return self._bot

    # === Shared infrastructure ===

    @property
    def http_session(self) -> aiohttp.ClientSession:
        """Shared HTTP session; must first be accessed from a running event loop."""
        if self._http_session is None:
            import aiohttp

            self._http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.http.timeout_seconds),
                headers={"User-Agent": self.settings.http.user_agent},
            )
        return self._http_session

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            from ..domain.shared.events import EventBus

            self._event_bus = EventBus()
        return self._event_bus

    @property
    def media_store(self) -> MediaStore:
        if self._media_store is None:
            from ..infrastructure.audio.media_store import TempMediaStore

            self._media_store = TempMediaStore(self.settings.audio.temp_dir)
        return self._media_store

    @property
    def extractor(self) -> StreamExtractor:
        if self._extractor is None:
            from ..infrastructure.audio.ytdlp_runner import YtDlpProcessRunner

            self._extractor = YtDlpProcessRunner(self.settings.extraction, self.settings.audio)
        return self._extractor

    @property
    def stream_resolver(self) -> ExtractorStreamResolver:
        if self._stream_resolver is None:
            from ..infrastructure.catalog.streaming import ExtractorStreamResolver

            self._stream_resolver = ExtractorStreamResolver(
                self.extractor,
                self.media_store,
                self.settings.audio,
                self.settings.extraction,
            )
        return self._stream_resolver

    # === Catalogs ===

    @property
    def soundcloud_provider(self) -> SoundCloudProvider:
        if self._soundcloud_provider is None:
            from ..infrastructure.catalog.soundcloud_provider import SoundCloudProvider

            self._soundcloud_provider = SoundCloudProvider(
                self.extractor, self.stream_resolver, self.settings.extraction
            )
        return self._soundcloud_provider

    @property
    def spotify_provider(self) -> SpotifyProvider:
        if self._spotify_provider is None:
            from ..infrastructure.catalog.spotify_provider import SpotifyProvider

            self._spotify_provider = SpotifyProvider(
                self.http_session, self.stream_resolver, self.settings.spotify
            )
        return self._spotify_provider

    @property
    def youtube_extractor(self) -> YouTubeOEmbedExtractor:
        if self._youtube_extractor is None:
            from ..infrastructure.catalog.youtube_oembed import YouTubeOEmbedExtractor

            self._youtube_extractor = YouTubeOEmbedExtractor(self.http_session)
        return self._youtube_extractor

    @property
    def providers(self) -> list[CatalogProvider]:
        return [self.soundcloud_provider, self.spotify_provider]

    # === Adapters ===

    @property
    def voice_adapter(self) -> VoiceAdapter:
        if self._voice_adapter is None:
            from ..infrastructure.discord.adapters.voice_adapter import DiscordVoiceAdapter

            self._voice_adapter = DiscordVoiceAdapter(
                self.bot, self.settings.audio, self.settings.playback
            )
        return self._voice_adapter

    # === Application services ===

    @property
    def matcher(self) -> AlternativeMatcher:
        if self._matcher is None:
            from ..application.services.alternative_matcher import AlternativeMatcher

            self._matcher = AlternativeMatcher(
                title_extractors=[self.youtube_extractor],
                providers=self.providers,
                candidate_limit=self.settings.matching.candidate_limit,
                priority=self.settings.matching.provider_priority,
            )
        return self._matcher

    @property
    def catalog_service(self) -> CatalogService:
        if self._catalog_service is None:
            from ..application.services.catalog_service import CatalogService

            self._catalog_service = CatalogService(
                providers=self.providers,
                matcher=self.matcher,
                media_store=self.media_store,
                priority=self.settings.matching.provider_priority,
            )
        return self._catalog_service

    @property
    def session_registry(self) -> SessionRegistry:
        if self._session_registry is None:
            from ..application.services.session_registry import SessionRegistry

            self._session_registry = SessionRegistry(
                voice_adapter=self.voice_adapter,
                catalog=self.catalog_service,
                event_bus=self.event_bus,
                audio_settings=self.settings.audio,
                playback_settings=self.settings.playback,
            )
        return self._session_registry

    @property
    def music_service(self) -> MusicApplicationService:
        if self._music_service is None:
            from ..application.services.music_service import MusicApplicationService

            self._music_service = MusicApplicationService(
                catalog=self.catalog_service,
                registry=self.session_registry,
                voice_adapter=self.voice_adapter,
            )
        return self._music_service

    # === Lifecycle ===

    async def shutdown(self) -> None:
        """Leave every session and close shared clients."""
        if self._session_registry is not None:
            await self._session_registry.shutdown()

        if self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

        if self._event_bus is not None:
            self._event_bus.clear()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
