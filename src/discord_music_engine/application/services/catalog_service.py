"""Catalog Application Service - search aggregation and query routing."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from ...domain.matching.services import MatchResult
from ...domain.music.entities import Track
from ...domain.music.value_objects import PROVIDER_PRIORITY, SourcePlatform
from ...domain.shared.exceptions import (
    NoResultsFoundError,
    StreamUnavailableError,
    UnsupportedOperationError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.music.value_objects import StreamHandle
    from ..interfaces.catalog_provider import CatalogProvider
    from ..interfaces.media_store import MediaStore
    from .alternative_matcher import AlternativeMatcher

logger = logging.getLogger(__name__)

_URL_PREFIXES = ("http://", "https://", "spotify:")


class QueryKind(Enum):
    """How a user query will be handled."""

    TEXT = "text"
    DIRECT_LINK = "direct_link"
    UNSUPPORTED_LINK = "unsupported_link"
    UNKNOWN_LINK = "unknown_link"


class ResolvedQuery(BaseModel):
    """A query turned into a single playable track."""

    model_config = ConfigDict(frozen=True, strict=True)

    track: Track
    kind: QueryKind
    match: MatchResult | None = None


class CatalogService:
    """Fans searches out to every catalog and routes links to the right handler."""

    def __init__(
        self,
        *,
        providers: Sequence[CatalogProvider],
        matcher: AlternativeMatcher,
        media_store: MediaStore,
        priority: Sequence[SourcePlatform] = PROVIDER_PRIORITY,
    ) -> None:
        rank = {platform: i for i, platform in enumerate(priority)}
        self._providers = sorted(providers, key=lambda p: rank.get(p.platform, len(rank)))
        self._matcher = matcher
        self._media_store = media_store

    @property
    def platforms(self) -> list[SourcePlatform]:
        return [p.platform for p in self._providers]

    def provider_for(self, platform: SourcePlatform) -> CatalogProvider | None:
        return next((p for p in self._providers if p.platform == platform), None)

    def classify(self, query: str) -> tuple[QueryKind, CatalogProvider | None]:
        text = query.strip()
        for provider in self._providers:
            if provider.is_recognized_url(text):
                return QueryKind.DIRECT_LINK, provider
        if self._matcher.handles(text):
            return QueryKind.UNSUPPORTED_LINK, None
        if text.lower().startswith(_URL_PREFIXES):
            return QueryKind.UNKNOWN_LINK, None
        return QueryKind.TEXT, None

    async def search(
        self,
        query: str,
        platform: SourcePlatform | None = None,
        limit: int = 5,
    ) -> list[Track]:
        """Search one catalog, or all of them in priority order when ``platform`` is None.

        Provider failures are logged and count as no results.
        """
        if platform is not None:
            provider = self.provider_for(platform)
            if provider is None:
                return []
            return await self._safe_search(provider, query, limit)

        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(self._safe_search(p, query, limit)) for p in self._providers]

        combined: list[Track] = []
        for task in tasks:
            combined.extend(task.result())
        return combined[:limit]

    async def resolve_query(self, query: str) -> ResolvedQuery:
        """Turn free text or a link into one track.

        Raises:
            NoResultsFoundError: Nothing matched the text, or the link is not
                from a known catalog.
            UnsupportedOperationError: The catalog cannot ingest single links.
            TitleExtractionFailedError, NoAlternativeFoundError: From the
                alternative matcher.
        """
        text = query.strip()
        kind, provider = self.classify(text)

        if kind is QueryKind.DIRECT_LINK and provider is not None:
            if not provider.supports_direct_links:
                raise UnsupportedOperationError("direct link", provider.platform.display_name)
            return ResolvedQuery(track=await provider.get_track_by_url(text), kind=kind)

        if kind is QueryKind.UNSUPPORTED_LINK:
            result = await self._matcher.match(text)
            return ResolvedQuery(track=result.track, kind=kind, match=result)

        if kind is QueryKind.UNKNOWN_LINK:
            raise NoResultsFoundError(text)

        tracks = await self.search(text, None, 1)
        if not tracks:
            raise NoResultsFoundError(text)
        return ResolvedQuery(track=tracks[0], kind=kind)

    async def resolve_stream(self, track: Track, guild_id: int) -> StreamHandle:
        provider = self.provider_for(track.source)
        if provider is None:
            raise StreamUnavailableError(
                track.url, ErrorMessages.NO_STREAM_PROVIDER % track.source.display_name
            )
        return await provider.resolve_stream_source(track, guild_id)

    def release_stream(self, handle: StreamHandle) -> None:
        self._media_store.release(handle)

    def purge_guild(self, guild_id: int) -> None:
        self._media_store.purge(guild_id)

    async def _safe_search(self, provider: CatalogProvider, query: str, limit: int) -> list[Track]:
        try:
            return await provider.search(query, limit)
        except Exception as exc:
            logger.warning(
                LogTemplates.CATALOG_SEARCH_FAILED, provider.platform.display_name, query, exc
            )
            return []
