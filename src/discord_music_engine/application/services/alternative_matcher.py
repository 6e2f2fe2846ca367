"""Alternative Matcher - finds a playable track for an unsupported link."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ...domain.matching.services import MatchingDomainService, MatchResult
from ...domain.matching.title_utils import normalize_title
from ...domain.music.value_objects import PROVIDER_PRIORITY, SourcePlatform
from ...domain.shared.exceptions import NoAlternativeFoundError, TitleExtractionFailedError
from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ..interfaces.catalog_provider import CatalogProvider
    from ..interfaces.title_extractor import TitleExtractor

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_LIMIT = 5


class AlternativeMatcher:
    """Looks up a link's title and picks the closest track on another catalog.

    Every provider is queried in parallel with the normalised title; a
    provider that fails contributes no candidates.
    """

    def __init__(
        self,
        *,
        title_extractors: Sequence[TitleExtractor],
        providers: Sequence[CatalogProvider],
        candidate_limit: int = DEFAULT_CANDIDATE_LIMIT,
        priority: Sequence[SourcePlatform] = PROVIDER_PRIORITY,
    ) -> None:
        self._extractors = list(title_extractors)
        self._providers = list(providers)
        self._candidate_limit = candidate_limit
        self._priority = tuple(priority)

    def handles(self, url: str) -> bool:
        return self._extractor_for(url) is not None

    async def match(self, url: str) -> MatchResult:
        extractor = self._extractor_for(url)
        if extractor is None:
            raise TitleExtractionFailedError(url)

        raw_title = await extractor.extract_title(url)
        query = normalize_title(raw_title)
        if not query:
            raise TitleExtractionFailedError(url)

        candidates = [p for p in self._providers if p.platform != extractor.platform]
        results = await self._search_all(candidates, query)

        best = MatchingDomainService.best_match(query, results, self._priority)
        if best is None:
            logger.info(LogTemplates.MATCH_NONE, query)
            raise NoAlternativeFoundError(query)

        logger.info(
            LogTemplates.MATCH_SELECTED,
            query,
            best.platform.display_name,
            best.track.title,
            best.score,
        )
        return MatchResult(
            track=best.track,
            score=best.score,
            platform=best.platform,
            query_title=query,
            source_url=url,
        )

    def _extractor_for(self, url: str) -> TitleExtractor | None:
        return next((e for e in self._extractors if e.is_recognized_url(url)), None)

    async def _search_all(
        self, providers: Sequence[CatalogProvider], query: str
    ) -> list[tuple[SourcePlatform, list[Track]]]:
        async def safe_search(provider: CatalogProvider) -> list[Track]:
            try:
                return await provider.search(query, self._candidate_limit)
            except Exception as exc:
                logger.warning(
                    LogTemplates.CATALOG_SEARCH_FAILED, provider.platform.display_name, query, exc
                )
                return []

        async with asyncio.TaskGroup() as tg:
            tasks = [(p.platform, tg.create_task(safe_search(p))) for p in providers]

        return [(platform, task.result()) for platform, task in tasks]
