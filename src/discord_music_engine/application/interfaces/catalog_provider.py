"""Port interface for external music catalogs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from discord_music_engine.domain.shared.exceptions import UnsupportedOperationError

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ...domain.music.value_objects import SourcePlatform, StreamHandle


class CatalogProvider(ABC):
    """Interface for one searchable music platform."""

    supports_direct_links: bool = False

    @property
    @abstractmethod
    def platform(self) -> "SourcePlatform":
        ...

    @abstractmethod
    async def search(self, query: str, limit: int) -> list["Track"]:
        """Search the catalog in relevance order.

        Returns an empty list when nothing matches or the platform cannot be
        reached; never raises for those cases.
        """
        ...

    @abstractmethod
    async def resolve_stream_source(self, track: "Track", scope: int) -> "StreamHandle":
        """Turn a track into a playable source.

        ``scope`` is the guild id that owns any temporary files. Raises
        StreamUnavailableError on failure.
        """
        ...

    @abstractmethod
    def is_recognized_url(self, text: str) -> bool:
        """Pattern match only; no network access."""
        ...

    async def get_track_by_url(self, url: str) -> "Track":
        """Fetch a single track from a direct link."""
        raise UnsupportedOperationError("get_track_by_url", self.platform.display_name)
