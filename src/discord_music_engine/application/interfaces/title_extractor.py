"""Port interface for reading titles from unsupported platforms."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.value_objects import SourcePlatform


class TitleExtractor(ABC):
    """Fetches display metadata for links whose audio cannot be played."""

    @property
    @abstractmethod
    def platform(self) -> "SourcePlatform":
        ...

    @abstractmethod
    def is_recognized_url(self, text: str) -> bool:
        ...

    @abstractmethod
    async def extract_title(self, url: str) -> str:
        """Return a raw title, or raise TitleExtractionFailedError."""
        ...
