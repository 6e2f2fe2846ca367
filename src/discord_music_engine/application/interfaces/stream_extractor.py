"""Port interface for the media extraction utility."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class StreamExtractor(ABC):
    """Metadata and audio extraction backed by an external tool.

    Every call is bounded by ``timeout`` seconds. Failures of any kind raise
    StreamUnavailableError.
    """

    @abstractmethod
    async def dump_json(self, target: str, timeout: float) -> list[dict[str, Any]]:
        """Return one info dict per entry; malformed entries are skipped."""
        ...

    @abstractmethod
    async def get_stream_url(self, target: str, timeout: float) -> str:
        ...

    @abstractmethod
    async def download_audio(self, target: str, dest_dir: Path, stem: str, timeout: float) -> Path:
        """Download the audio of ``target`` to ``dest_dir/stem.<ext>``."""
        ...
