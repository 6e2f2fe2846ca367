"""Port interface for temporary downloaded media."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ...domain.music.value_objects import StreamHandle


class MediaStore(ABC):
    """Guild-scoped scratch space for audio files."""

    @abstractmethod
    def guild_dir(self, guild_id: int) -> Path:
        """Directory for ``guild_id``'s files, created on demand."""
        ...

    @abstractmethod
    def new_stem(self, track: "Track") -> str:
        """Unique file stem for one playback attempt of ``track``."""
        ...

    @abstractmethod
    def release(self, handle: "StreamHandle") -> None:
        """Delete the file behind ``handle``, if it owns one."""
        ...

    @abstractmethod
    def purge(self, guild_id: int) -> None:
        """Delete every file belonging to ``guild_id``."""
        ...
