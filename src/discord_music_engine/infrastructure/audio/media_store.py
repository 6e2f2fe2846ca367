"""Guild-scoped temporary storage for downloaded audio."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import Final
from uuid import uuid4

from discord_music_engine.application.interfaces.media_store import MediaStore
from discord_music_engine.domain.music.entities import Track
from discord_music_engine.domain.music.value_objects import StreamHandle
from discord_music_engine.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

NONCE_LENGTH: Final[int] = 8
_UNSAFE_CHARS: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9_-]")


class TempMediaStore(MediaStore):
    """Files live at ``<root>/<guild_id>/<track-key>-<nonce>.<ext>``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def guild_dir(self, guild_id: int) -> Path:
        path = self._root / str(guild_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def new_stem(self, track: Track) -> str:
        key = _UNSAFE_CHARS.sub("_", track.stable_key)
        return f"{key}-{uuid4().hex[:NONCE_LENGTH]}"

    def release(self, handle: StreamHandle) -> None:
        path = handle.cleanup_path
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
            logger.debug(LogTemplates.MEDIA_RELEASED, path)
        except OSError as exc:
            logger.warning(LogTemplates.MEDIA_RELEASE_FAILED, path, exc)

    def purge(self, guild_id: int) -> None:
        path = self._root / str(guild_id)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
            logger.debug(LogTemplates.MEDIA_PURGED, guild_id)
        except OSError as exc:
            logger.warning(LogTemplates.MEDIA_RELEASE_FAILED, path, exc)
