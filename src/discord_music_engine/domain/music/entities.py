"""Core domain entities for the music bounded context."""

from __future__ import annotations

import math
import random
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from discord_music_engine.domain.music.value_objects import (
    LoopMode,
    SourcePlatform,
    TrackId,
)
from discord_music_engine.domain.shared.datetime_utils import format_duration, utcnow
from discord_music_engine.domain.shared.exceptions import InvalidQueueIndexError, QueueFullError
from discord_music_engine.domain.shared.types import (
    DiscordSnowflake,
    DurationSeconds,
    HttpUrlStr,
    MaxQueueSize,
    NonEmptyStr,
    NonNegativeInt,
    TrackTitleStr,
    UnitInterval,
    UtcDatetimeField,
)

_default_rng = random.Random()


class Track(BaseModel):
    """Immutable value object describing a playable item from one catalog."""

    model_config = ConfigDict(frozen=True, strict=True)

    title: TrackTitleStr
    url: HttpUrlStr
    source: SourcePlatform
    artist: NonEmptyStr | None = None
    duration_seconds: DurationSeconds | None = None
    thumbnail_url: HttpUrlStr | None = None
    id: TrackId | None = None

    # Request metadata (set when queued)
    requested_by_id: DiscordSnowflake | None = None
    requested_by_name: NonEmptyStr | None = None
    requested_at: UtcDatetimeField | None = None

    @property
    def duration_formatted(self) -> str:
        return format_duration(self.duration_seconds)

    @property
    def display_title(self) -> str:
        """Title with artist and duration, e.g. ``Song by Artist [3:05]``."""
        text = f"{self.title} by {self.artist}" if self.artist else self.title
        if self.duration_seconds:
            return f"{text} [{self.duration_formatted}]"
        return text

    @property
    def stable_key(self) -> str:
        """Identifier that is stable across copies of this track."""
        return str(self.id) if self.id is not None else str(TrackId.from_url(self.url))

    def with_requester(
        self,
        user_id: DiscordSnowflake,
        user_name: NonEmptyStr | None = None,
        requested_at: datetime | None = None,
    ) -> Track:
        """Return a copy of this track with requester metadata populated."""
        return self.model_copy(
            update={
                "requested_by_id": user_id,
                "requested_by_name": user_name,
                "requested_at": requested_at or utcnow(),
            }
        )


class Queue(BaseModel):
    """Ordered track list with a play cursor and playback modifiers.

    ``current_index`` is 0-based and may equal ``len(tracks)``, meaning the
    queue is exhausted and there is no current track.
    """

    model_config = ConfigDict(strict=True, validate_assignment=True)

    tracks: list[Track] = Field(default_factory=list)
    current_index: NonNegativeInt = 0
    loop_mode: LoopMode = LoopMode.OFF
    shuffle_enabled: bool = False
    volume: UnitInterval = 0.5
    max_size: MaxQueueSize | None = None

    def __len__(self) -> int:
        return len(self.tracks)

    @property
    def is_empty(self) -> bool:
        return not self.tracks

    @property
    def is_exhausted(self) -> bool:
        return self.current_index >= len(self.tracks)

    @property
    def upcoming(self) -> list[Track]:
        return self.tracks[self.current_index + 1 :]

    @property
    def total_duration_seconds(self) -> int:
        return sum(t.duration_seconds for t in self.tracks if t.duration_seconds is not None)

    def current_track(self) -> Track | None:
        if 0 <= self.current_index < len(self.tracks):
            return self.tracks[self.current_index]
        return None

    def enqueue(self, track: Track) -> int:
        """Append a track and return its 1-based position."""
        if self.max_size is not None and len(self.tracks) >= self.max_size:
            raise QueueFullError(self.max_size)
        self.tracks.append(track)
        return len(self.tracks)

    def advance(self, *, rng: random.Random | None = None) -> bool:
        """Move the cursor to the next track according to loop and shuffle mode.

        Returns True when a current track exists after advancing.
        """
        if not self.tracks:
            self.current_index = 0
            return False

        if self.loop_mode == LoopMode.TRACK:
            return not self.is_exhausted

        if self.shuffle_enabled:
            self._promote_random_upcoming(rng or _default_rng)

        if self.loop_mode == LoopMode.QUEUE:
            if self.is_exhausted:
                self.current_index = 0
            else:
                self.current_index = (self.current_index + 1) % len(self.tracks)
            return True

        if not self.is_exhausted:
            self.current_index += 1
        return not self.is_exhausted

    def skip_past_current(self) -> bool:
        """Advance without replaying the current track, even in track-loop mode."""
        if self.loop_mode != LoopMode.TRACK:
            return self.advance()
        self.loop_mode = LoopMode.OFF
        try:
            return self.advance()
        finally:
            self.loop_mode = LoopMode.TRACK

    def mark_exhausted(self) -> None:
        self.current_index = len(self.tracks)

    def skip_to(self, index: int) -> Track:
        self._check_index(index)
        self.current_index = index
        return self.tracks[index]

    def move_track(self, source: int, destination: int) -> Track:
        """Move a track between 0-based slots, keeping the cursor on the same entry."""
        self._check_index(source)
        self._check_index(destination)

        track = self.tracks.pop(source)
        self.tracks.insert(destination, track)

        cursor = self.current_index
        if source == cursor:
            self.current_index = destination
        elif source < cursor <= destination:
            self.current_index = cursor - 1
        elif destination <= cursor < source:
            self.current_index = cursor + 1
        return track

    def remove_track(self, index: int) -> Track:
        """Remove a track by 0-based index and re-anchor the cursor.

        Removing the current entry leaves the cursor on the track that slid
        into its slot; in queue-loop mode removing the last entry wraps to 0.
        """
        self._check_index(index)
        track = self.tracks.pop(index)

        if index < self.current_index:
            self.current_index -= 1
        elif (
            index == self.current_index
            and self.is_exhausted
            and self.tracks
            and self.loop_mode == LoopMode.QUEUE
        ):
            self.current_index = 0

        if self.current_index > len(self.tracks):
            self.current_index = len(self.tracks)
        return track

    def set_loop(self, mode: LoopMode) -> LoopMode:
        self.loop_mode = mode
        return mode

    def toggle_loop(self) -> LoopMode:
        return self.set_loop(self.loop_mode.next_mode())

    def set_shuffle(self, enabled: bool, *, rng: random.Random | None = None) -> bool:
        """Enable or disable shuffle; enabling shuffles only the unplayed tail."""
        self.shuffle_enabled = enabled
        if enabled:
            self._shuffle_tail(rng or _default_rng)
        return enabled

    def toggle_shuffle(self, *, rng: random.Random | None = None) -> bool:
        return self.set_shuffle(not self.shuffle_enabled, rng=rng)

    def set_volume(self, volume: float) -> float:
        self.volume = max(0.0, min(1.0, float(volume)))
        return self.volume

    def clear(self) -> int:
        count = len(self.tracks)
        self.tracks = []
        self.current_index = 0
        return count

    def page(self, page: int, page_size: int) -> tuple[list[Track], int]:
        """Return the tracks on a 1-based page and the total page count."""
        total_pages = math.ceil(len(self.tracks) / page_size) if self.tracks else 0
        start = (max(page, 1) - 1) * page_size
        return self.tracks[start : start + page_size], total_pages

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.tracks):
            raise InvalidQueueIndexError(index, len(self.tracks))

    def _shuffle_tail(self, rng: random.Random) -> None:
        # Fisher-Yates over indices strictly after the cursor.
        start = self.current_index + 1
        tracks = self.tracks
        for i in range(len(tracks) - 1, start, -1):
            j = rng.randint(start, i)
            tracks[i], tracks[j] = tracks[j], tracks[i]

    def _promote_random_upcoming(self, rng: random.Random) -> None:
        start = self.current_index + 1
        if start >= len(self.tracks) - 1:
            return
        pick = rng.randint(start, len(self.tracks) - 1)
        self.tracks[start], self.tracks[pick] = self.tracks[pick], self.tracks[start]
