"""
Playback Control Command

A single command shape for every queue and transport action the command
layer can request on a guild's session.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from discord_music_engine.domain.music.value_objects import LoopMode
from discord_music_engine.domain.shared.types import DiscordSnowflake, NonNegativeInt


class PlaybackAction(Enum):
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    SKIP = "skip"
    VOTE_SKIP = "vote_skip"
    SET_VOLUME = "set_volume"
    SET_LOOP = "set_loop"
    TOGGLE_LOOP = "toggle_loop"
    SET_SHUFFLE = "set_shuffle"
    TOGGLE_SHUFFLE = "toggle_shuffle"
    SKIP_TO = "skip_to"
    MOVE = "move"
    REMOVE = "remove"
    RESET_IDLE_TIMER = "reset_idle_timer"


# Fields each action cannot run without.
_REQUIRED_FIELDS: dict[PlaybackAction, tuple[str, ...]] = {
    PlaybackAction.VOTE_SKIP: ("user_id",),
    PlaybackAction.SET_VOLUME: ("volume",),
    PlaybackAction.SET_LOOP: ("loop_mode",),
    PlaybackAction.SET_SHUFFLE: ("enabled",),
    PlaybackAction.SKIP_TO: ("index",),
    PlaybackAction.MOVE: ("index", "to_index"),
    PlaybackAction.REMOVE: ("index",),
}


class PlaybackCommand(BaseModel):
    """Command to change playback or the queue of one guild.

    Queue indices are 0-based.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    action: PlaybackAction
    user_id: DiscordSnowflake | None = None
    listener_count: NonNegativeInt | None = None
    volume: float | None = None
    loop_mode: LoopMode | None = None
    enabled: bool | None = None
    index: NonNegativeInt | None = None
    to_index: NonNegativeInt | None = None

    @model_validator(mode="after")
    def _check_required(self) -> PlaybackCommand:
        missing = [name for name in _REQUIRED_FIELDS.get(self.action, ()) if getattr(self, name) is None]
        if missing:
            raise ValueError(f"{self.action.value} requires: {', '.join(missing)}")
        return self


class PlaybackControlResult(BaseModel):
    """What a playback command did."""

    model_config = ConfigDict(frozen=True)

    action: PlaybackAction
    value: Any = None
    message: str = ""
