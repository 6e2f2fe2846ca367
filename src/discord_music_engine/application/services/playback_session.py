"""Playback Session - per-guild queue, voice connection and playback state machine."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ConfigDict

from ...config.settings import AudioSettings, PlaybackSettings
from ...domain.music.entities import Queue, Track
from ...domain.music.value_objects import LoopMode, PlaybackState, SessionDestroyReason
from ...domain.shared.events import (
    DomainEvent,
    QueueExhausted,
    SessionDestroyed,
    TrackFinishedPlaying,
    TrackSkipped,
    TrackStartedPlaying,
    VoteSkipCast,
)
from ...domain.shared.exceptions import (
    ConnectFailedError,
    InvalidOperationError,
    NothingToPlayError,
    NotPausedError,
    NotPlayingError,
    StreamUnavailableError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from ...domain.shared.types import DiscordSnowflake, PositiveInt
from ...domain.voting.entities import SkipVoteSet, VoteSkipOutcome
from ...domain.voting.services import VotingDomainService
from ...utils.logging import guild_context

if TYPE_CHECKING:
    from ...domain.music.value_objects import StreamHandle
    from ...domain.shared.events import EventBus
    from ..interfaces.voice_adapter import VoiceAdapter
    from .catalog_service import CatalogService

logger = logging.getLogger(__name__)

R = TypeVar("R")

DestroyCallback = Callable[[DiscordSnowflake], Awaitable[None]]


def _guild_scoped(
    func: Callable[..., Awaitable[R]],
) -> Callable[..., Awaitable[R]]:
    """Run a session coroutine with the guild id attached to its log records."""

    @functools.wraps(func)
    async def wrapper(self: PlaybackSession, *args: Any, **kwargs: Any) -> R:
        with guild_context(self.guild_id):
            return await func(self, *args, **kwargs)

    return wrapper


class EnqueueOutcome(BaseModel):
    """Result of adding a track to a session's queue."""

    model_config = ConfigDict(frozen=True, strict=True)

    track: Track
    position: PositiveInt
    started: bool = False


class PlaybackSession:
    """Owns one guild's queue and drives its voice playback.

    Every queue or state mutation happens under ``_lock``. Stream resolution
    runs outside the lock and is tagged with the generation it was started
    for; leave, stop, skip_to and every advance bump the generation, so a
    resolution that finishes late is released instead of played.

    Each ``play`` on the voice adapter carries a fresh token. Track-end and
    track-error callbacks whose token is not the live one are ignored.
    """

    def __init__(
        self,
        guild_id: DiscordSnowflake,
        *,
        voice_adapter: VoiceAdapter,
        catalog: CatalogService,
        event_bus: EventBus,
        audio_settings: AudioSettings | None = None,
        playback_settings: PlaybackSettings | None = None,
        on_destroy: DestroyCallback | None = None,
        rng: random.Random | None = None,
    ) -> None:
        audio = audio_settings or AudioSettings()
        playback = playback_settings or PlaybackSettings()

        self._guild_id = guild_id
        self._voice = voice_adapter
        self._catalog = catalog
        self._event_bus = event_bus
        self._on_destroy = on_destroy
        self._rng = rng
        self._inactivity_timeout = playback.inactivity_timeout_seconds

        self._lock = asyncio.Lock()
        self._queue = Queue(volume=audio.default_volume, max_size=audio.max_queue_size)
        self._votes = SkipVoteSet()
        self._state = PlaybackState.IDLE
        self._channel_id: DiscordSnowflake | None = None
        self._destroyed = False

        self._generation = 0
        self._token_seq = 0
        self._play_token: int | None = None
        self._skip_token: int | None = None
        self._current_handle: StreamHandle | None = None
        self._consecutive_failures = 0

        self._idle_task: asyncio.Task[None] | None = None
        self._idle_deadline: float | None = None
        self._pending_events: list[DomainEvent] = []

    # ── Read-only state ────────────────────────────────────────────────

    @property
    def guild_id(self) -> DiscordSnowflake:
        return self._guild_id

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def queue(self) -> Queue:
        return self._queue

    @property
    def channel_id(self) -> DiscordSnowflake | None:
        return self._channel_id

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def is_loading(self) -> bool:
        """True while the current track's stream is still being resolved."""
        return self._state is PlaybackState.PLAYING and self._play_token is None

    @property
    def idle_timer_active(self) -> bool:
        return self._idle_task is not None and not self._idle_task.done()

    @property
    def idle_seconds_remaining(self) -> float | None:
        """Seconds until the inactivity timeout fires, or None when no timer runs."""
        if not self.idle_timer_active or self._idle_deadline is None:
            return None
        assert self._idle_task is not None
        return max(0.0, self._idle_deadline - self._idle_task.get_loop().time())

    @property
    def now_playing(self) -> Track | None:
        if not self._state.is_active:
            return None
        return self._queue.current_track()

    @property
    def skip_votes(self) -> int:
        return self._votes.vote_count

    # ── Connection ─────────────────────────────────────────────────────

    @_guild_scoped
    async def join(self, channel_id: DiscordSnowflake) -> None:
        """Connect to ``channel_id``; a no-op when already connected there."""
        async with self._lock:
            self._ensure_alive("join")
            if (
                self._state.has_connection
                and self._channel_id == channel_id
                and self._voice.is_connected(self._guild_id)
            ):
                logger.debug(LogTemplates.SESSION_ALREADY_CONNECTED, self._guild_id, channel_id)
                return

            if not await self._voice.connect(self._guild_id, channel_id):
                raise ConnectFailedError(self._guild_id, channel_id)

            self._channel_id = channel_id
            if self._state is PlaybackState.IDLE:
                self._set_state(PlaybackState.CONNECTED)
                self._arm_idle_timer()

    @_guild_scoped
    async def leave(self, reason: SessionDestroyReason = SessionDestroyReason.LEAVE) -> bool:
        """Tear the session down. Safe in any state; returns False if already gone."""
        async with self._lock:
            if self._destroyed:
                return False
            self._destroyed = True
            self._generation += 1
            self._play_token = None
            self._skip_token = None
            self._cancel_idle_timer()

            self._release_current_handle()
            self._queue.clear()
            self._votes.clear()
            self._state = PlaybackState.IDLE
            self._channel_id = None

            await self._voice.disconnect(self._guild_id)
            self._catalog.purge_guild(self._guild_id)

            logger.info(LogTemplates.SESSION_DESTROYED, self._guild_id, reason.value)
            self._emit(SessionDestroyed(guild_id=self._guild_id, reason=reason.value))

        await self._flush_events()
        if self._on_destroy is not None:
            await self._on_destroy(self._guild_id)
        return True

    async def handle_disconnect(self) -> None:
        """Called when the platform dropped the voice connection."""
        if not self._state.has_connection:
            # Join still in flight, or the session already left.
            logger.debug(LogTemplates.SESSION_DISCONNECT_IGNORED, self._guild_id, self._state.value)
            return
        logger.info(LogTemplates.VOICE_DISCONNECT_DETECTED, self._guild_id)
        await self.leave(SessionDestroyReason.DISCONNECT)

    # ── Queue + playback ───────────────────────────────────────────────

    @_guild_scoped
    async def enqueue_and_maybe_start(
        self,
        track: Track,
        requester_id: DiscordSnowflake | None = None,
        requester_name: str | None = None,
    ) -> EnqueueOutcome:
        """Queue ``track`` and start playing right away if the session is idle.

        Raises:
            StreamUnavailableError: Playback was started for this track and its
                stream could not be resolved. The track stays queued and the
                cursor has moved past it.
            QueueFullError: The queue is at its maximum size.
        """
        if requester_id is not None:
            track = track.with_requester(requester_id, requester_name or None)

        async with self._lock:
            self._ensure_alive("enqueue")
            position = self._queue.enqueue(track)
            logger.info(LogTemplates.QUEUE_ENQUEUED, track.title, position, self._guild_id)

            generation = None
            if self._state is PlaybackState.CONNECTED:
                generation = self._begin_locked()

        if generation is not None:
            await self._play_current(generation, raise_on_failure=True)
        return EnqueueOutcome(track=track, position=position, started=generation is not None)

    @_guild_scoped
    async def resume(self) -> None:
        """Resume from PAUSED, or start the current track from CONNECTED."""
        async with self._lock:
            if self._state is PlaybackState.PAUSED:
                await self._voice.resume(self._guild_id)
                self._set_state(PlaybackState.PLAYING)
                self._cancel_idle_timer()
                logger.info(LogTemplates.PLAYBACK_RESUMED, self._guild_id)
                return
            if self._state is PlaybackState.PLAYING:
                raise NotPausedError("resume", self._state.value)
            if self._state is PlaybackState.IDLE or self._queue.current_track() is None:
                raise NothingToPlayError("resume", self._state.value)
            generation = self._begin_locked()

        await self._play_current(generation, raise_on_failure=True)

    play = resume

    @_guild_scoped
    async def pause(self) -> None:
        async with self._lock:
            if self._state is not PlaybackState.PLAYING or self._play_token is None:
                raise NotPlayingError("pause", self._state.value)
            await self._voice.pause(self._guild_id)
            self._set_state(PlaybackState.PAUSED)
            self._arm_idle_timer()
            logger.info(LogTemplates.PLAYBACK_PAUSED, self._guild_id)

    @_guild_scoped
    async def stop(self) -> int:
        """Stop audio and clear the queue, staying connected. Returns tracks cleared."""
        async with self._lock:
            if not self._state.has_connection:
                raise NotPlayingError("stop", self._state.value)
            self._generation += 1
            live = self._play_token is not None
            self._play_token = None
            self._skip_token = None
            if live:
                await self._voice.stop(self._guild_id)
            cleared = self._queue.clear()
            self._enter_connected_locked(exhausted=False)
            logger.info(LogTemplates.PLAYBACK_STOPPED, self._guild_id)

        await self._flush_events()
        return cleared

    @_guild_scoped
    async def skip(self, initiator_id: DiscordSnowflake | None = None) -> Track | None:
        """Skip the current track and return it.

        With live audio the adapter is stopped and its track-end callback
        performs the advance.
        """
        async with self._lock:
            skipped = self._queue.current_track()
            generation = await self._skip_locked(initiator_id, via_vote=False)

        await self._flush_events()
        if generation is not None:
            await self._play_current(generation)
        return skipped

    @_guild_scoped
    async def vote_skip(self, user_id: DiscordSnowflake, listener_count: int) -> VoteSkipOutcome:
        """Vote to skip; reaching half the listeners (rounded up) skips."""
        async with self._lock:
            if not self._state.is_active:
                raise NotPlayingError("vote_skip", self._state.value)

            outcome = VotingDomainService.cast_vote(self._votes, user_id, listener_count)
            logger.info(LogTemplates.VOTE_CAST, self._guild_id, outcome.votes, outcome.required)
            self._emit(
                VoteSkipCast(
                    guild_id=self._guild_id,
                    voter_id=user_id,
                    current_votes=outcome.votes,
                    votes_needed=outcome.required,
                )
            )

            generation = None
            if outcome.skipped:
                logger.info(LogTemplates.VOTE_PASSED, self._guild_id)
                generation = await self._skip_locked(user_id, via_vote=True)

        await self._flush_events()
        if generation is not None:
            await self._play_current(generation)
        return outcome

    @_guild_scoped
    async def skip_to(self, index: int) -> Track:
        """Jump to the 0-based ``index`` and play it."""
        async with self._lock:
            if not self._state.has_connection:
                raise NothingToPlayError("skip_to", self._state.value)
            track = self._queue.skip_to(index)
            generation = await self._restart_current_locked()

        await self._flush_events()
        if generation is not None:
            await self._play_current(generation)
        return track

    @_guild_scoped
    async def remove_track(self, index: int) -> Track:
        """Remove the 0-based ``index``; removing the live track plays its successor."""
        async with self._lock:
            was_current = self._state.is_active and index == self._queue.current_index
            track = self._queue.remove_track(index)
            logger.info(LogTemplates.QUEUE_REMOVED, track.title, self._guild_id)

            generation = None
            if was_current:
                generation = await self._restart_current_locked()

        await self._flush_events()
        if generation is not None:
            await self._play_current(generation)
        return track

    async def move_track(self, source: int, destination: int) -> Track:
        async with self._lock:
            track = self._queue.move_track(source, destination)
            logger.info(LogTemplates.QUEUE_MOVED, source, destination, self._guild_id)
            return track

    async def set_volume(self, volume: float) -> float:
        async with self._lock:
            applied = self._queue.set_volume(volume)
            if self._play_token is not None:
                await self._voice.set_volume(self._guild_id, applied)
            logger.info(LogTemplates.QUEUE_VOLUME_SET, applied, self._guild_id)
            return applied

    async def set_loop(self, mode: LoopMode) -> LoopMode:
        async with self._lock:
            result = self._queue.set_loop(mode)
            logger.info(LogTemplates.QUEUE_LOOP_SET, result.value, self._guild_id)
            return result

    async def toggle_loop(self) -> LoopMode:
        async with self._lock:
            result = self._queue.toggle_loop()
            logger.info(LogTemplates.QUEUE_LOOP_SET, result.value, self._guild_id)
            return result

    async def set_shuffle(self, enabled: bool) -> bool:
        async with self._lock:
            result = self._queue.set_shuffle(enabled, rng=self._rng)
            logger.info(LogTemplates.QUEUE_SHUFFLE_SET, result, self._guild_id)
            return result

    async def toggle_shuffle(self) -> bool:
        async with self._lock:
            result = self._queue.toggle_shuffle(rng=self._rng)
            logger.info(LogTemplates.QUEUE_SHUFFLE_SET, result, self._guild_id)
            return result

    # ── Voice callbacks ────────────────────────────────────────────────

    @_guild_scoped
    async def on_track_end(self, token: int) -> None:
        async with self._lock:
            if self._destroyed or token != self._play_token:
                logger.debug(LogTemplates.PLAYBACK_STALE_CALLBACK, self._guild_id, token)
                return

            track = self._queue.current_track()
            title = track.title if track else ""
            skipped = token == self._skip_token
            self._skip_token = None
            self._play_token = None
            self._release_current_handle()

            if not skipped:
                self._consecutive_failures = 0
                logger.info(LogTemplates.TRACK_FINISHED, title, self._guild_id)
                self._emit(
                    TrackFinishedPlaying(
                        guild_id=self._guild_id,
                        track_id=track.id if track else None,
                        track_title=title,
                    )
                )
            generation = self._advance_locked(skip_current=skipped, last_title=title)

        await self._flush_events()
        if generation is not None:
            await self._play_current(generation)

    @_guild_scoped
    async def on_track_error(self, token: int, error: Exception) -> None:
        async with self._lock:
            if self._destroyed or token != self._play_token:
                logger.debug(LogTemplates.PLAYBACK_STALE_CALLBACK, self._guild_id, token)
                return
            self._skip_token = None
            track = self._queue.current_track()
            generation = (
                self._fail_locked(track, str(error) or type(error).__name__)
                if track is not None
                else self._advance_locked(skip_current=True, last_title="")
            )

        await self._flush_events()
        if generation is not None:
            await self._play_current(generation)

    # ── Internals ──────────────────────────────────────────────────────

    async def _play_current(self, generation: int, *, raise_on_failure: bool = False) -> None:
        """Resolve and play the current track, cascading past failures.

        Must be called without holding the lock.
        """
        first_error: StreamUnavailableError | None = None
        attempt = 0
        next_generation: int | None = generation

        while next_generation is not None:
            gen = next_generation
            async with self._lock:
                track = self._attempt_track_locked(gen)
            await self._flush_events()
            if track is None:
                return

            try:
                handle = await self._catalog.resolve_stream(track, self._guild_id)
            except StreamUnavailableError as exc:
                async with self._lock:
                    if self._is_stale(gen):
                        return
                    next_generation = self._fail_locked(track, exc.message)
                await self._flush_events()
                if raise_on_failure and attempt == 0:
                    first_error = exc
                attempt += 1
                continue

            async with self._lock:
                if self._is_stale(gen):
                    logger.info(LogTemplates.PLAYBACK_STALE_RESOLUTION, track.title, self._guild_id)
                    self._catalog.release_stream(handle)
                    return

                token = self._next_token()
                if await self._voice.play(self._guild_id, handle, self._queue.volume, token=token):
                    self._start_locked(track, handle, token)
                    next_generation = None
                else:
                    logger.error(LogTemplates.VOICE_ADAPTER_FAILED, self._guild_id)
                    self._catalog.release_stream(handle)
                    next_generation = self._fail_locked(track, ErrorMessages.VOICE_PLAY_FAILED)
            await self._flush_events()
            attempt += 1

        if first_error is not None:
            raise first_error

    def _attempt_track_locked(self, generation: int) -> Track | None:
        if self._is_stale(generation):
            return None
        track = self._queue.current_track()
        if track is None:
            self._enter_connected_locked(exhausted=True)
        return track

    def _start_locked(self, track: Track, handle: StreamHandle, token: int) -> None:
        self._play_token = token
        self._consecutive_failures = 0
        self._current_handle = handle
        self._votes.bind(f"{self._generation}:{track.stable_key}")
        logger.info(LogTemplates.PLAYBACK_STARTED, track.title, self._guild_id)
        self._emit(
            TrackStartedPlaying(
                guild_id=self._guild_id,
                track_id=track.id,
                track_title=track.title,
                track_url=track.url,
                source=track.source,
                queue_index=self._queue.current_index,
            )
        )

    def _fail_locked(self, track: Track, reason: str) -> int | None:
        """Record a failed attempt and advance past it.

        Gives up once as many tracks in a row have failed as the queue holds.
        """
        logger.warning(LogTemplates.PLAYBACK_TRACK_FAILED, track.title, self._guild_id, reason)
        self._emit(
            TrackFinishedPlaying(
                guild_id=self._guild_id,
                track_id=track.id,
                track_title=track.title,
                failed=True,
                error=reason,
            )
        )
        self._play_token = None
        self._release_current_handle()
        self._consecutive_failures += 1

        if self._consecutive_failures >= len(self._queue):
            logger.warning(LogTemplates.PLAYBACK_CASCADE_ABORTED, self._guild_id)
            self._queue.mark_exhausted()
            self._enter_connected_locked(exhausted=True, last_title=track.title)
            return None
        return self._advance_locked(skip_current=True, last_title=track.title)

    def _advance_locked(self, *, skip_current: bool, last_title: str) -> int | None:
        if skip_current:
            has_next = self._queue.skip_past_current()
        else:
            has_next = self._queue.advance(rng=self._rng)

        if not has_next:
            self._enter_connected_locked(exhausted=True, last_title=last_title)
            return None
        return self._begin_locked()

    async def _skip_locked(self, initiator_id: DiscordSnowflake | None, *, via_vote: bool) -> int | None:
        if not self._state.is_active:
            raise NotPlayingError("skip", self._state.value)

        track = self._queue.current_track()
        title = track.title if track else ""
        self._votes.clear()
        logger.info(LogTemplates.TRACK_SKIPPED, title, self._guild_id)
        self._emit(
            TrackSkipped(
                guild_id=self._guild_id,
                track_id=track.id if track else None,
                track_title=title,
                skipped_by_id=initiator_id,
                via_vote=via_vote,
            )
        )

        token = self._play_token
        if token is not None:
            self._skip_token = token
            if await self._voice.stop(self._guild_id):
                return None
            self._skip_token = None

        # Still resolving, or the adapter had nothing to stop.
        self._play_token = None
        self._release_current_handle()
        return self._advance_locked(skip_current=True, last_title=title)

    async def _restart_current_locked(self) -> int | None:
        """Drop whatever is playing and start the entry now under the cursor."""
        self._generation += 1
        live = self._play_token is not None
        self._play_token = None
        self._skip_token = None
        if live:
            await self._voice.stop(self._guild_id)
        self._release_current_handle()

        if self._queue.current_track() is None:
            self._enter_connected_locked(exhausted=True)
            return None
        return self._begin_locked()

    def _begin_locked(self) -> int:
        self._generation += 1
        self._play_token = None
        self._set_state(PlaybackState.PLAYING)
        self._cancel_idle_timer()
        self._votes.clear()
        return self._generation

    def _enter_connected_locked(self, *, exhausted: bool, last_title: str = "") -> None:
        self._set_state(PlaybackState.CONNECTED)
        self._play_token = None
        self._release_current_handle()
        self._votes.clear()
        self._consecutive_failures = 0
        if exhausted:
            logger.info(LogTemplates.QUEUE_EXHAUSTED, self._guild_id)
            self._emit(QueueExhausted(guild_id=self._guild_id, last_track_title=last_title))
        self._arm_idle_timer()

    def _set_state(self, target: PlaybackState) -> None:
        if target is self._state:
            return
        if not self._state.can_transition_to(target):
            raise InvalidOperationError(f"transition to {target.value}", self._state.value)
        self._state = target

    def _is_stale(self, generation: int) -> bool:
        return self._destroyed or generation != self._generation

    def _next_token(self) -> int:
        self._token_seq += 1
        return self._token_seq

    def _ensure_alive(self, operation: str) -> None:
        if self._destroyed:
            raise InvalidOperationError(operation, "destroyed")

    def _release_current_handle(self) -> None:
        if self._current_handle is not None:
            self._catalog.release_stream(self._current_handle)
            self._current_handle = None

    def _emit(self, event: DomainEvent) -> None:
        self._pending_events.append(event)

    async def _flush_events(self) -> None:
        # Published outside the lock so handlers may call back into the session.
        events, self._pending_events = self._pending_events, []
        for event in events:
            await self._event_bus.publish(event)

    # ── Inactivity ─────────────────────────────────────────────────────

    @_guild_scoped
    async def reset_idle_timer(self) -> bool:
        """Restart the inactivity countdown.

        Returns False while audio is playing, since no timer runs then.
        """
        async with self._lock:
            if not self._state.has_connection:
                raise NotPlayingError("reset_idle_timer", self._state.value)
            if self._state is PlaybackState.PLAYING:
                return False
            self._arm_idle_timer()
            logger.info(LogTemplates.SESSION_INACTIVITY_RESET, self._guild_id)
            return True

    def _arm_idle_timer(self) -> None:
        self._cancel_idle_timer()
        logger.debug(LogTemplates.SESSION_INACTIVITY_ARMED, self._guild_id, self._inactivity_timeout)
        self._idle_deadline = asyncio.get_running_loop().time() + self._inactivity_timeout
        self._idle_task = asyncio.create_task(self._idle_countdown(self._inactivity_timeout))

    def _cancel_idle_timer(self) -> None:
        task, self._idle_task = self._idle_task, None
        self._idle_deadline = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _idle_countdown(self, timeout: float) -> None:
        await asyncio.sleep(timeout)
        self._idle_task = None
        self._idle_deadline = None
        logger.info(LogTemplates.SESSION_INACTIVITY_FIRED, self._guild_id)
        await self.leave(SessionDestroyReason.INACTIVITY)
