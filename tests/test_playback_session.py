"""
Unit Tests for PlaybackSession

Tests for:
- Enqueue and automatic start
- Track end, skip and vote-skip transitions
- Failure cascades
- Leave, disconnect and inactivity teardown
- Stale resolutions and callbacks
"""

import asyncio

import pytest
from conftest import CHANNEL_ID, GUILD_ID, OTHER_CHANNEL_ID, make_track, wire_session

from discord_music_engine.application.services.playback_session import PlaybackSession
from discord_music_engine.config.settings import PlaybackSettings
from discord_music_engine.domain.music.value_objects import LoopMode, PlaybackState
from discord_music_engine.domain.shared.events import (
    QueueExhausted,
    SessionDestroyed,
    TrackFinishedPlaying,
    TrackSkipped,
    TrackStartedPlaying,
    VoteSkipCast,
)
from discord_music_engine.domain.shared.exceptions import (
    ConnectFailedError,
    InvalidOperationError,
    InvalidQueueIndexError,
    NothingToPlayError,
    NotPausedError,
    NotPlayingError,
    StreamUnavailableError,
)


@pytest.fixture
def t1():
    return make_track("Track 1")


@pytest.fixture
def t2():
    return make_track("Track 2")


@pytest.fixture
def t3():
    return make_track("Track 3")


# =============================================================================
# Connection Tests
# =============================================================================


class TestJoin:
    """Unit tests for joining voice."""

    @pytest.mark.asyncio
    async def test_join_moves_to_connected(self, session, voice):
        await session.join(CHANNEL_ID)

        assert session.state is PlaybackState.CONNECTED
        assert session.channel_id == CHANNEL_ID
        assert voice.connections[GUILD_ID] == CHANNEL_ID

    @pytest.mark.asyncio
    async def test_join_same_channel_is_noop(self, connected_session, voice):
        """Should not reconnect when already in the channel."""
        await connected_session.join(CHANNEL_ID)
        assert voice.calls.count("connect") == 1

    @pytest.mark.asyncio
    async def test_join_other_channel_moves(self, connected_session, voice):
        await connected_session.join(OTHER_CHANNEL_ID)

        assert voice.calls.count("connect") == 2
        assert connected_session.channel_id == OTHER_CHANNEL_ID
        assert connected_session.state is PlaybackState.CONNECTED

    @pytest.mark.asyncio
    async def test_connect_failure(self, session, voice):
        """Should raise ConnectFailedError and stay idle."""
        voice.connect_result = False

        with pytest.raises(ConnectFailedError):
            await session.join(CHANNEL_ID)
        assert session.state is PlaybackState.IDLE


# =============================================================================
# Enqueue / Playback Tests
# =============================================================================


class TestEnqueue:
    """Unit tests for enqueue_and_maybe_start."""

    @pytest.mark.asyncio
    async def test_first_track_starts_playing(self, connected_session, voice, event_bus, t1):
        """Should start playing a track queued into an empty connected session."""
        outcome = await connected_session.enqueue_and_maybe_start(t1)

        assert outcome.started is True
        assert outcome.position == 1
        assert connected_session.state is PlaybackState.PLAYING
        assert connected_session.now_playing == t1
        assert len(voice.plays) == 1
        started = event_bus.of_type(TrackStartedPlaying)
        assert [e.track_title for e in started] == ["Track 1"]

    @pytest.mark.asyncio
    async def test_second_track_only_queues(self, connected_session, voice, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        outcome = await connected_session.enqueue_and_maybe_start(t2)

        assert outcome.started is False
        assert outcome.position == 2
        assert connected_session.now_playing == t1
        assert len(voice.plays) == 1

    @pytest.mark.asyncio
    async def test_enqueue_while_idle_does_not_play(self, session, voice, t1):
        """Should queue without starting when there is no voice connection."""
        outcome = await session.enqueue_and_maybe_start(t1)

        assert outcome.started is False
        assert session.state is PlaybackState.IDLE
        assert voice.plays == []

    @pytest.mark.asyncio
    async def test_requester_is_recorded(self, connected_session, t1):
        outcome = await connected_session.enqueue_and_maybe_start(t1, 42, "alice")

        assert outcome.track.requested_by_id == 42
        assert connected_session.queue.tracks[0].requested_by_name == "alice"

    @pytest.mark.asyncio
    async def test_plays_at_queue_volume(self, connected_session, voice, t1):
        await connected_session.set_volume(0.8)
        await connected_session.enqueue_and_maybe_start(t1)

        assert voice.plays[0][2] == 0.8

    @pytest.mark.asyncio
    async def test_enqueue_after_exhaustion_plays_new_track(self, connected_session, voice, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        await voice.finish()
        assert connected_session.state is PlaybackState.CONNECTED

        outcome = await connected_session.enqueue_and_maybe_start(t2)

        assert outcome.started is True
        assert connected_session.now_playing == t2

    @pytest.mark.asyncio
    async def test_event_handlers_can_call_back_into_session(self, connected_session, event_bus, t1):
        """Should publish events after releasing the session lock."""
        volumes = []

        async def on_started(event):
            volumes.append(await connected_session.set_volume(0.3))

        event_bus.subscribe(TrackStartedPlaying, on_started)
        await asyncio.wait_for(connected_session.enqueue_and_maybe_start(t1), timeout=1)

        assert volumes == [0.3]


class TestTrackEnd:
    """Unit tests for natural track completion."""

    @pytest.mark.asyncio
    async def test_advances_then_exhausts(self, connected_session, voice, event_bus, t1, t2):
        """Should play T2 after T1 ends, then go back to connected."""
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)

        await voice.finish()
        assert connected_session.now_playing == t2
        assert connected_session.state is PlaybackState.PLAYING

        await voice.finish()
        assert connected_session.state is PlaybackState.CONNECTED
        assert connected_session.now_playing is None
        assert connected_session.queue.is_exhausted
        assert len(event_bus.of_type(QueueExhausted)) == 1
        assert [e.track_title for e in event_bus.of_type(TrackFinishedPlaying)] == [
            "Track 1",
            "Track 2",
        ]

    @pytest.mark.asyncio
    async def test_track_loop_replays(self, connected_session, voice, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)
        await connected_session.set_loop(LoopMode.TRACK)

        await voice.finish()

        assert connected_session.now_playing == t1
        assert len(voice.plays) == 2

    @pytest.mark.asyncio
    async def test_queue_loop_wraps(self, connected_session, voice, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)
        await connected_session.set_loop(LoopMode.QUEUE)

        await voice.finish()
        await voice.finish()

        assert connected_session.now_playing == t1
        assert connected_session.state is PlaybackState.PLAYING

    @pytest.mark.asyncio
    async def test_stale_token_is_ignored(self, connected_session, voice, t1, t2):
        """Should ignore an end notification for a playback that is no longer live."""
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)
        old_token = voice.last_token
        await voice.finish()

        await connected_session.on_track_end(old_token)

        assert connected_session.now_playing == t2
        assert len(voice.plays) == 2


# =============================================================================
# Failure Tests
# =============================================================================


class TestFailures:
    """Unit tests for resolution and playback failures."""

    @pytest.mark.asyncio
    async def test_only_track_unavailable(self, connected_session, catalog, event_bus, t1):
        """Should raise for the requested track and leave the session connected."""
        catalog.failing.add(t1.url)

        with pytest.raises(StreamUnavailableError):
            await connected_session.enqueue_and_maybe_start(t1)

        assert connected_session.state is PlaybackState.CONNECTED
        assert len(connected_session.queue) == 1
        assert connected_session.queue.is_exhausted
        failed = event_bus.of_type(TrackFinishedPlaying)
        assert failed[0].failed is True

    @pytest.mark.asyncio
    async def test_cascades_past_failed_track(self, connected_session, voice, catalog, t1, t2, t3):
        """Should skip an unavailable track and play the next one."""
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)
        await connected_session.enqueue_and_maybe_start(t3)
        catalog.failing.add(t2.url)

        await voice.finish()

        assert connected_session.now_playing == t3
        assert catalog.resolved == [t1.url, t3.url]

    @pytest.mark.asyncio
    async def test_cascade_is_bounded_in_queue_loop(self, connected_session, voice, catalog, t1, t2, t3):
        """Should stop once every track in the queue failed in a row."""
        for track in (t1, t2, t3):
            await connected_session.enqueue_and_maybe_start(track)
        await connected_session.set_loop(LoopMode.QUEUE)
        catalog.failing.update({t1.url, t2.url, t3.url})

        await voice.finish()

        assert connected_session.state is PlaybackState.CONNECTED
        assert len(voice.plays) == 1

    @pytest.mark.asyncio
    async def test_successful_start_resets_failure_count(self, connected_session, voice, catalog, t1, t2):
        """Should keep looping while one track in the queue still plays."""
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)
        await connected_session.set_loop(LoopMode.QUEUE)
        catalog.failing.add(t2.url)

        for _ in range(3):
            await connected_session.skip()
            await voice.settle()

            assert connected_session.state is PlaybackState.PLAYING
            assert connected_session.now_playing == t1

        assert catalog.resolved == [t1.url] * 4

    @pytest.mark.asyncio
    async def test_playback_error_in_track_loop_moves_on(self, connected_session, voice, t1, t2):
        """Should not replay a track that errored, even in track-loop mode."""
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)
        await connected_session.set_loop(LoopMode.TRACK)

        await voice.fail()

        assert connected_session.now_playing == t2
        assert connected_session.queue.loop_mode is LoopMode.TRACK

    @pytest.mark.asyncio
    async def test_voice_refuses_source(self, connected_session, voice, catalog, t1):
        """Should release the handle and fall back to connected."""
        voice.play_result = False

        await connected_session.enqueue_and_maybe_start(t1)

        assert connected_session.state is PlaybackState.CONNECTED
        assert len(catalog.released) == 1


# =============================================================================
# Transport Tests
# =============================================================================


class TestPauseResume:
    """Unit tests for pause and resume."""

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, connected_session, voice, t1):
        await connected_session.enqueue_and_maybe_start(t1)

        await connected_session.pause()
        assert connected_session.state is PlaybackState.PAUSED
        assert connected_session.now_playing == t1

        await connected_session.resume()
        assert connected_session.state is PlaybackState.PLAYING
        assert voice.calls.count("pause") == 1
        assert voice.calls.count("resume") == 1

    @pytest.mark.asyncio
    async def test_pause_twice(self, connected_session, t1):
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.pause()

        with pytest.raises(NotPlayingError):
            await connected_session.pause()

    @pytest.mark.asyncio
    async def test_pause_when_connected(self, connected_session):
        with pytest.raises(NotPlayingError):
            await connected_session.pause()

    @pytest.mark.asyncio
    async def test_resume_while_playing(self, connected_session, t1):
        await connected_session.enqueue_and_maybe_start(t1)

        with pytest.raises(NotPausedError):
            await connected_session.resume()

    @pytest.mark.asyncio
    async def test_resume_with_nothing_queued(self, connected_session):
        with pytest.raises(NothingToPlayError):
            await connected_session.resume()

    @pytest.mark.asyncio
    async def test_resume_while_idle(self, session, t1):
        await session.enqueue_and_maybe_start(t1)

        with pytest.raises(NothingToPlayError):
            await session.play()

    @pytest.mark.asyncio
    async def test_not_playing_is_invalid_operation(self, connected_session):
        """Should raise a subclass of InvalidOperationError."""
        with pytest.raises(InvalidOperationError):
            await connected_session.vote_skip(1, 3)


class TestStop:
    """Unit tests for stop."""

    @pytest.mark.asyncio
    async def test_stop_clears_queue_and_stays_connected(self, connected_session, voice, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)

        cleared = await connected_session.stop()
        await voice.settle()

        assert cleared == 2
        assert connected_session.state is PlaybackState.CONNECTED
        assert connected_session.queue.is_empty
        assert len(voice.plays) == 1

    @pytest.mark.asyncio
    async def test_stop_without_connection(self, session):
        with pytest.raises(NotPlayingError):
            await session.stop()


class TestSkip:
    """Unit tests for skip."""

    @pytest.mark.asyncio
    async def test_skip_plays_next(self, connected_session, voice, event_bus, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)

        skipped = await connected_session.skip(initiator_id=5)
        await voice.settle()

        assert skipped == t1
        assert connected_session.now_playing == t2
        skip_events = event_bus.of_type(TrackSkipped)
        assert skip_events[0].skipped_by_id == 5
        assert skip_events[0].via_vote is False
        assert event_bus.of_type(TrackFinishedPlaying) == []

    @pytest.mark.asyncio
    async def test_skip_in_track_loop_moves_on(self, connected_session, voice, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)
        await connected_session.set_loop(LoopMode.TRACK)

        await connected_session.skip()
        await voice.settle()

        assert connected_session.now_playing == t2

    @pytest.mark.asyncio
    async def test_skip_last_track_exhausts(self, connected_session, voice, event_bus, t1):
        await connected_session.enqueue_and_maybe_start(t1)

        await connected_session.skip()
        await voice.settle()

        assert connected_session.state is PlaybackState.CONNECTED
        assert len(event_bus.of_type(QueueExhausted)) == 1

    @pytest.mark.asyncio
    async def test_skip_when_not_playing(self, connected_session):
        with pytest.raises(NotPlayingError):
            await connected_session.skip()

    @pytest.mark.asyncio
    async def test_skip_to(self, connected_session, t1, t2, t3):
        for track in (t1, t2, t3):
            await connected_session.enqueue_and_maybe_start(track)

        jumped = await connected_session.skip_to(2)

        assert jumped == t3
        assert connected_session.now_playing == t3

    @pytest.mark.asyncio
    async def test_skip_to_out_of_range(self, connected_session, t1):
        await connected_session.enqueue_and_maybe_start(t1)

        with pytest.raises(InvalidQueueIndexError):
            await connected_session.skip_to(4)

    @pytest.mark.asyncio
    async def test_skip_racing_track_end_advances_once(self, connected_session, voice, t1, t2, t3):
        """Should treat a track end that arrives with a skip as the same advance."""
        for track in (t1, t2, t3):
            await connected_session.enqueue_and_maybe_start(track)

        await asyncio.gather(connected_session.skip(), voice.finish())
        await voice.settle()

        assert connected_session.queue.current_index == 1
        assert connected_session.now_playing == t2
        assert len(voice.plays) == 2
        assert voice.live == {GUILD_ID: voice.last_token}

    @pytest.mark.asyncio
    async def test_track_end_racing_skip_keeps_one_source(self, connected_session, voice, t1, t2, t3):
        for track in (t1, t2, t3):
            await connected_session.enqueue_and_maybe_start(track)

        await asyncio.gather(voice.finish(), connected_session.skip())
        await voice.settle()

        current = connected_session.now_playing
        assert connected_session.state is PlaybackState.PLAYING
        assert current in (t2, t3)
        assert voice.live == {GUILD_ID: voice.last_token}
        assert voice.plays[-1][1].location.endswith(f"{current.stable_key}.mp3")


class TestVoteSkip:
    """Unit tests for vote_skip."""

    @pytest.mark.asyncio
    async def test_quorum_skips(self, connected_session, voice, event_bus, t1, t2):
        """Should skip on the second vote with three listeners."""
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)

        first = await connected_session.vote_skip(1, 3)
        assert first.skipped is False
        assert connected_session.skip_votes == 1

        repeat = await connected_session.vote_skip(1, 3)
        assert repeat.already_voted is True

        second = await connected_session.vote_skip(2, 3)
        await voice.settle()

        assert second.skipped is True
        assert connected_session.now_playing == t2
        assert connected_session.skip_votes == 0
        assert event_bus.of_type(TrackSkipped)[0].via_vote is True
        assert len(event_bus.of_type(VoteSkipCast)) == 3

    @pytest.mark.asyncio
    async def test_votes_reset_on_next_track(self, connected_session, voice, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)
        await connected_session.vote_skip(1, 4)

        await voice.finish()

        assert connected_session.skip_votes == 0


# =============================================================================
# Queue Editing Tests
# =============================================================================


class TestQueueEditing:
    """Unit tests for queue edits through the session."""

    @pytest.mark.asyncio
    async def test_remove_current_plays_successor(self, connected_session, voice, t1, t2, t3):
        for track in (t1, t2, t3):
            await connected_session.enqueue_and_maybe_start(track)

        removed = await connected_session.remove_track(0)
        await voice.settle()

        assert removed == t1
        assert connected_session.now_playing == t2
        assert len(voice.plays) == 2

    @pytest.mark.asyncio
    async def test_remove_upcoming_keeps_playing(self, connected_session, voice, t1, t2):
        await connected_session.enqueue_and_maybe_start(t1)
        await connected_session.enqueue_and_maybe_start(t2)

        await connected_session.remove_track(1)

        assert connected_session.now_playing == t1
        assert len(voice.plays) == 1

    @pytest.mark.asyncio
    async def test_move_track(self, connected_session, t1, t2, t3):
        for track in (t1, t2, t3):
            await connected_session.enqueue_and_maybe_start(track)

        await connected_session.move_track(2, 1)

        assert [t.title for t in connected_session.queue.tracks] == ["Track 1", "Track 3", "Track 2"]
        assert connected_session.now_playing == t1

    @pytest.mark.asyncio
    async def test_volume_applies_to_live_audio(self, connected_session, voice, t1):
        await connected_session.enqueue_and_maybe_start(t1)

        assert await connected_session.set_volume(1.5) == 1.0
        assert voice.volumes == [1.0]

    @pytest.mark.asyncio
    async def test_toggles(self, connected_session):
        assert await connected_session.toggle_loop() is LoopMode.TRACK
        assert await connected_session.toggle_shuffle() is True
        assert await connected_session.set_shuffle(False) is False


# =============================================================================
# Teardown Tests
# =============================================================================


class TestLeave:
    """Unit tests for leave and forced disconnects."""

    @pytest.mark.asyncio
    async def test_leave_is_idempotent(self, connected_session, voice, catalog, event_bus, t1):
        await connected_session.enqueue_and_maybe_start(t1)

        assert await connected_session.leave() is True
        assert await connected_session.leave() is False

        assert connected_session.state is PlaybackState.IDLE
        assert connected_session.is_destroyed
        assert connected_session.queue.is_empty
        assert GUILD_ID not in voice.connections
        assert catalog.purged == [GUILD_ID]
        destroyed = event_bus.of_type(SessionDestroyed)
        assert [e.reason for e in destroyed] == ["leave"]

    @pytest.mark.asyncio
    async def test_operations_after_leave(self, connected_session, t1):
        await connected_session.leave()

        with pytest.raises(InvalidOperationError):
            await connected_session.join(CHANNEL_ID)
        with pytest.raises(InvalidOperationError):
            await connected_session.enqueue_and_maybe_start(t1)

    @pytest.mark.asyncio
    async def test_callback_after_leave_is_ignored(self, connected_session, voice, t1):
        await connected_session.enqueue_and_maybe_start(t1)
        token = voice.last_token
        await connected_session.leave()

        await connected_session.on_track_end(token)
        await connected_session.on_track_error(token, RuntimeError("late"))

        assert connected_session.state is PlaybackState.IDLE

    @pytest.mark.asyncio
    async def test_leave_during_resolution_discards_result(self, connected_session, voice, catalog, t1):
        """Should drop a stream that resolves after the session left."""
        catalog.gate = asyncio.Event()
        task = asyncio.create_task(connected_session.enqueue_and_maybe_start(t1))
        await catalog.resolving.wait()
        assert connected_session.is_loading

        await connected_session.leave()
        catalog.gate.set()
        outcome = await task

        assert outcome.started is True
        assert voice.plays == []
        assert len(catalog.released) == 1
        assert connected_session.state is PlaybackState.IDLE

    @pytest.mark.asyncio
    async def test_forced_disconnect(self, connected_session, voice, event_bus, t1):
        await connected_session.enqueue_and_maybe_start(t1)

        await voice.drop_connection()

        assert connected_session.is_destroyed
        assert event_bus.of_type(SessionDestroyed)[0].reason == "disconnect"

    @pytest.mark.asyncio
    async def test_disconnect_before_join_is_ignored(self, session, event_bus):
        await session.handle_disconnect()

        assert not session.is_destroyed
        assert event_bus.of_type(SessionDestroyed) == []


class TestInactivity:
    """Unit tests for the inactivity timeout."""

    @pytest.fixture
    def make_session(self, voice, catalog, event_bus):
        def factory():
            session = PlaybackSession(
                GUILD_ID,
                voice_adapter=voice,
                catalog=catalog,
                event_bus=event_bus,
                playback_settings=PlaybackSettings(inactivity_timeout_seconds=0.05),
            )
            wire_session(voice, session)
            return session

        return factory

    @pytest.mark.asyncio
    async def test_connected_session_times_out(self, make_session, event_bus):
        session = make_session()
        await session.join(CHANNEL_ID)

        await asyncio.sleep(0.2)

        assert session.is_destroyed
        assert event_bus.of_type(SessionDestroyed)[0].reason == "inactivity"

    @pytest.mark.asyncio
    async def test_playing_session_stays(self, make_session, t1):
        session = make_session()
        await session.join(CHANNEL_ID)
        await session.enqueue_and_maybe_start(t1)

        await asyncio.sleep(0.2)

        assert not session.is_destroyed
        assert session.state is PlaybackState.PLAYING
        await session.leave()

    @pytest.mark.asyncio
    async def test_paused_session_times_out(self, make_session, t1):
        session = make_session()
        await session.join(CHANNEL_ID)
        await session.enqueue_and_maybe_start(t1)
        await session.pause()

        await asyncio.sleep(0.2)

        assert session.is_destroyed

    @pytest.mark.asyncio
    async def test_idle_timer_status(self, connected_session, t1):
        assert connected_session.idle_timer_active
        assert 0 < connected_session.idle_seconds_remaining <= 60.0

        await connected_session.enqueue_and_maybe_start(t1)

        assert not connected_session.idle_timer_active
        assert connected_session.idle_seconds_remaining is None

    @pytest.mark.asyncio
    async def test_reset_idle_timer_restarts_countdown(self, connected_session):
        """Should push the deadline back to a full timeout."""
        await asyncio.sleep(0.05)
        before = connected_session.idle_seconds_remaining

        assert await connected_session.reset_idle_timer() is True

        assert connected_session.idle_seconds_remaining > before
        assert connected_session.idle_timer_active

    @pytest.mark.asyncio
    async def test_reset_idle_timer_while_playing(self, connected_session, t1):
        await connected_session.enqueue_and_maybe_start(t1)

        assert await connected_session.reset_idle_timer() is False
        assert not connected_session.idle_timer_active

    @pytest.mark.asyncio
    async def test_reset_idle_timer_without_connection(self, session):
        with pytest.raises(NotPlayingError):
            await session.reset_idle_timer()
