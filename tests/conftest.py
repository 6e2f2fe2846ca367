import asyncio
from pathlib import Path

import pytest
import pytest_asyncio

from discord_music_engine.application.interfaces.catalog_provider import CatalogProvider
from discord_music_engine.application.interfaces.media_store import MediaStore
from discord_music_engine.application.interfaces.title_extractor import TitleExtractor
from discord_music_engine.application.interfaces.voice_adapter import VoiceAdapter
from discord_music_engine.config.settings import PlaybackSettings
from discord_music_engine.domain.music.entities import Track
from discord_music_engine.domain.music.value_objects import SourcePlatform, StreamHandle, TrackId
from discord_music_engine.domain.shared.events import EventBus
from discord_music_engine.domain.shared.exceptions import StreamUnavailableError

GUILD_ID = 111111111111111111
CHANNEL_ID = 222222222222222222
OTHER_CHANNEL_ID = 333333333333333333


# ============================================================================
# Track Factories
# ============================================================================


def make_track(
    title: str = "Test Track",
    *,
    source: SourcePlatform = SourcePlatform.SOUNDCLOUD,
    artist: str | None = None,
    duration: int | None = 180,
    key: str | None = None,
) -> Track:
    slug = key or title.lower().replace(" ", "-")
    if source is SourcePlatform.SPOTIFY:
        url = f"https://open.spotify.com/track/{slug}"
    elif source is SourcePlatform.YOUTUBE:
        url = f"https://www.youtube.com/watch?v={slug}"
    else:
        url = f"https://soundcloud.com/test-artist/{slug}"
    return Track(
        id=TrackId(slug),
        title=title,
        url=url,
        source=source,
        artist=artist,
        duration_seconds=duration,
    )


@pytest.fixture
def sample_track():
    """Create a sample track for testing."""
    return make_track("Test Track", artist="Test Artist")


@pytest.fixture
def sample_tracks():
    """Create three distinct tracks."""
    return [make_track(f"Track {i}") for i in range(1, 4)]


# ============================================================================
# Voice Fake
# ============================================================================


class FakeVoiceAdapter(VoiceAdapter):
    """In-memory voice adapter.

    ``stop`` fires the track-end callback asynchronously, the way discord.py's
    ``after`` hook does. ``finish`` and ``fail`` simulate the audio reaching its
    end or erroring out.
    """

    def __init__(self) -> None:
        self.connect_result = True
        self.play_result = True
        self.listeners = 0
        self.connections: dict[int, int] = {}
        self.live: dict[int, int] = {}
        self.plays: list[tuple[int, StreamHandle, float, int]] = []
        self.volumes: list[float] = []
        self.calls: list[str] = []
        self._on_track_end = None
        self._on_track_error = None
        self._on_disconnect = None
        self._tasks: set[asyncio.Task] = set()

    def set_callbacks(self, on_track_end, on_track_error, on_disconnect) -> None:
        self._on_track_end = on_track_end
        self._on_track_error = on_track_error
        self._on_disconnect = on_disconnect

    async def connect(self, guild_id, channel_id) -> bool:
        self.calls.append("connect")
        if not self.connect_result:
            return False
        self.connections[guild_id] = channel_id
        return True

    async def disconnect(self, guild_id) -> bool:
        self.calls.append("disconnect")
        self.live.pop(guild_id, None)
        return self.connections.pop(guild_id, None) is not None

    async def play(self, guild_id, handle, volume, *, token) -> bool:
        self.calls.append("play")
        if not self.play_result:
            return False
        self.plays.append((guild_id, handle, volume, token))
        self.live[guild_id] = token
        return True

    async def stop(self, guild_id) -> bool:
        self.calls.append("stop")
        token = self.live.pop(guild_id, None)
        if token is None:
            return False
        self._schedule(self._on_track_end(guild_id, token))
        return True

    async def pause(self, guild_id) -> bool:
        self.calls.append("pause")
        return guild_id in self.live

    async def resume(self, guild_id) -> bool:
        self.calls.append("resume")
        return guild_id in self.live

    async def set_volume(self, guild_id, volume) -> bool:
        self.volumes.append(volume)
        return guild_id in self.live

    def is_connected(self, guild_id) -> bool:
        return guild_id in self.connections

    async def listener_count(self, guild_id) -> int:
        return self.listeners

    # -- simulation helpers --

    @property
    def last_token(self) -> int:
        return self.plays[-1][3]

    async def finish(self, guild_id: int = GUILD_ID) -> None:
        """The live source reached its end.

        When ``stop`` already took the source, the end is reported for the
        last token played, as a late natural end would be.
        """
        token = self.live.pop(guild_id, None) or self.last_token
        await self._on_track_end(guild_id, token)

    async def fail(self, guild_id: int = GUILD_ID, error: Exception | None = None) -> None:
        """The live source errored mid-playback."""
        token = self.live.pop(guild_id, None) or self.last_token
        await self._on_track_error(guild_id, token, error or RuntimeError("ffmpeg died"))

    async def drop_connection(self, guild_id: int = GUILD_ID) -> None:
        self.connections.pop(guild_id, None)
        self.live.pop(guild_id, None)
        await self._on_disconnect(guild_id)

    async def settle(self) -> None:
        """Wait for every scheduled callback, including ones they schedule."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _schedule(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


# ============================================================================
# Catalog Fakes
# ============================================================================


class FakeCatalog:
    """Stand-in for CatalogService on the playback side.

    URLs in ``failing`` raise StreamUnavailableError. When ``gate`` is set,
    resolution waits for it, so a test can act while a request is in flight.
    """

    def __init__(self) -> None:
        self.failing: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.resolving = asyncio.Event()
        self.resolved: list[str] = []
        self.released: list[StreamHandle] = []
        self.purged: list[int] = []

    async def resolve_stream(self, track: Track, guild_id: int) -> StreamHandle:
        self.resolving.set()
        if self.gate is not None:
            await self.gate.wait()
        if track.url in self.failing:
            raise StreamUnavailableError(track.url, "no such stream")
        self.resolved.append(track.url)
        return StreamHandle.for_url(f"https://cdn.example.com/{track.stable_key}.mp3")

    def release_stream(self, handle: StreamHandle) -> None:
        self.released.append(handle)

    def purge_guild(self, guild_id: int) -> None:
        self.purged.append(guild_id)


class FakeProvider(CatalogProvider):
    """Catalog provider returning canned results."""

    def __init__(
        self,
        platform: SourcePlatform,
        results: list[Track] | None = None,
        *,
        error: Exception | None = None,
        url_prefix: str | None = None,
        direct_links: bool = True,
    ) -> None:
        self._platform = platform
        self.results = results or []
        self.error = error
        self.url_prefix = url_prefix
        self.supports_direct_links = direct_links
        self.queries: list[tuple[str, int]] = []

    @property
    def platform(self) -> SourcePlatform:
        return self._platform

    async def search(self, query: str, limit: int) -> list[Track]:
        self.queries.append((query, limit))
        if self.error is not None:
            raise self.error
        return self.results[:limit]

    async def resolve_stream_source(self, track: Track, scope: int) -> StreamHandle:
        return StreamHandle.for_url(f"https://cdn.example.com/{track.stable_key}.mp3")

    def is_recognized_url(self, text: str) -> bool:
        return self.url_prefix is not None and text.startswith(self.url_prefix)

    async def get_track_by_url(self, url: str) -> Track:
        return self.results[0]


class FakeTitleExtractor(TitleExtractor):
    def __init__(self, title: str = "Artist - Song (Official Video)") -> None:
        self.title = title
        self.requested: list[str] = []

    @property
    def platform(self) -> SourcePlatform:
        return SourcePlatform.YOUTUBE

    def is_recognized_url(self, text: str) -> bool:
        return "youtube.com/" in text or "youtu.be/" in text

    async def extract_title(self, url: str) -> str:
        self.requested.append(url)
        return self.title


class FakeMediaStore(MediaStore):
    def __init__(self, root: Path) -> None:
        self.root = root
        self.released: list[StreamHandle] = []
        self.purged: list[int] = []

    def guild_dir(self, guild_id: int) -> Path:
        return self.root / str(guild_id)

    def new_stem(self, track: Track) -> str:
        return track.stable_key

    def release(self, handle: StreamHandle) -> None:
        self.released.append(handle)

    def purge(self, guild_id: int) -> None:
        self.purged.append(guild_id)


class RecordingEventBus(EventBus):
    """EventBus that also remembers everything published."""

    def __init__(self) -> None:
        super().__init__()
        self.published = []

    async def publish(self, event) -> None:
        self.published.append(event)
        await super().publish(event)

    def of_type(self, event_type):
        return [e for e in self.published if isinstance(e, event_type)]


# ============================================================================
# Session Fixtures
# ============================================================================


@pytest.fixture
def voice():
    return FakeVoiceAdapter()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def event_bus():
    return RecordingEventBus()


def wire_session(voice: FakeVoiceAdapter, session) -> None:
    """Route the fake adapter's callbacks straight to one session."""

    async def on_end(guild_id, token):
        await session.on_track_end(token)

    async def on_error(guild_id, token, error):
        await session.on_track_error(token, error)

    async def on_disconnect(guild_id):
        await session.handle_disconnect()

    voice.set_callbacks(on_end, on_error, on_disconnect)


@pytest_asyncio.fixture
async def session(voice, catalog, event_bus):
    """A PlaybackSession wired to the fakes; left on teardown."""
    from discord_music_engine.application.services.playback_session import PlaybackSession

    playback_session = PlaybackSession(
        GUILD_ID,
        voice_adapter=voice,
        catalog=catalog,
        event_bus=event_bus,
        playback_settings=PlaybackSettings(inactivity_timeout_seconds=60.0),
    )
    wire_session(voice, playback_session)
    yield playback_session
    await playback_session.leave()
    await voice.settle()


@pytest_asyncio.fixture
async def connected_session(session):
    """A session already joined to CHANNEL_ID."""
    await session.join(CHANNEL_ID)
    return session
