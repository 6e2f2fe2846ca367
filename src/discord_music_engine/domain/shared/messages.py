"""Centralized message constants for error messages, validation, and logging."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Track Validation Errors
    EMPTY_TRACK_ID = "Track ID cannot be empty"
    EMPTY_STREAM_LOCATION = "Stream location cannot be empty"

    # Voting Validation Errors
    INVALID_LISTENER_COUNT = "Listener count cannot be negative"

    # Extraction Errors
    EXTRACTOR_NOT_FOUND = "yt-dlp executable not found"
    EXTRACTOR_TIMEOUT = "extraction timed out after %ss"
    EXTRACTOR_EXIT_CODE = "extractor exited with code %s: %s"
    EXTRACTOR_NO_OUTPUT = "extractor produced no output"
    EXTRACTOR_BAD_JSON = "extractor returned malformed JSON"
    DOWNLOAD_FILE_MISSING = "downloaded file not found"

    # Catalog Errors
    SPOTIFY_TOKEN_FAILED = "Spotify token request failed"
    NO_STREAM_PROVIDER = "No provider can stream tracks from %s"
    VOICE_PLAY_FAILED = "voice connection refused the audio source"

    # Settings Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    INVALID_STREAM_MODE = "Stream mode must be 'url' or 'download'"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Voice Operations
    VOICE_CONNECTED = "Connected to voice channel %s in %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_MOVED = "Moved to voice channel %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s"
    VOICE_CLIENT_ERROR = "Client error connecting: %r"
    VOICE_CHANNEL_NOT_FOUND = "Voice channel %s not found"
    VOICE_NOT_CONNECTED = "Not connected to voice in guild %s"
    VOICE_ADAPTER_FAILED = "Voice adapter failed to play in guild %s"
    VOICE_CALLBACK_ERROR = "Error dispatching voice callback for guild %s"
    VOICE_DISCONNECT_DETECTED = "Voice connection dropped in guild %s"
    VOICE_DISCONNECT_EXPECTED = "Ignoring own disconnect event in guild %s"

    # Session Lifecycle
    SESSION_CREATED = "Created playback session for guild %s"
    SESSION_DESTROYED = "Destroyed playback session for guild %s (reason: %s)"
    SESSION_ALREADY_CONNECTED = "Session for guild %s already connected to channel %s"
    SESSION_INACTIVITY_ARMED = "Inactivity timer armed for guild %s (%ss)"
    SESSION_INACTIVITY_FIRED = "Leaving guild %s after inactivity"
    SESSION_INACTIVITY_RESET = "Inactivity timer reset for guild %s"
    SESSION_DISCONNECT_IGNORED = "Ignoring disconnect for guild %s in state %s"
    REGISTRY_SHUTDOWN = "Shutting down %d playback sessions"

    # Playback Operations
    PLAYBACK_STARTED = "Started playing '%s' in guild %s"
    PLAYBACK_STOPPED = "Stopped playback in guild %s"
    PLAYBACK_PAUSED = "Paused playback in guild %s"
    PLAYBACK_RESUMED = "Resumed playback in guild %s"
    PLAYBACK_RESOLVING = "Resolving stream for '%s' in guild %s"
    PLAYBACK_STALE_RESOLUTION = "Discarding stale stream for '%s' in guild %s"
    PLAYBACK_STALE_CALLBACK = "Ignoring stale voice callback in guild %s (token %s)"
    PLAYBACK_TRACK_FAILED = "Track '%s' failed in guild %s: %s"
    PLAYBACK_CASCADE_ABORTED = "Every track failed in a row in guild %s, stopping"

    # Track Operations
    TRACK_SKIPPED = "Skipped track: %s in guild %s"
    TRACK_FINISHED = "Track finished: %s in guild %s"

    # Queue Operations
    QUEUE_EXHAUSTED = "Queue exhausted in guild %s"
    QUEUE_ENQUEUED = "Enqueued track '%s' at position %s in guild %s"
    QUEUE_REMOVED = "Removed track '%s' from queue in guild %s"
    QUEUE_MOVED = "Moved track from %s to %s in guild %s"
    QUEUE_SHUFFLE_SET = "Shuffle set to %s in guild %s"
    QUEUE_LOOP_SET = "Loop mode set to %s in guild %s"
    QUEUE_VOLUME_SET = "Volume set to %.2f in guild %s"

    # Voting
    VOTE_CAST = "Vote skip in guild %s: %s/%s"
    VOTE_PASSED = "Vote skip passed in guild %s"

    # Catalog / Matching
    CATALOG_SEARCH = "Searching %s for '%s' (limit %s)"
    CATALOG_SEARCH_FAILED = "Search on %s failed for '%s': %s"
    CATALOG_RESULTS = "%s returned %d results for '%s'"
    CATALOG_FILTERED = "%s dropped %d non-music results for '%s'"
    MATCH_TITLE_EXTRACTED = "Extracted title '%s' from %s"
    MATCH_SELECTED = "Matched '%s' to %s track '%s' (score %.3f)"
    MATCH_NONE = "No alternative found for '%s'"

    # Extraction
    EXTRACTOR_RUNNING = "Running extractor for %s"
    EXTRACTOR_FAILED = "Extractor failed for %s: %s"
    EXTRACTOR_TIMEOUT = "Extractor timed out after %ss for %s"
    DOWNLOAD_COMPLETE = "Downloaded audio for %s to %s"
    MEDIA_RELEASED = "Released temporary media %s"
    MEDIA_PURGED = "Purged temporary media for guild %s"
    MEDIA_RELEASE_FAILED = "Failed to remove temporary media %s: %r"

    # Spotify
    SPOTIFY_TOKEN_REFRESHED = "Refreshed Spotify access token (expires in %ss)"
    SPOTIFY_DISABLED = "Spotify credentials missing, catalog disabled"

    # Event Bus
    EVENT_HANDLER_ERROR = "Error in handler for %s: %s"
