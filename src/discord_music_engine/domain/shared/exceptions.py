"""Base exception classes for domain-level errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


# === Catalog / matching ===


class ProviderUnavailableError(DomainError):
    """Raised when a single catalog provider cannot be reached."""

    def __init__(self, platform: str, message: str | None = None) -> None:
        msg = message or f"Catalog provider '{platform}' is unavailable"
        super().__init__(msg, code="PROVIDER_UNAVAILABLE")
        self.platform = platform


class NoResultsFoundError(DomainError):
    def __init__(self, query: str, message: str | None = None) -> None:
        msg = message or f"No results found for '{query}'"
        super().__init__(msg, code="NO_RESULTS_FOUND")
        self.query = query


class TitleExtractionFailedError(DomainError):
    """Raised when no title metadata can be obtained for an unsupported link."""

    def __init__(self, url: str, message: str | None = None) -> None:
        msg = message or f"Could not extract a title from '{url}'"
        super().__init__(msg, code="TITLE_EXTRACTION_FAILED")
        self.url = url


class NoAlternativeFoundError(DomainError):
    def __init__(self, title: str, message: str | None = None) -> None:
        msg = message or f"No alternative found for '{title}'"
        super().__init__(msg, code="NO_ALTERNATIVE_FOUND")
        self.title = title


class UnsupportedOperationError(DomainError):
    def __init__(self, operation: str, platform: str, message: str | None = None) -> None:
        msg = message or f"'{operation}' is not supported by {platform}"
        super().__init__(msg, code="UNSUPPORTED_OPERATION")
        self.operation = operation
        self.platform = platform


# === Streaming / voice ===


class StreamUnavailableError(DomainError):
    """Raised when a track cannot be turned into a playable audio source."""

    def __init__(self, target: str, reason: str | None = None) -> None:
        msg = f"Stream unavailable for '{target}'"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg, code="STREAM_UNAVAILABLE")
        self.target = target
        self.reason = reason


class ConnectFailedError(DomainError):
    def __init__(self, guild_id: int, channel_id: int, message: str | None = None) -> None:
        msg = message or f"Could not connect to voice channel {channel_id}"
        super().__init__(msg, code="CONNECT_FAILED")
        self.guild_id = guild_id
        self.channel_id = channel_id


# === Queue ===


class InvalidQueueIndexError(DomainError):
    def __init__(self, index: int, length: int, message: str | None = None) -> None:
        msg = message or f"Queue index {index} is out of range (queue has {length} tracks)"
        super().__init__(msg, code="INVALID_QUEUE_INDEX")
        self.index = index
        self.length = length


class QueueFullError(DomainError):
    def __init__(self, max_size: int, message: str | None = None) -> None:
        msg = message or f"Queue is full (max {max_size} tracks)"
        super().__init__(msg, code="QUEUE_FULL")
        self.max_size = max_size


# === State machine ===


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class NotPlayingError(InvalidOperationError):
    def __init__(self, operation: str, current_state: str) -> None:
        super().__init__(operation, current_state, message="Nothing is playing right now")
        self.code = "NOT_PLAYING"


class NotPausedError(InvalidOperationError):
    def __init__(self, operation: str, current_state: str) -> None:
        super().__init__(operation, current_state, message="Playback is not paused")
        self.code = "NOT_PAUSED"


class NothingToPlayError(InvalidOperationError):
    def __init__(self, operation: str, current_state: str) -> None:
        super().__init__(operation, current_state, message="There is nothing to play")
        self.code = "NOTHING_TO_PLAY"
