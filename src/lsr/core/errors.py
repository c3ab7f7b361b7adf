"""Error definitions for Lockstep Reader."""

from __future__ import annotations

from enum import Enum, auto


class ErrorKind(Enum):
    """Categorises translation failures so the scheduler can apply policy."""

    CONFIGURATION = auto()  # Missing credentials, bad model name; never retried automatically
    TRANSIENT = auto()  # Network, timeout, empty or malformed response
    RATE_LIMIT = auto()  # Quota exhausted; triggers the shared cooldown


class LSRError(Exception):
    """Base exception for all custom errors."""


class DocumentNotLoadedError(LSRError):
    """Raised when a page operation runs before a document is open."""


class InvalidDocumentError(LSRError):
    """Raised when the bytes handed to the document service are not a readable PDF."""


class QueueClearedError(LSRError):
    """Raised into pending tasks that were dropped before dispatch."""

    def __init__(self, message: str = "Queue cleared") -> None:
        super().__init__(message)


class TranslationError(LSRError):
    """Raised by translation backends, carrying a structured kind."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.TRANSIENT) -> None:
        super().__init__(message)
        self.kind = kind


class CooldownError(TranslationError):
    """Raised without contacting the backend while a rate-limit cooldown is active."""

    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(
            f"Rate limit cooldown. Please wait {remaining_seconds}s",
            kind=ErrorKind.RATE_LIMIT,
        )
        self.remaining_seconds = remaining_seconds


_RATE_LIMIT_MARKERS = ("quota", "rate limit", "exceeded")


def looks_rate_limited(message: str) -> bool:
    """Heuristic for providers that report throttling only in the message text."""
    lowered = message.lower()
    return any(marker in lowered for marker in _RATE_LIMIT_MARKERS)
