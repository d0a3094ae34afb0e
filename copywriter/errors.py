"""Error kinds raised by the copy generation pipeline."""
from __future__ import annotations


class CopywriterError(RuntimeError):
    """Base class for every pipeline failure."""


class CompletionFailed(CopywriterError):
    """Raised when the outbound chat-completion call fails or times out."""


class CompletionCancelled(CopywriterError):
    """Raised when the caller cancelled an outbound call before it returned."""


class RecoveryFailed(CopywriterError):
    """Raised when a model reply cannot be parsed into the expected shape."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class ValidationFailed(CopywriterError, ValueError):
    """Raised when the caller supplies an empty or malformed required field."""


class SectionNotFound(ValidationFailed):
    """Raised when a rewrite targets a slug the listing does not have."""


__all__ = [
    "CopywriterError",
    "CompletionFailed",
    "CompletionCancelled",
    "RecoveryFailed",
    "ValidationFailed",
    "SectionNotFound",
]
