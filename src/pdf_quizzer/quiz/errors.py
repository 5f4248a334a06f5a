"""Exception taxonomy for PDF quiz processing."""

from __future__ import annotations

__all__ = [
    "QuizError",
    "DocumentError",
    "ExtractionError",
    "NetworkError",
    "EmptyResultError",
    "ServiceError",
]


class QuizError(RuntimeError):
    """Base class for errors surfaced to the user by the quiz workflow."""


class DocumentError(QuizError):
    """Raised when the source PDF is unreadable, corrupted or encrypted."""


class ExtractionError(QuizError):
    """Raised when a chunk cannot be turned into questions."""


class NetworkError(ExtractionError):
    """Raised when the extraction service cannot be reached."""


class EmptyResultError(QuizError):
    """Raised when a finished run produced no questions at all."""


class ServiceError(QuizError):
    """Raised when an auxiliary AI call (explanations) fails for good."""
