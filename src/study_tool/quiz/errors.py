"""Exception types raised by the quiz package."""

from __future__ import annotations

__all__ = [
    "QuizError",
    "FetchError",
    "MalformedContentError",
    "StorageError",
    "InvalidTransitionError",
    "QuizConfigError",
]


class QuizError(RuntimeError):
    """Base class for quiz failures."""


class FetchError(QuizError):
    """Raised when a quiz resource cannot be retrieved from a location."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {location}: {reason}")
        self.location = location
        self.reason = reason


class MalformedContentError(QuizError):
    """Raised when a quiz resource does not hold a usable question bank."""


class StorageError(QuizError):
    """Raised when the key-value store cannot be read or written."""


class InvalidTransitionError(QuizError):
    """Raised when a session operation is not allowed in the current phase."""

    def __init__(self, action: str, phase: object) -> None:
        label = getattr(phase, "value", phase)
        super().__init__(f"Cannot {action} while session is {label}.")
        self.action = action
        self.phase = phase


class QuizConfigError(QuizError):
    """Raised when quiz configuration parsing or validation fails."""
