"""Exception types shared across activities, rewards and notifications."""

from __future__ import annotations


class MindscapeError(Exception):
    """Base class for all mindscape errors."""


class UserInputError(MindscapeError):
    """Raised for a user action that cannot be accepted. Never fatal."""


class EmptyIntentionError(UserInputError):
    """Raised when a lantern is released without intention text."""


class DailyLimitReachedError(UserInputError):
    """Raised when a session is started after the daily activity cap."""

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(f"Daily limit reached: {count}/{limit} activities completed today")
        self.count = count
        self.limit = limit


class AlreadyClaimedError(UserInputError):
    """Raised when today's login reward was already claimed."""


class CollaboratorWriteError(MindscapeError):
    """Raised when a write to the persistence backend fails."""

    def __init__(self, table: str, message: str = "") -> None:
        super().__init__(message or f"Write to {table} failed")
        self.table = table


class CollaboratorUnavailableError(CollaboratorWriteError):
    """Raised when the persistence backend cannot be reached at all."""


class InvalidTransitionError(MindscapeError, ValueError):
    """Raised on a state machine transition that is not allowed."""
