"""Error types raised by the command management layer.

Every ``CommandManagementError`` carries the chat reply that describes the
problem. ``StorageError`` comes from the repository and is never retried by
the caller.
"""

from __future__ import annotations


class CommandManagementError(Exception):
    """Base class for user-visible command management failures."""

    def __init__(self, reply: str) -> None:
        super().__init__(reply)
        self.reply = reply


class UsageError(CommandManagementError):
    """Malformed or insufficient arguments."""


class NotFoundError(CommandManagementError):
    """No command matches the given trigger."""


class ConflictError(CommandManagementError):
    """Trigger already taken, or the edit target is ambiguous."""


class ValidationError(CommandManagementError):
    """A numeric or permission argument failed its format check."""


class StorageError(Exception):
    """The command registry could not persist a change."""
