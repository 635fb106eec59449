"""Domain exception hierarchy for scoped event registries."""

from __future__ import annotations


class ScopeLinkError(RuntimeError):
    """Base class for all scopelink errors."""


class DuplicateEventNameError(ScopeLinkError, ValueError):
    """Raised when an event kind is declared under a name already in use."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Event with name "{name}" already exists.')
        self.name = name


class NoActiveScopeError(ScopeLinkError, LookupError):
    """Raised when no scope name is given and no registry is active."""


class ConfigValidationError(ScopeLinkError):
    """Raised when configuration cannot be validated safely."""
