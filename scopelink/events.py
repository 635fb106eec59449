"""Named event kinds and the envelopes they produce.

Every notification is a state-change event: a name plus the current value
of that piece of state. Kinds are declared once per process, usually at
module import time::

    counterparty_changed = declare_event("counterparty")
    registry.publish(counterparty_changed.make(selected))
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Generic, TypeVar

from .exceptions import DuplicateEventNameError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class EventEnvelope(Generic[T]):
    """A single notification: the event name and the state value it carries."""

    name: str
    value: T


@dataclass(frozen=True)
class EventKind(Generic[T]):
    """Descriptor for one declared event name."""

    name: str

    def make(self, value: T) -> EventEnvelope[T]:
        """Stamp ``value`` into an envelope carrying this kind's name."""
        return EventEnvelope(self.name, value)

    # The envelope constructor is also reachable as ``kind(value)`` and
    # ``kind.event(value)``.
    __call__ = make
    event = make


class EventCatalog:
    """Bookkeeping of every event name declared through this catalog."""

    def __init__(self) -> None:
        self._names: set[str] = set()

    def declare(self, name: str) -> EventKind:
        """Record ``name`` and return its kind.

        Raises:
            ValueError: ``name`` is empty.
            DuplicateEventNameError: ``name`` was already declared.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Event name must be a non-empty string.")
        if name in self._names:
            raise DuplicateEventNameError(name)
        self._names.add(name)
        LOGGER.debug(
            "event.declared",
            extra={"event": "scopelink.event_declared", "event_name": name},
        )
        return EventKind(name)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def names(self) -> list[str]:
        return sorted(self._names)

    def clear(self) -> None:
        self._names.clear()


_default_catalog = EventCatalog()


def default_catalog() -> EventCatalog:
    """Return the process-wide catalog used by :func:`declare_event`."""
    return _default_catalog


def declare_event(name: str, catalog: EventCatalog | None = None) -> EventKind:
    """Declare a new event kind, failing if ``name`` is already taken."""
    if catalog is None:
        catalog = _default_catalog
    return catalog.declare(name)
