"""Scope resolution: reuse the registry in force or open a named child scope.

The hierarchy itself is owned by the host (a widget tree, a request context,
nested dictionaries in tests). This module only needs a context store that
can read a value visible at the current position and write one for the
current position and everything below it.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any, NamedTuple, Protocol

from .exceptions import NoActiveScopeError
from .features import FeatureRegistry, default_features
from .logging_utils import log
from .registry import Registry

LOGGER = logging.getLogger(__name__)

REGISTRY_KEY = "registry"
PARENT_REGISTRY_KEY = "parentRegistry"

RegistryFactory = Callable[[str], Registry]


class ContextStore(Protocol):
    """Read/write access to values scoped to the current tree position."""

    def read(self, key: str) -> Any: ...

    def write(self, key: str, value: Any) -> None: ...


class DictContextStore:
    """Dictionary-backed store whose reads fall through to a parent store."""

    def __init__(self, parent: DictContextStore | None = None) -> None:
        self._parent = parent
        self._values: dict[str, Any] = {}

    def read(self, key: str) -> Any:
        if key in self._values:
            return self._values[key]
        if self._parent is not None:
            return self._parent.read(key)
        return None

    def write(self, key: str, value: Any) -> None:
        self._values[key] = value

    def child(self) -> DictContextStore:
        """Return a nested store for a descendant position."""
        return DictContextStore(parent=self)


class ScopePair(NamedTuple):
    """The registry for the requested scope and the one in force before it.

    Both are the same object when an existing registry was reused. ``parent``
    is None for a root scope.
    """

    active: Registry
    parent: Registry | None


def resolve_active(
    active: Registry | None,
    position_id: str | None = None,
    features: FeatureRegistry | None = None,
    factory: RegistryFactory = Registry,
) -> tuple[ScopePair, bool]:
    """Resolve a scope given the registry currently in force.

    Returns the pair and whether a new registry was created. A new registry
    has its features attached before it is returned.

    Raises:
        NoActiveScopeError: ``position_id`` is absent and ``active`` is None.
    """
    position_id = position_id or None
    if active is not None and (position_id is None or position_id == active.name):
        return ScopePair(active, active), False
    if position_id is None:
        raise NoActiveScopeError(
            "No active registry in this context and no scope name was given."
        )

    fresh = factory(position_id)
    log("scope", f"created new instance for {position_id}")
    if features is None:
        features = default_features()
    features.run_for(position_id, fresh)
    return ScopePair(fresh, active), True


class ScopeResolver:
    """Resolve scopes against a context store, recording new ones in it."""

    def __init__(
        self,
        features: FeatureRegistry | None = None,
        factory: RegistryFactory = Registry,
    ) -> None:
        self.features = features if features is not None else default_features()
        self.factory = factory

    def resolve(self, context: ContextStore, position_id: str | None = None) -> ScopePair:
        """Return ``(active, parent)`` for the current position.

        Reuses the registry in force when no name is given or the names
        match. Otherwise a new registry is created, features registered for
        ``position_id`` are run against it, and it is written to ``context``
        with the previous registry stored as its parent.
        """
        pair, created = resolve_active(
            context.read(REGISTRY_KEY), position_id, self.features, self.factory
        )
        if not created:
            return pair
        parent = context.read(REGISTRY_KEY)
        context.write(REGISTRY_KEY, pair.active)
        context.write(PARENT_REGISTRY_KEY, parent)
        LOGGER.debug(
            "scope.created",
            extra={
                "event": "scopelink.scope_created",
                "scope": pair.active.name,
                "parent_scope": parent.name if parent is not None else None,
            },
        )
        return ScopePair(pair.active, parent)


def resolve_scope(
    position_id: str | None = None,
    *,
    context: ContextStore,
    features: FeatureRegistry | None = None,
) -> ScopePair:
    """Resolve ``position_id`` in ``context``; see :meth:`ScopeResolver.resolve`."""
    return ScopeResolver(features).resolve(context, position_id)
