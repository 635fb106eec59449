"""Scoped, hierarchical publish/subscribe for tree-shaped applications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .events import EventCatalog, EventEnvelope, EventKind, declare_event, default_catalog
from .exceptions import (
    ConfigValidationError,
    DuplicateEventNameError,
    NoActiveScopeError,
    ScopeLinkError,
)
from .features import Feature, FeatureManager, FeatureRegistry, default_features
from .registry import Registry, Retention, Subscription, registry_factory
from .scope import (
    DictContextStore,
    ScopePair,
    ScopeResolver,
    resolve_active,
    resolve_scope,
)

if TYPE_CHECKING:
    from .config import load_config
    from .widgets import ScopedWidget, WidgetContextStore, scope_for

__all__ = [
    "ConfigValidationError",
    "DictContextStore",
    "DuplicateEventNameError",
    "EventCatalog",
    "EventEnvelope",
    "EventKind",
    "Feature",
    "FeatureManager",
    "FeatureRegistry",
    "NoActiveScopeError",
    "Registry",
    "Retention",
    "ScopeLinkError",
    "ScopePair",
    "ScopeResolver",
    "ScopedWidget",
    "Subscription",
    "WidgetContextStore",
    "declare_event",
    "default_catalog",
    "default_features",
    "load_config",
    "registry_factory",
    "resolve_active",
    "resolve_scope",
    "scope_for",
]


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep the textual dependency optional at import time."""
    if name == "load_config":
        from .config import load_config

        return load_config
    if name in {"ScopedWidget", "WidgetContextStore", "scope_for"}:
        from .widgets import ScopedWidget, WidgetContextStore, scope_for

        return {
            "ScopedWidget": ScopedWidget,
            "WidgetContextStore": WidgetContextStore,
            "scope_for": scope_for,
        }[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
