"""Textual integration: scopes stored on the widget tree.

A value written for a widget is visible to that widget and every descendant
until a descendant writes its own. Reads walk the live ``parent`` chain, so
widgets must be attached before they resolve a scope.
"""

from __future__ import annotations

from typing import Any, ClassVar
import weakref

from textual.dom import DOMNode

from .features import FeatureRegistry
from .registry import Registry
from .scope import (
    PARENT_REGISTRY_KEY,
    REGISTRY_KEY,
    RegistryFactory,
    ScopePair,
    ScopeResolver,
)

FEATURES_KEY = "features"
FACTORY_KEY = "registryFactory"

_NODE_VALUES: weakref.WeakKeyDictionary[DOMNode, dict[str, Any]] = (
    weakref.WeakKeyDictionary()
)


class WidgetContextStore:
    """Context store bound to one node of a Textual DOM."""

    def __init__(self, node: DOMNode) -> None:
        self.node = node

    def read(self, key: str) -> Any:
        node: DOMNode | None = self.node
        while node is not None:
            values = _NODE_VALUES.get(node)
            if values is not None and key in values:
                return values[key]
            node = node.parent
        return None

    def write(self, key: str, value: Any) -> None:
        _NODE_VALUES.setdefault(self.node, {})[key] = value


def provide_features(
    node: DOMNode,
    features: FeatureRegistry | None,
    factory: RegistryFactory | None = None,
) -> None:
    """Make ``features`` and ``factory`` apply to scopes created under ``node``.

    Either may be None to keep whatever an ancestor provided.
    """
    store = WidgetContextStore(node)
    if features is not None:
        store.write(FEATURES_KEY, features)
    if factory is not None:
        store.write(FACTORY_KEY, factory)


def scope_for(
    node: DOMNode,
    position_id: str | None = None,
    features: FeatureRegistry | None = None,
) -> ScopePair:
    """Resolve a scope for ``node`` from its place in the widget tree."""
    # Ancestors may not have handled their own mount yet.
    ancestor = node.parent
    while ancestor is not None and not isinstance(ancestor, ScopedWidget):
        ancestor = ancestor.parent
    if ancestor is not None:
        _ = ancestor.scope
    store = WidgetContextStore(node)
    if features is None:
        features = store.read(FEATURES_KEY)
    factory = store.read(FACTORY_KEY) or Registry
    return ScopeResolver(features, factory).resolve(store, position_id)


class ScopedWidget:
    """Mixin giving a widget lazy access to its scope.

    Set ``SCOPE`` to open a new scope at this widget; leave it as None to use
    whatever scope an ancestor opened.
    """

    SCOPE: ClassVar[str | None] = None

    _scope_pair: ScopePair | None = None

    @property
    def scope(self) -> ScopePair:
        if self._scope_pair is None:
            self._scope_pair = scope_for(self, self.SCOPE)  # type: ignore[arg-type]
        return self._scope_pair

    @property
    def registry(self) -> Registry:
        return self.scope.active

    @property
    def parent_registry(self) -> Registry | None:
        return self.scope.parent

    def stored_parent_registry(self) -> Registry | None:
        """The parent link as written to the tree (None until resolved)."""
        return WidgetContextStore(self).read(PARENT_REGISTRY_KEY)  # type: ignore[arg-type]

    def stored_registry(self) -> Registry | None:
        return WidgetContextStore(self).read(REGISTRY_KEY)  # type: ignore[arg-type]
