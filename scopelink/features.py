"""Cross-cutting features that attach to every registry of a given scope.

A feature represents application business rather than a single widget. It
usually assembles state from several scopes, so instead of holding on to one
registry it asks to be called back whenever a new registry is created for a
scope name it cares about.

Usage:
    class ClickCounter(Feature):
        name = "click_counter"

        def setup(self, features):
            features.register("Tile", self.name, self._attach)

        def _attach(self, registry):
            registry.subscribe(tile_clicked, self._count, retain="strong")

    FeatureManager().register_feature(ClickCounter())
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
import logging
from typing import TYPE_CHECKING

from .logging_utils import log, warn

if TYPE_CHECKING:
    from .registry import Registry

LOGGER = logging.getLogger(__name__)

InitCallback = Callable[["Registry"], None]


class FeatureRegistry:
    """Scope name -> ordered init callbacks, run for each new registry."""

    def __init__(self) -> None:
        self._callbacks: dict[str, list[InitCallback]] = {}
        self._labels: dict[str, set[str]] = {}

    def register(self, position: str, label: str, callback: InitCallback) -> None:
        """Append ``callback`` to the list run for new ``position`` registries.

        Args:
            position: Scope name, e.g. ``"Tile"``.
            label: Feature name, used for diagnostics only.
            callback: Receives each freshly created registry.
        """
        if not isinstance(position, str) or not position:
            raise ValueError("position must be a non-empty string.")
        if not callable(callback):
            raise TypeError("callback must be callable.")
        labels = self._labels.setdefault(position, set())
        if label in labels:
            warn("register feature", f"{label} registered again for context {position}")
        labels.add(label)
        self._callbacks.setdefault(position, []).append(callback)
        log("register feature", f"context = {position}, feature = {label}")

    def run_for(self, position: str, registry: Registry) -> None:
        """Run every callback registered for ``position`` against ``registry``."""
        for callback in tuple(self._callbacks.get(position, ())):
            callback(registry)

    def callbacks_for(self, position: str) -> list[InitCallback]:
        return list(self._callbacks.get(position, ()))

    def positions(self) -> list[str]:
        return list(self._callbacks)

    def clear(self) -> None:
        self._callbacks.clear()
        self._labels.clear()


_default_features = FeatureRegistry()


def default_features() -> FeatureRegistry:
    """Return the process-wide feature table used when none is passed."""
    return _default_features


class Feature(ABC):
    """Base class for features registered through :class:`FeatureManager`."""

    name: str = "unknown"

    @abstractmethod
    def setup(self, features: FeatureRegistry) -> None:
        """Register init callbacks for the scopes this feature observes."""


class FeatureManager:
    """Keeps registered features by name and runs their setup once."""

    def __init__(self, features: FeatureRegistry | None = None) -> None:
        self.features = features if features is not None else _default_features
        self._features: dict[str, Feature] = {}

    def register_feature(self, feature: Feature) -> None:
        """Register ``feature`` and let it attach to its scopes."""
        if feature.name in self._features:
            LOGGER.warning(
                "feature.replaced",
                extra={"event": "scopelink.feature_replaced", "feature": feature.name},
            )
        self._features[feature.name] = feature
        feature.setup(self.features)
        LOGGER.info(
            "feature.registered",
            extra={"event": "scopelink.feature_registered", "feature": feature.name},
        )

    def get_feature(self, name: str) -> Feature | None:
        return self._features.get(name)

    def feature_names(self) -> list[str]:
        return list(self._features)
