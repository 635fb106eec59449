"""Tile board demo: sibling widgets talking through scoped registries.

Each tile opens its own ``Tile`` scope under the board's ``Board`` scope. A
tile publishes ``tileSelected`` on its own registry (seen by features attached
to every tile) and on its parent link (seen by the board). The board answers
with ``selectionChanged`` on its registry, which every tile filters by label.
"""

from __future__ import annotations

from collections import Counter
import logging
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Footer, Header, Label, Static

from .config import load_config
from .events import EventEnvelope, declare_event
from .features import Feature, FeatureManager, FeatureRegistry
from .logging_utils import configure_logging
from .registry import Registry, registry_factory
from .scope import RegistryFactory
from .widgets import ScopedWidget, provide_features

LOGGER = logging.getLogger(__name__)

tile_selected = declare_event("tileSelected")
selection_changed = declare_event("selectionChanged")


class TileClickCounter(Feature):
    """Counts selections across every tile ever created."""

    name = "tile_click_counter"

    def __init__(self) -> None:
        self.counts: Counter[str] = Counter()

    def setup(self, features: FeatureRegistry) -> None:
        features.register("Tile", self.name, self._attach)

    def _attach(self, registry: Registry) -> None:
        # Held strongly: nothing else owns this handler.
        registry.subscribe(tile_selected, self._count, retain="strong")

    def _count(self, envelope: EventEnvelope[str]) -> None:
        self.counts[envelope.value] += 1


class Tile(ScopedWidget, Static):
    """One selectable tile."""

    SCOPE = "Tile"

    DEFAULT_CSS = """
    Tile {
        height: 3;
        border: round $primary;
        padding: 0 1;
    }
    Tile.selected {
        border: heavy $accent;
    }
    """

    def __init__(self, label: str, **kwargs: Any) -> None:
        super().__init__(f"Tile {label}", **kwargs)
        self.tile_label = label

    def on_mount(self) -> None:
        board = self.parent_registry
        if board is None:
            return
        label = self.tile_label
        board.subscribe(
            selection_changed,
            self._highlight,
            predicate=lambda envelope: envelope.value == label,
        )
        board.subscribe(
            selection_changed,
            self._unhighlight,
            predicate=lambda envelope: envelope.value != label,
        )

    def on_click(self) -> None:
        self.select()

    def select(self) -> None:
        """Announce this tile's selection to its own scope and to the board."""
        envelope = tile_selected.make(self.tile_label)
        self.registry.publish(envelope)
        if self.parent_registry is not None:
            self.parent_registry.publish(envelope)

    def _highlight(self, envelope: EventEnvelope[str]) -> None:
        self.add_class("selected")

    def _unhighlight(self, envelope: EventEnvelope[str]) -> None:
        self.remove_class("selected")


class Board(ScopedWidget, Vertical):
    """Container opening the ``Board`` scope the tiles hang off."""

    SCOPE = "Board"

    def __init__(
        self,
        tiles: int,
        features: FeatureRegistry | None = None,
        factory: RegistryFactory | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._tile_count = tiles
        self.selected = ""
        provide_features(self, features, factory)

    def compose(self) -> ComposeResult:
        yield Label("Nothing selected", id="board_status")
        for index in range(self._tile_count):
            label = chr(ord("A") + index)
            yield Tile(label, id=f"tile_{label.lower()}")

    def on_mount(self) -> None:
        self.registry.subscribe(tile_selected, self._on_tile_selected)

    def _on_tile_selected(self, envelope: EventEnvelope[str]) -> None:
        self.selected = envelope.value
        self.query_one("#board_status", Label).update(f"Selected: {envelope.value}")
        self.registry.publish(selection_changed.make(envelope.value))


class TileBoardApp(App[None]):
    """Small app showing scoped registries and features on a widget tree."""

    BINDINGS = [("q", "quit", "Quit")]

    def __init__(self, config: dict[str, dict[str, Any]] | None = None) -> None:
        super().__init__()
        self.config = config if config is not None else load_config()
        self.registry_factory = registry_factory(self.config["dispatch"])
        self.scope_features = FeatureRegistry()
        self.feature_manager = FeatureManager(self.scope_features)
        self.click_counter = TileClickCounter()
        self.feature_manager.register_feature(self.click_counter)
        self.title = self.config["demo"]["title"]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Board(
            self.config["demo"]["tiles"],
            features=self.scope_features,
            factory=self.registry_factory,
            id="board",
        )
        yield Footer()


def run(config: dict[str, dict[str, Any]] | None = None) -> None:
    """Configure logging and run the demo app."""
    config = config if config is not None else load_config()
    configure_logging(config["logging"])
    LOGGER.info("demo.start", extra={"event": "scopelink.demo_start"})
    TileBoardApp(config).run()
