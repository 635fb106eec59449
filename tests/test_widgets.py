"""Tests for scopes stored on a Textual widget tree."""

from __future__ import annotations

from copy import deepcopy
import gc
import unittest

try:
    from textual.app import App, ComposeResult
    from textual.containers import Container
    from textual.widgets import Static

    from scopelink.config import DEFAULT_CONFIG
    from scopelink.demo import Board, Tile, TileBoardApp
    from scopelink.events import EventEnvelope
    from scopelink.exceptions import NoActiveScopeError
    from scopelink.features import FeatureRegistry
    from scopelink.scope import PARENT_REGISTRY_KEY, REGISTRY_KEY
    from scopelink.widgets import (
        ScopedWidget,
        WidgetContextStore,
        provide_features,
        scope_for,
    )
except ModuleNotFoundError:
    App = None  # type: ignore[assignment,misc]
    TileBoardApp = None  # type: ignore[assignment,misc]


if App is not None:

    class _Section(ScopedWidget, Container):
        SCOPE = "Section"

    class _Leaf(ScopedWidget, Static):
        """Uses whatever scope its ancestors opened."""

    class _TreeApp(App[None]):
        def __init__(self) -> None:
            super().__init__()
            self.scope_features = FeatureRegistry()
            self.attached: list[str] = []
            self.scope_features.register(
                "Section", "recorder", lambda registry: self.attached.append(registry.name)
            )

        def compose(self) -> ComposeResult:
            outer = _Section(id="outer")
            provide_features(outer, self.scope_features)
            with outer:
                yield _Leaf("leaf", id="outer_leaf")
                with Container(id="plain"):
                    yield Static("orphan", id="orphan")
            yield Static("outside", id="outside")


@unittest.skipIf(App is None, "textual is not installed")
class WidgetContextStoreTests(unittest.IsolatedAsyncioTestCase):
    """Validate reads walking the parent chain."""

    def test_write_then_read_on_same_node(self) -> None:
        node = Static("solo")
        store = WidgetContextStore(node)
        self.assertIsNone(store.read("registry"))
        store.write("registry", "value")
        self.assertEqual(store.read("registry"), "value")

    async def test_reads_fall_through_to_ancestors(self) -> None:
        app = _TreeApp()
        async with app.run_test():
            outer = app.query_one("#outer")
            orphan = app.query_one("#orphan", Static)
            WidgetContextStore(outer).write("k", 1)
            self.assertEqual(WidgetContextStore(orphan).read("k"), 1)
            self.assertIsNone(
                WidgetContextStore(app.query_one("#outside", Static)).read("k")
            )


@unittest.skipIf(App is None, "textual is not installed")
class ScopedWidgetTests(unittest.IsolatedAsyncioTestCase):
    """Validate scope resolution for mounted widgets."""

    async def test_leaf_inherits_section_scope(self) -> None:
        app = _TreeApp()
        async with app.run_test():
            outer = app.query_one("#outer", _Section)
            leaf = app.query_one("#outer_leaf", _Leaf)
            self.assertIs(leaf.registry, outer.registry)
            self.assertIs(leaf.parent_registry, outer.registry)
            self.assertIsNone(outer.parent_registry)
            self.assertEqual(app.attached, ["Section"])

    async def test_leaf_first_resolves_ancestor_scope(self) -> None:
        app = _TreeApp()
        async with app.run_test():
            leaf = app.query_one("#outer_leaf", _Leaf)
            self.assertEqual(leaf.registry.name, "Section")
            outer = app.query_one("#outer", _Section)
            self.assertIs(outer.stored_registry(), leaf.registry)
            self.assertIsNone(outer.stored_parent_registry())

    async def test_scope_for_plain_widget(self) -> None:
        app = _TreeApp()
        async with app.run_test():
            outer = app.query_one("#outer", _Section)
            orphan = app.query_one("#orphan", Static)
            pair = scope_for(orphan, "Nested")
            self.assertIs(pair.parent, outer.registry)
            self.assertIs(WidgetContextStore(orphan).read(REGISTRY_KEY), pair.active)
            self.assertIs(
                WidgetContextStore(orphan).read(PARENT_REGISTRY_KEY), outer.registry
            )

    async def test_scope_for_plain_widget_resolves_untouched_ancestor(self) -> None:
        app = _TreeApp()
        async with app.run_test():
            orphan = app.query_one("#orphan", Static)
            pair = scope_for(orphan)
            outer = app.query_one("#outer", _Section)
            self.assertEqual(pair.active.name, "Section")
            self.assertIs(pair.active, outer.registry)
            self.assertEqual(app.attached, ["Section"])

    async def test_no_scope_outside_any_section(self) -> None:
        app = _TreeApp()
        async with app.run_test():
            outside = app.query_one("#outside", Static)
            with self.assertRaises(NoActiveScopeError):
                scope_for(outside)


@unittest.skipIf(TileBoardApp is None, "textual is not installed")
class TileBoardAppTests(unittest.IsolatedAsyncioTestCase):
    """Exercise the demo app end to end."""

    def _build_app(self, tiles: int = 3) -> TileBoardApp:
        assert TileBoardApp is not None
        config = deepcopy(DEFAULT_CONFIG)
        config["demo"]["tiles"] = tiles
        return TileBoardApp(config)

    async def test_tiles_open_child_scopes_under_board(self) -> None:
        app = self._build_app()
        async with app.run_test():
            board = app.query_one(Board)
            tiles = list(app.query(Tile))
            self.assertEqual(len(tiles), 3)
            for tile in tiles:
                self.assertEqual(tile.registry.name, "Tile")
                self.assertIs(tile.parent_registry, board.registry)
            self.assertEqual(len({id(tile.registry) for tile in tiles}), 3)

    async def test_select_reaches_feature_board_and_siblings(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            tile_b = app.query_one("#tile_b", Tile)
            tile_b.select()
            await pilot.pause()

            self.assertEqual(app.click_counter.counts["B"], 1)
            board = app.query_one(Board)
            self.assertEqual(board.selected, "B")
            self.assertTrue(tile_b.has_class("selected"))
            self.assertFalse(app.query_one("#tile_a", Tile).has_class("selected"))

            app.query_one("#tile_a", Tile).select()
            await pilot.pause()
            self.assertFalse(tile_b.has_class("selected"))
            self.assertEqual(app.click_counter.counts, {"A": 1, "B": 1})

    async def test_click_selects_tile(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await pilot.click("#tile_c")
            await pilot.pause()
            self.assertEqual(app.query_one(Board).selected, "C")
            self.assertEqual(app.click_counter.counts["C"], 1)

    async def test_dispatch_config_reaches_board_registry(self) -> None:
        assert TileBoardApp is not None
        config = deepcopy(DEFAULT_CONFIG)
        config["dispatch"]["default_retention"] = "strong"
        app = TileBoardApp(config)
        async with app.run_test():
            board = app.query_one(Board)
            calls: list[str] = []
            board.registry.subscribe(
                "ping", lambda envelope: calls.append(envelope.value)
            )
            gc.collect()
            board.registry.publish(EventEnvelope("ping", "kept"))
            self.assertEqual(calls, ["kept"])
            tile = app.query_one("#tile_a", Tile)
            tile.registry.subscribe(
                "ping", lambda envelope: calls.append(envelope.value)
            )
            gc.collect()
            tile.registry.publish(EventEnvelope("ping", "tile"))
            self.assertEqual(calls, ["kept", "tile"])

    async def test_feature_attached_once_per_tile(self) -> None:
        app = self._build_app(tiles=4)
        async with app.run_test():
            for tile in app.query(Tile):
                self.assertEqual(tile.registry.subscriber_count("tileSelected"), 1)


if __name__ == "__main__":
    unittest.main()
