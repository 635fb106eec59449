"""Tests for top-level package exports."""

from __future__ import annotations

import unittest

import scopelink


class PackageExportTests(unittest.TestCase):
    """Ensure __getattr__ and exported symbols behave as expected."""

    def test_core_exports(self) -> None:
        self.assertTrue(callable(scopelink.declare_event))
        self.assertTrue(callable(scopelink.resolve_scope))
        self.assertIsNotNone(scopelink.Registry)
        self.assertIsNotNone(scopelink.FeatureRegistry)
        self.assertIsNotNone(scopelink.NoActiveScopeError)
        self.assertIsNotNone(scopelink.DuplicateEventNameError)

    def test_lazy_exports_resolve_known_symbols(self) -> None:
        self.assertTrue(callable(scopelink.load_config))
        self.assertTrue(callable(scopelink.scope_for))
        self.assertIsNotNone(scopelink.ScopedWidget)
        self.assertIsNotNone(scopelink.WidgetContextStore)

    def test_all_names_resolve(self) -> None:
        for name in scopelink.__all__:
            self.assertIsNotNone(getattr(scopelink, name), name)

    def test_unknown_symbol_raises_attribute_error(self) -> None:
        with self.assertRaises(AttributeError):
            getattr(scopelink, "THIS_DOES_NOT_EXIST")


if __name__ == "__main__":
    unittest.main()
