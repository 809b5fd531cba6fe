"""
Utilities module tests (sentinel, casing, key transforms, mirrors).

Scope
- Validate the Unset sentinel contract (singleton, falsy, sealed, copy-stable).
- Validate coalesce/rename helpers.
- Validate snake/kebab casing used between the command line and schemas.
- Validate recursive key transforms around the reserved keys.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import copy
import unittest
from unittest import TestCase

from bosun.utils import (
    Unset,
    UnsetType,
    coalesce,
    rename,
    mirror,
    snakecase,
    kebabcase,
    transform_keys,
)


class TestUnset(TestCase):

    def testSingletonAndFalsy(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testCopiesKeepIdentity(self):
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy([Unset])[0], Unset)

    def testCannotSubclass(self):
        with self.assertRaises(TypeError):
            type("Other", (UnsetType,), {})

    def testCoalesceOnlyReplacesUnset(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertIsNone(coalesce(Unset))


class TestHelpers(TestCase):

    def testRenameBothForms(self):
        def function():
            pass

        self.assertEqual(rename(function, "renamed").__name__, "renamed")

        @rename("decorated")
        def other():
            pass

        self.assertEqual(other.__qualname__, "decorated")

    def testRenameRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            rename(1, "name")
        with self.assertRaises(TypeError):
            rename()

    def testMirrorCopiesContainers(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = {"a": [1, 2]}

        holder = Holder()
        holder.items["a"].append(3)
        self.assertEqual(holder.items, {"a": [1, 2]})


class TestCasing(TestCase):

    def testSnakecase(self):
        self.assertEqual(snakecase("dry-run"), "dry_run")
        self.assertEqual(snakecase("dryRun"), "dry_run")
        self.assertEqual(snakecase("DryRun"), "dry_run")
        self.assertEqual(snakecase("already_snake"), "already_snake")

    def testShortKeysKeepTheirCase(self):
        self.assertEqual(snakecase("V"), "V")
        self.assertEqual(kebabcase("v"), "v")

    def testKebabcase(self):
        self.assertEqual(kebabcase("dry_run"), "dry-run")
        self.assertEqual(kebabcase("dryRun"), "dry-run")

    def testTransformKeysSkipsReserved(self):
        record = {"_": ["a"], "--": ["b"], "dry-run": True, "db-conf": {"max-size": "1"}}
        self.assertEqual(transform_keys(record, snakecase), {
            "_": ["a"],
            "--": ["b"],
            "dry_run": True,
            "db_conf": {"max_size": "1"},
        })


if __name__ == "__main__":
    unittest.main()
