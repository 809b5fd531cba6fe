"""
Settings tests (immutability, replacement, inheritance down the tree).

Scope
- Validate that Settings values cannot be mutated and are replaced instead.
- Validate that command nodes resolve settings from their ancestors.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import copy
import io
import unittest
from unittest import TestCase

from bosun import Settings, application


class TestSettings(TestCase):

    def testDefaultsAreOff(self):
        settings = Settings()
        self.assertFalse(settings.show_help_on_error)
        self.assertFalse(settings.show_help_on_not_found)
        self.assertFalse(settings.ignore_unknown_options)
        self.assertFalse(settings.colorful)

    def testImmutable(self):
        settings = Settings()
        with self.assertRaises(AttributeError):
            settings.colorful = True

    def testReplaceBuildsNewValue(self):
        settings = Settings()
        changed = copy.replace(settings, colorful=True)
        self.assertFalse(settings.colorful)
        self.assertTrue(changed.colorful)
        self.assertEqual(changed, Settings(colorful=True))
        self.assertEqual(hash(changed), hash(Settings(colorful=True)))

    def testReplaceRejectsUnknownNames(self):
        with self.assertRaises(TypeError):
            copy.replace(Settings(), verbose=True)

    def testValuesMustBeBooleans(self):
        with self.assertRaises(TypeError):
            Settings(colorful="yes")


class TestInheritance(TestCase):

    def testChildrenSeeAncestorChanges(self):
        app = application(io.StringIO(), name="app")
        remote = app.command("remote")
        add = remote.command("add")

        self.assertFalse(add.settings.show_help_on_error)
        app.show_help_on_error()
        self.assertTrue(add.settings.show_help_on_error)

    def testOverridesStopAtTheNode(self):
        app = application(io.StringIO(), name="app", show_help_on_error=True)
        remote = app.command("remote").show_help_on_error(False)
        add = remote.command("add")
        other = app.command("other")

        self.assertFalse(remote.settings.show_help_on_error)
        self.assertFalse(add.settings.show_help_on_error)
        self.assertTrue(other.settings.show_help_on_error)

    def testSwitchesRejectNonBooleans(self):
        app = application(io.StringIO(), name="app")
        with self.assertRaises(TypeError):
            app.colorful("yes")


if __name__ == "__main__":
    unittest.main()
