"""
Tokenizer tests (raw argv to positionals and option values).

Scope
- Long and short switches, with inline or spaced values.
- Negation, bundles, nesting, repetition and the "--" separator.
- Flags that never consume the following token.

Conventions
- Test method names follow CamelCase per project convention.
- Values stay strings; typing belongs to the coercion tests.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from bosun.tokens import tokenize


class TestTokenize(TestCase):

    def testPositionalsOnly(self):
        self.assertEqual(tokenize(["echo", "hello", "world"]), {"_": ["echo", "hello", "world"]})

    def testStringIsSplitLikeAShell(self):
        self.assertEqual(tokenize('echo "hello world"'), {"_": ["echo", "hello world"]})

    def testLongOptionForms(self):
        self.assertEqual(tokenize(["--name=bob", "--count", "3", "--loud"]), {
            "_": [],
            "name": "bob",
            "count": "3",
            "loud": True,
        })

    def testSwitchIsNotTakenAsValue(self):
        self.assertEqual(tokenize(["--loud", "--name", "bob"]), {"_": [], "loud": True, "name": "bob"})

    def testNegation(self):
        self.assertEqual(tokenize(["--no-color"]), {"_": [], "color": False})

    def testShortBundle(self):
        self.assertEqual(tokenize(["-abc", "5"]), {"_": [], "a": True, "b": True, "c": "5"})
        self.assertEqual(tokenize(["-c=5"]), {"_": [], "c": "5"})

    def testFlagsDoNotConsume(self):
        record = tokenize(["-v", "greet", "--force", "now"], flags={"v", "force"})
        self.assertEqual(record, {"_": ["greet", "now"], "v": True, "force": True})

    def testNestedAndRepeated(self):
        record = tokenize(["--db.host=local", "--tag", "a", "--tag", "b", "--tag=c"])
        self.assertEqual(record["db"], {"host": "local"})
        self.assertEqual(record["tag"], ["a", "b", "c"])

    def testSeparator(self):
        self.assertEqual(tokenize(["run", "--", "--not-an-option", "x"]), {
            "_": ["run"],
            "--": ["--not-an-option", "x"],
        })

    def testNegativeNumbersArePositional(self):
        self.assertEqual(tokenize(["-5", "-1.5", "-"]), {"_": ["-5", "-1.5", "-"]})

    def testValueMayBeNegativeNumber(self):
        self.assertEqual(tokenize(["--offset", "-3"]), {"_": [], "offset": "-3"})

    def testEmptyNamesArePositional(self):
        self.assertEqual(tokenize(["--=x", "-=y"]), {"_": ["--=x", "-=y"]})

    def testRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            tokenize(["ok", 1])
        with self.assertRaises(TypeError):
            tokenize(5)


if __name__ == "__main__":
    unittest.main()
