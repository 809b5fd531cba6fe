"""
Demo entry point tests (exit status and output of main.py).

Scope
- Validate that resolved outcomes, including an unknown command, exit with 0.
- Validate that handlers write to the sink they are given.

Conventions
- Test method names follow CamelCase per project convention.
- The demo runs in a child interpreter so its exit status can be observed.
"""

from __future__ import annotations

import subprocess
import sys
import unittest
from pathlib import Path
from unittest import TestCase

MAIN = Path(__file__).resolve().parent.parent / "main.py"


def _run(*argv):
    return subprocess.run(
        [sys.executable, str(MAIN), *argv],
        capture_output=True,
        text=True,
        timeout=60,
    )


class TestDemo(TestCase):

    def testUnknownCommandExitsWithZero(self):
        result = _run("nope")
        self.assertEqual(result.returncode, 0, result.stderr)
        self.assertIn("Command not found: nope", result.stdout)
        self.assertIn("Echoes the input", result.stdout)

    def testEcho(self):
        result = _run("echo", "hello", "world")
        self.assertEqual(result.returncode, 0, result.stderr)
        self.assertEqual(result.stdout, "hello world\n")

    def testTreeWritesToTheSink(self):
        result = _run("tree")
        self.assertEqual(result.returncode, 0, result.stderr)
        self.assertIn("echo", result.stdout)


if __name__ == "__main__":
    unittest.main()
