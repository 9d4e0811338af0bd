from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from deff.runtime import config


class ConfigBehaviorTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.config_path = Path(self._tmp.name) / "config.json"
        self._patch = mock.patch("deff.runtime.config.CONFIG_PATH", self.config_path)
        self._patch.start()

    def tearDown(self) -> None:
        self._patch.stop()
        self._tmp.cleanup()

    def _write(self, payload: object) -> None:
        self.config_path.write_text(json.dumps(payload), encoding="utf-8")

    def test_missing_or_malformed_config_is_empty(self) -> None:
        self.assertEqual(config.load_config(), {})
        self.config_path.write_text("{not json", encoding="utf-8")
        self.assertEqual(config.load_config(), {})
        self._write(["a", "list"])
        self.assertEqual(config.load_config(), {})
        self.assertIsNone(config.load_theme_mode())
        self.assertEqual(config.load_syntax_dirs(), [])

    def test_valid_values_are_loaded(self) -> None:
        self._write({"theme": " Light ", "context_lines": 5, "syntax_dirs": ["/a", 3, " ", "b"]})
        self.assertEqual(config.load_theme_mode(), "light")
        self.assertEqual(config.load_context_lines(), 5)
        self.assertEqual(config.load_syntax_dirs(), ["/a", "b"])

    def test_invalid_values_are_ignored(self) -> None:
        for value in (True, -1, "3", 2.5, config.MAX_CONTEXT_LINES + 1):
            self._write({"context_lines": value, "theme": "neon"})
            self.assertIsNone(config.load_context_lines(), value)
            self.assertIsNone(config.load_theme_mode())


if __name__ == "__main__":
    unittest.main()
