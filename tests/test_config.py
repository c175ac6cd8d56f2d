"""Tests for config.py environment parsing."""

import os
import importlib
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config


class TestConfigParsing(unittest.TestCase):

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(config._get_int("DEBOUNCE_WINDOW_MS", 2000), 2000)
            self.assertEqual(config._get_float("POLL_INTERVAL_SECONDS", 1.0), 1.0)

    def test_override(self):
        with patch.dict(os.environ, {"DEBOUNCE_WINDOW_MS": "500", "ERROR_BACKOFF_SECONDS": "2.5"}):
            self.assertEqual(config._get_int("DEBOUNCE_WINDOW_MS", 2000), 500)
            self.assertEqual(config._get_float("ERROR_BACKOFF_SECONDS", 5.0), 2.5)

    def test_invalid_values_fall_back(self):
        with patch.dict(os.environ, {"POLL_INTERVAL_SECONDS": "fast", "ERROR_BACKOFF_SECONDS": "-1"}):
            with self.assertLogs("config", level="WARNING"):
                self.assertEqual(config._get_float("POLL_INTERVAL_SECONDS", 1.0), 1.0)
            with self.assertLogs("config", level="WARNING"):
                self.assertEqual(config._get_float("ERROR_BACKOFF_SECONDS", 5.0), 5.0)

    def test_reference_timings(self):
        """Module defaults without .env overrides."""
        self.assertGreater(config.DEBOUNCE_WINDOW_MS, 0)
        self.assertGreater(config.ERROR_BACKOFF_SECONDS, 0)
        self.assertEqual(config.METHOD_APP_DETECTED, "onAppDetected")
        self.assertEqual(config.METHOD_OVERLAY_CLOSED, "onOverlayClosed")


class TestEnvFileLoading(unittest.TestCase):

    def tearDown(self):
        importlib.reload(config)

    def test_env_file_next_to_module_always_loaded(self):
        """Loaded from the project root, also inside a frozen executable."""
        with patch("dotenv.load_dotenv") as mock_load, \
                patch.object(sys, "frozen", True, create=True):
            importlib.reload(config)
        mock_load.assert_called_once_with(Path(config.__file__).parent / ".env")


if __name__ == "__main__":
    unittest.main()
