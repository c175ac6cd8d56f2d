"""Tests for screen/event_source.py and screen/window_detector.py."""

import sys
import subprocess
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import EventSourceQueryFailure
from core.models import EventKind, UsageEvent
from screen.event_source import ForegroundEventSource
from screen.window_detector import ForegroundDetector
from tests.fakes import FakeClock


class TestForegroundEventSource(unittest.TestCase):
    """Sampling driven by hand (autostart disabled)."""

    def setUp(self):
        self.detector = MagicMock(spec=ForegroundDetector)
        self.clock = FakeClock(1000)
        self.source = ForegroundEventSource(
            detector=self.detector,
            buffer_size=8,
            clock=self.clock,
            autostart=False,
        )

    def tearDown(self):
        self.source.close()

    def sample(self, app, at):
        self.detector.get_foreground_app.side_effect = None
        self.detector.get_foreground_app.return_value = app
        self.clock.now = at
        self.source._sample_once()

    def test_baseline_produces_no_event(self):
        self.sample("com.apple.finder", 1000)
        self.assertEqual(self.source.query_events(0, 10_000), [])

    def test_switch_records_background_then_activation(self):
        self.sample("com.apple.finder", 1000)
        self.sample("com.apple.finder", 1250)
        self.sample("com.game", 1500)
        self.assertEqual(
            self.source.query_events(0, 10_000),
            [
                UsageEvent("com.apple.finder", EventKind.BACKGROUND, 1500),
                UsageEvent("com.game", EventKind.FOREGROUND_ACTIVATION, 1500),
            ],
        )

    def test_reentry_records_new_activation(self):
        self.sample("a", 1000)
        self.sample("b", 1100)
        self.sample("a", 1200)
        activations = [
            e for e in self.source.query_events(0, 10_000)
            if e.kind == EventKind.FOREGROUND_ACTIVATION
        ]
        self.assertEqual([(e.app, e.timestamp_ms) for e in activations], [("b", 1100), ("a", 1200)])

    def test_nothing_focused(self):
        self.sample("a", 1000)
        self.sample(None, 1100)
        self.sample("a", 1200)
        events = self.source.query_events(0, 10_000)
        self.assertEqual(
            [(e.app, e.kind) for e in events],
            [("a", EventKind.BACKGROUND), ("a", EventKind.FOREGROUND_ACTIVATION)],
        )

    def test_query_range_half_open(self):
        self.sample("a", 1000)
        self.sample("b", 2000)
        self.sample("c", 3000)
        self.assertEqual([e.app for e in self.source.query_events(2000, 3000)], ["a", "b"])
        self.assertEqual([e.app for e in self.source.query_events(3000, 3001)], ["b", "c"])

    def test_sampling_error_raised_once(self):
        self.sample("a", 1000)
        self.detector.get_foreground_app.side_effect = EventSourceQueryFailure("osascript failed")
        self.source._sample_once()

        with self.assertRaises(EventSourceQueryFailure):
            self.source.query_events(0, 10_000)
        self.assertEqual(self.source.query_events(0, 10_000), [])

    def test_buffer_bounded(self):
        self.sample("x0", 0)
        for i in range(1, 20):
            self.sample(f"x{i}", i)
        self.assertEqual(len(self.source.query_events(0, 100)), 8)

    def test_autostart_runs_sampler(self):
        self.detector.get_foreground_app.return_value = "a"
        source = ForegroundEventSource(detector=self.detector, sample_interval=0.01)
        try:
            source.query_events(0, 1)
            self.assertIsNotNone(source._thread)
            self.assertTrue(source._thread.is_alive())
        finally:
            source.close()
        self.assertIsNone(source._thread)


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestForegroundDetector(unittest.TestCase):

    @patch("screen.window_detector.subprocess.run")
    def test_macos_bundle_identifier(self, mock_run):
        mock_run.return_value = completed(stdout="com.apple.Safari\n")
        self.assertEqual(ForegroundDetector(platform="darwin").get_foreground_app(), "com.apple.Safari")

    @patch("screen.window_detector.subprocess.run")
    def test_macos_missing_value(self, mock_run):
        mock_run.return_value = completed(stdout="missing value\n")
        self.assertIsNone(ForegroundDetector(platform="darwin").get_foreground_app())

    @patch("screen.window_detector.subprocess.run")
    def test_macos_script_failure(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="execution error: not allowed assistive access")
        with self.assertRaises(EventSourceQueryFailure):
            ForegroundDetector(platform="darwin").get_foreground_app()

    @patch("screen.window_detector.subprocess.run")
    def test_timeout_becomes_query_failure(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="osascript", timeout=2)
        with self.assertRaises(EventSourceQueryFailure):
            ForegroundDetector(platform="darwin").get_foreground_app()

    @patch("screen.window_detector.subprocess.run")
    def test_linux_wm_class(self, mock_run):
        mock_run.side_effect = [
            completed(stdout="_NET_ACTIVE_WINDOW(WINDOW): window id # 0x3c00007\n"),
            completed(stdout='WM_CLASS(STRING) = "Navigator", "Firefox"\n'),
        ]
        self.assertEqual(ForegroundDetector(platform="linux").get_foreground_app(), "firefox")
        self.assertEqual(mock_run.call_args_list[1].args[0], ["xprop", "-id", "0x3c00007", "WM_CLASS"])

    @patch("screen.window_detector.subprocess.run")
    def test_linux_no_active_window(self, mock_run):
        mock_run.return_value = completed(stdout="_NET_ACTIVE_WINDOW(WINDOW): window id # 0x0\n")
        self.assertIsNone(ForegroundDetector(platform="linux").get_foreground_app())

    @patch("screen.window_detector.subprocess.run")
    def test_linux_missing_xprop(self, mock_run):
        mock_run.side_effect = FileNotFoundError("xprop")
        with self.assertRaises(EventSourceQueryFailure):
            ForegroundDetector(platform="linux").get_foreground_app()

    def test_unsupported_platform(self):
        with self.assertRaises(EventSourceQueryFailure):
            ForegroundDetector(platform="sunos5").get_foreground_app()


if __name__ == "__main__":
    unittest.main()
