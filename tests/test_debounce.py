"""Tests for core/debounce.py."""

import sys
import unittest
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.debounce import DebounceTracker


class TestDebounceTracker(unittest.TestCase):
    """Accept/suppress decisions of the debounce tracker."""

    def setUp(self):
        self.tracker = DebounceTracker()

    def test_first_detection_accepted(self):
        self.assertTrue(self.tracker.should_accept("X", 0, 2000))
        self.assertEqual(self.tracker.last_accepted("X"), 0)

    def test_within_window_suppressed(self):
        """0ms accepted, 1000ms suppressed, 2500ms accepted again."""
        self.assertTrue(self.tracker.should_accept("X", 0, 2000))
        self.assertFalse(self.tracker.should_accept("X", 1000, 2000))
        self.assertTrue(self.tracker.should_accept("X", 2500, 2000))
        self.assertEqual(self.tracker.last_accepted("X"), 2500)

    def test_exact_window_boundary_suppressed(self):
        """Acceptance needs strictly more than the window to have elapsed."""
        self.tracker.should_accept("X", 1000, 2000)
        self.assertFalse(self.tracker.should_accept("X", 3000, 2000))
        self.assertTrue(self.tracker.should_accept("X", 3001, 2000))

    def test_suppressed_detection_does_not_extend_window(self):
        """Repeated re-entries inside the window don't push it forward."""
        self.tracker.should_accept("X", 0, 2000)
        for t in (500, 1000, 1500, 2000):
            self.assertFalse(self.tracker.should_accept("X", t, 2000))
        self.assertEqual(self.tracker.last_accepted("X"), 0)
        self.assertTrue(self.tracker.should_accept("X", 2001, 2000))

    def test_apps_tracked_independently(self):
        """Any volume of detections for B leaves A's state alone."""
        self.assertTrue(self.tracker.should_accept("A", 0, 2000))
        for t in range(0, 10000, 100):
            self.tracker.should_accept("B", t, 2000)
        self.assertEqual(self.tracker.last_accepted("A"), 0)
        self.assertFalse(self.tracker.should_accept("A", 1500, 2000))
        self.assertTrue(self.tracker.should_accept("A", 2100, 2000))

    def test_matches_reference_model(self):
        """Each result equals t - last_accepted > window over a mixed sequence."""
        window = 300
        times = [0, 100, 299, 300, 301, 302, 650, 700, 950, 951, 2000]
        last = None
        for t in times:
            expected = last is None or t - last > window
            self.assertEqual(self.tracker.should_accept("X", t, window), expected, f"t={t}")
            if expected:
                last = t

    def test_unknown_app_has_no_record(self):
        self.assertIsNone(self.tracker.last_accepted("nope"))
        self.assertEqual(len(self.tracker), 0)
        self.tracker.should_accept("a", 0, 10)
        self.tracker.should_accept("b", 0, 10)
        self.assertEqual(len(self.tracker), 2)


if __name__ == "__main__":
    unittest.main()
