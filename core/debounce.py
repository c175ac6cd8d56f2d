"""Per-app debounce bookkeeping for detections."""

from typing import Dict, Optional

from core.models import AppIdentifier


class DebounceTracker:
    """
    Remembers when each app was last accepted.

    A detection is accepted when the app has never been accepted before,
    or when strictly more than ``window_ms`` has elapsed since its last
    accepted detection. Accepting records the new instant; suppressed
    detections leave the state untouched, so a burst of re-entries does
    not extend the window.

    Not thread-safe on its own; MonitorLoop calls it under its lock.
    """

    def __init__(self) -> None:
        self._last_accepted: Dict[AppIdentifier, int] = {}

    def should_accept(self, app: AppIdentifier, now_ms: int, window_ms: int) -> bool:
        """
        Decide whether a detection of ``app`` at ``now_ms`` is accepted.

        Args:
            app: Identifier of the detected app.
            now_ms: Instant of the detection in milliseconds.
            window_ms: Debounce window in milliseconds.

        Returns:
            True if accepted (state updated), False if suppressed.
        """
        last = self._last_accepted.get(app)
        if last is None or now_ms - last > window_ms:
            self._last_accepted[app] = now_ms
            return True
        return False

    def last_accepted(self, app: AppIdentifier) -> Optional[int]:
        """Instant of the last accepted detection of ``app``, if any."""
        return self._last_accepted.get(app)

    def __len__(self) -> int:
        return len(self._last_accepted)
