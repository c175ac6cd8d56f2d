"""Test doubles shared by the monitor and plugin tests."""

import threading

from core.errors import EventSourceQueryFailure
from core.models import EventKind, UsageEvent
from screen.event_source import EventSource


class FakeEventSource(EventSource):
    """In-memory event history with scriptable failures."""

    def __init__(self):
        self.events = []
        self.queries = []
        self.fail_next = 0
        self._lock = threading.Lock()

    def add(self, app, timestamp_ms, kind=EventKind.FOREGROUND_ACTIVATION):
        with self._lock:
            self.events.append(UsageEvent(app, kind, timestamp_ms))

    def query_events(self, start_ms, end_ms):
        with self._lock:
            self.queries.append((start_ms, end_ms))
            if self.fail_next > 0:
                self.fail_next -= 1
                raise EventSourceQueryFailure("usage stats unavailable")
            return [e for e in self.events if start_ms <= e.timestamp_ms < end_ms]


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now
