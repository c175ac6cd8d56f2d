"""
Foreground event sources for the monitoring loop.

An EventSource answers "which foreground changes happened between these
two instants". ForegroundEventSource builds that history on the desktop
by sampling the foreground app on a background thread and recording
every change as a BACKGROUND event for the old app followed by a
FOREGROUND_ACTIVATION event for the new one.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, List, Optional

import config
from core.errors import EventSourceQueryFailure
from core.models import EventKind, UsageEvent, now_ms
from screen.window_detector import ForegroundDetector

logger = logging.getLogger(__name__)


class EventSource(ABC):
    """Queryable history of foreground usage events."""

    @abstractmethod
    def query_events(self, start_ms: int, end_ms: int) -> List[UsageEvent]:
        """
        Get events with ``start_ms <= timestamp_ms < end_ms``, oldest first.

        Raises:
            EventSourceQueryFailure: if the history cannot be read.
        """


class ForegroundEventSource(EventSource):
    """
    EventSource fed by periodic foreground sampling.

    The sampler thread starts on the first query (or start()) and runs
    until close(); with autostart=False only an explicit start() runs it.
    The app already in front when sampling starts is taken as the
    baseline and produces no event. Sampling errors are held back and
    raised from the next query_events() call.
    """

    def __init__(
        self,
        detector: Optional[ForegroundDetector] = None,
        sample_interval: float = config.SAMPLE_INTERVAL_SECONDS,
        buffer_size: int = config.EVENT_BUFFER_SIZE,
        clock: Callable[[], int] = now_ms,
        autostart: bool = True,
    ) -> None:
        self._detector = detector or ForegroundDetector()
        self._sample_interval = sample_interval
        self._clock = clock
        self._autostart = autostart

        self._events: Deque[UsageEvent] = deque(maxlen=buffer_size)
        self._current_app: Optional[str] = None
        self._has_baseline = False
        self._pending_error: Optional[Exception] = None
        self._lock = threading.Lock()

        self._stop_evt = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the sampler thread if it is not running."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_evt.clear()
            self._thread = threading.Thread(target=self._run, name="ForegroundSampler", daemon=True)
            self._thread.start()
        logger.debug("Foreground sampler started")

    def close(self) -> None:
        """Stop the sampler thread. Safe to call twice."""
        self._stop_evt.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=config.THREAD_JOIN_TIMEOUT_SECONDS)
            if thread.is_alive():
                logger.warning("Foreground sampler did not stop within timeout")
        self._thread = None

    def query_events(self, start_ms: int, end_ms: int) -> List[UsageEvent]:
        if self._autostart:
            self.start()
        with self._lock:
            error = self._pending_error
            self._pending_error = None
            events = [e for e in self._events if start_ms <= e.timestamp_ms < end_ms]
        if error is not None:
            raise EventSourceQueryFailure(str(error)) from error
        return events

    def _run(self) -> None:
        while not self._stop_evt.is_set():
            self._sample_once()
            self._stop_evt.wait(self._sample_interval)

    def _sample_once(self) -> None:
        """Take one foreground sample and record a change, if any."""
        try:
            app = self._detector.get_foreground_app()
        except EventSourceQueryFailure as e:
            logger.debug(f"Foreground sample failed: {e}")
            with self._lock:
                self._pending_error = e
            return

        with self._lock:
            # Stamped under the lock so a concurrent query never misses it
            timestamp = self._clock()
            if not self._has_baseline:
                self._has_baseline = True
                self._current_app = app
                return
            if app == self._current_app:
                return
            if self._current_app is not None:
                self._events.append(UsageEvent(self._current_app, EventKind.BACKGROUND, timestamp))
            if app is not None:
                self._events.append(UsageEvent(app, EventKind.FOREGROUND_ACTIVATION, timestamp))
            self._current_app = app
