"""
Notifier boundary between the monitoring core and its consumer.

The monitor calls a Notifier for every accepted detection:

    on_app_detected(app)      -> tell the consuming layer
    begin_intervention(app)   -> ask for the blocking overlay

and forwards overlay closure with on_overlay_closed(). Concrete
notifiers decide how these reach the UI; QueuedNotifier moves them
onto a separate "main" thread so the polling thread never waits.
"""

import queue
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

import config
from core.models import AppIdentifier

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Sink for detection events and intervention commands."""

    @abstractmethod
    def on_app_detected(self, app: AppIdentifier) -> None:
        """A blocked app was detected in the foreground."""

    @abstractmethod
    def begin_intervention(self, app: AppIdentifier) -> None:
        """Present the blocking overlay for ``app``."""

    @abstractmethod
    def on_overlay_closed(self) -> None:
        """The user dismissed the overlay."""


class CallbackNotifier(Notifier):
    """Adapts plain callables to the Notifier interface. Missing callbacks are skipped."""

    def __init__(
        self,
        on_app_detected: Optional[Callable[[AppIdentifier], None]] = None,
        on_intervention: Optional[Callable[[AppIdentifier], None]] = None,
        on_overlay_closed: Optional[Callable[[], None]] = None,
    ) -> None:
        self._on_app_detected = on_app_detected
        self._on_intervention = on_intervention
        self._on_overlay_closed = on_overlay_closed

    def on_app_detected(self, app: AppIdentifier) -> None:
        if self._on_app_detected:
            self._on_app_detected(app)

    def begin_intervention(self, app: AppIdentifier) -> None:
        if self._on_intervention:
            self._on_intervention(app)

    def on_overlay_closed(self) -> None:
        if self._on_overlay_closed:
            self._on_overlay_closed()


class QueuedNotifier(Notifier):
    """
    Delivers notifications to a target Notifier on a dedicated thread.

    Calls return immediately; deliveries run in FIFO order on one worker
    thread, so "app detected" always reaches the target before the
    matching "begin intervention". Exceptions raised by the target are
    logged and do not stop the worker.
    """

    _SHUTDOWN = object()

    def __init__(self, target: Notifier, name: str = "NotifierDispatch") -> None:
        self._target = target
        self._queue: "queue.Queue" = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def on_app_detected(self, app: AppIdentifier) -> None:
        self._submit("on_app_detected", app)

    def begin_intervention(self, app: AppIdentifier) -> None:
        self._submit("begin_intervention", app)

    def on_overlay_closed(self) -> None:
        self._submit("on_overlay_closed")

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until everything submitted so far has been delivered.

        Returns:
            True if the queue drained within the timeout.
        """
        drained = threading.Event()
        with self._lock:
            if self._closed:
                return not self._thread.is_alive()
            self._queue.put((drained.set, ()))
        return drained.wait(timeout)

    def close(self, timeout: float = config.THREAD_JOIN_TIMEOUT_SECONDS) -> None:
        """Deliver what is pending, then stop the worker thread. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(self._SHUTDOWN)
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Notifier dispatch thread did not stop within timeout")

    def _submit(self, method: str, *args) -> None:
        with self._lock:
            if self._closed:
                logger.debug(f"Notifier closed, dropping {method}")
                return
            self._queue.put((getattr(self._target, method), args))

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is self._SHUTDOWN:
                break
            func, args = item
            try:
                func(*args)
            except Exception as e:
                logger.error(f"Notifier delivery failed ({getattr(func, '__name__', func)}): {e}")
