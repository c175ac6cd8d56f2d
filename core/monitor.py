"""
MonitorLoop - foreground app monitoring for FocusLock.

Owns the idle/monitoring state machine, the block-list and the debounce
state. While monitoring, a background thread polls the event source
once per POLL_INTERVAL_SECONDS, matches foreground activations against
the block-list and, for every debounce-accepted match, tells the
notifier (app detected, then begin intervention).

A failed query never ends monitoring: the loop logs it, waits
ERROR_BACKOFF_SECONDS and retries the same time range. Only stop()
ends a session.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, Optional

import config
from core.debounce import DebounceTracker
from core.errors import PermissionDenied
from core.models import AppIdentifier, EventKind, UsageEvent, now_ms
from core.notifier import Notifier
from core.permissions import PermissionGate
from screen.event_source import EventSource

logger = logging.getLogger(__name__)


@dataclass
class MonitoringSession:
    """State of one start() .. stop() run. Mutated only under MonitorLoop._lock."""
    session_id: int
    block_list: FrozenSet[AppIdentifier]
    poll_cursor_ms: int
    notifier: Notifier
    stop_event: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None
    consecutive_failures: int = 0


class MonitorLoop:
    """
    Permission-gated monitoring of foreground apps against a block-list.

    start() and stop() may be called from any thread. Only one session
    is active at a time; starting again replaces the running session.
    """

    def __init__(
        self,
        event_source: EventSource,
        permission_gate: PermissionGate,
        notifier: Optional[Notifier] = None,
        debounce_window_ms: int = config.DEBOUNCE_WINDOW_MS,
        poll_interval: float = config.POLL_INTERVAL_SECONDS,
        error_backoff: float = config.ERROR_BACKOFF_SECONDS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """
        Args:
            event_source: Where foreground events are queried from.
            permission_gate: Checked for usage access on every start().
            notifier: Default notifier, used when start() is given none.
            debounce_window_ms: Minimum gap between accepted detections per app.
            poll_interval: Seconds between polls.
            error_backoff: Seconds to wait after a failed query.
            clock: Returns the current instant in milliseconds.
        """
        self._event_source = event_source
        self._permission_gate = permission_gate
        self._notifier = notifier
        self.debounce_window_ms = debounce_window_ms
        self.poll_interval = poll_interval
        self.error_backoff = error_backoff
        self._clock = clock

        self.state: str = config.STATE_IDLE
        self._block_list: FrozenSet[AppIdentifier] = frozenset()
        self._session: Optional[MonitoringSession] = None
        self._session_counter = 0
        self._debounce = DebounceTracker()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.state == config.STATE_MONITORING

    @property
    def blocked_apps(self) -> FrozenSet[AppIdentifier]:
        """Block-list of the current (or most recent) session."""
        with self._lock:
            return self._block_list

    def start(self, blocked_apps: Iterable[AppIdentifier], notifier: Optional[Notifier] = None) -> None:
        """
        Start monitoring, replacing any running session.

        Args:
            blocked_apps: Apps that trigger an intervention. May be empty.
            notifier: Target for detections; defaults to the last one used.

        Raises:
            PermissionDenied: usage access is not granted. Nothing changes.
            ValueError: blocked_apps is None, or no notifier is available.
        """
        if blocked_apps is None:
            raise ValueError("blocked_apps must be a list, not None")

        if not self._permission_gate.has_usage_permission():
            logger.warning("Cannot start monitoring: usage access not granted")
            raise PermissionDenied("Usage stats permission not granted")

        block_list = frozenset(blocked_apps)

        with self._lock:
            target = notifier if notifier is not None else self._notifier
            if target is None:
                raise ValueError("No notifier to deliver detections to")

            previous = self._session
            if previous is not None:
                previous.stop_event.set()
                logger.info(f"Replacing monitoring session {previous.session_id}")

            self._session_counter += 1
            session = MonitoringSession(
                session_id=self._session_counter,
                block_list=block_list,
                poll_cursor_ms=self._clock(),
                notifier=target,
            )
            self._notifier = target
            self._block_list = block_list
            self._session = session
            self.state = config.STATE_MONITORING

            session.thread = threading.Thread(
                target=self._run,
                args=(session,),
                name=f"MonitorLoop-{session.session_id}",
                daemon=True,
            )
            session.thread.start()

        if previous is not None:
            self._join_session(previous)

        logger.info(f"App monitoring started (session {session.session_id}, {len(block_list)} blocked apps)")

    def stop(self) -> None:
        """Stop monitoring. Safe to call from any thread, and when already idle."""
        with self._lock:
            session = self._session
            if session is None:
                logger.debug("stop() called while idle")
                return
            session.stop_event.set()
            self._session = None
            self.state = config.STATE_IDLE

        self._join_session(session)
        logger.info(f"App monitoring stopped (session {session.session_id})")

    def overlay_closed(self) -> None:
        """Forward the overlay's close signal to the notifier, whatever the state."""
        with self._lock:
            notifier = self._notifier
        if notifier is None:
            logger.debug("Overlay closed before any notifier was set, ignoring")
            return
        try:
            notifier.on_overlay_closed()
        except Exception as e:
            logger.error(f"on_overlay_closed delivery failed: {e}")

    def get_status(self) -> Dict:
        """
        Get current monitor status.

        Returns:
            dict with keys: state, is_running, blocked_apps, poll_cursor_ms,
            consecutive_failures, tracked_apps.
        """
        with self._lock:
            session = self._session
            return {
                "state": self.state,
                "is_running": self.is_running,
                "blocked_apps": sorted(self._block_list),
                "poll_cursor_ms": session.poll_cursor_ms if session else None,
                "consecutive_failures": session.consecutive_failures if session else 0,
                "tracked_apps": len(self._debounce),
            }

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _run(self, session: MonitoringSession) -> None:
        """Body of the polling thread for one session."""
        logger.debug(f"Monitoring loop {session.session_id} running")
        interval = self.poll_interval
        while not session.stop_event.wait(interval):
            ok = self._poll_once(session)
            interval = self.poll_interval if ok else self.error_backoff
        logger.debug(f"Monitoring loop {session.session_id} exited")

    def _poll_once(self, session: MonitoringSession) -> bool:
        """
        Run one poll tick for ``session``.

        Returns:
            False if the event source query failed, True otherwise.
        """
        end_ms = self._clock()
        try:
            events = self._event_source.query_events(session.poll_cursor_ms, end_ms)
        except Exception as e:
            with self._lock:
                session.consecutive_failures += 1
                failures = session.consecutive_failures
            level = logging.ERROR if failures >= config.FAILURE_WARN_THRESHOLD else logging.WARNING
            logger.log(
                level,
                f"Error monitoring app usage (failure {failures}), retrying in {self.error_backoff}s: {e}",
            )
            return False

        with self._lock:
            if self._session is not session or session.stop_event.is_set():
                return True

            if session.consecutive_failures:
                logger.info(f"Event source recovered after {session.consecutive_failures} failures")
                session.consecutive_failures = 0

            for event in events:
                self._handle_event(session, event)

            if end_ms > session.poll_cursor_ms:
                session.poll_cursor_ms = end_ms
        return True

    def _handle_event(self, session: MonitoringSession, event: UsageEvent) -> None:
        """Match one event against the block-list and debounce it. Called under the lock."""
        if event.kind != EventKind.FOREGROUND_ACTIVATION:
            return

        logger.debug(f"Foreground app: {event.app}")
        if event.app not in session.block_list:
            return

        if self._debounce.should_accept(event.app, event.timestamp_ms, self.debounce_window_ms):
            logger.info(f"Blocked app detected: {event.app}")
            self._dispatch(session.notifier, event.app)
        else:
            logger.debug(f"Duplicate detection for {event.app} suppressed")

    # ------------------------------------------------------------------
    # Callback helpers
    # ------------------------------------------------------------------

    def _dispatch(self, notifier: Notifier, app: AppIdentifier) -> None:
        """Notify detection, then request the intervention. Both best-effort."""
        try:
            notifier.on_app_detected(app)
        except Exception as e:
            logger.error(f"on_app_detected delivery failed for {app}: {e}")
        try:
            notifier.begin_intervention(app)
        except Exception as e:
            logger.error(f"begin_intervention delivery failed for {app}: {e}")

    # ------------------------------------------------------------------
    # Thread management
    # ------------------------------------------------------------------

    def _join_session(self, session: MonitoringSession) -> None:
        """Wait for a session's polling thread to finish."""
        thread = session.thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=config.THREAD_JOIN_TIMEOUT_SECONDS)
        if thread.is_alive():
            logger.warning(f"Monitoring thread {thread.name} did not stop within timeout")
