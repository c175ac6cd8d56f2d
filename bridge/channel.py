"""
In-process method channel between FocusLock and its consumer.

Inbound calls (consumer -> FocusLock) go to a single method-call
handler and return a result dict. Outbound events (FocusLock ->
consumer) are delivered to every registered listener as
``(method, arguments)``.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import config
from core.models import AppIdentifier
from core.notifier import Notifier

logger = logging.getLogger(__name__)

MethodCallHandler = Callable[[str, Optional[Dict[str, Any]]], Dict[str, Any]]
ChannelListener = Callable[[str, Any], None]
OverlayLauncher = Callable[[AppIdentifier], None]


def not_implemented(method: str) -> Dict[str, Any]:
    """Result returned for a method nobody handles."""
    return {
        "success": False,
        "result": None,
        "error": f"Method not implemented: {method}",
        "error_type": "NOT_IMPLEMENTED",
    }


class MethodChannel:
    """Named two-way channel; one inbound handler, many outbound listeners."""

    def __init__(self, name: str = config.CHANNEL_NAME) -> None:
        self.name = name
        self._handler: Optional[MethodCallHandler] = None
        self._listeners: List[ChannelListener] = []
        self._lock = threading.Lock()

    def set_method_call_handler(self, handler: Optional[MethodCallHandler]) -> None:
        """Install (or with None, remove) the handler for inbound calls."""
        with self._lock:
            self._handler = handler

    def call(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send an inbound method call and return the handler's result."""
        with self._lock:
            handler = self._handler
        if handler is None:
            logger.warning(f"No handler on channel {self.name} for {method}")
            return not_implemented(method)
        return handler(method, arguments)

    def add_listener(self, listener: ChannelListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChannelListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def invoke_method(self, method: str, arguments: Any = None) -> None:
        """Deliver an outbound event to all listeners. Listener errors are logged."""
        with self._lock:
            listeners = list(self._listeners)
        if not listeners:
            logger.debug(f"{method} on channel {self.name} has no listeners")
        for listener in listeners:
            try:
                listener(method, arguments)
            except Exception as e:
                logger.error(f"Channel listener failed on {method}: {e}")


class ChannelNotifier(Notifier):
    """
    Notifier that reports to a MethodChannel and hands interventions
    to an overlay launcher.
    """

    def __init__(self, channel: MethodChannel, overlay_launcher: Optional[OverlayLauncher] = None) -> None:
        self.channel = channel
        self._overlay_launcher = overlay_launcher

    def on_app_detected(self, app: AppIdentifier) -> None:
        self.channel.invoke_method(config.METHOD_APP_DETECTED, app)

    def begin_intervention(self, app: AppIdentifier) -> None:
        if self._overlay_launcher is None:
            logger.info(f"No overlay configured, intervention for {app} not shown")
            return
        self._overlay_launcher(app)

    def on_overlay_closed(self) -> None:
        self.channel.invoke_method(config.METHOD_OVERLAY_CLOSED, None)
