"""
AppDetectionPlugin - control surface of FocusLock.

Wires the MonitorLoop to the desktop collaborators (permissions, event
source, installed apps) and to a MethodChannel. The consumer drives it
either through the Python methods or through channel method calls:

    hasUsageStatsPermission      -> has_usage_permission()
    requestUsageStatsPermission  -> request_usage_permission()
    hasOverlayPermission         -> has_overlay_permission()
    requestOverlayPermission     -> request_overlay_permission()
    startAppMonitoring           -> start(blockedApps)
    stopAppMonitoring            -> stop()
    getInstalledApps             -> list_launchable_apps()

Channel calls return {"success", "result", "error", "error_type"}.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from core.errors import OverlayPermissionError, PermissionDenied
from core.models import AppIdentifier
from core.monitor import MonitorLoop
from core.notifier import QueuedNotifier
from core.permissions import DesktopPermissionGate, PermissionGate
from bridge.channel import ChannelNotifier, MethodChannel, OverlayLauncher, not_implemented
from screen.event_source import EventSource, ForegroundEventSource
from screen.installed_apps import list_launchable_apps

logger = logging.getLogger(__name__)


class AppDetectionPlugin:
    """Owns one MonitorLoop and exposes it to a consuming application."""

    def __init__(
        self,
        channel: Optional[MethodChannel] = None,
        permission_gate: Optional[PermissionGate] = None,
        event_source: Optional[EventSource] = None,
        overlay_launcher: Optional[OverlayLauncher] = None,
        app_lister: Callable[[], List[AppIdentifier]] = list_launchable_apps,
        **monitor_options: Any,
    ) -> None:
        """
        Args:
            channel: Channel to attach to; a new one is created if omitted.
            permission_gate: Capability checks; defaults to the desktop OS.
            event_source: Foreground events; defaults to desktop sampling.
            overlay_launcher: Called with the app id to present the overlay.
            app_lister: Returns launchable app identifiers.
            **monitor_options: Passed through to MonitorLoop (debounce_window_ms,
                poll_interval, error_backoff, clock).
        """
        self.channel = channel or MethodChannel()
        self.permission_gate = permission_gate or DesktopPermissionGate()
        self.event_source = event_source or ForegroundEventSource()
        self._app_lister = app_lister
        self.notifier = QueuedNotifier(ChannelNotifier(self.channel, overlay_launcher))
        self.monitor = MonitorLoop(
            self.event_source,
            self.permission_gate,
            notifier=self.notifier,
            **monitor_options,
        )
        self._handlers: Dict[str, Callable[[Optional[Dict[str, Any]]], Any]] = {
            "hasUsageStatsPermission": lambda args: self.has_usage_permission(),
            "requestUsageStatsPermission": lambda args: self.request_usage_permission(),
            "hasOverlayPermission": lambda args: self.has_overlay_permission(),
            "requestOverlayPermission": lambda args: self.request_overlay_permission(),
            "startAppMonitoring": self._start_from_args,
            "stopAppMonitoring": lambda args: self.stop(),
            "getInstalledApps": lambda args: self.list_launchable_apps(),
        }
        self._attached = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def attach(self) -> None:
        """Start answering method calls on the channel."""
        self.channel.set_method_call_handler(self.on_method_call)
        self._attached = True
        logger.info(f"Attached to channel {self.channel.name}")

    def detach(self) -> None:
        """Stop monitoring, release threads and leave the channel."""
        self.monitor.stop()
        self.notifier.close()
        close = getattr(self.event_source, "close", None)
        if close is not None:
            close()
        if self._attached:
            self.channel.set_method_call_handler(None)
            self._attached = False
        logger.info(f"Detached from channel {self.channel.name}")

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def has_usage_permission(self) -> bool:
        return self.permission_gate.has_usage_permission()

    def request_usage_permission(self) -> None:
        self.permission_gate.request_usage_permission()

    def has_overlay_permission(self) -> bool:
        return self.permission_gate.has_overlay_permission()

    def request_overlay_permission(self) -> None:
        """Raises OverlayPermissionError if the settings flow cannot be launched."""
        self.permission_gate.request_overlay_permission()

    def start(self, blocked_apps: List[AppIdentifier]) -> None:
        """Raises PermissionDenied if usage access is missing."""
        # The sampler's baseline must predate the monitor's first cursor
        start_source = getattr(self.event_source, "start", None)
        if start_source is not None:
            start_source()
        self.monitor.start(blocked_apps)

    def stop(self) -> None:
        self.monitor.stop()

    def list_launchable_apps(self) -> List[AppIdentifier]:
        return self._app_lister()

    def overlay_closed(self) -> None:
        """Inbound signal from the overlay: the user dismissed it."""
        self.monitor.overlay_closed()

    # ------------------------------------------------------------------
    # Channel dispatch
    # ------------------------------------------------------------------

    def on_method_call(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Handle a method call arriving over the channel.

        Returns:
            {"success": bool, "result": Any, "error": str | None, "error_type": str | None}
            error_type values: "PERMISSION_DENIED", "OVERLAY_PERMISSION_ERROR",
                "INVALID_ARGUMENT", "NOT_IMPLEMENTED"
        """
        handler = self._handlers.get(method)
        if handler is None:
            return not_implemented(method)

        try:
            result = handler(arguments)
        except PermissionDenied as e:
            return self._error("PERMISSION_DENIED", str(e))
        except OverlayPermissionError as e:
            return self._error("OVERLAY_PERMISSION_ERROR", str(e))
        except (TypeError, ValueError) as e:
            return self._error("INVALID_ARGUMENT", str(e))
        return {"success": True, "result": result, "error": None, "error_type": None}

    def _start_from_args(self, arguments: Optional[Dict[str, Any]]) -> None:
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise TypeError("startAppMonitoring expects a map of arguments")
        apps = arguments.get("blockedApps") or []
        if not isinstance(apps, (list, tuple, set, frozenset)):
            raise TypeError("blockedApps must be a list of app identifiers")
        self.start([str(app) for app in apps])

    @staticmethod
    def _error(error_type: str, message: str) -> Dict[str, Any]:
        logger.warning(f"{error_type}: {message}")
        return {"success": False, "result": None, "error": message, "error_type": error_type}
