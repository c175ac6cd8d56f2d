"""
Platform permission checks for FocusLock.

Two capabilities gate the monitor:

- usage access: reading which app is in the foreground
  (macOS Automation/Accessibility, Windows foreground window access,
  an X11 display with xprop on Linux)
- overlay drawing: presenting the blocking overlay

Requests only open the relevant OS settings; the outcome is observed by
checking again.
"""

import os
import sys
import shutil
import subprocess
import logging
from abc import ABC, abstractmethod

from core.errors import EventSourceQueryFailure, OverlayPermissionError
from screen.window_detector import ForegroundDetector

logger = logging.getLogger(__name__)

_MACOS_ACCESSIBILITY_URL = "x-apple.systempreferences:com.apple.preference.security?Privacy_Accessibility"
_MACOS_AUTOMATION_URL = "x-apple.systempreferences:com.apple.preference.security?Privacy_Automation"

_MACOS_PROBE_TIMEOUT_SECONDS = 5.0


class PermissionGate(ABC):
    """Reports and requests the OS capabilities the monitor needs."""

    @abstractmethod
    def has_usage_permission(self) -> bool:
        """True if foreground app usage can be read."""

    @abstractmethod
    def request_usage_permission(self) -> None:
        """Open the OS flow for granting usage access. Fire-and-forget."""

    @abstractmethod
    def has_overlay_permission(self) -> bool:
        """True if the blocking overlay may be drawn."""

    @abstractmethod
    def request_overlay_permission(self) -> None:
        """
        Open the OS flow for granting overlay access.

        Raises:
            OverlayPermissionError: if the flow could not be launched.
        """


class DesktopPermissionGate(PermissionGate):
    """PermissionGate backed by the host desktop OS."""

    def __init__(self, platform: str = None):
        self.platform = platform or sys.platform

    def has_usage_permission(self) -> bool:
        if self.platform == "darwin":
            return _check_macos_usage_access()
        if self.platform == "win32":
            return _test_windows_foreground_access()
        if self.platform.startswith("linux"):
            return check_linux_display_access()
        logger.warning(f"Unsupported platform for usage access: {self.platform}")
        return False

    def request_usage_permission(self) -> None:
        if self.platform == "darwin":
            try:
                _open_macos_settings(_MACOS_AUTOMATION_URL)
            except (OSError, subprocess.SubprocessError) as e:
                logger.error(f"Failed to open System Settings: {e}")
        elif self.platform == "win32":
            # No per-app toggle exists; access depends on integrity level
            logger.info("Foreground access on Windows needs no grant; try running as Administrator if checks fail")
        else:
            logger.info("Usage access on Linux needs an X11 session and the xprop utility")

    def has_overlay_permission(self) -> bool:
        if self.platform.startswith("linux"):
            return bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))
        # Desktop windows may always be drawn above other apps
        return True

    def request_overlay_permission(self) -> None:
        if self.platform == "darwin":
            try:
                _open_macos_settings(_MACOS_ACCESSIBILITY_URL)
            except (OSError, subprocess.SubprocessError) as e:
                raise OverlayPermissionError(f"Could not open System Settings: {e}") from e
            return
        if self.platform.startswith("linux") and not self.has_overlay_permission():
            raise OverlayPermissionError("No graphical display available to draw the overlay")
        logger.debug(f"Overlay permission needs no request on {self.platform}")


# ---------------------------------------------------------------------------
# macOS Accessibility / Automation
# ---------------------------------------------------------------------------

# osascript error fragments that mean access was refused
_MACOS_DENIAL_MARKERS = ("not allowed", "assistive", "-1743", "-1719", "-10827", "not authorized")


def _check_macos_usage_access() -> bool:
    """
    Ask System Events for the frontmost app, the same query monitoring uses.

    Returns:
        True if the query succeeds, False otherwise.
    """
    detector = ForegroundDetector(platform="darwin", timeout=_MACOS_PROBE_TIMEOUT_SECONDS)
    try:
        app = detector.get_foreground_app()
    except EventSourceQueryFailure as e:
        reason = str(e)
        if any(marker in reason.lower() for marker in _MACOS_DENIAL_MARKERS):
            logger.warning(f"Usage access refused by macOS: {reason}")
        else:
            logger.warning(f"Could not verify usage access: {reason}")
        return False
    logger.debug(f"Usage access verified, frontmost app: {app}")
    return True


def _open_macos_settings(url: str) -> None:
    """Open a System Settings pane, falling back to the app itself."""
    try:
        subprocess.run(["open", url], check=True, timeout=10)
    except (OSError, subprocess.SubprocessError) as e:
        logger.error(f"Failed to open {url}: {e}")
        subprocess.run(["open", "-a", "System Settings"], check=True, timeout=10)


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

def _test_windows_foreground_access() -> bool:
    """Read the foreground window's process ID via user32."""
    try:
        import ctypes
        from ctypes import wintypes

        user32 = ctypes.windll.user32

        hwnd = user32.GetForegroundWindow()
        if not hwnd:
            logger.warning("Windows usage test: No foreground window found")
            return False

        pid = wintypes.DWORD()
        thread_id = user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        if thread_id == 0:
            logger.warning("Windows usage test: Could not get process ID")
            return False

        logger.debug(f"Windows usage test passed: pid={pid.value}")
        return True

    except (OSError, AttributeError) as e:
        logger.warning(f"Windows usage test error: {e}")
        return False


# ---------------------------------------------------------------------------
# Linux (X11)
# ---------------------------------------------------------------------------

def check_linux_display_access() -> bool:
    """
    Check that the active window can be queried on Linux.

    Returns:
        True if an X display is set and xprop is installed.
    """
    if not os.environ.get("DISPLAY"):
        logger.warning("No X11 DISPLAY set, foreground detection unavailable")
        return False
    if shutil.which("xprop") is None:
        logger.warning("xprop not found, install x11-utils for foreground detection")
        return False
    return True
