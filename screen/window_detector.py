"""
Foreground application detection.

Reports an identifier for the app that currently owns the focused
window, using platform-native tools:
- macOS: bundle identifier via AppleScript (System Events)
- Windows: executable name of the foreground window's process (ctypes)
- Linux: WM_CLASS of the active X11 window (xprop)
"""

import re
import sys
import subprocess
import logging
from typing import Optional

import config
from core.errors import EventSourceQueryFailure

logger = logging.getLogger(__name__)

_XPROP_WINDOW_ID = re.compile(r"window id # (0x[0-9a-fA-F]+)")
_XPROP_WM_CLASS = re.compile(r'WM_CLASS\(STRING\) = "([^"]*)", "([^"]*)"')


class ForegroundDetector:
    """
    Cross-platform detector for the foreground application.

    get_foreground_app() returns None when no app is focused and raises
    EventSourceQueryFailure when the OS query itself fails.
    """

    def __init__(self, platform: str = None, timeout: float = config.DETECTOR_TIMEOUT_SECONDS):
        self.platform = platform or sys.platform
        self.timeout = timeout

    def get_foreground_app(self) -> Optional[str]:
        """
        Get the identifier of the foreground app.

        Returns:
            App identifier, or None if nothing is focused.

        Raises:
            EventSourceQueryFailure: if the platform query failed.
        """
        try:
            if self.platform == "darwin":
                return self._get_foreground_app_macos()
            if self.platform == "win32":
                return self._get_foreground_app_windows()
            if self.platform.startswith("linux"):
                return self._get_foreground_app_linux()
        except subprocess.TimeoutExpired as e:
            raise EventSourceQueryFailure(f"Timeout getting foreground app: {e}") from e
        except OSError as e:
            raise EventSourceQueryFailure(f"OS error getting foreground app: {e}") from e
        raise EventSourceQueryFailure(f"Unsupported platform: {self.platform}")

    def _get_foreground_app_macos(self) -> Optional[str]:
        script = '''
        tell application "System Events"
            set frontApp to first application process whose frontmost is true
            return bundle identifier of frontApp
        end tell
        '''
        result = subprocess.run(
            ["osascript", "-e", script],
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            raise EventSourceQueryFailure(
                f"AppleScript failed with code {result.returncode}: {result.stderr.strip()}"
            )
        bundle_id = result.stdout.strip()
        # System Events reports "missing value" for processes without a bundle
        if not bundle_id or bundle_id == "missing value":
            return None
        return bundle_id

    def _get_foreground_app_windows(self) -> Optional[str]:
        import ctypes
        from ctypes import wintypes

        user32 = ctypes.windll.user32
        kernel32 = ctypes.windll.kernel32

        hwnd = user32.GetForegroundWindow()
        if not hwnd:
            return None

        pid = wintypes.DWORD()
        user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        if not pid.value:
            return None

        PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
        handle = kernel32.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid.value)
        if not handle:
            raise EventSourceQueryFailure(f"Cannot open process {pid.value}")
        try:
            buffer = ctypes.create_unicode_buffer(260)
            size = wintypes.DWORD(260)
            if not kernel32.QueryFullProcessImageNameW(handle, 0, buffer, ctypes.byref(size)):
                raise EventSourceQueryFailure(f"Cannot read image name of process {pid.value}")
            return buffer.value.split("\\")[-1].lower()
        finally:
            kernel32.CloseHandle(handle)

    def _get_foreground_app_linux(self) -> Optional[str]:
        result = subprocess.run(
            ["xprop", "-root", "_NET_ACTIVE_WINDOW"],
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            raise EventSourceQueryFailure(f"xprop failed: {result.stderr.strip()}")

        match = _XPROP_WINDOW_ID.search(result.stdout)
        if not match or int(match.group(1), 16) == 0:
            return None

        result = subprocess.run(
            ["xprop", "-id", match.group(1), "WM_CLASS"],
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            # Window closed between the two calls
            logger.debug(f"xprop WM_CLASS failed: {result.stderr.strip()}")
            return None

        match = _XPROP_WM_CLASS.search(result.stdout)
        if not match:
            return None
        # Class part, e.g. "firefox" from ("Navigator", "firefox")
        return match.group(2).lower()
