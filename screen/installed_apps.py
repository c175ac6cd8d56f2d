"""
Enumerate installed, user-launchable applications.

Identifiers match what ForegroundDetector reports on each platform, so
the result can be used directly as a block-list:
- macOS: CFBundleIdentifier of .app bundles in the Applications folders
- Windows: executable names registered under App Paths
- Linux: StartupWMClass (or desktop-file name) of visible .desktop entries
"""

import os
import sys
import logging
import plistlib
import configparser
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

MACOS_APP_DIRS = [
    Path("/Applications"),
    Path("/System/Applications"),
    Path.home() / "Applications",
]

LINUX_DESKTOP_DIRS = [
    Path("/usr/share/applications"),
    Path("/usr/local/share/applications"),
    Path("/var/lib/flatpak/exports/share/applications"),
    Path.home() / ".local" / "share" / "applications",
]

_WINDOWS_APP_PATHS_KEY = r"SOFTWARE\Microsoft\Windows\CurrentVersion\App Paths"


def list_launchable_apps(platform: str = None) -> List[str]:
    """
    List identifiers of installed apps the user can launch.

    Args:
        platform: Override for sys.platform.

    Returns:
        Sorted, de-duplicated list of app identifiers.
    """
    platform = platform or sys.platform
    if platform == "darwin":
        apps = _list_macos_apps(MACOS_APP_DIRS)
    elif platform == "win32":
        apps = _list_windows_apps()
    elif platform.startswith("linux"):
        apps = _list_linux_apps(LINUX_DESKTOP_DIRS)
    else:
        logger.warning(f"Unsupported platform: {platform}")
        return []
    return sorted(set(apps))


def _list_macos_apps(app_dirs: Iterable[Path]) -> List[str]:
    apps = []
    for app_dir in app_dirs:
        if not app_dir.is_dir():
            continue
        for bundle in app_dir.glob("*.app"):
            bundle_id = _read_bundle_identifier(bundle)
            if bundle_id:
                apps.append(bundle_id)
    return apps


def _read_bundle_identifier(bundle: Path) -> Optional[str]:
    info_plist = bundle / "Contents" / "Info.plist"
    try:
        with open(info_plist, "rb") as f:
            info = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException) as e:
        logger.debug(f"Skipping {bundle.name}: {e}")
        return None
    return info.get("CFBundleIdentifier")


def _list_windows_apps() -> List[str]:
    import winreg

    apps = []
    for hive in (winreg.HKEY_LOCAL_MACHINE, winreg.HKEY_CURRENT_USER):
        try:
            key = winreg.OpenKey(hive, _WINDOWS_APP_PATHS_KEY)
        except OSError:
            continue
        with key:
            index = 0
            while True:
                try:
                    name = winreg.EnumKey(key, index)
                except OSError:
                    break
                if name.lower().endswith(".exe"):
                    apps.append(name.lower())
                index += 1
    return apps


def _list_linux_apps(desktop_dirs: Iterable[Path]) -> List[str]:
    apps = []
    for desktop_dir in desktop_dirs:
        if not desktop_dir.is_dir():
            continue
        for entry in desktop_dir.glob("*.desktop"):
            app_id = _read_desktop_entry(entry)
            if app_id:
                apps.append(app_id)
    return apps


def _read_desktop_entry(path: Path) -> Optional[str]:
    """Return the identifier of a launchable desktop entry, or None."""
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read(path, encoding="utf-8")
    except (configparser.Error, OSError, UnicodeDecodeError) as e:
        logger.debug(f"Skipping {path.name}: {e}")
        return None

    if not parser.has_section("Desktop Entry"):
        return None
    entry = parser["Desktop Entry"]
    if entry.get("Type", "Application") != "Application":
        return None
    if entry.get("NoDisplay", "false").lower() == "true" or entry.get("Hidden", "false").lower() == "true":
        return None
    if not entry.get("Exec"):
        return None

    wm_class = entry.get("StartupWMClass")
    if wm_class:
        return wm_class.lower()
    return os.path.splitext(path.name)[0].lower()
