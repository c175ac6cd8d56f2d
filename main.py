#!/usr/bin/env python3
"""
FocusLock - Main Entry Point

Watches which app is in the foreground and interrupts you when it is on
your block-list.

Usage:
    python main.py --list-apps                 # Show app identifiers
    python main.py --check-permissions         # Show permission status
    python main.py --block com.example.game    # Monitor until Ctrl+C
"""

import sys
import time
import logging
import argparse
from typing import Any, List

import config
from bridge.channel import MethodChannel
from bridge.plugin import AppDetectionPlugin
from core.errors import OverlayPermissionError, PermissionDenied

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)


class FocusLockCLI:
    """
    Terminal host for the AppDetectionPlugin.

    Prints detections, shows a text "overlay" for each intervention and
    treats Enter as closing it.
    """

    def __init__(self, **monitor_options):
        self.channel = MethodChannel()
        self.channel.add_listener(self._on_channel_event)
        self.plugin = AppDetectionPlugin(
            channel=self.channel,
            overlay_launcher=self.show_overlay,
            **monitor_options,
        )

    def show_overlay(self, app: str) -> None:
        """Overlay launcher: the terminal version of the blocking screen."""
        print("\n" + "=" * 60)
        print(f"🚫 {app} is blocked right now.")
        print("   Press Enter to dismiss and get back to focus.")
        print("=" * 60)

    def _on_channel_event(self, method: str, arguments: Any) -> None:
        if method == config.METHOD_APP_DETECTED:
            logger.info(f"Detected blocked app: {arguments}")
        elif method == config.METHOD_OVERLAY_CLOSED:
            print("✓ Overlay dismissed, monitoring continues")

    def print_permissions(self) -> None:
        usage = self.plugin.has_usage_permission()
        overlay = self.plugin.has_overlay_permission()
        print(f"{'✓' if usage else '❌'} Usage access: {'granted' if usage else 'missing'}")
        print(f"{'✓' if overlay else '❌'} Overlay access: {'granted' if overlay else 'missing'}")

    def request_permissions(self) -> None:
        self.plugin.request_usage_permission()
        try:
            self.plugin.request_overlay_permission()
        except OverlayPermissionError as e:
            print(f"❌ Could not request overlay permission: {e}")
        print("Grant access in the settings that opened, then run --check-permissions.")

    def list_apps(self) -> None:
        for app in self.plugin.list_launchable_apps():
            print(app)

    def run(self, blocked_apps: List[str]) -> int:
        """
        Monitor until Ctrl+C or end of input.

        Returns:
            Process exit code.
        """
        try:
            self.plugin.start(blocked_apps)
        except PermissionDenied as e:
            print(f"\n❌ {e}")
            print("   Run with --request-permissions, grant access, then try again.")
            return 1

        print(f"\n💡 Monitoring {len(blocked_apps)} blocked app(s). Press Ctrl+C to stop.\n")
        try:
            while True:
                line = sys.stdin.readline()
                if not line:
                    # stdin closed; keep monitoring until interrupted
                    while self.plugin.monitor.is_running:
                        time.sleep(1.0)
                    break
                self.plugin.overlay_closed()
        except KeyboardInterrupt:
            print("\n\n⏸️  Monitoring stopped by user")
        return 0


def main():
    """Parse arguments and run the requested command."""
    parser = argparse.ArgumentParser(
        description="FocusLock - block distracting apps while you focus",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --list-apps
  python main.py --block com.valvesoftware.steam --block discord.exe
        """
    )
    parser.add_argument(
        "--block",
        action="append",
        default=[],
        metavar="APP_ID",
        help="App identifier to block (repeatable)",
    )
    parser.add_argument("--list-apps", action="store_true", help="List launchable app identifiers")
    parser.add_argument("--check-permissions", action="store_true", help="Show permission status")
    parser.add_argument("--request-permissions", action="store_true", help="Open the OS permission settings")
    parser.add_argument(
        "--debounce-ms",
        type=int,
        default=config.DEBOUNCE_WINDOW_MS,
        help=f"Minimum gap between detections of the same app (default: {config.DEBOUNCE_WINDOW_MS})",
    )

    args = parser.parse_args()

    cli = FocusLockCLI(debounce_window_ms=args.debounce_ms)

    try:
        if args.list_apps:
            cli.list_apps()
        elif args.check_permissions:
            cli.print_permissions()
        elif args.request_permissions:
            cli.request_permissions()
        elif args.block:
            sys.exit(cli.run(args.block))
        else:
            parser.print_help()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"\nFatal error: {e}")
        sys.exit(1)
    finally:
        cli.plugin.detach()


if __name__ == "__main__":
    main()
