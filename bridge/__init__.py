"""
Bridge between the monitoring core and a consuming application.

Exposes the control surface (AppDetectionPlugin) and the outbound
method channel used for detection and overlay events.
"""

from bridge.channel import ChannelNotifier, MethodChannel
from bridge.plugin import AppDetectionPlugin

__all__ = ["AppDetectionPlugin", "ChannelNotifier", "MethodChannel"]
