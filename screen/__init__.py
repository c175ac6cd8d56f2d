"""Foreground detection, event sources and installed-app listing."""
