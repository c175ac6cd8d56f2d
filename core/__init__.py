"""
Core monitoring logic for FocusLock.

Contains the MonitorLoop state machine (core.monitor), debounce tracking,
the notifier boundary and platform permission checks. Zero UI dependencies.
"""
