"""Exceptions raised by the FocusLock core."""


class FocusLockError(Exception):
    """Base class for all FocusLock errors."""


class PermissionDenied(FocusLockError):
    """A required OS capability (usage access) is not granted."""


class OverlayPermissionError(FocusLockError):
    """The overlay permission settings flow could not be launched."""


class EventSourceQueryFailure(FocusLockError):
    """
    Querying the foreground event source failed.

    Treated as transient by the monitoring loop: it is logged and the
    loop backs off before retrying.
    """
