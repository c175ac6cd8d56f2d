"""Value types shared by the monitoring core and its collaborators."""

import time
from dataclasses import dataclass
from enum import Enum

# Package / bundle identifier of an installed application
AppIdentifier = str


class EventKind(Enum):
    """Kinds of usage events reported by an event source."""
    FOREGROUND_ACTIVATION = "foreground_activation"
    BACKGROUND = "background"


@dataclass(frozen=True)
class UsageEvent:
    """A single observation from the event source."""
    app: AppIdentifier
    kind: EventKind
    timestamp_ms: int


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
