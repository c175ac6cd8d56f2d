"""Configuration settings for FocusLock."""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv


# Load from the project root (where config.py lives)
# so .env is found regardless of current working directory
_env_path = Path(__file__).parent / ".env"
load_dotenv(_env_path)


def _get_float(env_var: str, default: float) -> float:
    """
    Read a positive float from the environment.

    Args:
        env_var: Environment variable name.
        default: Value used when the variable is unset or invalid.

    Returns:
        Parsed value, or default.
    """
    raw = os.getenv(env_var, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"{env_var}={raw!r} is not a number, using {default}"
        )
        return default
    if value <= 0:
        logging.getLogger(__name__).warning(
            f"{env_var} must be positive, using {default}"
        )
        return default
    return value


def _get_int(env_var: str, default: int) -> int:
    """Integer variant of _get_float."""
    return int(_get_float(env_var, float(default)))


# Debounce: minimum gap between two accepted detections of the same app
DEBOUNCE_WINDOW_MS = _get_int("DEBOUNCE_WINDOW_MS", 2000)

# Monitoring loop cadence
POLL_INTERVAL_SECONDS = _get_float("POLL_INTERVAL_SECONDS", 1.0)  # Normal tick
ERROR_BACKOFF_SECONDS = _get_float("ERROR_BACKOFF_SECONDS", 5.0)  # After a failed query
THREAD_JOIN_TIMEOUT_SECONDS = _get_float("THREAD_JOIN_TIMEOUT_SECONDS", 2.0)

# Consecutive query failures before the loop logs at error level
FAILURE_WARN_THRESHOLD = _get_int("FAILURE_WARN_THRESHOLD", 3)

# Foreground sampling (desktop event source)
SAMPLE_INTERVAL_SECONDS = _get_float("SAMPLE_INTERVAL_SECONDS", 0.25)
EVENT_BUFFER_SIZE = _get_int("EVENT_BUFFER_SIZE", 512)  # Events kept for querying
DETECTOR_TIMEOUT_SECONDS = _get_float("DETECTOR_TIMEOUT_SECONDS", 2.0)

# Channel used to notify the consuming application
CHANNEL_NAME = os.getenv("CHANNEL_NAME", "app_detection_channel")
METHOD_APP_DETECTED = "onAppDetected"
METHOD_OVERLAY_CLOSED = "onOverlayClosed"

# Monitor states
STATE_IDLE = "idle"
STATE_MONITORING = "monitoring"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # Can override in .env: DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
