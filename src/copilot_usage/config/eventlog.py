"""Event logging for fetches, cache writes, and state transitions.

Provides a JSON-lines log with rotation. It is off by default and never
writes to the terminal, so it is safe to use while the dashboard owns the
screen.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path

from copilot_usage.utils.platform import get_state_dir

# Event log configuration
EVENT_LOG_FILE = get_state_dir() / "events.log"
EVENT_LOG_MAX_SIZE_MB = 5
EVENT_LOG_MAX_FILES = 3


class Event:
    """Event type constants."""

    # Session events
    SESSION_START = "session.start"
    SESSION_END = "session.end"

    # Fetch events
    FETCH_START = "fetch.start"
    FETCH_SUCCESS = "fetch.success"
    FETCH_ERROR = "fetch.error"

    # Refresh coordinator events
    REFRESH_REJECTED = "refresh.rejected"
    STATE_TRANSITION = "state.transition"

    # Cache events
    CACHE_READ = "cache.read"
    CACHE_WRITE = "cache.write"
    CACHE_WRITE_FAILED = "cache.write_failed"
    CACHE_INVALIDATE = "cache.invalidate"

    # Configuration events
    CONFIG_WRITE = "config.write"


# Global log state
_log_enabled = False
_log_path: Path | None = None
_write_lock = threading.Lock()


def enable_event_log(log_path: Path | None = None) -> None:
    """Enable event logging.

    Args:
        log_path: Optional custom path. Defaults to EVENT_LOG_FILE.
    """
    global _log_enabled, _log_path

    _log_enabled = True
    _log_path = log_path or EVENT_LOG_FILE

    log_dir = _log_path.parent
    if not log_dir.exists():
        log_dir.mkdir(parents=True, mode=0o700)

    log_event(
        Event.SESSION_START,
        "Event logging enabled",
        details={"log_path": str(_log_path)},
    )


def disable_event_log() -> None:
    """Disable event logging."""
    global _log_enabled

    if _log_enabled:
        log_event(Event.SESSION_END, "Event logging disabled")
    _log_enabled = False


def _rotate_logs() -> None:
    """Rotate logs if they exceed the size limit."""
    if _log_path is None or not _log_path.exists():
        return

    try:
        size_mb = _log_path.stat().st_size / (1024 * 1024)
        if size_mb < EVENT_LOG_MAX_SIZE_MB:
            return

        for i in range(EVENT_LOG_MAX_FILES - 1, 0, -1):
            old_path = _log_path.with_suffix(f".log.{i}")
            new_path = _log_path.with_suffix(f".log.{i + 1}")
            if old_path.exists():
                if i + 1 >= EVENT_LOG_MAX_FILES:
                    old_path.unlink()
                else:
                    old_path.rename(new_path)

        _log_path.rename(_log_path.with_suffix(".log.1"))

    except OSError:
        pass  # Best effort rotation


def log_event(
    event_type: str,
    message: str,
    details: dict | None = None,
    success: bool = True,
) -> None:
    """Append one event record.

    Args:
        event_type: Type of event (use Event constants).
        message: Human-readable description of the event.
        details: Optional additional structured data.
        success: Whether the operation was successful.
    """
    if not _log_enabled or _log_path is None:
        return

    record = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event_type,
        "message": message,
        "success": success,
        "pid": os.getpid(),
        "thread": threading.current_thread().name,
    }

    if details:
        record["details"] = _sanitize_details(details)

    with _write_lock:
        _rotate_logs()
        try:
            with open(_log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, default=str) + "\n")
            os.chmod(_log_path, 0o600)
        except OSError:
            pass  # Best effort logging


def _sanitize_details(details: dict) -> dict:
    """Mask token-like values in a details dict."""
    sensitive_keys = {"token", "secret", "password", "authorization"}

    sanitized = {}
    for key, value in details.items():
        lower_key = key.lower()
        if any(s in lower_key for s in sensitive_keys):
            if isinstance(value, str) and len(value) > 8:
                sanitized[key] = f"{value[:4]}...{value[-4:]}"
            else:
                sanitized[key] = "***"
        elif isinstance(value, dict):
            sanitized[key] = _sanitize_details(value)
        else:
            sanitized[key] = value

    return sanitized


def read_event_log(
    limit: int = 100,
    event_filter: str | None = None,
    log_path: Path | None = None,
) -> list[dict]:
    """Read recent entries, most recent first.

    Args:
        limit: Maximum number of entries to return.
        event_filter: Optional event type prefix to filter by.
        log_path: File to read. Defaults to the active log, then EVENT_LOG_FILE.
    """
    path = log_path or _log_path or EVENT_LOG_FILE
    if not path.exists():
        return []

    entries = []
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if event_filter is None or entry.get("event", "").startswith(event_filter):
                    entries.append(entry)
    except OSError:
        return []

    return entries[-limit:][::-1]


__all__ = [
    "Event",
    "EVENT_LOG_FILE",
    "enable_event_log",
    "disable_event_log",
    "log_event",
    "read_event_log",
]
