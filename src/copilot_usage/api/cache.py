"""Single-slot usage cache with TTL support.

Holds the last successfully fetched snapshot so most invocations can skip
the network. A missing or corrupted slot is a cache miss, never an error.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from copilot_usage.errors import CacheIOError
from copilot_usage.models import UsageSnapshot
from copilot_usage.utils.platform import get_cache_dir
from copilot_usage.utils.time import parse_timestamp, utc_now

# Cache file location
CACHE_FILE = get_cache_dir() / "usage.json"


def env_ttl_minutes() -> Optional[int]:
    """COPILOT_USAGE_CACHE_TTL in minutes, or None if unset, not an integer or not positive."""
    raw = os.environ.get("COPILOT_USAGE_CACHE_TTL")
    if not raw:
        return None
    try:
        minutes = int(raw)
    except ValueError:
        return None
    return minutes if minutes > 0 else None


# Default cache TTL (can be overridden with COPILOT_USAGE_CACHE_TTL, in minutes)
CACHE_TTL_MINUTES = env_ttl_minutes() or 5


@dataclass(frozen=True)
class CacheEntry:
    """The persisted slot: one snapshot and when it was stored."""

    snapshot: UsageSnapshot
    timestamp: datetime

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp.isoformat(), "snapshot": self.snapshot.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> CacheEntry:
        return cls(
            snapshot=UsageSnapshot.from_dict(data["snapshot"]),
            timestamp=parse_timestamp(data["timestamp"]),
        )


@dataclass(frozen=True)
class CacheInfo:
    """What the cache-status views show about the slot."""

    last_updated: Optional[datetime]
    is_fresh: bool
    ttl: timedelta


def is_fresh(entry: CacheEntry, ttl: timedelta, now: datetime) -> bool:
    """True iff the entry is younger than ``ttl``; an age equal to ``ttl`` is stale."""
    return now - entry.timestamp < ttl


class CacheStore:
    """Reads and atomically replaces the single cache slot."""

    def __init__(self, path: Path | None = None, clock: Callable[[], datetime] = utc_now):
        self.path = path or CACHE_FILE
        self._clock = clock

    def load(self) -> Optional[CacheEntry]:
        """Read the slot.

        Returns:
            The entry, or None if the slot is missing, unreadable or corrupt.
        """
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            return CacheEntry.from_dict(data)
        except (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError):
            return None

    def save(self, entry: CacheEntry) -> None:
        """Replace the slot with ``entry``.

        Writes a sibling temp file and renames it over the slot, so a crash
        mid-write leaves the previous entry intact.

        Raises:
            CacheIOError: If the directory or file cannot be written.
        """
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(entry.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            try:
                tmp_path.unlink()
            except OSError:
                pass
            raise CacheIOError(f"Could not write cache file {self.path}", details=str(e)) from e

    def store(self, snapshot: UsageSnapshot) -> CacheEntry:
        """Save ``snapshot`` stamped with the current time and return the entry."""
        entry = CacheEntry(snapshot=snapshot, timestamp=self._clock())
        self.save(entry)
        return entry

    def invalidate(self) -> None:
        """Remove the slot if present.

        Raises:
            CacheIOError: If the file exists but cannot be removed.
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheIOError(f"Could not remove cache file {self.path}", details=str(e)) from e

    def describe(self, ttl: timedelta, now: datetime | None = None) -> CacheInfo:
        """Summarize the slot for the cache-status views."""
        entry = self.load()
        if entry is None:
            return CacheInfo(last_updated=None, is_fresh=False, ttl=ttl)
        now = now or self._clock()
        return CacheInfo(last_updated=entry.timestamp, is_fresh=is_fresh(entry, ttl, now), ttl=ttl)


__all__ = [
    "CACHE_FILE",
    "CACHE_TTL_MINUTES",
    "CacheEntry",
    "CacheInfo",
    "CacheStore",
    "env_ttl_minutes",
    "is_fresh",
]
