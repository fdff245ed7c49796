"""Dashboard data states.

Exactly one of these variants describes what the dashboard knows at any
instant. The refresh coordinator is the only code that creates them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from copilot_usage.errors import FetchError
from copilot_usage.models import UsageSnapshot


@dataclass(frozen=True)
class Loading:
    """No data yet; the first fetch is in flight."""


@dataclass(frozen=True)
class Ready:
    """Usable data. ``is_stale`` is set once the data is at least one TTL old."""

    snapshot: UsageSnapshot
    is_stale: bool = False


@dataclass(frozen=True)
class Refreshing:
    """A fetch is in flight; the previous snapshot stays on screen."""

    previous: Optional[UsageSnapshot] = None


@dataclass(frozen=True)
class Failed:
    """The last fetch failed; any previous snapshot is retained."""

    error: FetchError
    previous: Optional[UsageSnapshot] = None


AppState = Union[Loading, Ready, Refreshing, Failed]


def snapshot_of(state: AppState) -> Optional[UsageSnapshot]:
    """The snapshot a frame should display for ``state``, if any."""
    if isinstance(state, Ready):
        return state.snapshot
    if isinstance(state, (Refreshing, Failed)):
        return state.previous
    return None


def is_busy(state: AppState) -> bool:
    """True while a fetch is in flight."""
    return isinstance(state, (Loading, Refreshing))


__all__ = [
    "AppState",
    "Loading",
    "Ready",
    "Refreshing",
    "Failed",
    "snapshot_of",
    "is_busy",
]
