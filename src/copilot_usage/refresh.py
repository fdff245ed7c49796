"""Refresh coordination: the owner of the dashboard's AppState.

The coordinator decides when to fetch, keeps at most one fetch in flight,
and applies fetch results as atomic state transitions. Fetches run on a
daemon thread and hand their outcome back through a single-slot queue that
the render loop drains once per tick with ``poll()``, so rendering never
waits on the network.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, List, NamedTuple, Optional

from copilot_usage.api.cache import CacheEntry, CacheStore, is_fresh
from copilot_usage.api.client import UsageFetcher
from copilot_usage.config.credentials import Credentials
from copilot_usage.config.eventlog import Event, log_event
from copilot_usage.errors import CacheIOError, FetchError, NetworkError
from copilot_usage.models import UsageSnapshot
from copilot_usage.state import AppState, Failed, Loading, Ready, Refreshing, snapshot_of
from copilot_usage.utils.time import utc_now

StateListener = Callable[[AppState, AppState], None]


class StartupPlan(NamedTuple):
    """Initial state and whether a fetch must be issued right away."""

    state: AppState
    should_fetch: bool


def plan_startup(entry: Optional[CacheEntry], ttl: timedelta, now: datetime) -> StartupPlan:
    """Decide the startup state from whatever the cache holds.

    Args:
        entry: Cached entry, or None on a cache miss.
        ttl: Freshness window.
        now: Current time.

    Returns:
        Fresh entry: Ready, no fetch. Stale entry: Ready marked stale and a
        fetch. No entry: Loading and a fetch.
    """
    if entry is None:
        return StartupPlan(Loading(), True)
    if is_fresh(entry, ttl, now):
        return StartupPlan(Ready(entry.snapshot, is_stale=False), False)
    return StartupPlan(Ready(entry.snapshot, is_stale=True), True)


class FetchOutcome(NamedTuple):
    """The single message a fetch worker posts when it finishes."""

    snapshot: Optional[UsageSnapshot] = None
    timestamp: Optional[datetime] = None
    error: Optional[FetchError] = None


class RefreshCoordinator:
    """Owns AppState and the single in-flight fetch.

    All methods except the worker body are meant to be called from one
    thread (the render loop's). The worker only touches the fetcher, the
    cache store, and the result queue.
    """

    def __init__(
        self,
        store: CacheStore,
        fetcher: UsageFetcher,
        credentials: Credentials,
        ttl: timedelta,
        clock: Callable[[], datetime] = utc_now,
        auto_refresh: bool = True,
    ):
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._store = store
        self._fetcher = fetcher
        self._credentials = credentials
        self._ttl = ttl
        self._clock = clock
        self._auto_refresh = auto_refresh

        self._state: AppState = Loading()
        self._data_timestamp: Optional[datetime] = None
        self._last_attempt: Optional[datetime] = None
        self._listeners: List[StateListener] = []

        self._lock = threading.Lock()
        self._in_flight = False
        self._worker: Optional[threading.Thread] = None
        self._results: queue.Queue[FetchOutcome] = queue.Queue(maxsize=1)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def auto_refresh(self) -> bool:
        return self._auto_refresh

    @property
    def fetch_in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    @property
    def last_updated(self) -> Optional[datetime]:
        """When the displayed snapshot was stored, if there is one."""
        return self._data_timestamp

    def subscribe(self, listener: StateListener) -> None:
        """Register ``listener(old_state, new_state)`` for every transition."""
        self._listeners.append(listener)

    def set_auto_refresh(self, enabled: bool) -> None:
        """Pause or resume the TTL-driven refresh trigger."""
        self._auto_refresh = enabled

    def start(self, force: bool = False) -> AppState:
        """Run the startup sequence.

        Reads the cache once. A fresh entry is shown without touching the
        network; a stale entry is shown while it is refreshed in the
        background; with no entry the dashboard starts in Loading.

        Args:
            force: Fetch even when the cached entry is fresh.

        Returns:
            The state right after startup.
        """
        entry = self._store.load()
        log_event(
            Event.CACHE_READ,
            "Cache hit" if entry else "Cache miss",
            details={"path": str(self._store.path)},
        )
        plan = plan_startup(entry, self._ttl, self._clock())
        if entry is not None:
            self._data_timestamp = entry.timestamp
        self._transition(plan.state)

        if force:
            self.request_refresh(reason="forced")
        elif plan.should_fetch:
            # A stale entry stays on screen as Ready while the fetch runs
            self._launch(reason="startup", silent=isinstance(plan.state, Ready))
        return self._state

    def request_refresh(self, reason: str = "manual") -> bool:
        """Start a fetch unless one is already running.

        Returns:
            True if a fetch was started, False if the request was dropped.
        """
        if not self._launch(reason=reason, silent=False):
            log_event(
                Event.REFRESH_REJECTED,
                "Refresh already in flight",
                details={"reason": reason},
            )
            return False
        return True

    def poll(self) -> AppState:
        """Apply a finished fetch, if any, then the TTL trigger.

        Never blocks. Called once per render tick.

        Returns:
            The current state.
        """
        try:
            outcome = self._results.get_nowait()
        except queue.Empty:
            pass
        else:
            self._apply(outcome)

        now = self._clock()
        self._transition(self._with_staleness(self._state, now))

        if self._should_auto_refresh(now):
            self.request_refresh(reason="auto")
        return self._state

    def current(self) -> AppState:
        """Cheap read of the state with staleness evaluated now."""
        return self._with_staleness(self._state, self._clock())

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the in-flight worker thread.

        Returns:
            True if no worker is alive afterwards.
        """
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def _launch(self, reason: str, silent: bool) -> bool:
        with self._lock:
            if self._in_flight:
                return False
            self._in_flight = True

        self._last_attempt = self._clock()
        if not silent and not isinstance(self._state, Loading):
            self._transition(Refreshing(previous=snapshot_of(self._state)))

        self._worker = threading.Thread(
            target=self._run_fetch,
            name=f"copilot-usage-fetch-{reason}",
            daemon=True,
        )
        self._worker.start()
        return True

    def _run_fetch(self) -> None:
        try:
            snapshot = self._fetcher.fetch(self._credentials)
        except FetchError as e:
            self._results.put(FetchOutcome(error=e))
            return
        except Exception as e:
            # Any other failure still has to release the in-flight slot
            self._results.put(FetchOutcome(error=NetworkError(f"Unexpected error: {e}")))
            return

        timestamp = snapshot.obtained_at
        try:
            timestamp = self._store.store(snapshot).timestamp
        except CacheIOError as e:
            log_event(
                Event.CACHE_WRITE_FAILED,
                e.message,
                details={"error": e.details},
                success=False,
            )
        else:
            log_event(Event.CACHE_WRITE, "Cache updated", details={"path": str(self._store.path)})
        self._results.put(FetchOutcome(snapshot=snapshot, timestamp=timestamp))

    def _apply(self, outcome: FetchOutcome) -> None:
        if outcome.error is not None:
            self._transition(Failed(outcome.error, previous=snapshot_of(self._state)))
        else:
            self._data_timestamp = outcome.timestamp
            self._transition(Ready(outcome.snapshot, is_stale=False))
        with self._lock:
            self._in_flight = False

    def _with_staleness(self, state: AppState, now: datetime) -> AppState:
        if not isinstance(state, Ready) or state.is_stale or self._data_timestamp is None:
            return state
        if now - self._data_timestamp >= self._ttl:
            return replace(state, is_stale=True)
        return state

    def _should_auto_refresh(self, now: datetime) -> bool:
        if not self._auto_refresh or self.fetch_in_flight:
            return False
        state = self._state
        if isinstance(state, Ready) and not state.is_stale:
            return False
        if isinstance(state, (Loading, Refreshing)):
            return False
        return self._last_attempt is None or now - self._last_attempt >= self._ttl

    def _transition(self, new_state: AppState) -> None:
        old_state = self._state
        if new_state == old_state:
            return
        self._state = new_state
        log_event(
            Event.STATE_TRANSITION,
            f"{type(old_state).__name__} -> {type(new_state).__name__}",
            details={"stale": getattr(new_state, "is_stale", False)},
        )
        for listener in self._listeners:
            listener(old_state, new_state)


__all__ = [
    "FetchOutcome",
    "RefreshCoordinator",
    "StartupPlan",
    "StateListener",
    "plan_startup",
]
