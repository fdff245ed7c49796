"""
Tests for the refresh coordinator.

Tests cover:
- plan_startup() - initial state from the cache
- RefreshCoordinator.start() - cached, stale and empty startups
- request_refresh() - at most one fetch in flight
- poll() - applying outcomes, lazy staleness and the TTL trigger
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from copilot_usage.api.cache import CacheEntry
from copilot_usage.config.eventlog import enable_event_log, read_event_log
from copilot_usage.errors import CacheIOError, NetworkError, UnauthorizedError
from copilot_usage.refresh import RefreshCoordinator, plan_startup
from copilot_usage.state import Failed, Loading, Ready, Refreshing

JOIN_TIMEOUT = 5


@pytest.fixture
def make_coordinator(store, credentials, ttl, clock):
    """Build a coordinator around a fetcher, sharing the fake clock."""

    def _make(fetcher, auto_refresh=True):
        return RefreshCoordinator(
            store=store,
            fetcher=fetcher,
            credentials=credentials,
            ttl=ttl,
            clock=clock,
            auto_refresh=auto_refresh,
        )

    return _make


def _settle(coordinator):
    assert coordinator.join(JOIN_TIMEOUT)
    return coordinator.poll()


# ═══════════════════════════════════════════════════════════════════════════════
# Test plan_startup()
# ═══════════════════════════════════════════════════════════════════════════════


class TestPlanStartup:
    """Tests for choosing the startup state."""

    def test_no_entry(self, ttl, fixed_now):
        plan = plan_startup(None, ttl, fixed_now)

        assert plan.state == Loading()
        assert plan.should_fetch is True

    def test_fresh_entry(self, snapshot, ttl, fixed_now):
        entry = CacheEntry(snapshot, fixed_now - timedelta(minutes=2))

        plan = plan_startup(entry, ttl, fixed_now)

        assert plan.state == Ready(snapshot, is_stale=False)
        assert plan.should_fetch is False

    def test_stale_entry(self, snapshot, ttl, fixed_now):
        entry = CacheEntry(snapshot, fixed_now - timedelta(minutes=10))

        plan = plan_startup(entry, ttl, fixed_now)

        assert plan.state == Ready(snapshot, is_stale=True)
        assert plan.should_fetch is True

    def test_entry_exactly_ttl_old_is_stale(self, snapshot, ttl, fixed_now):
        plan = plan_startup(CacheEntry(snapshot, fixed_now - ttl), ttl, fixed_now)

        assert plan.state.is_stale is True
        assert plan.should_fetch is True


# ═══════════════════════════════════════════════════════════════════════════════
# Test start()
# ═══════════════════════════════════════════════════════════════════════════════


class TestStartup:
    """Startup scenarios from the cache."""

    def test_fresh_cache_no_fetch(self, make_coordinator, fake_fetcher, write_cache, snapshot, clock):
        """A fresh cache is shown at once and the network is not touched."""
        write_cache(snapshot, clock.now - timedelta(minutes=2))
        fetcher = fake_fetcher()
        coordinator = make_coordinator(fetcher)

        state = coordinator.start()

        assert state == Ready(snapshot, is_stale=False)
        assert coordinator.join(JOIN_TIMEOUT)
        assert fetcher.calls == 0
        assert coordinator.fetch_in_flight is False

    def test_stale_cache_shown_then_refreshed(
        self, make_coordinator, fake_fetcher, write_cache, store, snapshot, clock
    ):
        """A stale cache renders as stale data while one fetch replaces it."""
        write_cache(snapshot, clock.now - timedelta(minutes=10))
        fresh = replace(snapshot, used=55.0)
        fetcher = fake_fetcher(result=fresh, gate=True)
        coordinator = make_coordinator(fetcher)

        state = coordinator.start()

        assert state == Ready(snapshot, is_stale=True)
        assert coordinator.fetch_in_flight is True

        fetcher.gate.set()
        state = _settle(coordinator)

        assert state == Ready(fresh, is_stale=False)
        assert fetcher.calls == 1
        assert store.load().snapshot.used == 55.0
        assert coordinator.last_updated == clock.now

    def test_empty_cache_failure(self, make_coordinator, fake_fetcher, store):
        """With no cache and an auth failure the dashboard lands in Failed with nothing to show."""
        error = UnauthorizedError("Authentication failed. Your token was rejected.")
        coordinator = make_coordinator(fake_fetcher(result=error))

        assert coordinator.start() == Loading()
        state = _settle(coordinator)

        assert isinstance(state, Failed)
        assert state.error is error
        assert state.previous is None
        assert store.load() is None

    def test_empty_cache_success(self, make_coordinator, fake_fetcher, store, snapshot, clock):
        """With no cache a successful fetch is shown and written to the cache."""
        assert (snapshot.used, snapshot.limit) == (42.0, 100.0)
        coordinator = make_coordinator(fake_fetcher(result=snapshot))

        coordinator.start()
        state = _settle(coordinator)

        assert state == Ready(snapshot, is_stale=False)
        entry = store.load()
        assert entry.snapshot == snapshot
        assert entry.timestamp == clock.now

    def test_force_refresh_with_fresh_cache(
        self, make_coordinator, fake_fetcher, write_cache, snapshot, clock
    ):
        """--refresh fetches even when the cache is fresh, keeping it on screen."""
        write_cache(snapshot, clock.now)
        fetcher = fake_fetcher(result=snapshot, gate=True)
        coordinator = make_coordinator(fetcher)

        state = coordinator.start(force=True)

        assert state == Refreshing(previous=snapshot)
        fetcher.gate.set()
        assert _settle(coordinator) == Ready(snapshot)
        assert fetcher.calls == 1

    def test_cache_read_logged(self, make_coordinator, fake_fetcher, write_cache, snapshot, clock):
        enable_event_log()
        write_cache(snapshot, clock.now)

        make_coordinator(fake_fetcher()).start()

        events = read_event_log(event_filter="cache.read")
        assert events[0]["message"] == "Cache hit"


# ═══════════════════════════════════════════════════════════════════════════════
# Test request_refresh()
# ═══════════════════════════════════════════════════════════════════════════════


class TestRequestRefresh:
    """Tests for manual refresh requests."""

    def test_at_most_one_fetch(self, make_coordinator, fake_fetcher, write_cache, snapshot, clock):
        """A second request while one is in flight is dropped."""
        write_cache(snapshot, clock.now)
        fetcher = fake_fetcher(result=snapshot, gate=True)
        coordinator = make_coordinator(fetcher)
        coordinator.start()

        assert coordinator.request_refresh() is True
        assert coordinator.request_refresh() is False
        assert coordinator.request_refresh() is False

        fetcher.gate.set()
        _settle(coordinator)
        assert fetcher.calls == 1

    def test_rejection_logged(self, make_coordinator, fake_fetcher, write_cache, snapshot, clock):
        enable_event_log()
        write_cache(snapshot, clock.now)
        fetcher = fake_fetcher(result=snapshot, gate=True)
        coordinator = make_coordinator(fetcher)
        coordinator.start()

        coordinator.request_refresh()
        coordinator.request_refresh()
        fetcher.gate.set()
        _settle(coordinator)

        assert read_event_log(event_filter="refresh.rejected")

    def test_refresh_allowed_again_after_completion(
        self, make_coordinator, fake_fetcher, write_cache, snapshot, clock
    ):
        write_cache(snapshot, clock.now)
        fetcher = fake_fetcher(result=snapshot)
        coordinator = make_coordinator(fetcher)
        coordinator.start()

        assert coordinator.request_refresh() is True
        _settle(coordinator)
        assert coordinator.request_refresh() is True
        _settle(coordinator)

        assert fetcher.calls == 2

    def test_refreshing_keeps_previous_snapshot(
        self, make_coordinator, fake_fetcher, write_cache, snapshot, clock
    ):
        write_cache(snapshot, clock.now)
        fetcher = fake_fetcher(result=snapshot, gate=True)
        coordinator = make_coordinator(fetcher)
        coordinator.start()

        coordinator.request_refresh()

        assert coordinator.current() == Refreshing(previous=snapshot)
        fetcher.gate.set()
        _settle(coordinator)

    def test_manual_refresh_updates_cache(
        self, make_coordinator, fake_fetcher, write_cache, store, snapshot, clock
    ):
        """Ready -> Refreshing -> Ready replaces the cached snapshot."""
        write_cache(snapshot, clock.now)
        fresh = replace(snapshot, used=63.0)
        fetcher = fake_fetcher(result=fresh, gate=True)
        coordinator = make_coordinator(fetcher)
        coordinator.start()

        coordinator.request_refresh()
        assert store.load().snapshot == snapshot

        fetcher.gate.set()
        assert _settle(coordinator) == Ready(fresh, is_stale=False)
        assert store.load().snapshot == fresh

    def test_poll_does_not_block(self, make_coordinator, fake_fetcher, write_cache, snapshot, clock):
        """poll() returns the in-flight state while the worker is still blocked."""
        write_cache(snapshot, clock.now)
        fetcher = fake_fetcher(result=snapshot, gate=True)
        coordinator = make_coordinator(fetcher)
        coordinator.start()
        coordinator.request_refresh()

        assert isinstance(coordinator.poll(), Refreshing)

        fetcher.gate.set()
        _settle(coordinator)


# ═══════════════════════════════════════════════════════════════════════════════
# Test outcome handling
# ═══════════════════════════════════════════════════════════════════════════════


class TestOutcomes:
    """Tests for applying fetch results."""

    def test_failure_keeps_previous_snapshot(
        self, make_coordinator, fake_fetcher, write_cache, store, snapshot, clock
    ):
        """A failed refresh from Ready retains the snapshot and leaves the cache alone."""
        entry = write_cache(snapshot, clock.now)
        error = NetworkError("Connection timed out: timed out")
        coordinator = make_coordinator(fake_fetcher(result=error))
        coordinator.start()

        coordinator.request_refresh()
        state = _settle(coordinator)

        assert state == Failed(error, previous=snapshot)
        assert store.load() == entry

    def test_recovery_after_failure(self, make_coordinator, fake_fetcher, snapshot):
        fetcher = fake_fetcher(result=NetworkError("Network error: reset"))
        coordinator = make_coordinator(fetcher)
        coordinator.start()
        assert isinstance(_settle(coordinator), Failed)

        fetcher.result = snapshot
        assert coordinator.request_refresh() is True
        assert isinstance(coordinator.current(), Refreshing)
        state = _settle(coordinator)

        assert state == Ready(snapshot, is_stale=False)

    def test_unexpected_exception_becomes_network_error(self, make_coordinator, fake_fetcher):
        """A non-FetchError from the fetcher still ends the fetch."""
        coordinator = make_coordinator(fake_fetcher(result=RuntimeError("boom")))
        coordinator.start()

        state = _settle(coordinator)

        assert isinstance(state, Failed)
        assert isinstance(state.error, NetworkError)
        assert "boom" in state.error.message
        assert coordinator.fetch_in_flight is False

    def test_cache_write_failure_still_shows_data(
        self, make_coordinator, fake_fetcher, store, snapshot, monkeypatch
    ):
        """Data is displayed even when it cannot be persisted."""
        def _fail(_snapshot):
            raise CacheIOError("Failed to write cache", details="disk full")

        monkeypatch.setattr(store, "store", _fail)
        coordinator = make_coordinator(fake_fetcher(result=snapshot))
        coordinator.start()

        assert _settle(coordinator) == Ready(snapshot, is_stale=False)

    def test_listeners_see_each_transition(self, make_coordinator, fake_fetcher, snapshot):
        seen = []
        coordinator = make_coordinator(fake_fetcher(result=snapshot))
        coordinator.subscribe(lambda old, new: seen.append((type(old), type(new))))

        coordinator.start()
        _settle(coordinator)
        coordinator.request_refresh()
        _settle(coordinator)

        assert seen == [(Loading, Ready), (Ready, Refreshing), (Refreshing, Ready)]


# ═══════════════════════════════════════════════════════════════════════════════
# Test staleness and the TTL trigger
# ═══════════════════════════════════════════════════════════════════════════════


class TestStaleness:
    """Tests for lazy staleness and auto refresh."""

    def test_data_goes_stale_after_ttl(self, make_coordinator, fake_fetcher, snapshot, clock):
        coordinator = make_coordinator(fake_fetcher(result=snapshot), auto_refresh=False)
        coordinator.start()
        _settle(coordinator)

        clock.advance(minutes=4, seconds=59)
        assert coordinator.poll() == Ready(snapshot, is_stale=False)

        clock.advance(seconds=1)
        assert coordinator.current() == Ready(snapshot, is_stale=True)
        assert coordinator.poll() == Ready(snapshot, is_stale=True)

    def test_stale_data_auto_refreshes(self, make_coordinator, fake_fetcher, snapshot, clock):
        fetcher = fake_fetcher(result=snapshot)
        coordinator = make_coordinator(fetcher)
        coordinator.start()
        _settle(coordinator)

        clock.advance(minutes=5)
        state = coordinator.poll()

        assert state == Refreshing(previous=snapshot)
        assert _settle(coordinator) == Ready(snapshot, is_stale=False)
        assert fetcher.calls == 2

    def test_failed_retries_once_per_ttl(self, make_coordinator, fake_fetcher, clock):
        fetcher = fake_fetcher(result=NetworkError("Network error: reset"))
        coordinator = make_coordinator(fetcher)
        coordinator.start()
        _settle(coordinator)

        for _ in range(3):
            coordinator.poll()
        clock.advance(minutes=4)
        coordinator.poll()
        assert fetcher.calls == 1

        clock.advance(minutes=1)
        coordinator.poll()
        _settle(coordinator)
        assert fetcher.calls == 2

    def test_auto_refresh_can_be_paused(self, make_coordinator, fake_fetcher, clock):
        fetcher = fake_fetcher(result=NetworkError("Network error: reset"))
        coordinator = make_coordinator(fetcher)
        coordinator.start()
        _settle(coordinator)

        coordinator.set_auto_refresh(False)
        clock.advance(minutes=30)
        coordinator.poll()

        assert coordinator.auto_refresh is False
        assert fetcher.calls == 1
        assert coordinator.request_refresh() is True
        _settle(coordinator)
        assert fetcher.calls == 2

    def test_fresh_data_never_auto_refreshes(
        self, make_coordinator, fake_fetcher, write_cache, snapshot, clock
    ):
        write_cache(snapshot, clock.now)
        fetcher = fake_fetcher(result=snapshot)
        coordinator = make_coordinator(fetcher)
        coordinator.start()

        clock.advance(minutes=4)
        coordinator.poll()

        assert fetcher.calls == 0

    @pytest.mark.parametrize("bad_ttl", [timedelta(0), timedelta(minutes=-1)])
    def test_non_positive_ttl_rejected(self, store, credentials, clock, fake_fetcher, bad_ttl):
        """A zero or negative TTL would request a fetch on every poll."""
        with pytest.raises(ValueError, match="ttl must be positive"):
            RefreshCoordinator(store, fake_fetcher(), credentials, bad_ttl, clock=clock)
