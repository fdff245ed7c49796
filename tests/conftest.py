"""
Pytest fixtures for copilot-usage tests.

Test imports use the src/copilot_usage/ package via --import-mode=importlib (see pyproject.toml).
Every test runs with config, cache and event log paths redirected into tmp_path.
"""

import json
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import copilot_usage.api.cache as cache_module
import copilot_usage.config.eventlog as eventlog_module
import copilot_usage.config.settings as settings_module
from copilot_usage.api.cache import CacheEntry, CacheStore
from copilot_usage.config.credentials import Credentials
from copilot_usage.models import UsageSnapshot


# ═══════════════════════════════════════════════════════════════════════════════
# Path Constants
# ═══════════════════════════════════════════════════════════════════════════════

PROJECT_ROOT = Path(__file__).parent.parent
SRC_DIR = PROJECT_ROOT / "src"

# Load fixtures data
FIXTURES_DIR = Path(__file__).parent / "fixtures"
with open(FIXTURES_DIR / "api_responses.json") as f:
    FIXTURES = json.load(f)


# ═══════════════════════════════════════════════════════════════════════════════
# Isolation
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path, monkeypatch):
    """Point config, cache and event log at tmp_path and clear token env vars."""
    for var in ("COPILOT_USAGE_TOKEN", "GITHUB_TOKEN", "COPILOT_USAGE_CACHE_TTL"):
        monkeypatch.delenv(var, raising=False)

    paths = {
        "config": tmp_path / "config" / "config.json",
        "cache": tmp_path / "cache" / "usage.json",
        "log": tmp_path / "state" / "events.log",
    }
    with patch.object(settings_module, "CONFIG_FILE", paths["config"]), patch.object(
        cache_module, "CACHE_FILE", paths["cache"]
    ), patch.object(eventlog_module, "EVENT_LOG_FILE", paths["log"]):
        yield paths
    eventlog_module.disable_event_log()


# ═══════════════════════════════════════════════════════════════════════════════
# API Response Fixtures
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def usage_normal():
    """Normal usage report (42 requests over two models)."""
    return json.loads(json.dumps(FIXTURES["usage_normal"]))


@pytest.fixture
def usage_over_limit():
    """Usage report beyond the 300 request allowance (350 requests)."""
    return json.loads(json.dumps(FIXTURES["usage_over_limit"]))


@pytest.fixture
def usage_empty():
    """Usage report with no premium requests."""
    return json.loads(json.dumps(FIXTURES["usage_empty"]))


@pytest.fixture
def usage_malformed():
    """A JSON body that is not a usage report."""
    return FIXTURES["usage_malformed"].copy()


@pytest.fixture
def user_profile():
    """GET /user response."""
    return FIXTURES["user_profile"].copy()


# ═══════════════════════════════════════════════════════════════════════════════
# Config Fixtures
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def config_default():
    """Default configuration."""
    return FIXTURES["config_default"].copy()


@pytest.fixture
def config_v1():
    """Version 1 configuration without monthly_limit or timeout."""
    return FIXTURES["config_v1"].copy()


@pytest.fixture
def tmp_config_file(isolated_paths, config_default):
    """Write the default config to the isolated config path."""
    config_file = isolated_paths["config"]
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config_default), encoding="utf-8")
    return config_file


# ═══════════════════════════════════════════════════════════════════════════════
# Time Fixtures
# ═══════════════════════════════════════════════════════════════════════════════


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def fixed_now():
    """Fixed datetime for reproducible tests."""
    return datetime(2024, 12, 19, 14, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    """Controllable clock starting at fixed_now."""
    return FakeClock(fixed_now)


@pytest.fixture
def ttl():
    """Five minute cache TTL."""
    return timedelta(minutes=5)


# ═══════════════════════════════════════════════════════════════════════════════
# Domain Fixtures
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def snapshot(fixed_now):
    """42 of 100 requests used."""
    return UsageSnapshot(
        used=42.0,
        limit=100.0,
        breakdown=(("Claude Sonnet 4", 34.0), ("GPT-4.1", 8.0)),
        obtained_at=fixed_now,
        username="octocat",
        reset_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def credentials():
    """Credentials with a fine-grained token and a known username."""
    return Credentials(token="github_pat_test_0123456789abcdef", username="octocat")


@pytest.fixture
def store(isolated_paths, clock):
    """CacheStore on the isolated cache path, stamped by the fake clock."""
    return CacheStore(isolated_paths["cache"], clock=clock)


@pytest.fixture
def write_cache(store):
    """Write ``snapshot`` into the cache with a given timestamp."""

    def _write(snapshot: UsageSnapshot, timestamp: datetime) -> CacheEntry:
        entry = CacheEntry(snapshot=snapshot, timestamp=timestamp)
        store.save(entry)
        return entry

    return _write


# ═══════════════════════════════════════════════════════════════════════════════
# Fake Collaborators
# ═══════════════════════════════════════════════════════════════════════════════


class FakeFetcher:
    """Stands in for UsageFetcher.

    Returns ``result`` (or raises it when it is an exception). When ``gate``
    is set, each call blocks until the gate is opened.
    """

    def __init__(self, result=None, gate: bool = False):
        self.result = result
        self.calls = 0
        self.gate = threading.Event()
        if not gate:
            self.gate.set()
        self._lock = threading.Lock()

    def fetch(self, credentials):
        with self._lock:
            self.calls += 1
        self.gate.wait(timeout=5)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


class FakeScreen:
    """Records presented frames and replays scripted keys."""

    def __init__(self, keys=(), size=(80, 24)):
        self.keys = list(keys)
        self.frames = []
        self.backgrounds = []
        self._size = size

    def read_key(self):
        return self.keys.pop(0) if self.keys else None

    def size(self):
        return self._size

    def present(self, frame, background=None):
        self.frames.append(frame)
        self.backgrounds.append(background)


@pytest.fixture
def fake_fetcher():
    """Factory for FakeFetcher instances."""
    return FakeFetcher


@pytest.fixture
def fake_screen():
    """Factory for FakeScreen instances."""
    return FakeScreen


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def make_response():
    """Build a urlopen() context manager returning ``payload``."""

    def _make(payload, raw: bytes = None):
        mock_response = MagicMock()
        mock_response.read.return_value = raw if raw is not None else json.dumps(payload).encode()
        mock_response.__enter__ = MagicMock(return_value=mock_response)
        mock_response.__exit__ = MagicMock(return_value=False)
        return mock_response

    return _make


@pytest.fixture
def mock_urlopen():
    """Mock urlopen for HTTP tests."""
    with patch("copilot_usage.api.client.urlopen") as mock:
        yield mock


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def frame_text(frame) -> str:
    """Flatten a Frame to plain text, one line per row."""
    return "\n".join("".join(segment.text for segment in line) for line in frame)


@pytest.fixture
def as_text():
    """Flatten a Frame to plain text."""
    return frame_text
