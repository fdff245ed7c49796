"""API client for the GitHub premium request usage endpoint.

One call to ``UsageFetcher.fetch`` is exactly one attempt: there is no
retry loop here. Failures are raised as FetchError subclasses so the
refresh coordinator can turn them into state transitions.
"""

from __future__ import annotations

import json
import socket
from datetime import datetime
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from copilot_usage._version import __version__
from copilot_usage.config.credentials import Credentials
from copilot_usage.config.eventlog import Event, log_event
from copilot_usage.errors import (
    FetchError,
    MalformedResponseError,
    categorize_http_error,
    categorize_network_error,
)
from copilot_usage.models import DEFAULT_MONTHLY_LIMIT, UsageSnapshot, build_snapshot
from copilot_usage.utils.time import utc_now

# API endpoints
API_URL = "https://api.github.com"
USER_ENDPOINT = "/user"
USAGE_ENDPOINT = "/users/{username}/settings/billing/premium_request/usage"
API_VERSION = "2022-11-28"

# Request timeout in seconds
DEFAULT_TIMEOUT = 30


class UsageFetcher:
    """Performs single usage queries against the GitHub billing API."""

    def __init__(
        self,
        monthly_limit: float = DEFAULT_MONTHLY_LIMIT,
        timeout: float = DEFAULT_TIMEOUT,
        api_url: str = API_URL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.monthly_limit = monthly_limit
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")
        self._clock = clock

    def fetch(self, credentials: Credentials) -> UsageSnapshot:
        """Fetch the current month's usage.

        Resolves the account login first when the credentials carry no
        username.

        Args:
            credentials: Token and optional username.

        Returns:
            A fresh UsageSnapshot.

        Raises:
            UnauthorizedError: Token rejected or lacking billing permission.
            RateLimitedError: GitHub rate limit hit.
            NetworkError: Transport failure, timeout, or unexpected status.
            MalformedResponseError: Response is not a usage report.
        """
        username = credentials.username or self.resolve_username(credentials.token)
        endpoint = USAGE_ENDPOINT.format(username=quote(username, safe=""))

        log_event(Event.FETCH_START, f"GET {endpoint}", details={"endpoint": endpoint})
        try:
            payload = self._get_json(endpoint, credentials.token)
            try:
                snapshot = build_snapshot(payload, self._clock(), self.monthly_limit)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise MalformedResponseError(
                    "Usage response is missing expected fields.", details=str(e)
                ) from e
        except FetchError as e:
            log_event(
                Event.FETCH_ERROR,
                e.message,
                details={"endpoint": endpoint, "kind": e.kind.value},
                success=False,
            )
            raise

        log_event(
            Event.FETCH_SUCCESS,
            f"Fetched usage for {snapshot.username or username}",
            details={"used": snapshot.used, "limit": snapshot.limit},
        )
        return snapshot

    def resolve_username(self, token: str) -> str:
        """Look up the login that owns ``token``.

        Raises:
            FetchError: On any failure (same taxonomy as ``fetch``).
        """
        data = self._get_json(USER_ENDPOINT, token)
        login = data.get("login") if isinstance(data, dict) else None
        if not login or not isinstance(login, str):
            raise MalformedResponseError("Could not determine username from token.")
        return login

    def _get_json(self, endpoint: str, token: str) -> Any:
        req = Request(
            f"{self.api_url}{endpoint}",
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": f"copilot-usage/{__version__}",
            },
        )
        try:
            with urlopen(req, timeout=self.timeout) as response:
                body = response.read()
        except HTTPError as e:
            raise categorize_http_error(e.code, str(e.reason or ""), e.headers) from None
        except URLError as e:
            raise categorize_network_error(str(e.reason)) from e
        except (socket.timeout, TimeoutError) as e:
            raise categorize_network_error(f"timed out: {e}") from e
        except OSError as e:
            raise categorize_network_error(str(e)) from e

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedResponseError("Usage response is not valid JSON.", details=str(e)) from e


__all__ = [
    "API_URL",
    "API_VERSION",
    "DEFAULT_TIMEOUT",
    "USAGE_ENDPOINT",
    "USER_ENDPOINT",
    "UsageFetcher",
]
