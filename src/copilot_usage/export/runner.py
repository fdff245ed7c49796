"""Export Mode: one fetch-or-cache cycle, one line of output, exit.

Follows the same startup decision table as the dashboard, but runs it
synchronously: a fresh cache entry is printed as is; a stale or missing
entry triggers exactly one fetch. A failed fetch falls back to stale data
when there is any, and only fails when there is no data at all.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from typing import Callable, Optional, TextIO

from copilot_usage.api.cache import CacheStore, is_fresh
from copilot_usage.api.client import UsageFetcher
from copilot_usage.config.credentials import Credentials
from copilot_usage.config.eventlog import Event, log_event
from copilot_usage.display.statusbar import DEFAULT_FORMAT, format_line, format_waybar
from copilot_usage.errors import (
    CacheIOError,
    CopilotUsageError,
    ExitCode,
    FetchError,
    SetupRequiredError,
    format_error_for_user,
)
from copilot_usage.refresh import plan_startup
from copilot_usage.utils.time import utc_now


def run_export(
    store: CacheStore,
    fetcher: UsageFetcher,
    credentials: Optional[Credentials],
    ttl: timedelta,
    template: str = DEFAULT_FORMAT,
    force: bool = False,
    waybar: bool = True,
    out: TextIO = sys.stdout,
    err: TextIO = sys.stderr,
    clock: Callable[[], datetime] = utc_now,
) -> int:
    """Print one status line and return the process exit code.

    Args:
        store: Cache to read and update.
        fetcher: Fetcher used when the cache is stale, missing, or ``force``.
        credentials: GitHub credentials, or None when no token is configured.
        ttl: Cache freshness window.
        template: Text template with {percentage}, {used}, {limit}, {remaining}.
        force: Fetch even when the cache is fresh.
        waybar: Print waybar JSON instead of plain text.
        out: Stream for the status line.
        err: Stream for error messages.
        clock: Time source.

    Returns:
        0 when a line was printed, otherwise the exit code of the error that
        left no data to show.
    """
    entry = store.load()
    now = clock()
    plan = plan_startup(entry, ttl, now)

    snapshot = entry.snapshot if entry is not None else None
    is_stale = plan.should_fetch

    if force or plan.should_fetch:
        try:
            if credentials is None:
                raise SetupRequiredError("No GitHub token configured.")
            snapshot = fetcher.fetch(credentials)
            is_stale = False
        except (FetchError, SetupRequiredError) as e:
            if snapshot is None:
                print(_describe_failure(e), file=err)
                return e.code
            # Keep showing the cached entry
            is_stale = not is_fresh(entry, ttl, now)
        else:
            try:
                store.store(snapshot)
            except CacheIOError as e:
                log_event(
                    Event.CACHE_WRITE_FAILED,
                    e.message,
                    details={"error": e.details},
                    success=False,
                )

    if waybar:
        print(format_waybar(snapshot, template, is_stale=is_stale), file=out)
    else:
        print(format_line(snapshot, template), file=out)
    return ExitCode.SUCCESS


def _describe_failure(error: CopilotUsageError) -> str:
    message = format_error_for_user(error, verbose=True)
    if isinstance(error, FetchError):
        return f"No usage data available.\n{message}"
    return message


__all__ = ["run_export"]
