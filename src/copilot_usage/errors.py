"""Categorized error handling with actionable messages.

Provides structured error types with exit codes and recovery suggestions
for better user experience and status-bar scripting integration.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import ClassVar, Mapping


class ExitCode(IntEnum):
    """Exit codes for scripting integration.

    Standard categories:
    - 0: Success
    - 1-9: Usage/config errors (user can fix)
    - 10-19: Authentication errors
    - 20-29: Network errors
    - 30-39: API errors
    - 40-49: System errors
    """

    SUCCESS = 0

    # Usage/config errors (1-9)
    USAGE_ERROR = 1
    CONFIG_ERROR = 2
    SETUP_REQUIRED = 3
    INVALID_ARGUMENT = 4

    # Authentication errors (10-19)
    AUTH_INVALID = 11

    # Network errors (20-29)
    NETWORK_ERROR = 20

    # API errors (30-39)
    API_RATE_LIMIT = 31
    API_MALFORMED = 34

    # System errors (40-49)
    CACHE_IO = 43
    SYSTEM_ERROR = 49


class CopilotUsageError(Exception):
    """Base exception for copilot-usage with structured error info.

    Attributes:
        message: Human-readable error message.
        code: Exit code for scripting.
        suggestion: Actionable recovery suggestion.
        details: Optional additional context.
    """

    code: ClassVar[ExitCode] = ExitCode.USAGE_ERROR
    suggestion: ClassVar[str] = ""

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        details: str | None = None,
    ):
        self.message = message
        self._suggestion = suggestion
        self.details = details
        super().__init__(message)

    def get_suggestion(self) -> str:
        """Get the recovery suggestion."""
        return self._suggestion or self.suggestion

    def format_full(self) -> str:
        """Format the complete error message with suggestion."""
        parts = [f"Error: {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        suggestion = self.get_suggestion()
        if suggestion:
            parts.append(f"Suggestion: {suggestion}")
        return "\n".join(parts)


# Fetch Errors


class FetchErrorKind(Enum):
    """The closed set of ways a single usage fetch can fail."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"


class FetchError(CopilotUsageError):
    """A usage fetch failed. Never fatal; surfaced as the Failed state."""

    kind: ClassVar[FetchErrorKind] = FetchErrorKind.NETWORK


class UnauthorizedError(FetchError):
    """The token was rejected or lacks billing permissions."""

    kind = FetchErrorKind.UNAUTHORIZED
    code = ExitCode.AUTH_INVALID
    suggestion = (
        "Create a fine-grained token with 'Plan: read' permission and run "
        "'copilot-usage --config set token YOUR_TOKEN'."
    )


class RateLimitedError(FetchError):
    """GitHub API rate limit exceeded."""

    kind = FetchErrorKind.RATE_LIMITED
    code = ExitCode.API_RATE_LIMIT
    suggestion = "You've hit the GitHub API rate limit. Wait a few minutes before trying again."


class NetworkError(FetchError):
    """Transport failure, timeout, or an unexpected HTTP status."""

    kind = FetchErrorKind.NETWORK
    code = ExitCode.NETWORK_ERROR
    suggestion = "Check your internet connection and try again."


class MalformedResponseError(FetchError):
    """The API answered with something that is not a usage report."""

    kind = FetchErrorKind.MALFORMED_RESPONSE
    code = ExitCode.API_MALFORMED
    suggestion = "The GitHub API returned unexpected data. Try again later."


# Config/Setup Errors


class ConfigError(CopilotUsageError):
    """Configuration file error."""

    code = ExitCode.CONFIG_ERROR
    suggestion = "Run 'copilot-usage --config reset' to reset configuration to defaults."


class SetupRequiredError(CopilotUsageError):
    """No GitHub token has been configured yet."""

    code = ExitCode.SETUP_REQUIRED
    suggestion = (
        "Run 'copilot-usage --config set token YOUR_TOKEN' "
        "or export COPILOT_USAGE_TOKEN."
    )


# File/System Errors


class CacheIOError(CopilotUsageError):
    """Reading or writing the cache slot failed. Degrades to a cache miss."""

    code = ExitCode.CACHE_IO
    suggestion = "Check permissions on the cache directory."


def categorize_http_error(
    status_code: int,
    reason: str = "",
    headers: Mapping[str, str] | None = None,
) -> FetchError:
    """Convert an HTTP status code to the matching fetch error.

    Args:
        status_code: HTTP status code.
        reason: Optional reason phrase.
        headers: Optional response headers (used to tell a 403 rate limit
            apart from a permission problem).

    Returns:
        Appropriate FetchError subclass instance.
    """
    headers = headers or {}

    if status_code == 401:
        return UnauthorizedError("Authentication failed. Your token was rejected.")
    elif status_code == 403:
        if str(headers.get("X-RateLimit-Remaining", "")).strip() == "0":
            return RateLimitedError("Rate limit exceeded. Too many requests.")
        return UnauthorizedError(
            "Access denied. Your token can't read billing data.",
            details=f"{status_code} {reason}".strip(),
        )
    elif status_code == 404:
        return NetworkError(
            "Not found. GitHub has no premium request usage for this user.",
            details=f"{status_code} {reason}".strip(),
            suggestion=(
                "Check the username. Usage is only reported for a personal Copilot plan; "
                "a plan managed by an organization is not visible here."
            ),
        )
    elif status_code == 429:
        return RateLimitedError("Rate limit exceeded. Too many requests.")
    message = f"API error: {status_code}"
    if reason:
        message += f" {reason}"
    return NetworkError(message)


def categorize_network_error(error_reason: str) -> NetworkError:
    """Convert a transport error reason to a NetworkError.

    Args:
        error_reason: Error reason string from URLError or the socket layer.

    Returns:
        NetworkError with a message naming the failure.
    """
    reason_lower = error_reason.lower()

    if "timed out" in reason_lower or "timeout" in reason_lower:
        return NetworkError(
            f"Connection timed out: {error_reason}",
            suggestion="Try again, or increase the timeout with --timeout.",
        )
    elif "name or service not known" in reason_lower or "getaddrinfo" in reason_lower:
        return NetworkError(f"DNS resolution failed: {error_reason}")
    elif "proxy" in reason_lower or "tunnel" in reason_lower:
        return NetworkError(
            f"Proxy error: {error_reason}",
            suggestion="Check your HTTP_PROXY / HTTPS_PROXY environment variables.",
        )
    return NetworkError(f"Network error: {error_reason}")


def format_error_for_user(error: Exception, verbose: bool = False) -> str:
    """Format any exception for user display.

    Args:
        error: Exception to format.
        verbose: If True, include details and suggestions.

    Returns:
        Formatted error message string.
    """
    if isinstance(error, CopilotUsageError):
        if verbose:
            return error.format_full()
        return f"Error: {error.message}"
    else:
        return f"Error: {error}"


def get_exit_code(error: Exception) -> int:
    """Get the exit code for an exception.

    Args:
        error: Exception to get code for.

    Returns:
        Integer exit code.
    """
    if isinstance(error, CopilotUsageError):
        return error.code
    elif isinstance(error, ValueError):
        return ExitCode.INVALID_ARGUMENT
    else:
        return ExitCode.SYSTEM_ERROR


__all__ = [
    "ExitCode",
    "CopilotUsageError",
    # Fetch errors
    "FetchErrorKind",
    "FetchError",
    "UnauthorizedError",
    "RateLimitedError",
    "NetworkError",
    "MalformedResponseError",
    # Config errors
    "ConfigError",
    "SetupRequiredError",
    # File errors
    "CacheIOError",
    # Utilities
    "categorize_http_error",
    "categorize_network_error",
    "format_error_for_user",
    "get_exit_code",
]
