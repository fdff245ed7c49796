"""Credential lookup for the GitHub billing API.

The token comes from the environment first (COPILOT_USAGE_TOKEN, then
GITHUB_TOKEN) and otherwise from the config file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from copilot_usage.errors import SetupRequiredError

TOKEN_ENV_VARS = ("COPILOT_USAGE_TOKEN", "GITHUB_TOKEN")

# Fine-grained and classic personal access token prefixes
TOKEN_PREFIXES = ("github_pat_", "ghp_")


@dataclass(frozen=True)
class Credentials:
    """A GitHub token and, when known, the account it belongs to."""

    token: str
    username: str | None = None

    def __repr__(self) -> str:
        return f"Credentials(token={mask_token(self.token)!r}, username={self.username!r})"


def get_credentials(config: dict) -> Credentials:
    """Resolve credentials from the environment and config.

    Args:
        config: Loaded configuration dictionary.

    Returns:
        Credentials with the token and optional username.

    Raises:
        SetupRequiredError: If no token is configured anywhere.
    """
    token = None
    for var in TOKEN_ENV_VARS:
        token = os.environ.get(var)
        if token:
            break
    if not token:
        token = config.get("token")
    if not token:
        raise SetupRequiredError("No GitHub token configured.")
    return Credentials(token=token.strip(), username=config.get("username") or None)


def validate_token_format(token: str) -> tuple[bool, str | None]:
    """Check that a token looks like a GitHub personal access token.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not token:
        return False, "Token is empty"
    if not token.startswith(TOKEN_PREFIXES):
        return False, "Token should start with 'github_pat_' or 'ghp_'"
    return True, None


def mask_token(token: str, prefix_len: int = 8, suffix_len: int = 4) -> str:
    """Mask a token for safe logging/display.

    Args:
        token: Token to mask.
        prefix_len: Number of prefix characters to show.
        suffix_len: Number of suffix characters to show.

    Returns:
        Masked token string (e.g., "github_p...wxyz").
    """
    if not token:
        return "<empty>"

    if len(token) <= prefix_len + suffix_len:
        return "*" * len(token)

    return f"{token[:prefix_len]}...{token[-suffix_len:]}"


__all__ = [
    "Credentials",
    "TOKEN_ENV_VARS",
    "get_credentials",
    "validate_token_format",
    "mask_token",
]
