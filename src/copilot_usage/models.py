"""Usage data model.

A UsageSnapshot is one immutable reading of premium request usage. It is
produced by the fetcher or read back from the cache, and superseded rather
than edited.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from copilot_usage.utils.time import next_month_start, parse_timestamp

# GitHub Copilot Pro monthly premium request allowance
DEFAULT_MONTHLY_LIMIT = 300.0

# Price per premium request beyond the allowance (USD)
OVERAGE_PRICE = 0.04


@dataclass(frozen=True)
class UsageSnapshot:
    """One reading of the monthly premium request quota."""

    used: float
    limit: float
    breakdown: tuple[tuple[str, float], ...]
    obtained_at: datetime
    username: str = ""
    reset_at: datetime | None = field(default=None)

    @property
    def percentage(self) -> float:
        if self.limit <= 0:
            return 0.0
        return self.used / self.limit * 100

    @property
    def remaining(self) -> float:
        return max(self.limit - self.used, 0.0)

    @property
    def estimated_cost(self) -> float:
        if self.used <= self.limit:
            return 0.0
        return (self.used - self.limit) * OVERAGE_PRICE

    def breakdown_map(self) -> Mapping[str, float]:
        """Per-model consumption as a read-only mapping."""
        return MappingProxyType(dict(self.breakdown))

    def to_dict(self) -> dict[str, Any]:
        return {
            "used": self.used,
            "limit": self.limit,
            "breakdown": [[name, amount] for name, amount in self.breakdown],
            "obtained_at": self.obtained_at.isoformat(),
            "username": self.username,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UsageSnapshot:
        """Rebuild a snapshot from ``to_dict`` output.

        Raises:
            KeyError, TypeError, ValueError: If the data is malformed.
        """
        reset_at = data.get("reset_at")
        return cls(
            used=float(data["used"]),
            limit=float(data["limit"]),
            breakdown=_sorted_breakdown((str(n), float(a)) for n, a in data["breakdown"]),
            obtained_at=parse_timestamp(data["obtained_at"]),
            username=str(data.get("username") or ""),
            reset_at=parse_timestamp(reset_at) if reset_at else None,
        )


def _sorted_breakdown(items: Iterable[tuple[str, float]]) -> tuple[tuple[str, float], ...]:
    return tuple(sorted(items, key=lambda item: (-item[1], item[0])))


def build_snapshot(
    payload: Mapping[str, Any],
    obtained_at: datetime,
    monthly_limit: float = DEFAULT_MONTHLY_LIMIT,
) -> UsageSnapshot:
    """Aggregate a billing usage report into a snapshot.

    Args:
        payload: Decoded JSON from the premium request usage endpoint.
        obtained_at: When the report was retrieved.
        monthly_limit: Included premium requests per month.

    Returns:
        UsageSnapshot with per-model totals sorted by consumption.

    Raises:
        KeyError, TypeError, ValueError: If the payload is not a usage report.
    """
    items = payload["usageItems"]
    if not isinstance(items, list):
        raise TypeError("usageItems must be a list")

    per_model: dict[str, float] = {}
    for item in items:
        model = str(item.get("model") or item.get("sku") or "unknown")
        per_model[model] = per_model.get(model, 0.0) + float(item["netQuantity"])

    return UsageSnapshot(
        used=sum(per_model.values()),
        limit=float(monthly_limit),
        breakdown=_sorted_breakdown(per_model.items()),
        obtained_at=obtained_at,
        username=str(payload.get("user") or ""),
        reset_at=next_month_start(obtained_at),
    )


__all__ = ["DEFAULT_MONTHLY_LIMIT", "OVERAGE_PRICE", "UsageSnapshot", "build_snapshot"]
