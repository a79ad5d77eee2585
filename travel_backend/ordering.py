"""
In-memory ordering for listing endpoints.

Multi-field sorts happen here rather than in the store: the production store
is not guaranteed to have composite indexes. This assumes a collection fits
comfortably in memory, which holds for a curated catalog of a few hundred
records but not for unbounded user content.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Callable, Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def created_at(doc: dict) -> datetime:
    value = doc.get("createdAt")
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return _EPOCH
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return _EPOCH


def _order(doc: dict) -> float:
    try:
        return float(doc.get("order") or 0)
    except (TypeError, ValueError):
        return 0.0


def sort_by_order_and_date(items: list[dict]) -> list[dict]:
    """`order` ascending, then newest first."""
    newest_first = sorted(items, key=created_at, reverse=True)
    return sorted(newest_first, key=_order)


def sort_by_date(items: list[dict], ascending: bool = False) -> list[dict]:
    return sorted(items, key=created_at, reverse=not ascending)


def sort_by_score_and_date(
    items: list[dict], score: Callable[[dict], float]
) -> list[dict]:
    """Highest score first, then newest first."""
    newest_first = sorted(items, key=created_at, reverse=True)
    return sorted(newest_first, key=score, reverse=True)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def clamp_limit(
    raw: Optional[str], default: int, minimum: int = 1, maximum: int = 200
) -> int:
    """
    Parse a `limit` query value the way the listing endpoints expect.

    Only the leading integer counts ("10abc" is 10). A missing, unparseable
    or zero value falls back to `default` before clamping.
    """
    match = _LEADING_INT.match(str(raw)) if raw is not None else None
    value = int(match.group(1)) if match else 0
    if value == 0:
        value = default
    return min(max(value, minimum), maximum)
