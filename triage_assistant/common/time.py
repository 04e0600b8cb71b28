"""Time helpers shared by the collector and the score calculators."""

from __future__ import annotations

import datetime as dt
import math

_SECONDS_PER_DAY = 86_400


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def parse_github_datetime(value: str) -> dt.datetime:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime."""
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        msg = f"GitHub datetime missing timezone: {value}"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)


def days_since(moment: dt.datetime, now: dt.datetime) -> int:
    """Return whole days elapsed from ``moment`` to ``now``, rounded up.

    Partial days count as a full day. Moments in the future yield ``0``.

    >>> import datetime as dt
    >>> now = dt.datetime(2025, 1, 10, tzinfo=dt.UTC)
    >>> days_since(dt.datetime(2025, 1, 8, 12, tzinfo=dt.UTC), now)
    2
    """
    elapsed = (now - moment).total_seconds()
    if elapsed <= 0:
        return 0
    return math.ceil(elapsed / _SECONDS_PER_DAY)
