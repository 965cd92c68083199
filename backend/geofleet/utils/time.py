from __future__ import annotations

import datetime as dt


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def seconds_between(earlier: dt.datetime, later: dt.datetime) -> float:
    """Elapsed seconds from ``earlier`` to ``later`` (negative if reversed)."""
    return (later - earlier).total_seconds()
