"""
Clock helpers for journal entries and cycle timing.
"""

from __future__ import annotations
import datetime as _dt
import time


def now_iso() -> str:
    """Current UTC time, ISO-8601 with millisecond precision and a Z suffix."""
    now = _dt.datetime.now(tz=_dt.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def monotonic_ms() -> int:
    # Cycle durations must not jump with wall-clock adjustments
    return int(time.monotonic() * 1000)
