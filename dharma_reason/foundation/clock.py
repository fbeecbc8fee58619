"""Clock utilities.

This module is the single source of "now" and of elapsed-time readings so
tests can monkey-patch it trivially.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def monotonic_ms() -> float:
    """Return a monotonic clock reading in milliseconds for latency measurement."""
    return time.monotonic() * 1000.0
