"""Timezone-aware clock utilities.

All thought timestamps in coconut-reason are UTC-aware.  This module is the
single source of "now" so tests can monkey-patch it trivially.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def monotonic() -> float:
    """Seconds from a monotonic clock, used for cache recency and expiry."""
    return time.monotonic()
