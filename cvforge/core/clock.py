"""
Time source for period computation.

Services take a ``clock`` callable instead of reading the wall clock directly so
tests can pin "now" and simulate a month rollover.
"""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """FastAPI dependency; overridden in tests with a fixed clock."""
    return utc_now
