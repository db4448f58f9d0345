"""Clock source used for rolling windows and state transitions."""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """FastAPI dependency returning the clock; overridden in tests."""
    return utc_now
