"""UTC datetime utilities."""

import math
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, floored, never negative."""
    return max(0, math.floor((end - start).total_seconds()))
