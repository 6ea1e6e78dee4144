"""Anti-spam weighting of raw trade volume. Pure functions.

  hold time        weight
  < 30s            0   (too_fast)
  [30s, 60s)       0.5
  [60s, 180s)      0.75
  >= 180s          1.0

Positions under 5 USDT notional count for nothing (too_small).
"""

from decimal import Decimal

from src.tr_common.decimals import ZERO
from src.tr_common.enums import CountedVolumeReason

MIN_OPEN_TIME_SECONDS = 30
MIN_POSITION_SIZE_USDT = Decimal("5")

_WEIGHT_TIERS: list[tuple[int, Decimal]] = [
    (180, Decimal("1.0")),
    (60, Decimal("0.75")),
    (MIN_OPEN_TIME_SECONDS, Decimal("0.5")),
]


def hold_time_weight(open_time_seconds: int) -> Decimal:
    for threshold, weight in _WEIGHT_TIERS:
        if open_time_seconds >= threshold:
            return weight
    return ZERO


def weighted_volume(
    open_time_seconds: int, position_size_usdt: Decimal
) -> tuple[Decimal, CountedVolumeReason | None]:
    """Volume before the daily cap, and why it is zero when it is."""
    if open_time_seconds < MIN_OPEN_TIME_SECONDS:
        return ZERO, CountedVolumeReason.TOO_FAST
    if position_size_usdt < MIN_POSITION_SIZE_USDT:
        return ZERO, CountedVolumeReason.TOO_SMALL
    return position_size_usdt * hold_time_weight(open_time_seconds), None
