"""Domain models for tr_volume."""

from dataclasses import dataclass
from decimal import Decimal

from src.tr_common.enums import CountedVolumeReason


@dataclass(frozen=True)
class VolumeIncrement:
    """Result of one capped add to a user's daily counted volume."""

    applied: Decimal
    capped: bool
    total: Decimal


@dataclass(frozen=True)
class CountedVolume:
    amount: Decimal
    reason: CountedVolumeReason | None = None
