"""Domain models and pure share math for tr_rewards."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from src.tr_common.decimals import ZERO


@dataclass
class RewardClaim:
    id: str
    user_id: str
    period_date: date
    amount: Decimal
    volume_score: Decimal
    pool_volume: Decimal
    wallet_address: str | None
    claimed_at: datetime | None = None


@dataclass
class ClaimResult:
    claim_id: str
    new_kdx_balance: Decimal


def reward_share(user_volume: Decimal, pool_volume: Decimal, daily_pool: Decimal) -> Decimal:
    """user_volume / pool_volume of the daily pool; 0 when nobody traded."""
    if pool_volume <= ZERO or user_volume <= ZERO:
        return ZERO
    return user_volume / pool_volume * daily_pool
