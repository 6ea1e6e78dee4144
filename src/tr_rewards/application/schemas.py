"""Pydantic schemas for tr_rewards API."""

import datetime as dt
from decimal import Decimal

from pydantic import Field

from src.tr_common.enums import LeaderboardPeriod, LeaderboardType
from src.tr_common.response import CamelModel
from src.tr_gateway.user.schemas import WALLET_ADDRESS_PATTERN


class ClaimRewardRequest(CamelModel):
    # Omitted period means "the currently claimable one".
    period: dt.date | None = None
    wallet_address: str | None = Field(None, pattern=WALLET_ADDRESS_PATTERN.pattern)


class ClaimRewardResponse(CamelModel):
    claim_id: str
    amount: Decimal
    new_kdx_balance: Decimal


class RewardSummaryResponse(CamelModel):
    daily_pool: Decimal
    current_period: dt.date
    current_volume: Decimal
    current_pool_volume: Decimal
    estimated_reward: Decimal
    claimable_period: dt.date
    claimable_volume: Decimal
    claimable_reward: Decimal
    already_claimed: bool
    within_claim_window: bool
    can_claim: bool
    expires_at: dt.datetime


class RewardClaimItem(CamelModel):
    claim_id: str
    period: dt.date
    amount: Decimal
    volume_score: Decimal
    pool_volume: Decimal
    wallet_address: str | None = None
    claimed_at: dt.datetime | None = None


class RewardClaimListResponse(CamelModel):
    items: list[RewardClaimItem]
    total_claimed: Decimal


class LeaderboardItem(CamelModel):
    rank: int
    user_id: str
    username: str
    total_volume: Decimal
    counted_volume: Decimal
    total_pnl: Decimal
    trade_count: int
    win_count: int
    win_rate: Decimal


class LeaderboardResponse(CamelModel):
    board: LeaderboardType
    period: LeaderboardPeriod
    start_date: dt.date
    end_date: dt.date
    items: list[LeaderboardItem]


class UserRankResponse(CamelModel):
    period: LeaderboardPeriod
    start_date: dt.date
    end_date: dt.date
    # None until the user closes a trade in the range.
    rank: int | None
    total_volume: Decimal
    counted_volume: Decimal
    total_pnl: Decimal
    trade_count: int
    win_count: int
    win_rate: Decimal
