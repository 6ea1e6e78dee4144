"""Repository Protocol for reward claims and the period volume aggregates they read."""

from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_rewards.domain.leaderboard import TraderStats
from src.tr_rewards.domain.models import ClaimResult, RewardClaim


class RewardRepositoryProtocol(Protocol):
    async def get_user_volume(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> Decimal: ...

    async def get_pool_volume(self, db: AsyncSession, period_date: date) -> Decimal: ...

    async def get_claim(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> RewardClaim | None: ...

    async def get_claim_by_id(
        self, db: AsyncSession, claim_id: str
    ) -> RewardClaim | None: ...

    async def claim_reward(
        self,
        db: AsyncSession,
        user_id: str,
        period_date: date,
        amount: Decimal,
        volume_score: Decimal,
        pool_volume: Decimal,
        wallet_address: str | None,
    ) -> ClaimResult | None: ...

    async def list_claims(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[RewardClaim]: ...


class LeaderboardRepositoryProtocol(Protocol):
    async def aggregate_stats(
        self, db: AsyncSession, start: date, end: date
    ) -> list[TraderStats]: ...
