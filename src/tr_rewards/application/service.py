"""ClaimEngine: converts a closed period's counted volume into a KDX payout.

Flow of claim():
  1. claim window open and the requested period is the claimable one
  2. no existing claim for (user, period)                  → AlreadyClaimed
  3. amount = userVolume / poolVolume * DAILY_POOL_KDX      → NoRewardsAvailable if 0
  4. claim_reward store function: insert claim + credit kdx (commit)
  5. referral bonus cascade, best-effort, own transaction
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tr_common.datetime_utils import utc_now
from src.tr_common.decimals import ZERO
from src.tr_common.errors import (
    AlreadyClaimedError,
    NoRewardsAvailableError,
    NotWithinClaimWindowError,
)
from src.tr_referral.application.service import ReferralBonusCascade
from src.tr_rewards.application.schemas import (
    ClaimRewardResponse,
    RewardClaimItem,
    RewardClaimListResponse,
    RewardSummaryResponse,
)
from src.tr_rewards.domain.models import reward_share
from src.tr_rewards.domain.period_clock import (
    RewardPeriodClock,
    claim_clock,
    trade_period_clock,
)
from src.tr_rewards.domain.repository import RewardRepositoryProtocol
from src.tr_rewards.infrastructure.persistence import RewardRepository

logger = logging.getLogger("tr.rewards")


class ClaimEngine:
    def __init__(
        self,
        repo: RewardRepositoryProtocol | None = None,
        referrals: ReferralBonusCascade | None = None,
        clock: RewardPeriodClock | None = None,
        trade_clock: RewardPeriodClock | None = None,
        daily_pool: Decimal | None = None,
    ) -> None:
        self._repo: RewardRepositoryProtocol = repo or RewardRepository()
        self._referrals = referrals or ReferralBonusCascade()
        self._clock = clock or claim_clock()
        self._trade_clock = trade_clock or trade_period_clock()
        self._pool = settings.DAILY_POOL_KDX if daily_pool is None else daily_pool

    async def claim(
        self,
        db: AsyncSession,
        user_id: str,
        period: date | None,
        wallet_address: str | None,
        now: datetime | None = None,
    ) -> ClaimRewardResponse:
        now = now or utc_now()
        if not self._clock.is_within_claim_window(now):
            raise NotWithinClaimWindowError(
                f"Claim window opens at {self._clock.reset_hour_utc:02d}:00 UTC"
            )
        claimable = self._clock.claimable_period(now)
        if period is None:
            period = claimable
        elif period != claimable:
            raise NotWithinClaimWindowError(
                f"Period {period} is not claimable; the claimable period is {claimable}"
            )

        if await self._repo.get_claim(db, user_id, period) is not None:
            raise AlreadyClaimedError(period.isoformat())

        user_volume = await self._repo.get_user_volume(db, user_id, period)
        pool_volume = await self._repo.get_pool_volume(db, period)
        amount = reward_share(user_volume, pool_volume, self._pool)
        if amount <= ZERO:
            raise NoRewardsAvailableError(period.isoformat())

        try:
            result = await self._repo.claim_reward(
                db,
                user_id=user_id,
                period_date=period,
                amount=amount,
                volume_score=user_volume,
                pool_volume=pool_volume,
                wallet_address=wallet_address,
            )
            if result is None:
                # A concurrent claim for the same period won the unique key.
                raise AlreadyClaimedError(period.isoformat())
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "User %s claimed %s KDX for %s (volume %s / pool %s)",
            user_id, amount, period, user_volume, pool_volume,
        )

        await self._referrals.process_safely(db, result.claim_id, amount, user_id)

        return ClaimRewardResponse(
            claim_id=result.claim_id,
            amount=amount,
            new_kdx_balance=result.new_kdx_balance,
        )

    async def summary(
        self, db: AsyncSession, user_id: str, now: datetime | None = None
    ) -> RewardSummaryResponse:
        now = now or utc_now()
        current = self._trade_clock.current_period(now)
        current_volume = await self._repo.get_user_volume(db, user_id, current)
        current_pool = await self._repo.get_pool_volume(db, current)

        claimable = self._clock.claimable_period(now)
        claimable_volume = await self._repo.get_user_volume(db, user_id, claimable)
        claimable_pool = await self._repo.get_pool_volume(db, claimable)
        claimable_reward = reward_share(claimable_volume, claimable_pool, self._pool)
        already = await self._repo.get_claim(db, user_id, claimable) is not None
        within = self._clock.is_within_claim_window(now)

        return RewardSummaryResponse(
            daily_pool=self._pool,
            current_period=current,
            current_volume=current_volume,
            current_pool_volume=current_pool,
            estimated_reward=reward_share(current_volume, current_pool, self._pool),
            claimable_period=claimable,
            claimable_volume=claimable_volume,
            claimable_reward=claimable_reward,
            already_claimed=already,
            within_claim_window=within,
            can_claim=within and not already and claimable_reward > ZERO,
            expires_at=self._clock.expiry_instant(now),
        )

    async def list_claims(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> RewardClaimListResponse:
        claims = await self._repo.list_claims(db, user_id, limit)
        return RewardClaimListResponse(
            items=[
                RewardClaimItem(
                    claim_id=c.id,
                    period=c.period_date,
                    amount=c.amount,
                    volume_score=c.volume_score,
                    pool_volume=c.pool_volume,
                    wallet_address=c.wallet_address,
                    claimed_at=c.claimed_at,
                )
                for c in claims
            ],
            total_claimed=sum((c.amount for c in claims), ZERO),
        )
