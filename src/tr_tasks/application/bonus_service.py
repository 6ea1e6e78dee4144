"""BonusService: the one-off welcome bonus and the once-a-day Oil bonus.

The welcome bonus is recorded by registration in the user's own transaction;
this service only reads it back. The daily bonus is keyed on the trade period
date, so it becomes claimable again at the next period reset.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tr_account.domain.repository import BalanceRepositoryProtocol
from src.tr_account.infrastructure.persistence import BalanceRepository
from src.tr_common.datetime_utils import elapsed_seconds, utc_now
from src.tr_common.enums import BonusType, RewardKind
from src.tr_common.errors import BonusAlreadyClaimedError
from src.tr_rewards.domain.period_clock import RewardPeriodClock, trade_period_clock
from src.tr_tasks.application.schemas import (
    BonusClaimResponse,
    DailyBonusStatusResponse,
    WelcomeBonusResponse,
)
from src.tr_tasks.domain.repository import BonusRepositoryProtocol
from src.tr_tasks.infrastructure.persistence import BonusRepository

logger = logging.getLogger("tr.tasks")


class BonusService:
    def __init__(
        self,
        repo: BonusRepositoryProtocol | None = None,
        balances: BalanceRepositoryProtocol | None = None,
        clock: RewardPeriodClock | None = None,
        daily_amount: Decimal | None = None,
    ) -> None:
        self._repo: BonusRepositoryProtocol = repo or BonusRepository()
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._clock = clock or trade_period_clock()
        self._daily = settings.DAILY_BONUS_OIL if daily_amount is None else daily_amount

    async def daily_status(
        self, db: AsyncSession, user_id: str, now: datetime | None = None
    ) -> DailyBonusStatusResponse:
        now = now or utc_now()
        today = self._clock.current_period(now)
        last = await self._repo.latest_claim(db, user_id, BonusType.DAILY_OIL)
        can_claim = last is None or last.claim_date != today
        next_claim_at = now if can_claim else self._clock.next_reset(now)
        return DailyBonusStatusResponse(
            can_claim=can_claim,
            bonus_amount=self._daily,
            last_claim_date=last.claim_date if last else None,
            next_claim_at=next_claim_at,
            seconds_until_next_claim=0 if can_claim else elapsed_seconds(now, next_claim_at),
        )

    async def claim_daily(
        self, db: AsyncSession, user_id: str, now: datetime | None = None
    ) -> BonusClaimResponse:
        today = self._clock.current_period(now or utc_now())
        try:
            if not await self._repo.insert_claim(
                db, user_id, BonusType.DAILY_OIL, today, self._daily
            ):
                raise BonusAlreadyClaimedError()
            balance = await self._balances.credit_reward(
                db, user_id, RewardKind.OIL, self._daily
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("User %s claimed the daily bonus for %s: %s OIL", user_id, today, self._daily)
        return BonusClaimResponse(
            bonus_type=BonusType.DAILY_OIL,
            amount_oil=self._daily,
            new_oil_balance=balance.oil_balance,
        )

    async def welcome_status(self, db: AsyncSession, user_id: str) -> WelcomeBonusResponse:
        claim = await self._repo.latest_claim(db, user_id, BonusType.WELCOME_OIL)
        if claim is None:
            return WelcomeBonusResponse(received=False)
        return WelcomeBonusResponse(
            received=True, amount_oil=claim.amount_oil, claimed_at=claim.created_at
        )
