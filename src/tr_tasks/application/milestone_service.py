"""MilestoneService: daily volume milestones paid in Oil.

Progress is the raw notional the user closed in the current trade period.
Each milestone pays at most once per user per period: the claim row's unique
key decides, and the Oil credit rides in the same transaction.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_account.domain.repository import BalanceRepositoryProtocol
from src.tr_account.infrastructure.persistence import BalanceRepository
from src.tr_common.datetime_utils import utc_now
from src.tr_common.enums import RewardKind
from src.tr_common.errors import (
    MilestoneAlreadyClaimedError,
    MilestoneNotFoundError,
    MilestoneNotReachedError,
)
from src.tr_rewards.domain.period_clock import RewardPeriodClock, trade_period_clock
from src.tr_tasks.application.schemas import (
    MilestoneClaimResponse,
    MilestoneItem,
    MilestoneListResponse,
)
from src.tr_tasks.domain.definitions import VOLUME_MILESTONES
from src.tr_tasks.domain.repository import MilestoneRepositoryProtocol
from src.tr_tasks.infrastructure.persistence import MilestoneRepository

logger = logging.getLogger("tr.tasks")


class MilestoneService:
    def __init__(
        self,
        repo: MilestoneRepositoryProtocol | None = None,
        balances: BalanceRepositoryProtocol | None = None,
        clock: RewardPeriodClock | None = None,
    ) -> None:
        self._repo: MilestoneRepositoryProtocol = repo or MilestoneRepository()
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._clock = clock or trade_period_clock()

    async def list_milestones(
        self, db: AsyncSession, user_id: str, now: datetime | None = None
    ) -> MilestoneListResponse:
        period = self._clock.current_period(now or utc_now())
        volume = await self._repo.traded_volume(db, user_id, period)
        claimed = await self._repo.claimed_ids(db, user_id, period)
        items = []
        for m in VOLUME_MILESTONES.values():
            completed = volume >= m.target_volume
            is_claimed = m.id in claimed
            items.append(
                MilestoneItem(
                    milestone_id=m.id,
                    name=m.name,
                    target_volume=m.target_volume,
                    reward_oil=m.reward_oil,
                    progress=min(volume, m.target_volume),
                    completed=completed,
                    claimed=is_claimed,
                    can_claim=completed and not is_claimed,
                )
            )
        return MilestoneListResponse(period_date=period, traded_volume=volume, items=items)

    async def claim(
        self,
        db: AsyncSession,
        user_id: str,
        milestone_id: str,
        now: datetime | None = None,
    ) -> MilestoneClaimResponse:
        milestone = VOLUME_MILESTONES.get(milestone_id)
        if milestone is None:
            raise MilestoneNotFoundError(milestone_id)
        period = self._clock.current_period(now or utc_now())

        try:
            volume = await self._repo.traded_volume(db, user_id, period)
            if volume < milestone.target_volume:
                raise MilestoneNotReachedError(milestone_id, milestone.target_volume, volume)
            if not await self._repo.insert_claim(
                db, user_id, milestone_id, period, volume, milestone.reward_oil
            ):
                raise MilestoneAlreadyClaimedError(milestone_id)
            balance = await self._balances.credit_reward(
                db, user_id, RewardKind.OIL, milestone.reward_oil
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "User %s claimed milestone %s for %s: %s OIL",
            user_id, milestone_id, period, milestone.reward_oil,
        )
        return MilestoneClaimResponse(
            milestone_id=milestone_id,
            volume_reached=volume,
            reward_oil=milestone.reward_oil,
            new_oil_balance=balance.oil_balance,
        )
