"""TaskService: daily task counters and reward claims.

record_trade_progress() is called after a close has committed. It runs in its
own transaction and never raises: a failed counter must not fail the close.
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_account.domain.repository import BalanceRepositoryProtocol
from src.tr_account.infrastructure.persistence import BalanceRepository
from src.tr_common.datetime_utils import utc_now
from src.tr_common.decimals import ZERO
from src.tr_common.errors import (
    TaskAlreadyClaimedError,
    TaskNotCompletedError,
    TaskNotFoundError,
)
from src.tr_rewards.domain.period_clock import RewardPeriodClock, trade_period_clock
from src.tr_tasks.application.schemas import TaskClaimResponse, TaskItem, TaskListResponse
from src.tr_tasks.domain.definitions import (
    DAILY_TASKS,
    TRADE_COUNT_TASK,
    VOLUME_TASK,
    WIN_COUNT_TASK,
)
from src.tr_tasks.domain.repository import TaskRepositoryProtocol
from src.tr_tasks.infrastructure.persistence import TaskRepository

logger = logging.getLogger("tr.tasks")


class TaskService:
    def __init__(
        self,
        repo: TaskRepositoryProtocol | None = None,
        balances: BalanceRepositoryProtocol | None = None,
        clock: RewardPeriodClock | None = None,
    ) -> None:
        self._repo: TaskRepositoryProtocol = repo or TaskRepository()
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._clock = clock or trade_period_clock()

    def _today(self, now: datetime | None) -> date:
        return self._clock.current_period(now or utc_now())

    async def record_trade_progress(
        self,
        db: AsyncSession,
        user_id: str,
        position_size_usdt: Decimal,
        won: bool,
        now: datetime | None = None,
    ) -> None:
        increments = [(TRADE_COUNT_TASK, Decimal("1")), (VOLUME_TASK, position_size_usdt)]
        if won:
            increments.append((WIN_COUNT_TASK, Decimal("1")))
        try:
            period = self._today(now)
            for task_id, delta in increments:
                await self._repo.increment_progress(
                    db, user_id, task_id, period, delta, DAILY_TASKS[task_id].target
                )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.warning(
                "Task progress update failed for user %s", user_id, exc_info=True
            )

    async def list_tasks(
        self, db: AsyncSession, user_id: str, now: datetime | None = None
    ) -> TaskListResponse:
        period = self._today(now)
        progress = {
            p.task_id: p for p in await self._repo.list_progress(db, user_id, period)
        }
        items = []
        for task in DAILY_TASKS.values():
            p = progress.get(task.id)
            items.append(
                TaskItem(
                    task_id=task.id,
                    name=task.name,
                    description=task.description,
                    target=task.target,
                    progress=p.progress if p else ZERO,
                    completed=p.completed if p else False,
                    claimed=p.claimed if p else False,
                    reward_kind=task.reward_kind,
                    reward_amount=task.reward_amount,
                )
            )
        return TaskListResponse(period_date=period, items=items)

    async def claim(
        self,
        db: AsyncSession,
        user_id: str,
        task_id: str,
        now: datetime | None = None,
    ) -> TaskClaimResponse:
        task = DAILY_TASKS.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        period = self._today(now)

        progress = await self._repo.get_progress(db, user_id, task_id, period)
        if progress is not None and progress.claimed:
            raise TaskAlreadyClaimedError(task_id)
        if progress is None or not progress.completed:
            raise TaskNotCompletedError(task_id)

        try:
            if not await self._repo.mark_claimed(db, user_id, task_id, period):
                raise TaskAlreadyClaimedError(task_id)
            balance = await self._balances.credit_reward(
                db, user_id, task.reward_kind, task.reward_amount
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "User %s claimed task %s: %s %s",
            user_id, task_id, task.reward_amount, task.reward_kind.value,
        )
        return TaskClaimResponse(
            task_id=task_id,
            reward_kind=task.reward_kind,
            reward_amount=task.reward_amount,
            new_demo_usdt_balance=balance.demo_usdt_balance,
            new_oil_balance=balance.oil_balance,
            new_kdx_balance=balance.kdx_balance,
        )
