"""Repository Protocols for task progress, bonus claims and milestone claims."""

from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.enums import BonusType
from src.tr_tasks.domain.models import BonusClaim, TaskProgress


class TaskRepositoryProtocol(Protocol):
    async def increment_progress(
        self,
        db: AsyncSession,
        user_id: str,
        task_id: str,
        period_date: date,
        delta: Decimal,
        target: Decimal,
    ) -> TaskProgress: ...

    async def list_progress(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> list[TaskProgress]: ...

    async def get_progress(
        self, db: AsyncSession, user_id: str, task_id: str, period_date: date
    ) -> TaskProgress | None: ...

    async def mark_claimed(
        self, db: AsyncSession, user_id: str, task_id: str, period_date: date
    ) -> bool: ...


class BonusRepositoryProtocol(Protocol):
    async def insert_claim(
        self,
        db: AsyncSession,
        user_id: str,
        bonus_type: BonusType,
        claim_date: date,
        amount_oil: Decimal,
    ) -> bool: ...

    async def latest_claim(
        self, db: AsyncSession, user_id: str, bonus_type: BonusType
    ) -> BonusClaim | None: ...


class MilestoneRepositoryProtocol(Protocol):
    async def traded_volume(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> Decimal: ...

    async def claimed_ids(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> set[str]: ...

    async def insert_claim(
        self,
        db: AsyncSession,
        user_id: str,
        milestone_id: str,
        period_date: date,
        volume_reached: Decimal,
        reward_oil: Decimal,
    ) -> bool: ...
