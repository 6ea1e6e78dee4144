"""Pydantic schemas for tr_tasks API."""

from datetime import date, datetime
from decimal import Decimal

from src.tr_common.enums import BonusType, RewardKind
from src.tr_common.response import CamelModel


class TaskItem(CamelModel):
    task_id: str
    name: str
    description: str
    target: Decimal
    progress: Decimal
    completed: bool
    claimed: bool
    reward_kind: RewardKind
    reward_amount: Decimal


class TaskListResponse(CamelModel):
    period_date: date
    items: list[TaskItem]


class TaskClaimResponse(CamelModel):
    task_id: str
    reward_kind: RewardKind
    reward_amount: Decimal
    new_demo_usdt_balance: Decimal
    new_oil_balance: Decimal
    new_kdx_balance: Decimal


class MilestoneItem(CamelModel):
    milestone_id: str
    name: str
    target_volume: Decimal
    reward_oil: Decimal
    progress: Decimal
    completed: bool
    claimed: bool
    can_claim: bool


class MilestoneListResponse(CamelModel):
    period_date: date
    traded_volume: Decimal
    items: list[MilestoneItem]


class MilestoneClaimResponse(CamelModel):
    milestone_id: str
    volume_reached: Decimal
    reward_oil: Decimal
    new_oil_balance: Decimal


class DailyBonusStatusResponse(CamelModel):
    can_claim: bool
    bonus_amount: Decimal
    last_claim_date: date | None = None
    next_claim_at: datetime
    seconds_until_next_claim: int


class BonusClaimResponse(CamelModel):
    bonus_type: BonusType
    amount_oil: Decimal
    new_oil_balance: Decimal


class WelcomeBonusResponse(CamelModel):
    received: bool
    amount_oil: Decimal | None = None
    claimed_at: datetime | None = None
