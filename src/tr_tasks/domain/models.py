"""Domain models for tr_tasks."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from src.tr_common.enums import BonusType


@dataclass
class TaskProgress:
    user_id: str
    task_id: str
    period_date: date
    progress: Decimal
    target: Decimal
    completed: bool
    claimed: bool


@dataclass
class BonusClaim:
    user_id: str
    bonus_type: BonusType
    claim_date: date
    amount_oil: Decimal
    created_at: datetime
