"""Task, bonus and milestone repositories over raw SQL.

mark_claimed() is a guarded UPDATE (completed AND NOT claimed): a double-click
on claim flips the flag once, the second caller gets no row back. The bonus
and milestone inserts use ON CONFLICT DO NOTHING against their unique keys
for the same reason.

Transaction ownership: the CALLER commits or rolls back.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.decimals import to_decimal
from src.tr_common.enums import BonusType
from src.tr_common.errors import InternalError
from src.tr_tasks.domain.models import BonusClaim, TaskProgress

_COLUMNS = "user_id, task_id, period_date, progress, target, completed, claimed"

_INCREMENT_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM increment_task_progress(:user_id, :task_id, :period_date, :delta, :target)
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM tasks_progress
    WHERE user_id = :user_id AND period_date = :period_date
""")

_GET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM tasks_progress
    WHERE user_id = :user_id AND task_id = :task_id AND period_date = :period_date
""")

_MARK_CLAIMED_SQL = text("""
    UPDATE tasks_progress
    SET claimed = TRUE, claimed_at = NOW(), updated_at = NOW()
    WHERE user_id = :user_id
      AND task_id = :task_id
      AND period_date = :period_date
      AND completed
      AND NOT claimed
    RETURNING task_id
""")


def _row_to_progress(row: object) -> TaskProgress:
    return TaskProgress(
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        task_id=row.task_id,  # type: ignore[attr-defined]
        period_date=row.period_date,  # type: ignore[attr-defined]
        progress=to_decimal(row.progress),  # type: ignore[attr-defined]
        target=to_decimal(row.target),  # type: ignore[attr-defined]
        completed=bool(row.completed),  # type: ignore[attr-defined]
        claimed=bool(row.claimed),  # type: ignore[attr-defined]
    )


class TaskRepository:
    async def increment_progress(
        self,
        db: AsyncSession,
        user_id: str,
        task_id: str,
        period_date: date,
        delta: Decimal,
        target: Decimal,
    ) -> TaskProgress:
        row = (
            await db.execute(
                _INCREMENT_SQL,
                {
                    "user_id": user_id,
                    "task_id": task_id,
                    "period_date": period_date,
                    "delta": delta,
                    "target": target,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("increment_task_progress returned no rows")
        return _row_to_progress(row)

    async def list_progress(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> list[TaskProgress]:
        rows = (
            await db.execute(_LIST_SQL, {"user_id": user_id, "period_date": period_date})
        ).fetchall()
        return [_row_to_progress(r) for r in rows]

    async def get_progress(
        self, db: AsyncSession, user_id: str, task_id: str, period_date: date
    ) -> TaskProgress | None:
        row = (
            await db.execute(
                _GET_SQL,
                {"user_id": user_id, "task_id": task_id, "period_date": period_date},
            )
        ).fetchone()
        return _row_to_progress(row) if row else None

    async def mark_claimed(
        self, db: AsyncSession, user_id: str, task_id: str, period_date: date
    ) -> bool:
        row = (
            await db.execute(
                _MARK_CLAIMED_SQL,
                {"user_id": user_id, "task_id": task_id, "period_date": period_date},
            )
        ).fetchone()
        return row is not None


_INSERT_BONUS_SQL = text("""
    INSERT INTO bonus_claims (user_id, bonus_type, claim_date, amount_oil)
    VALUES (:user_id, :bonus_type, :claim_date, :amount_oil)
    ON CONFLICT DO NOTHING
    RETURNING id
""")

_LATEST_BONUS_SQL = text("""
    SELECT user_id, bonus_type, claim_date, amount_oil, created_at
    FROM bonus_claims
    WHERE user_id = :user_id AND bonus_type = :bonus_type
    ORDER BY claim_date DESC, created_at DESC
    LIMIT 1
""")


class BonusRepository:
    async def insert_claim(
        self,
        db: AsyncSession,
        user_id: str,
        bonus_type: BonusType,
        claim_date: date,
        amount_oil: Decimal,
    ) -> bool:
        """False when this bonus was already recorded for the user and date."""
        row = (
            await db.execute(
                _INSERT_BONUS_SQL,
                {
                    "user_id": user_id,
                    "bonus_type": bonus_type.value,
                    "claim_date": claim_date,
                    "amount_oil": amount_oil,
                },
            )
        ).fetchone()
        return row is not None

    async def latest_claim(
        self, db: AsyncSession, user_id: str, bonus_type: BonusType
    ) -> BonusClaim | None:
        row = (
            await db.execute(
                _LATEST_BONUS_SQL, {"user_id": user_id, "bonus_type": bonus_type.value}
            )
        ).fetchone()
        if row is None:
            return None
        return BonusClaim(
            user_id=str(row.user_id),
            bonus_type=BonusType(row.bonus_type),
            claim_date=row.claim_date,
            amount_oil=to_decimal(row.amount_oil),
            created_at=row.created_at,
        )


_TRADED_VOLUME_SQL = text("""
    SELECT total_volume
    FROM leaderboard_daily
    WHERE user_id = :user_id AND period_date = :period_date
""")

_CLAIMED_MILESTONES_SQL = text("""
    SELECT milestone_id
    FROM volume_milestone_claims
    WHERE user_id = :user_id AND period_date = :period_date
""")

_INSERT_MILESTONE_SQL = text("""
    INSERT INTO volume_milestone_claims
        (user_id, milestone_id, period_date, volume_reached, reward_oil)
    VALUES
        (:user_id, :milestone_id, :period_date, :volume_reached, :reward_oil)
    ON CONFLICT (user_id, milestone_id, period_date) DO NOTHING
    RETURNING id
""")


class MilestoneRepository:
    async def traded_volume(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> Decimal:
        row = (
            await db.execute(
                _TRADED_VOLUME_SQL, {"user_id": user_id, "period_date": period_date}
            )
        ).fetchone()
        return to_decimal(row.total_volume) if row else Decimal("0")

    async def claimed_ids(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> set[str]:
        rows = (
            await db.execute(
                _CLAIMED_MILESTONES_SQL, {"user_id": user_id, "period_date": period_date}
            )
        ).fetchall()
        return {r.milestone_id for r in rows}

    async def insert_claim(
        self,
        db: AsyncSession,
        user_id: str,
        milestone_id: str,
        period_date: date,
        volume_reached: Decimal,
        reward_oil: Decimal,
    ) -> bool:
        row = (
            await db.execute(
                _INSERT_MILESTONE_SQL,
                {
                    "user_id": user_id,
                    "milestone_id": milestone_id,
                    "period_date": period_date,
                    "volume_reached": volume_reached,
                    "reward_oil": reward_oil,
                },
            )
        ).fetchone()
        return row is not None
