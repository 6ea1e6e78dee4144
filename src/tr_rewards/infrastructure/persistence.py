"""RewardRepository: claim insert-plus-credit and period volume reads.

claim_reward() calls the `claim_reward` store function (Alembic 003), which
inserts the claim under UNIQUE (user_id, period_date) and credits kdx_balance
in the same statement. It returns no row on conflict, so a duplicate or
concurrent claim can never credit twice.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.decimals import to_decimal
from src.tr_rewards.domain.models import ClaimResult, RewardClaim

_CLAIM_COLUMNS = (
    "id, user_id, period_date, amount, volume_score, pool_volume, wallet_address, claimed_at"
)

_USER_VOLUME_SQL = text("""
    SELECT counted_volume
    FROM daily_volume
    WHERE user_id = :user_id AND period_date = :period_date
""")

_POOL_VOLUME_SQL = text("""
    SELECT COALESCE(SUM(counted_volume), 0) AS pool_volume
    FROM daily_volume
    WHERE period_date = :period_date
""")

_GET_CLAIM_SQL = text(f"""
    SELECT {_CLAIM_COLUMNS}
    FROM reward_claims
    WHERE user_id = :user_id AND period_date = :period_date
""")

_GET_CLAIM_BY_ID_SQL = text(f"""
    SELECT {_CLAIM_COLUMNS}
    FROM reward_claims
    WHERE id = CAST(:claim_id AS UUID)
""")

_CLAIM_REWARD_SQL = text("""
    SELECT claim_id, new_kdx_balance
    FROM claim_reward(:user_id, :period_date, :amount, :volume_score, :pool_volume, :wallet_address)
""")

_LIST_CLAIMS_SQL = text(f"""
    SELECT {_CLAIM_COLUMNS}
    FROM reward_claims
    WHERE user_id = :user_id
    ORDER BY period_date DESC
    LIMIT :limit
""")


def _row_to_claim(row: object) -> RewardClaim:
    return RewardClaim(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        period_date=row.period_date,  # type: ignore[attr-defined]
        amount=to_decimal(row.amount),  # type: ignore[attr-defined]
        volume_score=to_decimal(row.volume_score),  # type: ignore[attr-defined]
        pool_volume=to_decimal(row.pool_volume),  # type: ignore[attr-defined]
        wallet_address=row.wallet_address,  # type: ignore[attr-defined]
        claimed_at=row.claimed_at,  # type: ignore[attr-defined]
    )


class RewardRepository:
    async def get_user_volume(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> Decimal:
        row = (
            await db.execute(
                _USER_VOLUME_SQL, {"user_id": user_id, "period_date": period_date}
            )
        ).fetchone()
        return to_decimal(row.counted_volume) if row else Decimal("0")

    async def get_pool_volume(self, db: AsyncSession, period_date: date) -> Decimal:
        row = (await db.execute(_POOL_VOLUME_SQL, {"period_date": period_date})).fetchone()
        return to_decimal(row.pool_volume) if row else Decimal("0")

    async def get_claim(
        self, db: AsyncSession, user_id: str, period_date: date
    ) -> RewardClaim | None:
        row = (
            await db.execute(
                _GET_CLAIM_SQL, {"user_id": user_id, "period_date": period_date}
            )
        ).fetchone()
        return _row_to_claim(row) if row else None

    async def get_claim_by_id(
        self, db: AsyncSession, claim_id: str
    ) -> RewardClaim | None:
        row = (await db.execute(_GET_CLAIM_BY_ID_SQL, {"claim_id": claim_id})).fetchone()
        return _row_to_claim(row) if row else None

    async def claim_reward(
        self,
        db: AsyncSession,
        user_id: str,
        period_date: date,
        amount: Decimal,
        volume_score: Decimal,
        pool_volume: Decimal,
        wallet_address: str | None,
    ) -> ClaimResult | None:
        """Returns None if a claim for (user_id, period_date) already exists."""
        row = (
            await db.execute(
                _CLAIM_REWARD_SQL,
                {
                    "user_id": user_id,
                    "period_date": period_date,
                    "amount": amount,
                    "volume_score": volume_score,
                    "pool_volume": pool_volume,
                    "wallet_address": wallet_address,
                },
            )
        ).fetchone()
        if row is None:
            return None
        return ClaimResult(
            claim_id=str(row.claim_id),
            new_kdx_balance=to_decimal(row.new_kdx_balance),
        )

    async def list_claims(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[RewardClaim]:
        rows = (
            await db.execute(_LIST_CLAIMS_SQL, {"user_id": user_id, "limit": limit})
        ).fetchall()
        return [_row_to_claim(r) for r in rows]
