"""ReferralRepository: referrals and the one-bonus-per-claim ledger.

referral_bonuses.claim_id is UNIQUE: insert_bonus uses ON CONFLICT DO NOTHING
and returns None when another request already paid the bonus for that claim.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.decimals import to_decimal
from src.tr_common.enums import ReferralStatus
from src.tr_referral.domain.models import ReferralBonus

_BONUS_COLUMNS = (
    "id, claim_id, referrer_id, referred_id, "
    "claimed_amount, bonus_amount, bonus_rate, created_at"
)

_CREATE_REFERRAL_SQL = text("""
    INSERT INTO referrals (referrer_id, referred_id, status)
    VALUES (:referrer_id, :referred_id, :status)
    ON CONFLICT (referred_id) DO NOTHING
""")

_GET_ACTIVE_REFERRER_SQL = text("""
    SELECT referrer_id
    FROM referrals
    WHERE referred_id = :referred_id AND status = :status
""")

_GET_BONUS_BY_CLAIM_SQL = text(f"""
    SELECT {_BONUS_COLUMNS}
    FROM referral_bonuses
    WHERE claim_id = :claim_id
""")

_INSERT_BONUS_SQL = text(f"""
    INSERT INTO referral_bonuses
        (claim_id, referrer_id, referred_id, claimed_amount, bonus_amount, bonus_rate)
    VALUES
        (:claim_id, :referrer_id, :referred_id, :claimed_amount, :bonus_amount, :bonus_rate)
    ON CONFLICT (claim_id) DO NOTHING
    RETURNING {_BONUS_COLUMNS}
""")

_LIST_BONUSES_SQL = text(f"""
    SELECT {_BONUS_COLUMNS}
    FROM referral_bonuses
    WHERE referrer_id = :referrer_id
    ORDER BY created_at DESC
    LIMIT :limit
""")


def _row_to_bonus(row: object) -> ReferralBonus:
    return ReferralBonus(
        id=str(row.id),  # type: ignore[attr-defined]
        claim_id=str(row.claim_id),  # type: ignore[attr-defined]
        referrer_id=str(row.referrer_id),  # type: ignore[attr-defined]
        referred_id=str(row.referred_id),  # type: ignore[attr-defined]
        claimed_amount=to_decimal(row.claimed_amount),  # type: ignore[attr-defined]
        bonus_amount=to_decimal(row.bonus_amount),  # type: ignore[attr-defined]
        bonus_rate=to_decimal(row.bonus_rate),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class ReferralRepository:
    async def create_referral(
        self, db: AsyncSession, referrer_id: str, referred_id: str
    ) -> None:
        await db.execute(
            _CREATE_REFERRAL_SQL,
            {
                "referrer_id": referrer_id,
                "referred_id": referred_id,
                "status": ReferralStatus.ACTIVE.value,
            },
        )

    async def get_active_referrer(
        self, db: AsyncSession, referred_id: str
    ) -> str | None:
        row = (
            await db.execute(
                _GET_ACTIVE_REFERRER_SQL,
                {"referred_id": referred_id, "status": ReferralStatus.ACTIVE.value},
            )
        ).fetchone()
        return str(row.referrer_id) if row else None

    async def get_bonus_by_claim(
        self, db: AsyncSession, claim_id: str
    ) -> ReferralBonus | None:
        row = (await db.execute(_GET_BONUS_BY_CLAIM_SQL, {"claim_id": claim_id})).fetchone()
        return _row_to_bonus(row) if row else None

    async def insert_bonus(
        self,
        db: AsyncSession,
        claim_id: str,
        referrer_id: str,
        referred_id: str,
        claimed_amount: Decimal,
        bonus_amount: Decimal,
        bonus_rate: Decimal,
    ) -> ReferralBonus | None:
        row = (
            await db.execute(
                _INSERT_BONUS_SQL,
                {
                    "claim_id": claim_id,
                    "referrer_id": referrer_id,
                    "referred_id": referred_id,
                    "claimed_amount": claimed_amount,
                    "bonus_amount": bonus_amount,
                    "bonus_rate": bonus_rate,
                },
            )
        ).fetchone()
        return _row_to_bonus(row) if row else None

    async def list_bonuses_for_referrer(
        self, db: AsyncSession, referrer_id: str, limit: int
    ) -> list[ReferralBonus]:
        rows = (
            await db.execute(
                _LIST_BONUSES_SQL, {"referrer_id": referrer_id, "limit": limit}
            )
        ).fetchall()
        return [_row_to_bonus(r) for r in rows]
