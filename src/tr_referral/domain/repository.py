"""Repository Protocol for referrals and referral bonuses."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_referral.domain.models import ReferralBonus


class ReferralRepositoryProtocol(Protocol):
    async def create_referral(
        self, db: AsyncSession, referrer_id: str, referred_id: str
    ) -> None: ...

    async def get_active_referrer(
        self, db: AsyncSession, referred_id: str
    ) -> str | None: ...

    async def get_bonus_by_claim(
        self, db: AsyncSession, claim_id: str
    ) -> ReferralBonus | None: ...

    async def insert_bonus(
        self,
        db: AsyncSession,
        claim_id: str,
        referrer_id: str,
        referred_id: str,
        claimed_amount: Decimal,
        bonus_amount: Decimal,
        bonus_rate: Decimal,
    ) -> ReferralBonus | None: ...

    async def list_bonuses_for_referrer(
        self, db: AsyncSession, referrer_id: str, limit: int
    ) -> list[ReferralBonus]: ...
