"""ReferralBonusCascade: pays the referrer a share of each reward claim, once.

Runs after the claim has committed, in its own transaction. `process` is
idempotent per claim_id; `process_safely` is the best-effort entry point used
by the claim flow and never raises.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tr_account.domain.repository import BalanceRepositoryProtocol
from src.tr_account.infrastructure.persistence import BalanceRepository
from src.tr_common.enums import RewardKind
from src.tr_common.errors import ClaimNotFoundError
from src.tr_referral.application.schemas import (
    ReferralBonusItem,
    ReferralBonusListResponse,
)
from src.tr_referral.domain.models import BonusOutcome
from src.tr_referral.domain.repository import ReferralRepositoryProtocol
from src.tr_referral.infrastructure.persistence import ReferralRepository
from src.tr_rewards.domain.repository import RewardRepositoryProtocol
from src.tr_rewards.infrastructure.persistence import RewardRepository

logger = logging.getLogger("tr.referral")


def calc_bonus(claimed_amount: Decimal, rate: Decimal) -> Decimal:
    return claimed_amount * rate


class ReferralBonusCascade:
    def __init__(
        self,
        repo: ReferralRepositoryProtocol | None = None,
        balances: BalanceRepositoryProtocol | None = None,
        claims: RewardRepositoryProtocol | None = None,
        bonus_rate: Decimal | None = None,
    ) -> None:
        self._repo: ReferralRepositoryProtocol = repo or ReferralRepository()
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._claims: RewardRepositoryProtocol = claims or RewardRepository()
        self._rate = settings.REFERRAL_BONUS_RATE if bonus_rate is None else bonus_rate

    async def process(
        self,
        db: AsyncSession,
        claim_id: str,
        claimed_amount: Decimal,
        claimant_user_id: str,
    ) -> BonusOutcome:
        referrer_id = await self._repo.get_active_referrer(db, claimant_user_id)
        if referrer_id is None:
            logger.info("No active referral for user %s", claimant_user_id)
            return BonusOutcome(processed=False, reason="No active referral")

        if await self._repo.get_bonus_by_claim(db, claim_id) is not None:
            logger.info("Referral bonus for claim %s already processed", claim_id)
            return BonusOutcome(processed=False, reason="Bonus already processed")

        bonus = calc_bonus(claimed_amount, self._rate)
        if bonus <= 0:
            return BonusOutcome(processed=False, reason="Nothing to pay")

        try:
            record = await self._repo.insert_bonus(
                db,
                claim_id=claim_id,
                referrer_id=referrer_id,
                referred_id=claimant_user_id,
                claimed_amount=claimed_amount,
                bonus_amount=bonus,
                bonus_rate=self._rate,
            )
            if record is None:
                # Lost the race to a concurrent request for the same claim.
                await db.rollback()
                return BonusOutcome(processed=False, reason="Bonus already processed")
            balance = await self._balances.credit_reward(
                db, referrer_id, RewardKind.KDX, bonus
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Paid referral bonus %s KDX to %s for claim %s (new balance %s)",
            bonus, referrer_id, claim_id, balance.kdx_balance,
        )
        return BonusOutcome(
            processed=True,
            reason="Bonus paid",
            bonus_amount=bonus,
            referrer_id=referrer_id,
        )

    async def process_claim(
        self,
        db: AsyncSession,
        claim_id: str,
        requested_amount: Decimal,
        claimant_user_id: str,
    ) -> BonusOutcome:
        """Entry point for the explicit process-referral-bonus call.

        The claim must belong to the caller; the stored claim amount is used, the
        client-supplied one is only compared.
        """
        claim = await self._claims.get_claim_by_id(db, claim_id)
        if claim is None or claim.user_id != claimant_user_id:
            raise ClaimNotFoundError(claim_id)
        if requested_amount != claim.amount:
            logger.warning(
                "Claim %s: client amount %s differs from stored %s; using stored",
                claim_id, requested_amount, claim.amount,
            )
        return await self.process(db, claim_id, claim.amount, claimant_user_id)

    async def process_safely(
        self,
        db: AsyncSession,
        claim_id: str,
        claimed_amount: Decimal,
        claimant_user_id: str,
    ) -> BonusOutcome:
        try:
            return await self.process(db, claim_id, claimed_amount, claimant_user_id)
        except Exception:
            logger.warning(
                "Referral bonus for claim %s failed; claim is unaffected",
                claim_id,
                exc_info=True,
            )
            return BonusOutcome(processed=False, reason="Bonus processing failed")

    async def list_bonuses(
        self, db: AsyncSession, referrer_id: str, limit: int
    ) -> ReferralBonusListResponse:
        bonuses = await self._repo.list_bonuses_for_referrer(db, referrer_id, limit)
        items = [
            ReferralBonusItem(
                claim_id=b.claim_id,
                referred_id=b.referred_id,
                claimed_amount=b.claimed_amount,
                bonus_amount=b.bonus_amount,
                created_at=b.created_at.isoformat() if b.created_at else "",
            )
            for b in bonuses
        ]
        total = sum((b.bonus_amount for b in bonuses), Decimal("0"))
        return ReferralBonusListResponse(items=items, total_bonus=total)
