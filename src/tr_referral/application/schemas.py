"""Pydantic schemas for tr_referral API."""

from decimal import Decimal
from uuid import UUID

from pydantic import Field

from src.tr_common.response import CamelModel


class ProcessReferralBonusRequest(CamelModel):
    claim_id: UUID
    claimed_amount: Decimal = Field(..., gt=0)


class ProcessReferralBonusResponse(CamelModel):
    processed: bool
    message: str
    bonus_amount: Decimal | None = None
    referrer_id: str | None = None


class ReferralBonusItem(CamelModel):
    claim_id: str
    referred_id: str
    claimed_amount: Decimal
    bonus_amount: Decimal
    created_at: str


class ReferralBonusListResponse(CamelModel):
    items: list[ReferralBonusItem]
    total_bonus: Decimal
