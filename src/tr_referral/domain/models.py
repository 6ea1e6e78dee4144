"""Domain models for tr_referral: pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class ReferralBonus:
    id: str
    claim_id: str
    referrer_id: str
    referred_id: str
    claimed_amount: Decimal
    bonus_amount: Decimal
    bonus_rate: Decimal
    created_at: datetime | None = None


@dataclass
class BonusOutcome:
    """Result of one cascade run. processed=False is a normal, non-error outcome."""

    processed: bool
    reason: str
    bonus_amount: Decimal | None = None
    referrer_id: str | None = None
