"""Domain models for tr_account: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Balance:
    user_id: str
    demo_usdt_balance: Decimal
    oil_balance: Decimal
    kdx_balance: Decimal
    updated_at: datetime | None = None
