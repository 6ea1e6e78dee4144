"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_account.domain.models import Balance
from src.tr_common.enums import RewardKind


class BalanceRepositoryProtocol(Protocol):
    async def get_balance(self, db: AsyncSession, user_id: str) -> Balance | None: ...

    async def create_balance(
        self,
        db: AsyncSession,
        user_id: str,
        demo_usdt: Decimal,
        oil: Decimal,
    ) -> Balance: ...

    async def debit_for_open(
        self, db: AsyncSession, user_id: str, margin: Decimal, fee_oil: Decimal
    ) -> Balance | None: ...

    async def credit_usdt_clamped(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> Balance: ...

    async def credit_reward(
        self, db: AsyncSession, user_id: str, kind: RewardKind, amount: Decimal
    ) -> Balance: ...
