"""Pydantic schemas for tr_account API."""

from decimal import Decimal

from src.tr_account.domain.models import Balance
from src.tr_common.decimals import to_display
from src.tr_common.response import CamelModel


class BalanceResponse(CamelModel):
    user_id: str
    demo_usdt_balance: Decimal
    demo_usdt_display: str
    oil_balance: Decimal
    kdx_balance: Decimal
    kdx_display: str

    @classmethod
    def from_balance(cls, balance: Balance) -> "BalanceResponse":
        return cls(
            user_id=balance.user_id,
            demo_usdt_balance=balance.demo_usdt_balance,
            demo_usdt_display=to_display(balance.demo_usdt_balance),
            oil_balance=balance.oil_balance,
            kdx_balance=balance.kdx_balance,
            kdx_display=to_display(balance.kdx_balance),
        )
