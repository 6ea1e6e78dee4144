"""Domain models for tr_trading: pure dataclasses, no SQLAlchemy dependency.

`id` is assigned by the store (gen_random_uuid); records built in the service
before insert carry an empty id.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from src.tr_common.enums import CountedVolumeReason, PositionSide


@dataclass
class OpenPosition:
    id: str
    user_id: str
    symbol: str
    side: PositionSide
    entry_price: Decimal              # oracle mark at open
    entry_price_executed: Decimal | None  # NULL on legacy rows
    leverage: int
    margin: Decimal
    position_size: Decimal            # base-asset units
    liquidation_price: Decimal
    fee_oil_paid: Decimal
    slippage_rate: Decimal
    opened_at: datetime
    position_size_usdt: Decimal | None = None  # margin * leverage; NULL on legacy rows

    @property
    def effective_entry_price(self) -> Decimal:
        if self.entry_price_executed:
            return self.entry_price_executed
        return self.entry_price

    @property
    def notional_usdt(self) -> Decimal:
        if self.position_size_usdt is not None:
            return self.position_size_usdt
        return self.position_size * self.effective_entry_price


@dataclass
class TradeRecord:
    """One immutable trades_history row."""

    id: str
    position_id: str
    user_id: str
    symbol: str
    side: PositionSide
    leverage: int
    margin: Decimal
    position_size: Decimal
    entry_price: Decimal
    entry_price_executed: Decimal
    exit_price: Decimal
    exit_price_executed: Decimal
    liquidation_price: Decimal
    realized_pnl: Decimal
    fee_oil_paid: Decimal
    slippage_rate: Decimal
    open_time_seconds: int
    counted_volume: Decimal
    counted_volume_reason: CountedVolumeReason | None
    period_date: date
    opened_at: datetime
    closed_at: datetime
