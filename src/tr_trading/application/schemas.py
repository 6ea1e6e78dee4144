"""Pydantic schemas for tr_trading API + trade-history cursor helpers."""

import base64
import json
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from src.tr_common.enums import CountedVolumeReason, PositionSide
from src.tr_common.response import CamelModel
from src.tr_trading.domain.models import OpenPosition, TradeRecord


def cursor_encode(last_trade: TradeRecord) -> str:
    """Composite (closed_at, id) cursor from the last trade on a page."""
    payload = {"ts": last_trade.closed_at.isoformat(), "id": last_trade.id}
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[datetime | None, str | None]:
    """Returns (None, None) for a missing or malformed cursor (first page)."""
    if not cursor:
        return None, None
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return datetime.fromisoformat(data["ts"]), str(UUID(data["id"]))
    except (ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class OpenTradeRequest(CamelModel):
    # Range checks live in domain.rules so they surface with trading messages.
    symbol: str
    side: str
    leverage: int
    margin: Decimal


class CloseTradeRequest(CamelModel):
    position_id: UUID


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class OpenTradeResponse(CamelModel):
    position_id: str
    symbol: str
    side: PositionSide
    mark_price: Decimal
    entry_price_executed: Decimal
    slippage_rate: Decimal
    margin: Decimal
    leverage: int
    position_size: Decimal
    position_size_usdt: Decimal
    fee_oil: Decimal
    liquidation_price: Decimal
    opened_at: datetime


class CloseTradeResponse(CamelModel):
    trade_id: str
    position_id: str
    symbol: str
    side: PositionSide
    mark_price: Decimal
    entry_price_executed: Decimal
    exit_price_executed: Decimal
    realized_pnl: Decimal
    open_time_seconds: int
    counted_volume: Decimal
    counted_volume_reason: CountedVolumeReason | None
    slippage_rate: Decimal
    credited_usdt: Decimal


class PositionItem(CamelModel):
    position_id: str
    symbol: str
    side: PositionSide
    entry_price: Decimal
    entry_price_executed: Decimal
    leverage: int
    margin: Decimal
    position_size: Decimal
    liquidation_price: Decimal
    fee_oil_paid: Decimal
    opened_at: datetime

    @classmethod
    def from_position(cls, p: OpenPosition) -> "PositionItem":
        return cls(
            position_id=p.id,
            symbol=p.symbol,
            side=p.side,
            entry_price=p.entry_price,
            entry_price_executed=p.effective_entry_price,
            leverage=p.leverage,
            margin=p.margin,
            position_size=p.position_size,
            liquidation_price=p.liquidation_price,
            fee_oil_paid=p.fee_oil_paid,
            opened_at=p.opened_at,
        )


class PositionListResponse(CamelModel):
    items: list[PositionItem]
    total: int


class TradeItem(CamelModel):
    trade_id: str
    symbol: str
    side: PositionSide
    leverage: int
    margin: Decimal
    entry_price_executed: Decimal
    exit_price_executed: Decimal
    realized_pnl: Decimal
    open_time_seconds: int
    counted_volume: Decimal
    counted_volume_reason: CountedVolumeReason | None
    period_date: str
    opened_at: datetime
    closed_at: datetime

    @classmethod
    def from_trade(cls, t: TradeRecord) -> "TradeItem":
        return cls(
            trade_id=t.id,
            symbol=t.symbol,
            side=t.side,
            leverage=t.leverage,
            margin=t.margin,
            entry_price_executed=t.entry_price_executed,
            exit_price_executed=t.exit_price_executed,
            realized_pnl=t.realized_pnl,
            open_time_seconds=t.open_time_seconds,
            counted_volume=t.counted_volume,
            counted_volume_reason=t.counted_volume_reason,
            period_date=t.period_date.isoformat(),
            opened_at=t.opened_at,
            closed_at=t.closed_at,
        )


class TradeListResponse(CamelModel):
    items: list[TradeItem]
    next_cursor: str | None
    has_more: bool
