"""TradingRepository: open_positions and trades_history via raw SQL.

Close-side guard: delete_position() is a DELETE ... RETURNING. Of two
concurrent closes for the same position exactly one sees a row back; the
other must abort before touching volume or balances.

Transaction ownership: the CALLER (TradingService) commits or rolls back.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.decimals import to_decimal
from src.tr_common.enums import CountedVolumeReason, PositionSide
from src.tr_common.errors import InternalError
from src.tr_trading.domain.models import OpenPosition, TradeRecord

_POSITION_COLUMNS = """
    id, user_id, symbol, side, entry_price, entry_price_executed, leverage,
    margin, position_size, position_size_usdt, liquidation_price, fee_oil_paid,
    slippage_rate, opened_at
"""

_TRADE_COLUMNS = """
    id, position_id, user_id, symbol, side, leverage, margin, position_size,
    entry_price, entry_price_executed, exit_price, exit_price_executed,
    liquidation_price, realized_pnl, fee_oil_paid, slippage_rate,
    open_time_seconds, counted_volume, counted_volume_reason, period_date,
    opened_at, closed_at
"""

# Closed trades count too, so open-then-close-immediately cannot dodge the limit.
_COUNT_RECENT_OPENS_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM open_positions
          WHERE user_id = :user_id AND opened_at >= :since)
      + (SELECT COUNT(*) FROM trades_history
          WHERE user_id = :user_id AND opened_at >= :since) AS opens
""")

_INSERT_POSITION_SQL = text(f"""
    INSERT INTO open_positions (
        user_id, symbol, side, entry_price, entry_price_executed, leverage,
        margin, position_size, position_size_usdt, liquidation_price, fee_oil_paid,
        slippage_rate, opened_at
    ) VALUES (
        :user_id, :symbol, :side, :entry_price, :entry_price_executed, :leverage,
        :margin, :position_size, :position_size_usdt, :liquidation_price, :fee_oil_paid,
        :slippage_rate, :opened_at
    )
    RETURNING {_POSITION_COLUMNS}
""")

_GET_POSITION_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM open_positions
    WHERE id = CAST(:position_id AS UUID) AND user_id = :user_id
""")

_DELETE_POSITION_SQL = text("""
    DELETE FROM open_positions
    WHERE id = CAST(:position_id AS UUID) AND user_id = :user_id
    RETURNING id
""")

_INSERT_TRADE_SQL = text(f"""
    INSERT INTO trades_history (
        position_id, user_id, symbol, side, leverage, margin, position_size,
        entry_price, entry_price_executed, exit_price, exit_price_executed,
        liquidation_price, realized_pnl, fee_oil_paid, slippage_rate,
        open_time_seconds, counted_volume, counted_volume_reason, period_date,
        opened_at, closed_at
    ) VALUES (
        CAST(:position_id AS UUID), :user_id, :symbol, :side, :leverage, :margin, :position_size,
        :entry_price, :entry_price_executed, :exit_price, :exit_price_executed,
        :liquidation_price, :realized_pnl, :fee_oil_paid, :slippage_rate,
        :open_time_seconds, :counted_volume, :counted_volume_reason, :period_date,
        :opened_at, :closed_at
    )
    RETURNING {_TRADE_COLUMNS}
""")

_LIST_POSITIONS_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM open_positions
    WHERE user_id = :user_id
    ORDER BY opened_at DESC
""")

_LIST_TRADES_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades_history
    WHERE user_id = :user_id
      AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR closed_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                closed_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS UUID)
            )
      )
    ORDER BY closed_at DESC, id DESC
    LIMIT :limit
""")


def _row_to_position(row: object) -> OpenPosition:
    executed = row.entry_price_executed  # type: ignore[attr-defined]
    notional = row.position_size_usdt  # type: ignore[attr-defined]
    return OpenPosition(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        symbol=row.symbol,  # type: ignore[attr-defined]
        side=PositionSide(row.side),  # type: ignore[attr-defined]
        entry_price=to_decimal(row.entry_price),  # type: ignore[attr-defined]
        entry_price_executed=to_decimal(executed) if executed is not None else None,
        leverage=int(row.leverage),  # type: ignore[attr-defined]
        margin=to_decimal(row.margin),  # type: ignore[attr-defined]
        position_size=to_decimal(row.position_size),  # type: ignore[attr-defined]
        liquidation_price=to_decimal(row.liquidation_price),  # type: ignore[attr-defined]
        fee_oil_paid=to_decimal(row.fee_oil_paid),  # type: ignore[attr-defined]
        slippage_rate=to_decimal(row.slippage_rate),  # type: ignore[attr-defined]
        opened_at=row.opened_at,  # type: ignore[attr-defined]
        position_size_usdt=to_decimal(notional) if notional is not None else None,
    )


def _row_to_trade(row: object) -> TradeRecord:
    reason = row.counted_volume_reason  # type: ignore[attr-defined]
    return TradeRecord(
        id=str(row.id),  # type: ignore[attr-defined]
        position_id=str(row.position_id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        symbol=row.symbol,  # type: ignore[attr-defined]
        side=PositionSide(row.side),  # type: ignore[attr-defined]
        leverage=int(row.leverage),  # type: ignore[attr-defined]
        margin=to_decimal(row.margin),  # type: ignore[attr-defined]
        position_size=to_decimal(row.position_size),  # type: ignore[attr-defined]
        entry_price=to_decimal(row.entry_price),  # type: ignore[attr-defined]
        entry_price_executed=to_decimal(row.entry_price_executed),  # type: ignore[attr-defined]
        exit_price=to_decimal(row.exit_price),  # type: ignore[attr-defined]
        exit_price_executed=to_decimal(row.exit_price_executed),  # type: ignore[attr-defined]
        liquidation_price=to_decimal(row.liquidation_price),  # type: ignore[attr-defined]
        realized_pnl=to_decimal(row.realized_pnl),  # type: ignore[attr-defined]
        fee_oil_paid=to_decimal(row.fee_oil_paid),  # type: ignore[attr-defined]
        slippage_rate=to_decimal(row.slippage_rate),  # type: ignore[attr-defined]
        open_time_seconds=int(row.open_time_seconds),  # type: ignore[attr-defined]
        counted_volume=to_decimal(row.counted_volume),  # type: ignore[attr-defined]
        counted_volume_reason=CountedVolumeReason(reason) if reason else None,
        period_date=row.period_date,  # type: ignore[attr-defined]
        opened_at=row.opened_at,  # type: ignore[attr-defined]
        closed_at=row.closed_at,  # type: ignore[attr-defined]
    )


class TradingRepository:
    async def count_recent_opens(
        self, db: AsyncSession, user_id: str, since: datetime
    ) -> int:
        result = await db.execute(
            _COUNT_RECENT_OPENS_SQL, {"user_id": user_id, "since": since}
        )
        return int(result.scalar_one())

    async def insert_position(
        self, db: AsyncSession, position: OpenPosition
    ) -> OpenPosition:
        result = await db.execute(
            _INSERT_POSITION_SQL,
            {
                "user_id": position.user_id,
                "symbol": position.symbol,
                "side": position.side.value,
                "entry_price": position.entry_price,
                "entry_price_executed": position.entry_price_executed,
                "leverage": position.leverage,
                "margin": position.margin,
                "position_size": position.position_size,
                "position_size_usdt": position.position_size_usdt,
                "liquidation_price": position.liquidation_price,
                "fee_oil_paid": position.fee_oil_paid,
                "slippage_rate": position.slippage_rate,
                "opened_at": position.opened_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Position insert returned no rows")
        return _row_to_position(row)

    async def get_position_for_user(
        self, db: AsyncSession, user_id: str, position_id: str
    ) -> OpenPosition | None:
        result = await db.execute(
            _GET_POSITION_SQL, {"user_id": user_id, "position_id": position_id}
        )
        row = result.fetchone()
        return _row_to_position(row) if row else None

    async def delete_position(
        self, db: AsyncSession, user_id: str, position_id: str
    ) -> bool:
        """True only for the caller that actually removed the row."""
        result = await db.execute(
            _DELETE_POSITION_SQL, {"user_id": user_id, "position_id": position_id}
        )
        return result.fetchone() is not None

    async def insert_trade(self, db: AsyncSession, trade: TradeRecord) -> TradeRecord:
        reason = trade.counted_volume_reason
        result = await db.execute(
            _INSERT_TRADE_SQL,
            {
                "position_id": trade.position_id,
                "user_id": trade.user_id,
                "symbol": trade.symbol,
                "side": trade.side.value,
                "leverage": trade.leverage,
                "margin": trade.margin,
                "position_size": trade.position_size,
                "entry_price": trade.entry_price,
                "entry_price_executed": trade.entry_price_executed,
                "exit_price": trade.exit_price,
                "exit_price_executed": trade.exit_price_executed,
                "liquidation_price": trade.liquidation_price,
                "realized_pnl": trade.realized_pnl,
                "fee_oil_paid": trade.fee_oil_paid,
                "slippage_rate": trade.slippage_rate,
                "open_time_seconds": trade.open_time_seconds,
                "counted_volume": trade.counted_volume,
                "counted_volume_reason": reason.value if reason else None,
                "period_date": trade.period_date,
                "opened_at": trade.opened_at,
                "closed_at": trade.closed_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Trade insert returned no rows")
        return _row_to_trade(row)

    async def list_open_positions(
        self, db: AsyncSession, user_id: str
    ) -> list[OpenPosition]:
        rows = (await db.execute(_LIST_POSITIONS_SQL, {"user_id": user_id})).fetchall()
        return [_row_to_position(r) for r in rows]

    async def list_trades(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[TradeRecord]:
        rows = (
            await db.execute(
                _LIST_TRADES_SQL,
                {
                    "user_id": user_id,
                    "cursor_ts": cursor_ts,
                    "cursor_id": cursor_id,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_trade(r) for r in rows]
