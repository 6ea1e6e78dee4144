"""TradingService: open and close leveraged demo positions.

open_trade:
  validate → rate limit → balance pre-check → (end read tx) → mark price → executed entry,
  size, liquidation → [conditional debit + insert position] (one transaction)

close_trade:
  load own position → (end read tx) → mark price → executed exit, PnL, hold time →
  [delete position (guard) + counted volume + trade row + clamped credit]
  (one transaction) → task progress (best-effort, own transaction)
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tr_account.domain.repository import BalanceRepositoryProtocol
from src.tr_account.infrastructure.persistence import BalanceRepository
from src.tr_common.datetime_utils import elapsed_seconds, utc_now
from src.tr_common.errors import (
    InsufficientFundsError,
    InternalError,
    PositionNotFoundError,
    RateLimitedError,
)
from src.tr_market.application.price_fetch import fetch_mark_price
from src.tr_market.domain.oracle import PriceOracle
from src.tr_market.infrastructure.binance_oracle import BinancePriceOracle
from src.tr_rewards.domain.period_clock import RewardPeriodClock, trade_period_clock
from src.tr_tasks.application.service import TaskService
from src.tr_trading.application.schemas import (
    CloseTradeResponse,
    OpenTradeResponse,
    PositionItem,
    PositionListResponse,
    TradeItem,
    TradeListResponse,
    cursor_decode,
    cursor_encode,
)
from src.tr_trading.domain import position_math, rules
from src.tr_trading.domain.models import OpenPosition, TradeRecord
from src.tr_trading.domain.repository import TradingRepositoryProtocol
from src.tr_trading.domain.slippage import close_price, open_price
from src.tr_trading.infrastructure.persistence import TradingRepository
from src.tr_volume.application.service import VolumeAccountant

logger = logging.getLogger("tr.trading")


class TradingService:
    def __init__(
        self,
        repo: TradingRepositoryProtocol | None = None,
        balances: BalanceRepositoryProtocol | None = None,
        volume: VolumeAccountant | None = None,
        tasks: TaskService | None = None,
        oracle: PriceOracle | None = None,
        trade_clock: RewardPeriodClock | None = None,
        slippage_rate: Decimal | None = None,
    ) -> None:
        self._repo: TradingRepositoryProtocol = repo or TradingRepository()
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._volume = volume or VolumeAccountant()
        self._tasks = tasks or TaskService()
        self._oracle: PriceOracle = oracle or BinancePriceOracle()
        self._trade_clock = trade_clock or trade_period_clock()
        self._slippage = settings.SLIPPAGE_RATE if slippage_rate is None else slippage_rate

    async def open_trade(
        self,
        db: AsyncSession,
        user_id: str,
        symbol: str,
        side: str,
        leverage: int,
        margin: Decimal,
        now: datetime | None = None,
    ) -> OpenTradeResponse:
        rules.check_symbol(symbol, settings.SUPPORTED_SYMBOLS)
        position_side = rules.check_side(side)
        rules.check_leverage(leverage)
        rules.check_margin(margin)

        now = now or utc_now()
        since = now - timedelta(seconds=rules.OPEN_RATE_WINDOW_SECONDS)
        recent = await self._repo.count_recent_opens(db, user_id, since)
        if recent >= rules.OPEN_RATE_LIMIT:
            raise RateLimitedError(rules.OPEN_RATE_LIMIT, rules.OPEN_RATE_WINDOW_SECONDS)

        size_usdt = position_math.notional_usdt(margin, leverage)
        fee = position_math.fee_oil(size_usdt)

        balance = await self._balances.get_balance(db, user_id)
        if balance is None:
            raise InternalError(f"Balance not found for user {user_id}")
        _check_funds(margin, fee, balance.demo_usdt_balance, balance.oil_balance)

        await _end_read_phase(db)
        mark = await fetch_mark_price(self._oracle, symbol)
        entry_executed = open_price(mark, position_side, self._slippage)
        size = position_math.base_size(size_usdt, entry_executed)
        liq = position_math.liquidation_price(position_side, entry_executed, margin, size)

        try:
            debited = await self._balances.debit_for_open(db, user_id, margin, fee)
            if debited is None:
                # Balance moved between the pre-check and the write.
                current = await self._balances.get_balance(db, user_id)
                if current is None:
                    raise InternalError(f"Balance not found for user {user_id}")
                _check_funds(margin, fee, current.demo_usdt_balance, current.oil_balance)
                raise InternalError("Balance debit rejected")
            position = await self._repo.insert_position(
                db,
                OpenPosition(
                    id="",
                    user_id=user_id,
                    symbol=symbol,
                    side=position_side,
                    entry_price=mark,
                    entry_price_executed=entry_executed,
                    leverage=leverage,
                    margin=margin,
                    position_size=size,
                    liquidation_price=liq,
                    fee_oil_paid=fee,
                    slippage_rate=self._slippage,
                    opened_at=now,
                    position_size_usdt=size_usdt,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Opened %s %s x%d for user %s: margin %s, entry %s (mark %s), fee %s OIL",
            position_side.value, symbol, leverage, user_id, margin,
            entry_executed, mark, fee,
        )
        return OpenTradeResponse(
            position_id=position.id,
            symbol=symbol,
            side=position_side,
            mark_price=mark,
            entry_price_executed=entry_executed,
            slippage_rate=self._slippage,
            margin=margin,
            leverage=leverage,
            position_size=size,
            position_size_usdt=size_usdt,
            fee_oil=fee,
            liquidation_price=liq,
            opened_at=position.opened_at,
        )

    async def close_trade(
        self,
        db: AsyncSession,
        user_id: str,
        position_id: str,
        now: datetime | None = None,
    ) -> CloseTradeResponse:
        position = await self._repo.get_position_for_user(db, user_id, position_id)
        if position is None:
            raise PositionNotFoundError(position_id)

        await _end_read_phase(db)
        mark = await fetch_mark_price(self._oracle, position.symbol)
        exit_executed = close_price(mark, position.side, position.slippage_rate)
        entry_executed = position.effective_entry_price
        pnl = position_math.realized_pnl(
            position.side, entry_executed, exit_executed, position.position_size
        )
        closed_at = now or utc_now()
        open_secs = elapsed_seconds(position.opened_at, closed_at)
        period = self._trade_clock.current_period(closed_at)
        size_usdt = position.notional_usdt
        credit = position_math.close_credit(position.margin, pnl)

        try:
            if not await self._repo.delete_position(db, user_id, position.id):
                # A concurrent close already consumed this position.
                raise PositionNotFoundError(position_id)
            counted = await self._volume.count(db, user_id, period, open_secs, size_usdt)
            trade = await self._repo.insert_trade(
                db,
                TradeRecord(
                    id="",
                    position_id=position.id,
                    user_id=user_id,
                    symbol=position.symbol,
                    side=position.side,
                    leverage=position.leverage,
                    margin=position.margin,
                    position_size=position.position_size,
                    entry_price=position.entry_price,
                    entry_price_executed=entry_executed,
                    exit_price=mark,
                    exit_price_executed=exit_executed,
                    liquidation_price=position.liquidation_price,
                    realized_pnl=pnl,
                    fee_oil_paid=position.fee_oil_paid,
                    slippage_rate=position.slippage_rate,
                    open_time_seconds=open_secs,
                    counted_volume=counted.amount,
                    counted_volume_reason=counted.reason,
                    period_date=period,
                    opened_at=position.opened_at,
                    closed_at=closed_at,
                ),
            )
            await self._balances.credit_usdt_clamped(db, user_id, credit)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Closed %s %s for user %s: pnl %s, held %ds, counted %s (%s)",
            position.side.value, position.symbol, user_id, pnl, open_secs,
            counted.amount, counted.reason.value if counted.reason else "ok",
        )

        await self._tasks.record_trade_progress(db, user_id, size_usdt, pnl > 0, closed_at)

        return CloseTradeResponse(
            trade_id=trade.id,
            position_id=position.id,
            symbol=position.symbol,
            side=position.side,
            mark_price=mark,
            entry_price_executed=entry_executed,
            exit_price_executed=exit_executed,
            realized_pnl=pnl,
            open_time_seconds=open_secs,
            counted_volume=counted.amount,
            counted_volume_reason=counted.reason,
            slippage_rate=position.slippage_rate,
            credited_usdt=credit,
        )

    async def list_positions(
        self, db: AsyncSession, user_id: str
    ) -> PositionListResponse:
        positions = await self._repo.list_open_positions(db, user_id)
        return PositionListResponse(
            items=[PositionItem.from_position(p) for p in positions],
            total=len(positions),
        )

    async def list_trades(
        self, db: AsyncSession, user_id: str, cursor: str | None, limit: int
    ) -> TradeListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        rows = await self._repo.list_trades(db, user_id, cursor_ts, cursor_id, limit + 1)
        has_more = len(rows) > limit
        page = rows[:limit]
        return TradeListResponse(
            items=[TradeItem.from_trade(t) for t in page],
            next_cursor=cursor_encode(page[-1]) if has_more and page else None,
            has_more=has_more,
        )


async def _end_read_phase(db: AsyncSession) -> None:
    """Release the pooled connection before the price fetch, which can take seconds.

    Only reads have run so far. The write phase opens a fresh transaction and
    guards itself with the conditional debit or the DELETE ... RETURNING.
    """
    await db.rollback()


def _check_funds(
    margin: Decimal, fee: Decimal, usdt_available: Decimal, oil_available: Decimal
) -> None:
    if usdt_available < margin:
        raise InsufficientFundsError("USDT", margin, usdt_available)
    if oil_available < fee:
        raise InsufficientFundsError("OIL", fee, oil_available)
