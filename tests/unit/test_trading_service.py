"""Unit tests for TradingService open/close flows with mocked collaborators."""

from dataclasses import replace
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.tr_account.domain.models import Balance
from src.tr_common.enums import CountedVolumeReason, PositionSide
from src.tr_common.errors import (
    InsufficientFundsError,
    InternalError,
    PositionNotFoundError,
    RateLimitedError,
    TradeValidationError,
)
from src.tr_rewards.domain.period_clock import RewardPeriodClock
from src.tr_trading.application.service import TradingService
from src.tr_trading.domain.models import OpenPosition, TradeRecord
from src.tr_volume.application.service import VolumeAccountant
from src.tr_volume.domain.models import CountedVolume, VolumeIncrement

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
RATE = Decimal("0.0003")


def _balance(usdt: str = "10000", oil: str = "1000") -> Balance:
    return Balance(
        user_id="u1", demo_usdt_balance=Decimal(usdt), oil_balance=Decimal(oil),
        kdx_balance=Decimal("0"),
    )


def _position(**overrides: object) -> OpenPosition:
    base = OpenPosition(
        id="pos-1",
        user_id="u1",
        symbol="BTCUSDT",
        side=PositionSide.LONG,
        entry_price=Decimal("100"),
        entry_price_executed=Decimal("100.03"),
        leverage=10,
        margin=Decimal("100"),
        position_size=Decimal("10"),
        liquidation_price=Decimal("95.03"),
        fee_oil_paid=Decimal("1001"),
        slippage_rate=RATE,
        opened_at=NOW - timedelta(seconds=200),
    )
    return replace(base, **overrides)


@pytest.fixture
def repo() -> AsyncMock:
    r = AsyncMock()
    r.count_recent_opens.return_value = 0
    r.insert_position.side_effect = lambda db, p: replace(p, id="pos-1")
    r.get_position_for_user.return_value = _position()
    r.delete_position.return_value = True
    r.insert_trade.side_effect = lambda db, t: replace(t, id="trade-1")
    return r


@pytest.fixture
def balances() -> AsyncMock:
    b = AsyncMock()
    b.get_balance.return_value = _balance()
    b.debit_for_open.return_value = _balance("9900", "0")
    b.credit_usdt_clamped.return_value = _balance()
    return b


@pytest.fixture
def volume() -> AsyncMock:
    v = AsyncMock()
    v.count.return_value = CountedVolume(Decimal("1000.3"))
    return v


@pytest.fixture
def tasks() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def oracle() -> AsyncMock:
    o = AsyncMock()
    o.get_price.return_value = Decimal("100")
    return o


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def service(repo, balances, volume, tasks, oracle) -> TradingService:
    return TradingService(
        repo=repo,
        balances=balances,
        volume=volume,
        tasks=tasks,
        oracle=oracle,
        trade_clock=RewardPeriodClock(0),
        slippage_rate=RATE,
    )


class TestOpenTrade:
    async def test_open_long(self, service, repo, balances, db) -> None:
        result = await service.open_trade(
            db, "u1", "BTCUSDT", "long", 10, Decimal("100"), now=NOW
        )

        assert result.position_id == "pos-1"
        assert result.mark_price == Decimal("100")
        assert result.entry_price_executed == Decimal("100.0300")
        assert result.position_size_usdt == Decimal("1000")
        assert result.fee_oil == Decimal("1000")
        assert result.liquidation_price < result.entry_price_executed
        balances.debit_for_open.assert_awaited_once_with(
            db, "u1", Decimal("100"), Decimal("1000")
        )
        stored = repo.insert_position.call_args.args[1]
        assert stored.slippage_rate == RATE
        assert stored.opened_at == NOW
        db.commit.assert_awaited_once()

    async def test_open_stores_notional_usdt(self, service, repo, db) -> None:
        await service.open_trade(db, "u1", "SOLUSDT", "long", 1, Decimal("5"), now=NOW)
        stored = repo.insert_position.call_args.args[1]
        assert stored.position_size_usdt == Decimal("5")

    async def test_read_transaction_ends_before_price_fetch(
        self, service, oracle, db
    ) -> None:
        events: list[str] = []
        db.rollback.side_effect = lambda: events.append("rollback")
        oracle.get_price.side_effect = lambda symbol: events.append("price") or Decimal("100")
        db.commit.side_effect = lambda: events.append("commit")

        await service.open_trade(db, "u1", "BTCUSDT", "long", 10, Decimal("100"), now=NOW)

        assert events == ["rollback", "price", "commit"]

    async def test_open_short_fills_below_mark(self, service, db) -> None:
        result = await service.open_trade(
            db, "u1", "BTCUSDT", "short", 10, Decimal("100"), now=NOW
        )
        assert result.entry_price_executed == Decimal("99.9700")
        assert result.liquidation_price > result.entry_price_executed

    async def test_validation_runs_before_storage(self, service, repo, db) -> None:
        with pytest.raises(TradeValidationError):
            await service.open_trade(db, "u1", "BTCUSDT", "long", 51, Decimal("100"), now=NOW)
        repo.count_recent_opens.assert_not_called()

    async def test_rate_limited(self, service, repo, oracle, db) -> None:
        repo.count_recent_opens.return_value = 3
        with pytest.raises(RateLimitedError) as exc_info:
            await service.open_trade(db, "u1", "BTCUSDT", "long", 10, Decimal("100"), now=NOW)

        assert exc_info.value.retryable is True
        assert repo.count_recent_opens.call_args.args[2] == NOW - timedelta(seconds=5)
        oracle.get_price.assert_not_called()

    async def test_insufficient_usdt(self, service, balances, oracle, db) -> None:
        balances.get_balance.return_value = _balance(usdt="50")
        with pytest.raises(InsufficientFundsError) as exc_info:
            await service.open_trade(db, "u1", "BTCUSDT", "long", 10, Decimal("100"), now=NOW)

        assert exc_info.value.asset == "USDT"
        assert exc_info.value.shortfall == Decimal("50")
        oracle.get_price.assert_not_called()

    async def test_insufficient_oil_for_fee(self, service, balances, db) -> None:
        balances.get_balance.return_value = _balance(oil="999")
        with pytest.raises(InsufficientFundsError) as exc_info:
            await service.open_trade(db, "u1", "BTCUSDT", "long", 10, Decimal("100"), now=NOW)

        assert exc_info.value.asset == "OIL"
        assert exc_info.value.shortfall == Decimal("1")
        balances.debit_for_open.assert_not_called()

    async def test_balance_drained_between_check_and_debit(
        self, service, repo, balances, db
    ) -> None:
        balances.get_balance.side_effect = [_balance(), _balance(usdt="10")]
        balances.debit_for_open.return_value = None
        with pytest.raises(InsufficientFundsError):
            await service.open_trade(db, "u1", "BTCUSDT", "long", 10, Decimal("100"), now=NOW)

        repo.insert_position.assert_not_called()
        assert db.rollback.await_count == 2

    async def test_rejected_debit_without_shortfall(self, service, balances, db) -> None:
        balances.debit_for_open.return_value = None
        with pytest.raises(InternalError):
            await service.open_trade(db, "u1", "BTCUSDT", "long", 10, Decimal("100"), now=NOW)
        assert db.rollback.await_count == 2


class TestCloseTrade:
    async def test_close_profitable_long(
        self, service, repo, balances, volume, tasks, oracle, db
    ) -> None:
        oracle.get_price.return_value = Decimal("110")
        result = await service.close_trade(db, "u1", "pos-1", now=NOW)

        assert result.trade_id == "trade-1"
        assert result.exit_price_executed == Decimal("109.9670")
        assert result.realized_pnl == Decimal("99.3700")
        assert result.open_time_seconds == 200
        assert result.credited_usdt == Decimal("199.3700")

        volume.count.assert_awaited_once_with(
            db, "u1", date(2026, 3, 10), 200, Decimal("1000.30")
        )
        balances.credit_usdt_clamped.assert_awaited_once_with(db, "u1", Decimal("199.3700"))
        trade = repo.insert_trade.call_args.args[1]
        assert trade.position_id == "pos-1"
        assert trade.counted_volume == Decimal("1000.3")
        db.commit.assert_awaited_once()
        tasks.record_trade_progress.assert_awaited_once_with(
            db, "u1", Decimal("1000.30"), True, NOW
        )

    async def test_read_transaction_ends_before_price_fetch(
        self, service, oracle, db
    ) -> None:
        events: list[str] = []
        db.rollback.side_effect = lambda: events.append("rollback")
        oracle.get_price.side_effect = lambda symbol: events.append("price") or Decimal("110")
        db.commit.side_effect = lambda: events.append("commit")

        await service.close_trade(db, "u1", "pos-1", now=NOW)

        assert events == ["rollback", "price", "commit"]

    async def test_min_size_trade_counts_after_store_rounding(
        self, repo, balances, tasks, oracle, db
    ) -> None:
        # At this price margin / entry has no exact 18-place representation.
        store = AsyncMock()
        store.add_counted_volume.side_effect = (
            lambda db, user_id, period, volume, cap: VolumeIncrement(volume, False, volume)
        )
        service = TradingService(
            repo=repo,
            balances=balances,
            volume=VolumeAccountant(repo=store, daily_cap=Decimal("50000")),
            tasks=tasks,
            oracle=oracle,
            trade_clock=RewardPeriodClock(0),
            slippage_rate=RATE,
        )
        oracle.get_price.return_value = Decimal("97.31")
        await service.open_trade(db, "u1", "SOLUSDT", "long", 1, Decimal("5"), now=NOW)

        stored = repo.insert_position.call_args.args[1]
        rounded = stored.position_size.quantize(Decimal("1e-18"))
        assert rounded * stored.entry_price_executed < Decimal("5")
        repo.get_position_for_user.return_value = replace(
            stored, id="pos-1", position_size=rounded, opened_at=NOW - timedelta(seconds=200)
        )

        result = await service.close_trade(db, "u1", "pos-1", now=NOW)

        assert result.counted_volume_reason is None
        assert result.counted_volume == Decimal("5")
        tasks.record_trade_progress.assert_awaited_once_with(
            db, "u1", Decimal("5"), False, NOW
        )

    async def test_loss_beyond_margin_credits_zero(self, service, balances, oracle, db) -> None:
        oracle.get_price.return_value = Decimal("50")
        result = await service.close_trade(db, "u1", "pos-1", now=NOW)

        assert result.realized_pnl < -Decimal("100")
        assert result.credited_usdt == Decimal("0")
        balances.credit_usdt_clamped.assert_awaited_once_with(db, "u1", Decimal("0"))

    async def test_uses_stored_slippage_rate(self, service, repo, oracle, db) -> None:
        repo.get_position_for_user.return_value = _position(slippage_rate=Decimal("0.01"))
        result = await service.close_trade(db, "u1", "pos-1", now=NOW)
        assert result.exit_price_executed == Decimal("99.00")

    async def test_legacy_position_uses_mark_entry(self, service, repo, oracle, db) -> None:
        repo.get_position_for_user.return_value = _position(entry_price_executed=None)
        oracle.get_price.return_value = Decimal("100")
        result = await service.close_trade(db, "u1", "pos-1", now=NOW)

        assert result.entry_price_executed == Decimal("100")
        assert result.realized_pnl == Decimal("-0.3000")

    async def test_uncounted_volume_reason_is_reported(self, service, volume, db) -> None:
        volume.count.return_value = CountedVolume(Decimal("0"), CountedVolumeReason.TOO_FAST)
        result = await service.close_trade(db, "u1", "pos-1", now=NOW)

        assert result.counted_volume == Decimal("0")
        assert result.counted_volume_reason == CountedVolumeReason.TOO_FAST

    async def test_unknown_position(self, service, repo, oracle, db) -> None:
        repo.get_position_for_user.return_value = None
        with pytest.raises(PositionNotFoundError):
            await service.close_trade(db, "u1", "missing", now=NOW)
        oracle.get_price.assert_not_called()

    async def test_concurrent_close_loses(self, service, repo, balances, tasks, db) -> None:
        repo.delete_position.return_value = False
        with pytest.raises(PositionNotFoundError):
            await service.close_trade(db, "u1", "pos-1", now=NOW)

        balances.credit_usdt_clamped.assert_not_called()
        assert db.rollback.await_count == 2
        tasks.record_trade_progress.assert_not_called()

    async def test_failure_rolls_back(self, service, repo, tasks, db) -> None:
        repo.insert_trade.side_effect = RuntimeError("db down")
        with pytest.raises(RuntimeError):
            await service.close_trade(db, "u1", "pos-1", now=NOW)
        assert db.rollback.await_count == 2
        db.commit.assert_not_called()
        tasks.record_trade_progress.assert_not_called()


class TestListings:
    async def test_list_positions(self, service, repo, db) -> None:
        repo.list_open_positions.return_value = [_position()]
        result = await service.list_positions(db, "u1")
        assert result.total == 1

    async def test_list_trades_paginates(self, service, repo, db) -> None:
        repo.list_trades.return_value = [_trade(f"t{i}", i) for i in range(3)]
        result = await service.list_trades(db, "u1", None, 2)

        assert repo.list_trades.call_args.args[4] == 3
        assert [item.trade_id for item in result.items] == ["t0", "t1"]
        assert result.has_more is True
        assert result.next_cursor is not None

    async def test_last_page_has_no_cursor(self, service, repo, db) -> None:
        repo.list_trades.return_value = [_trade("t0", 0)]
        result = await service.list_trades(db, "u1", None, 2)

        assert result.has_more is False
        assert result.next_cursor is None


def _trade(trade_id: str, minutes_ago: int) -> TradeRecord:
    closed_at = NOW - timedelta(minutes=minutes_ago)
    return TradeRecord(
        id=trade_id,
        position_id=f"p-{trade_id}",
        user_id="u1",
        symbol="BTCUSDT",
        side=PositionSide.LONG,
        leverage=10,
        margin=Decimal("100"),
        position_size=Decimal("10"),
        entry_price=Decimal("100"),
        entry_price_executed=Decimal("100.03"),
        exit_price=Decimal("101"),
        exit_price_executed=Decimal("100.97"),
        liquidation_price=Decimal("95"),
        realized_pnl=Decimal("9.4"),
        fee_oil_paid=Decimal("1000"),
        slippage_rate=RATE,
        open_time_seconds=120,
        counted_volume=Decimal("750.225"),
        counted_volume_reason=None,
        period_date=closed_at.date(),
        opened_at=closed_at - timedelta(seconds=120),
        closed_at=closed_at,
    )
