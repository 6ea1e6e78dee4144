"""Margin, fee, liquidation and PnL math for leveraged positions. Pure functions."""

from decimal import Decimal

from src.tr_common.decimals import ceil_units, clamp_non_negative
from src.tr_common.enums import PositionSide

MAINTENANCE_MARGIN_RATIO = Decimal("0.5")


def notional_usdt(margin: Decimal, leverage: int) -> Decimal:
    return margin * leverage


def fee_oil(position_size_usdt: Decimal) -> Decimal:
    """One Oil per notional USDT, rounded up."""
    return ceil_units(position_size_usdt)


def base_size(position_size_usdt: Decimal, entry_price_executed: Decimal) -> Decimal:
    """Position size in base-asset units."""
    return position_size_usdt / entry_price_executed


def liquidation_price(
    side: PositionSide,
    entry_price_executed: Decimal,
    margin: Decimal,
    position_size: Decimal,
) -> Decimal:
    """Price at which the loss eats the maintenance margin. Never negative."""
    distance = (margin * MAINTENANCE_MARGIN_RATIO) / position_size
    if side == PositionSide.LONG:
        return clamp_non_negative(entry_price_executed - distance)
    return entry_price_executed + distance


def realized_pnl(
    side: PositionSide,
    entry_price_executed: Decimal,
    exit_price_executed: Decimal,
    position_size: Decimal,
) -> Decimal:
    diff = exit_price_executed - entry_price_executed
    if side == PositionSide.SHORT:
        diff = -diff
    return diff * position_size


def close_credit(margin: Decimal, pnl: Decimal) -> Decimal:
    """USDT returned on close. A loss beyond the margin is capped at the margin."""
    return clamp_non_negative(margin + pnl)
