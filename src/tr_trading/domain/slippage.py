"""Slippage model: executed fill price is always worse for the trader.

             OPEN            CLOSE
  long   mark * (1+r)    mark * (1-r)
  short  mark * (1-r)    mark * (1+r)
"""

from decimal import Decimal

from src.tr_common.enums import FillDirection, PositionSide


def executed_price(
    mark_price: Decimal,
    side: PositionSide,
    rate: Decimal,
    direction: FillDirection,
) -> Decimal:
    pays_up = (side == PositionSide.LONG) == (direction == FillDirection.OPEN)
    if pays_up:
        return mark_price * (1 + rate)
    return mark_price * (1 - rate)


def open_price(mark_price: Decimal, side: PositionSide, rate: Decimal) -> Decimal:
    return executed_price(mark_price, side, rate, FillDirection.OPEN)


def close_price(mark_price: Decimal, side: PositionSide, rate: Decimal) -> Decimal:
    return executed_price(mark_price, side, rate, FillDirection.CLOSE)
