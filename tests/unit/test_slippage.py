"""Unit tests for the slippage model."""

from decimal import Decimal

import pytest

from src.tr_common.enums import FillDirection, PositionSide
from src.tr_trading.domain.slippage import close_price, executed_price, open_price

RATE = Decimal("0.0003")
MARK = Decimal("100")


def test_long_open_pays_up() -> None:
    assert open_price(MARK, PositionSide.LONG, RATE) == Decimal("100.0300")


def test_short_open_sells_down() -> None:
    assert open_price(MARK, PositionSide.SHORT, RATE) == Decimal("99.9700")


def test_long_close_receives_less() -> None:
    assert close_price(MARK, PositionSide.LONG, RATE) == Decimal("99.9700")


def test_short_close_buys_back_higher() -> None:
    assert close_price(MARK, PositionSide.SHORT, RATE) == Decimal("100.0300")


@pytest.mark.parametrize("side", list(PositionSide))
def test_round_trip_at_flat_mark_always_loses(side: PositionSide) -> None:
    entry = open_price(MARK, side, RATE)
    exit_ = close_price(MARK, side, RATE)
    if side == PositionSide.LONG:
        assert exit_ < entry
    else:
        assert exit_ > entry


def test_zero_rate_is_identity() -> None:
    for side in PositionSide:
        for direction in FillDirection:
            assert executed_price(MARK, side, Decimal("0"), direction) == MARK
