"""Unit tests for pre-trade validation rules."""

from decimal import Decimal

import pytest

from src.tr_common.enums import PositionSide
from src.tr_common.errors import TradeValidationError
from src.tr_trading.domain.rules import (
    check_leverage,
    check_margin,
    check_side,
    check_symbol,
)

SYMBOLS = ["BTCUSDT", "ETHUSDT"]


def test_supported_symbol_passes() -> None:
    check_symbol("BTCUSDT", SYMBOLS)


@pytest.mark.parametrize("symbol", ["", "XRPUSDT", "btcusdt"])
def test_unsupported_symbol_rejected(symbol: str) -> None:
    with pytest.raises(TradeValidationError) as exc_info:
        check_symbol(symbol, SYMBOLS)
    assert exc_info.value.code == 2001


def test_side_parses_to_enum() -> None:
    assert check_side("long") is PositionSide.LONG
    assert check_side("short") is PositionSide.SHORT


def test_bad_side_rejected() -> None:
    with pytest.raises(TradeValidationError, match="long"):
        check_side("buy")


@pytest.mark.parametrize("leverage", [1, 25, 50])
def test_leverage_bounds_inclusive(leverage: int) -> None:
    check_leverage(leverage)


@pytest.mark.parametrize("leverage", [0, 51, -3])
def test_leverage_out_of_range(leverage: int) -> None:
    with pytest.raises(TradeValidationError):
        check_leverage(leverage)


def test_minimum_margin_is_five() -> None:
    check_margin(Decimal("5"))
    with pytest.raises(TradeValidationError, match="Minimum margin"):
        check_margin(Decimal("4.99"))


def test_non_finite_margin_rejected() -> None:
    with pytest.raises(TradeValidationError):
        check_margin(Decimal("NaN"))
