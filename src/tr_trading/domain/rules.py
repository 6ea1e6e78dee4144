"""Pre-trade validation rules. Each raises TradeValidationError with a user-facing message."""

from decimal import Decimal

from src.tr_common.enums import PositionSide
from src.tr_common.errors import TradeValidationError

MIN_LEVERAGE = 1
MAX_LEVERAGE = 50
MIN_MARGIN_USDT = Decimal("5")

OPEN_RATE_LIMIT = 3
OPEN_RATE_WINDOW_SECONDS = 5


def check_symbol(symbol: str, supported: list[str]) -> None:
    if not symbol or symbol not in supported:
        raise TradeValidationError(f"Invalid symbol: {symbol or '<empty>'}")


def check_side(side: str) -> PositionSide:
    try:
        return PositionSide(side)
    except ValueError:
        raise TradeValidationError('Invalid side. Must be "long" or "short"') from None


def check_leverage(leverage: int) -> None:
    if not (MIN_LEVERAGE <= leverage <= MAX_LEVERAGE):
        raise TradeValidationError(
            f"Leverage must be between {MIN_LEVERAGE} and {MAX_LEVERAGE}"
        )


def check_margin(margin: Decimal) -> None:
    if not margin.is_finite() or margin < MIN_MARGIN_USDT:
        raise TradeValidationError(f"Minimum margin is {MIN_MARGIN_USDT} USDT")
