"""PriceOracle contract: "give me a mark price for symbol S".

The settlement engine depends only on this Protocol. Transport (REST poll,
WebSocket cache) is an infrastructure concern.
"""

from decimal import Decimal
from typing import Protocol


class PriceFeedError(Exception):
    """A single oracle attempt failed (HTTP error, bad payload, non-positive price)."""


class PriceOracle(Protocol):
    async def get_price(self, symbol: str) -> Decimal: ...
