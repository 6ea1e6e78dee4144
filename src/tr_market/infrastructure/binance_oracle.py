"""Binance public ticker as PriceOracle.

GET {PRICE_API_URL}/api/v3/ticker/price?symbol=BTCUSDT -> {"symbol": "...", "price": "64000.01"}
"""

import logging
from decimal import Decimal, InvalidOperation

import httpx

from src.tr_common.http_client import get_http_client
from src.tr_market.domain.oracle import PriceFeedError

logger = logging.getLogger("tr.market")

_TICKER_PATH = "/api/v3/ticker/price"


class BinancePriceOracle:
    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def get_price(self, symbol: str) -> Decimal:
        client = self._client or get_http_client()
        try:
            response = await client.get(_TICKER_PATH, params={"symbol": symbol})
        except httpx.HTTPError as exc:
            raise PriceFeedError(f"transport error: {exc!r}") from exc

        if response.status_code != 200:
            raise PriceFeedError(f"ticker returned HTTP {response.status_code}")

        try:
            price = Decimal(str(response.json()["price"]))
        except (ValueError, KeyError, TypeError, InvalidOperation) as exc:
            raise PriceFeedError("invalid price payload") from exc

        if not price.is_finite() or price <= 0:
            raise PriceFeedError(f"non-positive price {price}")

        logger.debug("Ticker %s = %s", symbol, price)
        return price
