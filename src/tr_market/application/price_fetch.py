"""Bounded-retry mark price fetch shared by open and close.

Each attempt is capped by a fixed timeout; failed attempts are retried after a
fixed delay (no backoff, no jitter). Exhaustion raises PriceUnavailableError,
which callers surface as a retryable error.
"""

import asyncio
import logging
from decimal import Decimal

from config.settings import settings
from src.tr_common.errors import PriceUnavailableError
from src.tr_market.domain.oracle import PriceFeedError, PriceOracle

logger = logging.getLogger("tr.market")


async def fetch_mark_price(
    oracle: PriceOracle,
    symbol: str,
    *,
    timeout_seconds: float | None = None,
    max_retries: int | None = None,
    retry_delay_seconds: float | None = None,
) -> Decimal:
    timeout = settings.PRICE_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
    retries = settings.PRICE_MAX_RETRIES if max_retries is None else max_retries
    delay = (
        settings.PRICE_RETRY_DELAY_SECONDS
        if retry_delay_seconds is None
        else retry_delay_seconds
    )

    attempts = retries + 1
    for attempt in range(1, attempts + 1):
        try:
            price = await asyncio.wait_for(oracle.get_price(symbol), timeout=timeout)
        except (PriceFeedError, TimeoutError) as exc:
            logger.warning(
                "Price fetch for %s failed (attempt %d/%d): %r",
                symbol, attempt, attempts, exc,
            )
        else:
            if price > 0:
                logger.info("Price fetched for %s: %s (attempt %d)", symbol, price, attempt)
                return price
            logger.warning(
                "Price fetch for %s returned non-positive %s (attempt %d/%d)",
                symbol, price, attempt, attempts,
            )

        if attempt < attempts:
            await asyncio.sleep(delay)

    logger.error("All %d price fetch attempts failed for %s", attempts, symbol)
    raise PriceUnavailableError(symbol)
