"""Integration-test fixtures (requires running PostgreSQL + Redis, migrated).

Run: pytest -m integration
Pre-condition: alembic upgrade head

All integration tests share a single event loop so that the module-level
SQLAlchemy async engine pool and Redis pool stay valid across the session.
The price feed is replaced with a fixed oracle; nothing leaves the machine.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.tr_rewards.api import router as rewards_router
from src.tr_rewards.application.service import ClaimEngine
from src.tr_rewards.domain.period_clock import RewardPeriodClock
from src.tr_trading.api import router as trading_router
from src.tr_trading.application.service import TradingService
from tests.integration.helpers import ORACLE


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client with the fixed oracle wired in."""
    trading_router._service = TradingService(oracle=ORACLE)
    # Reset at midnight so the claim window is always open during tests.
    rewards_router._engine = ClaimEngine(clock=RewardPeriodClock(0))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

