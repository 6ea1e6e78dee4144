"""Envelope and routing tests against the ASGI app with services mocked out.

Dependencies are overridden, so no database, Redis or price feed is touched.
"""

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from src.main import app
from src.tr_common.database import get_db_session
from src.tr_common.errors import (
    AlreadyClaimedError,
    BonusAlreadyClaimedError,
    InsufficientFundsError,
    WalletNotLinkedError,
)
from src.tr_common.enums import LeaderboardPeriod, LeaderboardType, PositionSide
from src.tr_gateway.auth.dependencies import get_current_user, require_linked_wallet
from src.tr_gateway.user.db_models import UserModel
from src.tr_referral.api import router as referral_router
from src.tr_referral.domain.models import BonusOutcome
from src.tr_rewards.api import router as rewards_router
from src.tr_rewards.application.schemas import ClaimRewardResponse, LeaderboardResponse
from src.tr_tasks.api import router as tasks_router
from src.tr_trading.api import router as trading_router
from src.tr_trading.application.schemas import OpenTradeResponse

WALLET = "0x" + "cd" * 20


def _user() -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.username = "alice"
    user.email = "alice@example.com"
    user.is_active = True
    user.referral_code = "AAAA0000"
    user.linked_wallet_address = WALLET
    return user


@pytest.fixture
def user() -> UserModel:
    u = _user()

    async def _db():
        yield MagicMock()

    app.dependency_overrides[get_db_session] = _db
    app.dependency_overrides[get_current_user] = lambda: u
    app.dependency_overrides[require_linked_wallet] = lambda: u
    return u


def _open_response() -> OpenTradeResponse:
    return OpenTradeResponse(
        position_id="pos-1",
        symbol="BTCUSDT",
        side=PositionSide.LONG,
        mark_price=Decimal("100"),
        entry_price_executed=Decimal("100.03"),
        slippage_rate=Decimal("0.0003"),
        margin=Decimal("100"),
        leverage=10,
        position_size=Decimal("9.997"),
        position_size_usdt=Decimal("1000"),
        fee_oil=Decimal("1000"),
        liquidation_price=Decimal("95.03"),
        opened_at=datetime(2026, 3, 10, 12, tzinfo=UTC),
    )


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_request_id_header_echoed(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.headers["X-Request-ID"].startswith("req_")


class TestOpenTradeRoute:
    async def test_success_envelope(
        self, client: AsyncClient, user: UserModel, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        service = AsyncMock()
        service.open_trade.return_value = _open_response()
        monkeypatch.setattr(trading_router, "_service", service)

        resp = await client.post(
            "/api/v1/open-trade",
            json={"symbol": "BTCUSDT", "side": "long", "leverage": 10, "margin": "100"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["code"] == 0
        assert body["data"]["positionId"] == "pos-1"
        assert body["data"]["entryPriceExecuted"] == "100.03"
        assert body["request_id"] == resp.headers["X-Request-ID"]
        args = service.open_trade.call_args.args
        assert args[1] == str(user.id)
        assert args[5] == Decimal("100")

    async def test_app_error_is_http_200(
        self, client: AsyncClient, user: UserModel, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        service = AsyncMock()
        service.open_trade.side_effect = InsufficientFundsError(
            "USDT", Decimal("100"), Decimal("40")
        )
        monkeypatch.setattr(trading_router, "_service", service)

        resp = await client.post(
            "/api/v1/open-trade",
            json={"symbol": "BTCUSDT", "side": "long", "leverage": 10, "margin": "100"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == 2002
        assert "short 60.00" in body["error"]
        assert body["data"] is None

    async def test_malformed_body_is_validation_envelope(
        self, client: AsyncClient, user: UserModel
    ) -> None:
        resp = await client.post("/api/v1/open-trade", json={"symbol": "BTCUSDT"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == 2001

    async def test_storage_failure_is_retryable(
        self, client: AsyncClient, user: UserModel, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        service = AsyncMock()
        service.open_trade.side_effect = OperationalError("SELECT 1", {}, Exception("gone"))
        monkeypatch.setattr(trading_router, "_service", service)

        resp = await client.post(
            "/api/v1/open-trade",
            json={"symbol": "BTCUSDT", "side": "long", "leverage": 10, "margin": "100"},
        )

        body = resp.json()
        assert body["code"] == 9002
        assert body["retryable"] is True
        assert "gone" not in body["error"]

    async def test_wallet_gate(self, client: AsyncClient, user: UserModel) -> None:
        def _no_wallet() -> UserModel:
            raise WalletNotLinkedError()

        app.dependency_overrides[require_linked_wallet] = _no_wallet
        resp = await client.post(
            "/api/v1/open-trade",
            json={"symbol": "BTCUSDT", "side": "long", "leverage": 10, "margin": "100"},
        )
        assert resp.json()["code"] == 1007


class TestClaimRoute:
    async def test_wallet_defaults_to_linked(
        self, client: AsyncClient, user: UserModel, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        engine = AsyncMock()
        engine.claim.return_value = ClaimRewardResponse(
            claim_id="c1", amount=Decimal("2500"), new_kdx_balance=Decimal("2500")
        )
        monkeypatch.setattr(rewards_router, "_engine", engine)

        resp = await client.post("/api/v1/claim-reward", json={"period": "2026-03-09"})

        assert resp.json()["data"]["claimId"] == "c1"
        args = engine.claim.call_args.args
        assert args[2] == date(2026, 3, 9)
        assert args[3] == WALLET

    async def test_bad_wallet_rejected(self, client: AsyncClient, user: UserModel) -> None:
        resp = await client.post("/api/v1/claim-reward", json={"walletAddress": "0x12"})
        assert resp.json()["code"] == 2001

    async def test_already_claimed(
        self, client: AsyncClient, user: UserModel, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        engine = AsyncMock()
        engine.claim.side_effect = AlreadyClaimedError("2026-03-09")
        monkeypatch.setattr(rewards_router, "_engine", engine)

        resp = await client.post("/api/v1/claim-reward", json={})
        assert resp.json()["code"] == 3001


class TestReferralRoute:
    async def test_process_bonus(
        self, client: AsyncClient, user: UserModel, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        cascade = AsyncMock()
        cascade.process_claim.return_value = BonusOutcome(
            processed=True, reason="Bonus paid", bonus_amount=Decimal("8"), referrer_id="ref"
        )
        monkeypatch.setattr(referral_router, "_cascade", cascade)
        claim_id = str(uuid.uuid4())

        resp = await client.post(
            "/api/v1/process-referral-bonus",
            json={"claimId": claim_id, "claimedAmount": "100"},
        )

        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert data["processed"] is True
        assert data["bonusAmount"] == "8"
        cascade.process_claim.assert_awaited_once()
        assert cascade.process_claim.call_args.args[1] == claim_id


class TestLeaderboardRoute:
    async def test_query_params(
        self, client: AsyncClient, user: UserModel, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        service = AsyncMock()
        service.board.return_value = LeaderboardResponse(
            board=LeaderboardType.PNL,
            period=LeaderboardPeriod.WEEKLY,
            start_date=date(2026, 3, 4),
            end_date=date(2026, 3, 10),
            items=[],
        )
        monkeypatch.setattr(rewards_router, "_leaderboard", service)

        resp = await client.get("/api/v1/leaderboard?type=pnl&period=weekly")

        assert resp.json()["data"]["startDate"] == "2026-03-04"
        args = service.board.call_args.args
        assert args[1] == LeaderboardType.PNL
        assert args[2] == LeaderboardPeriod.WEEKLY

    async def test_unknown_board(self, client: AsyncClient, user: UserModel) -> None:
        resp = await client.get("/api/v1/leaderboard?type=karma")
        assert resp.json()["code"] == 2001


class TestBonusRoute:
    async def test_daily_claimed_twice(
        self, client: AsyncClient, user: UserModel, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        service = AsyncMock()
        service.claim_daily.side_effect = BonusAlreadyClaimedError()
        monkeypatch.setattr(tasks_router, "_bonuses", service)

        resp = await client.post("/api/v1/bonuses/daily/claim")

        assert resp.status_code == 200
        assert resp.json()["code"] == 3107
        assert service.claim_daily.call_args.args[1] == str(user.id)
