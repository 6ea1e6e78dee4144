"""Unit tests for BonusService: daily Oil bonus and welcome bonus reads."""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.tr_account.domain.models import Balance
from src.tr_common.enums import BonusType, RewardKind
from src.tr_common.errors import BonusAlreadyClaimedError
from src.tr_rewards.domain.period_clock import RewardPeriodClock
from src.tr_tasks.application.bonus_service import BonusService
from src.tr_tasks.domain.models import BonusClaim

NOW = datetime(2026, 3, 10, 18, 0, tzinfo=UTC)
TODAY = date(2026, 3, 10)


def _claim(bonus_type: BonusType, claim_date: date, amount: str = "40") -> BonusClaim:
    return BonusClaim(
        user_id="u1",
        bonus_type=bonus_type,
        claim_date=claim_date,
        amount_oil=Decimal(amount),
        created_at=datetime(2026, 3, 1, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def repo() -> AsyncMock:
    r = AsyncMock()
    r.latest_claim.return_value = None
    r.insert_claim.return_value = True
    return r


@pytest.fixture
def balances() -> AsyncMock:
    b = AsyncMock()
    b.credit_reward.return_value = Balance(
        user_id="u1", demo_usdt_balance=Decimal("10000"), oil_balance=Decimal("1040"),
        kdx_balance=Decimal("0"),
    )
    return b


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def service(repo: AsyncMock, balances: AsyncMock) -> BonusService:
    return BonusService(
        repo=repo, balances=balances, clock=RewardPeriodClock(0), daily_amount=Decimal("40")
    )


class TestDailyStatus:
    async def test_never_claimed(self, service, db) -> None:
        result = await service.daily_status(db, "u1", now=NOW)
        assert result.can_claim is True
        assert result.seconds_until_next_claim == 0
        assert result.last_claim_date is None

    async def test_claimed_today_waits_for_reset(self, service, repo, db) -> None:
        repo.latest_claim.return_value = _claim(BonusType.DAILY_OIL, TODAY)
        result = await service.daily_status(db, "u1", now=NOW)

        assert result.can_claim is False
        assert result.next_claim_at == datetime(2026, 3, 11, 0, 0, tzinfo=UTC)
        assert result.seconds_until_next_claim == 6 * 3600
        repo.latest_claim.assert_awaited_once_with(db, "u1", BonusType.DAILY_OIL)

    async def test_claimed_yesterday(self, service, repo, db) -> None:
        repo.latest_claim.return_value = _claim(BonusType.DAILY_OIL, date(2026, 3, 9))
        result = await service.daily_status(db, "u1", now=NOW)
        assert result.can_claim is True


class TestClaimDaily:
    async def test_claim_credits_oil(self, service, repo, balances, db) -> None:
        result = await service.claim_daily(db, "u1", now=NOW)

        assert result.amount_oil == Decimal("40")
        assert result.new_oil_balance == Decimal("1040")
        repo.insert_claim.assert_awaited_once_with(
            db, "u1", BonusType.DAILY_OIL, TODAY, Decimal("40")
        )
        balances.credit_reward.assert_awaited_once_with(db, "u1", RewardKind.OIL, Decimal("40"))
        db.commit.assert_awaited_once()

    async def test_second_claim_same_day(self, service, repo, balances, db) -> None:
        repo.insert_claim.return_value = False
        with pytest.raises(BonusAlreadyClaimedError):
            await service.claim_daily(db, "u1", now=NOW)
        balances.credit_reward.assert_not_called()
        db.rollback.assert_awaited_once()


class TestWelcome:
    async def test_not_received(self, service, db) -> None:
        result = await service.welcome_status(db, "u1")
        assert result.received is False
        assert result.amount_oil is None

    async def test_received(self, service, repo, db) -> None:
        repo.latest_claim.return_value = _claim(BonusType.WELCOME_OIL, date(2026, 3, 1), "1000")
        result = await service.welcome_status(db, "u1")

        assert result.received is True
        assert result.amount_oil == Decimal("1000")
        repo.latest_claim.assert_awaited_once_with(db, "u1", BonusType.WELCOME_OIL)
