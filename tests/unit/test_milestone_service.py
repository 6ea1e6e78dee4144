"""Unit tests for MilestoneService: daily volume milestones paid in Oil."""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.tr_account.domain.models import Balance
from src.tr_common.enums import RewardKind
from src.tr_common.errors import (
    MilestoneAlreadyClaimedError,
    MilestoneNotFoundError,
    MilestoneNotReachedError,
)
from src.tr_rewards.domain.period_clock import RewardPeriodClock
from src.tr_tasks.application.milestone_service import MilestoneService

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)
TODAY = date(2026, 3, 10)


@pytest.fixture
def repo() -> AsyncMock:
    r = AsyncMock()
    r.traded_volume.return_value = Decimal("12000")
    r.claimed_ids.return_value = set()
    r.insert_claim.return_value = True
    return r


@pytest.fixture
def balances() -> AsyncMock:
    b = AsyncMock()
    b.credit_reward.return_value = Balance(
        user_id="u1", demo_usdt_balance=Decimal("10000"), oil_balance=Decimal("1500"),
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
def service(repo: AsyncMock, balances: AsyncMock) -> MilestoneService:
    return MilestoneService(repo=repo, balances=balances, clock=RewardPeriodClock(0))


class TestListMilestones:
    async def test_progress_and_flags(self, service, repo, db) -> None:
        repo.claimed_ids.return_value = {"volume_10k"}
        result = await service.list_milestones(db, "u1", now=NOW)

        by_id = {m.milestone_id: m for m in result.items}
        assert result.period_date == TODAY
        assert by_id["volume_10k"].progress == Decimal("10000")
        assert by_id["volume_10k"].claimed is True
        assert by_id["volume_10k"].can_claim is False
        assert by_id["volume_50k"].progress == Decimal("12000")
        assert by_id["volume_50k"].completed is False
        repo.traded_volume.assert_awaited_once_with(db, "u1", TODAY)


class TestClaimMilestone:
    async def test_claim_credits_oil(self, service, repo, balances, db) -> None:
        result = await service.claim(db, "u1", "volume_10k", now=NOW)

        assert result.reward_oil == Decimal("500")
        assert result.volume_reached == Decimal("12000")
        assert result.new_oil_balance == Decimal("1500")
        repo.insert_claim.assert_awaited_once_with(
            db, "u1", "volume_10k", TODAY, Decimal("12000"), Decimal("500")
        )
        balances.credit_reward.assert_awaited_once_with(
            db, "u1", RewardKind.OIL, Decimal("500")
        )
        db.commit.assert_awaited_once()

    async def test_unknown_milestone(self, service, repo, db) -> None:
        with pytest.raises(MilestoneNotFoundError):
            await service.claim(db, "u1", "volume_1m", now=NOW)
        repo.traded_volume.assert_not_called()

    async def test_not_reached(self, service, balances, db) -> None:
        with pytest.raises(MilestoneNotReachedError):
            await service.claim(db, "u1", "volume_50k", now=NOW)
        balances.credit_reward.assert_not_called()
        db.rollback.assert_awaited_once()

    async def test_exact_target_is_reached(self, service, repo, db) -> None:
        repo.traded_volume.return_value = Decimal("10000")
        result = await service.claim(db, "u1", "volume_10k", now=NOW)
        assert result.reward_oil == Decimal("500")

    async def test_second_claim_same_day(self, service, repo, balances, db) -> None:
        repo.insert_claim.return_value = False
        with pytest.raises(MilestoneAlreadyClaimedError):
            await service.claim(db, "u1", "volume_10k", now=NOW)
        balances.credit_reward.assert_not_called()
        db.commit.assert_not_called()
