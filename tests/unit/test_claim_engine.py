"""Unit tests for ClaimEngine with a mock repository and referral cascade."""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.tr_common.errors import (
    AlreadyClaimedError,
    NoRewardsAvailableError,
    NotWithinClaimWindowError,
)
from src.tr_referral.domain.models import BonusOutcome
from src.tr_rewards.application.service import ClaimEngine
from src.tr_rewards.domain.models import ClaimResult, RewardClaim
from src.tr_rewards.domain.period_clock import RewardPeriodClock

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
PERIOD = date(2026, 3, 9)


def _repo(user_volume: str = "2500", pool_volume: str = "10000") -> AsyncMock:
    repo = AsyncMock()
    repo.get_claim.return_value = None
    repo.get_user_volume.return_value = Decimal(user_volume)
    repo.get_pool_volume.return_value = Decimal(pool_volume)
    repo.claim_reward.return_value = ClaimResult(claim_id="claim-1", new_kdx_balance=Decimal("2600"))
    return repo


def _engine(repo: AsyncMock, referrals: AsyncMock | None = None) -> ClaimEngine:
    if referrals is None:
        referrals = AsyncMock()
        referrals.process_safely.return_value = BonusOutcome(processed=False, reason="none")
    return ClaimEngine(
        repo=repo,
        referrals=referrals,
        clock=RewardPeriodClock(5),
        trade_clock=RewardPeriodClock(0),
        daily_pool=Decimal("10000"),
    )


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


class TestClaim:
    async def test_pays_pro_rata_share(self, db: MagicMock) -> None:
        repo = _repo()
        result = await _engine(repo).claim(db, "u1", PERIOD, "0xabc", now=NOW)

        assert result.amount == Decimal("2500")
        assert result.claim_id == "claim-1"
        assert result.new_kdx_balance == Decimal("2600")
        repo.claim_reward.assert_awaited_once()
        kwargs = repo.claim_reward.call_args.kwargs
        assert kwargs["period_date"] == PERIOD
        assert kwargs["volume_score"] == Decimal("2500")
        assert kwargs["pool_volume"] == Decimal("10000")
        db.commit.assert_awaited_once()

    async def test_period_defaults_to_claimable(self, db: MagicMock) -> None:
        repo = _repo()
        await _engine(repo).claim(db, "u1", None, None, now=NOW)
        assert repo.claim_reward.call_args.kwargs["period_date"] == PERIOD

    async def test_referral_cascade_runs_after_commit(self, db: MagicMock) -> None:
        referrals = AsyncMock()
        order: list[str] = []
        db.commit.side_effect = lambda: order.append("commit")
        referrals.process_safely.side_effect = lambda *a: order.append("bonus") or BonusOutcome(
            processed=True, reason="Bonus paid"
        )
        await _engine(_repo(), referrals).claim(db, "u1", PERIOD, None, now=NOW)

        assert order == ["commit", "bonus"]
        referrals.process_safely.assert_awaited_once_with(db, "claim-1", Decimal("2500"), "u1")

    async def test_outside_window_rejected_before_storage(self, db: MagicMock) -> None:
        repo = _repo()
        early = datetime(2026, 3, 10, 4, 0, tzinfo=UTC)
        with pytest.raises(NotWithinClaimWindowError):
            await _engine(repo).claim(db, "u1", None, None, now=early)
        repo.get_claim.assert_not_called()

    async def test_other_period_rejected(self, db: MagicMock) -> None:
        with pytest.raises(NotWithinClaimWindowError, match="not claimable"):
            await _engine(_repo()).claim(db, "u1", date(2026, 3, 8), None, now=NOW)

    async def test_existing_claim_rejected(self, db: MagicMock) -> None:
        repo = _repo()
        repo.get_claim.return_value = RewardClaim(
            id="c0", user_id="u1", period_date=PERIOD, amount=Decimal("1"),
            volume_score=Decimal("1"), pool_volume=Decimal("1"), wallet_address=None,
        )
        with pytest.raises(AlreadyClaimedError):
            await _engine(repo).claim(db, "u1", PERIOD, None, now=NOW)
        repo.claim_reward.assert_not_called()

    async def test_empty_pool_means_no_rewards(self, db: MagicMock) -> None:
        repo = _repo(user_volume="0", pool_volume="0")
        with pytest.raises(NoRewardsAvailableError):
            await _engine(repo).claim(db, "u1", PERIOD, None, now=NOW)
        repo.claim_reward.assert_not_called()

    async def test_store_conflict_maps_to_already_claimed(self, db: MagicMock) -> None:
        repo = _repo()
        repo.claim_reward.return_value = None
        referrals = AsyncMock()
        with pytest.raises(AlreadyClaimedError):
            await _engine(repo, referrals).claim(db, "u1", PERIOD, None, now=NOW)
        db.rollback.assert_awaited_once()
        db.commit.assert_not_called()
        referrals.process_safely.assert_not_called()


class TestSummary:
    async def test_summary_fields(self, db: MagicMock) -> None:
        repo = _repo()
        summary = await _engine(repo).summary(db, "u1", now=NOW)

        assert summary.daily_pool == Decimal("10000")
        assert summary.current_period == date(2026, 3, 10)
        assert summary.claimable_period == PERIOD
        assert summary.claimable_reward == Decimal("2500")
        assert summary.already_claimed is False
        assert summary.within_claim_window is True
        assert summary.can_claim is True
        assert summary.expires_at == datetime(2026, 3, 11, 4, 59, 59, tzinfo=UTC)

    async def test_summary_wire_format_is_camel_case(self, db: MagicMock) -> None:
        wire = (await _engine(_repo()).summary(db, "u1", now=NOW)).to_wire()
        assert Decimal(wire["claimableReward"]) == Decimal("2500")
        assert wire["alreadyClaimed"] is False
        assert "claimable_reward" not in wire
