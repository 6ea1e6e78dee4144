"""Leaderboard ranking over per-user trading stats. Pure functions.

Volume ranks by counted volume (what the reward pool pays on), not raw
notional. The win-rate board only lists users with at least
MIN_WINRATE_TRADES trades in the range.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from src.tr_common.decimals import ZERO
from src.tr_common.enums import LeaderboardPeriod, LeaderboardType

LEADERBOARD_SIZE = 100
MIN_WINRATE_TRADES = 3

_PERIOD_DAYS = {
    LeaderboardPeriod.DAILY: 1,
    LeaderboardPeriod.WEEKLY: 7,
    LeaderboardPeriod.MONTHLY: 30,
}


@dataclass(frozen=True)
class TraderStats:
    user_id: str
    username: str
    total_volume: Decimal
    counted_volume: Decimal
    total_pnl: Decimal
    trade_count: int
    win_count: int

    @property
    def win_rate(self) -> Decimal:
        """Percentage of trades closed in profit."""
        if self.trade_count == 0:
            return ZERO
        return Decimal(self.win_count) * 100 / Decimal(self.trade_count)


@dataclass(frozen=True)
class RankedEntry:
    rank: int
    stats: TraderStats


def date_range(period: LeaderboardPeriod, today: date) -> tuple[date, date]:
    """Inclusive (start, end) ending today: 1, 7 or 30 periods."""
    return today - timedelta(days=_PERIOD_DAYS[period] - 1), today


def _sort_key(board: LeaderboardType):  # type: ignore[no-untyped-def]
    if board == LeaderboardType.PNL:
        return lambda s: s.total_pnl
    if board == LeaderboardType.WINRATE:
        return lambda s: s.win_rate
    return lambda s: s.counted_volume


def rank(
    stats: list[TraderStats],
    board: LeaderboardType,
    limit: int = LEADERBOARD_SIZE,
) -> list[RankedEntry]:
    candidates = stats
    if board == LeaderboardType.WINRATE:
        candidates = [s for s in stats if s.trade_count >= MIN_WINRATE_TRADES]
    # Ties keep a stable order by user id so pages do not shuffle between calls.
    ordered = sorted(candidates, key=lambda s: s.user_id)
    ordered.sort(key=_sort_key(board), reverse=True)
    return [RankedEntry(rank=i + 1, stats=s) for i, s in enumerate(ordered[:limit])]


def volume_rank(stats: list[TraderStats], user_id: str) -> int | None:
    """1 + number of other users with strictly more counted volume; None if absent."""
    mine = next((s for s in stats if s.user_id == user_id), None)
    if mine is None:
        return None
    return 1 + sum(
        1 for s in stats if s.user_id != user_id and s.counted_volume > mine.counted_volume
    )
