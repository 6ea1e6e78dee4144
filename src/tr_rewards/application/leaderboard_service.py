"""LeaderboardService: daily, weekly and monthly boards plus the caller's rank.

Ranges end at the current trade period, so a board rolls over at the same
instant as the daily volume cap.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.datetime_utils import utc_now
from src.tr_common.decimals import ZERO
from src.tr_common.enums import LeaderboardPeriod, LeaderboardType
from src.tr_rewards.application.schemas import (
    LeaderboardItem,
    LeaderboardResponse,
    UserRankResponse,
)
from src.tr_rewards.domain import leaderboard
from src.tr_rewards.domain.period_clock import RewardPeriodClock, trade_period_clock
from src.tr_rewards.domain.repository import LeaderboardRepositoryProtocol
from src.tr_rewards.infrastructure.leaderboard_repository import LeaderboardRepository


class LeaderboardService:
    def __init__(
        self,
        repo: LeaderboardRepositoryProtocol | None = None,
        clock: RewardPeriodClock | None = None,
    ) -> None:
        self._repo: LeaderboardRepositoryProtocol = repo or LeaderboardRepository()
        self._clock = clock or trade_period_clock()

    async def board(
        self,
        db: AsyncSession,
        board: LeaderboardType,
        period: LeaderboardPeriod,
        now: datetime | None = None,
    ) -> LeaderboardResponse:
        start, end = leaderboard.date_range(period, self._clock.current_period(now or utc_now()))
        stats = await self._repo.aggregate_stats(db, start, end)
        return LeaderboardResponse(
            board=board,
            period=period,
            start_date=start,
            end_date=end,
            items=[
                LeaderboardItem(
                    rank=entry.rank,
                    user_id=entry.stats.user_id,
                    username=entry.stats.username,
                    total_volume=entry.stats.total_volume,
                    counted_volume=entry.stats.counted_volume,
                    total_pnl=entry.stats.total_pnl,
                    trade_count=entry.stats.trade_count,
                    win_count=entry.stats.win_count,
                    win_rate=entry.stats.win_rate,
                )
                for entry in leaderboard.rank(stats, board)
            ],
        )

    async def user_rank(
        self,
        db: AsyncSession,
        user_id: str,
        period: LeaderboardPeriod,
        now: datetime | None = None,
    ) -> UserRankResponse:
        start, end = leaderboard.date_range(period, self._clock.current_period(now or utc_now()))
        stats = await self._repo.aggregate_stats(db, start, end)
        mine = next((s for s in stats if s.user_id == user_id), None)
        if mine is None:
            return UserRankResponse(
                period=period, start_date=start, end_date=end, rank=None,
                total_volume=ZERO, counted_volume=ZERO, total_pnl=ZERO,
                trade_count=0, win_count=0, win_rate=ZERO,
            )
        return UserRankResponse(
            period=period,
            start_date=start,
            end_date=end,
            rank=leaderboard.volume_rank(stats, user_id),
            total_volume=mine.total_volume,
            counted_volume=mine.counted_volume,
            total_pnl=mine.total_pnl,
            trade_count=mine.trade_count,
            win_count=mine.win_count,
            win_rate=mine.win_rate,
        )
