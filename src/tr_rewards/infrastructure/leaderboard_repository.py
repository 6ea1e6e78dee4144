"""LeaderboardRepository: per-user stats summed over a range of periods.

Reads the leaderboard_daily view (Alembic 005), which groups trades_history
by (user, period). Ranking happens in the domain, not in SQL.
"""

from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.decimals import to_decimal
from src.tr_rewards.domain.leaderboard import TraderStats

_AGGREGATE_SQL = text("""
    SELECT
        lb.user_id,
        u.username,
        SUM(lb.total_volume)         AS total_volume,
        SUM(lb.total_counted_volume) AS counted_volume,
        SUM(lb.total_pnl)            AS total_pnl,
        SUM(lb.trade_count)          AS trade_count,
        SUM(lb.win_count)            AS win_count
    FROM leaderboard_daily lb
    JOIN users u ON u.id = lb.user_id
    WHERE lb.period_date BETWEEN :start AND :end
    GROUP BY lb.user_id, u.username
""")


class LeaderboardRepository:
    async def aggregate_stats(
        self, db: AsyncSession, start: date, end: date
    ) -> list[TraderStats]:
        rows = (await db.execute(_AGGREGATE_SQL, {"start": start, "end": end})).fetchall()
        return [
            TraderStats(
                user_id=str(r.user_id),
                username=r.username,
                total_volume=to_decimal(r.total_volume),
                counted_volume=to_decimal(r.counted_volume),
                total_pnl=to_decimal(r.total_pnl),
                trade_count=int(r.trade_count),
                win_count=int(r.win_count),
            )
            for r in rows
        ]
