"""005: leaderboard_daily view, bonus_claims, volume_milestone_claims

leaderboard_daily aggregates trades_history per (user, period); nothing writes
to it. The two claim tables rely on unique keys so a repeated claim inserts
nothing.

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        "CREATE INDEX idx_trades_history_period ON trades_history (period_date, user_id);"
    )
    op.execute("""
        CREATE VIEW leaderboard_daily AS
        SELECT
            user_id,
            period_date,
            SUM(margin * leverage)                          AS total_volume,
            SUM(counted_volume)                             AS total_counted_volume,
            SUM(realized_pnl)                               AS total_pnl,
            COUNT(*)                                        AS trade_count,
            COUNT(*) FILTER (WHERE realized_pnl > 0)        AS win_count
        FROM trades_history
        GROUP BY user_id, period_date;
    """)

    op.execute("""
        CREATE TABLE bonus_claims (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         UUID            NOT NULL REFERENCES users (id),
            bonus_type      VARCHAR(20)     NOT NULL,
            claim_date      DATE            NOT NULL,
            amount_oil      NUMERIC(38, 18) NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_bonus_claims_user_type_date UNIQUE (user_id, bonus_type, claim_date),
            CONSTRAINT ck_bonus_claims_type CHECK (bonus_type IN ('WELCOME_OIL', 'DAILY_OIL')),
            CONSTRAINT ck_bonus_claims_amount_gt_0 CHECK (amount_oil > 0)
        );
    """)
    # One welcome bonus per user, whatever the date.
    op.execute(
        "CREATE UNIQUE INDEX uq_bonus_claims_welcome ON bonus_claims (user_id) "
        "WHERE bonus_type = 'WELCOME_OIL';"
    )

    op.execute("""
        CREATE TABLE volume_milestone_claims (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         UUID            NOT NULL REFERENCES users (id),
            milestone_id    VARCHAR(32)     NOT NULL,
            period_date     DATE            NOT NULL,
            volume_reached  NUMERIC(38, 18) NOT NULL,
            reward_oil      NUMERIC(38, 18) NOT NULL,
            claimed_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_milestone_claims_user_milestone_date
                UNIQUE (user_id, milestone_id, period_date)
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS volume_milestone_claims CASCADE;")
    op.execute("DROP TABLE IF EXISTS bonus_claims CASCADE;")
    op.execute("DROP VIEW IF EXISTS leaderboard_daily;")
    op.execute("DROP INDEX IF EXISTS idx_trades_history_period;")
