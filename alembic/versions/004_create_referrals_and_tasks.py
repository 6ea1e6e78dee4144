"""004: create referrals, referral_bonuses, tasks_progress

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE referrals (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            referrer_id     UUID            NOT NULL REFERENCES users (id),
            referred_id     UUID            NOT NULL REFERENCES users (id),
            status          VARCHAR(10)     NOT NULL DEFAULT 'active',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_referrals_referred    UNIQUE (referred_id),
            CONSTRAINT ck_referrals_status      CHECK (status IN ('active', 'inactive')),
            CONSTRAINT ck_referrals_not_self    CHECK (referrer_id <> referred_id)
        );
    """)
    op.execute("CREATE INDEX idx_referrals_referrer ON referrals (referrer_id);")

    op.execute("""
        CREATE TABLE referral_bonuses (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            claim_id        UUID            NOT NULL REFERENCES reward_claims (id),
            referrer_id     UUID            NOT NULL REFERENCES users (id),
            referred_id     UUID            NOT NULL REFERENCES users (id),
            claimed_amount  NUMERIC(38, 18) NOT NULL,
            bonus_amount    NUMERIC(38, 18) NOT NULL,
            bonus_rate      NUMERIC(10, 8)  NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_referral_bonuses_claim UNIQUE (claim_id)
        );
    """)
    op.execute(
        "CREATE INDEX idx_referral_bonuses_referrer "
        "ON referral_bonuses (referrer_id, created_at DESC);"
    )

    op.execute("""
        CREATE TABLE tasks_progress (
            user_id         UUID            NOT NULL REFERENCES users (id),
            task_id         VARCHAR(32)     NOT NULL,
            period_date     DATE            NOT NULL,
            progress        NUMERIC(38, 18) NOT NULL DEFAULT 0,
            target          NUMERIC(38, 18) NOT NULL,
            completed       BOOLEAN         NOT NULL DEFAULT FALSE,
            claimed         BOOLEAN         NOT NULL DEFAULT FALSE,
            claimed_at      TIMESTAMPTZ,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (user_id, task_id, period_date)
        );
    """)

    op.execute("""
        CREATE OR REPLACE FUNCTION increment_task_progress(
            p_user_id   UUID,
            p_task_id   VARCHAR,
            p_date      DATE,
            p_delta     NUMERIC,
            p_target    NUMERIC
        )
        RETURNS TABLE (
            user_id UUID, task_id VARCHAR, period_date DATE,
            progress NUMERIC, target NUMERIC, completed BOOLEAN, claimed BOOLEAN
        ) AS $$
        #variable_conflict use_column
        BEGIN
            RETURN QUERY
            INSERT INTO tasks_progress AS tp
                (user_id, task_id, period_date, progress, target, completed)
            VALUES
                (p_user_id, p_task_id, p_date, p_delta, p_target, p_delta >= p_target)
            ON CONFLICT ON CONSTRAINT tasks_progress_pkey DO UPDATE
            SET progress   = tp.progress + EXCLUDED.progress,
                completed  = tp.completed OR (tp.progress + EXCLUDED.progress >= tp.target),
                updated_at = NOW()
            RETURNING tp.user_id, tp.task_id, tp.period_date,
                      tp.progress, tp.target, tp.completed, tp.claimed;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute(
        "DROP FUNCTION IF EXISTS increment_task_progress(UUID, VARCHAR, DATE, NUMERIC, NUMERIC);"
    )
    op.execute("DROP TABLE IF EXISTS tasks_progress CASCADE;")
    op.execute("DROP TABLE IF EXISTS referral_bonuses CASCADE;")
    op.execute("DROP TABLE IF EXISTS referrals CASCADE;")
