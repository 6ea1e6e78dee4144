"""003: create daily_volume, reward_claims and their store functions

add_counted_volume(): capped increment under a row lock.
claim_reward():       claim insert + kdx credit, no row returned on conflict.

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE daily_volume (
            user_id         UUID            NOT NULL REFERENCES users (id),
            period_date     DATE            NOT NULL,
            counted_volume  NUMERIC(38, 18) NOT NULL DEFAULT 0,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (user_id, period_date),
            CONSTRAINT ck_daily_volume_gte_0 CHECK (counted_volume >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_daily_volume_period ON daily_volume (period_date);")

    op.execute("""
        CREATE OR REPLACE FUNCTION add_counted_volume(
            p_user_id   UUID,
            p_date      DATE,
            p_volume    NUMERIC,
            p_max_cap   NUMERIC
        )
        RETURNS TABLE (applied NUMERIC, capped BOOLEAN, total NUMERIC) AS $$
        DECLARE
            v_current NUMERIC;
            v_applied NUMERIC;
        BEGIN
            INSERT INTO daily_volume (user_id, period_date, counted_volume)
            VALUES (p_user_id, p_date, 0)
            ON CONFLICT (user_id, period_date) DO NOTHING;

            SELECT dv.counted_volume INTO v_current
            FROM daily_volume dv
            WHERE dv.user_id = p_user_id AND dv.period_date = p_date
            FOR UPDATE;

            v_applied := GREATEST(0, LEAST(p_volume, p_max_cap - v_current));

            UPDATE daily_volume dv
            SET counted_volume = dv.counted_volume + v_applied,
                updated_at = NOW()
            WHERE dv.user_id = p_user_id AND dv.period_date = p_date;

            RETURN QUERY SELECT v_applied, v_applied < p_volume, v_current + v_applied;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.execute("""
        CREATE TABLE reward_claims (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         UUID            NOT NULL REFERENCES users (id),
            period_date     DATE            NOT NULL,
            amount          NUMERIC(38, 18) NOT NULL,
            volume_score    NUMERIC(38, 18) NOT NULL,
            pool_volume     NUMERIC(38, 18) NOT NULL,
            wallet_address  VARCHAR(64),
            claimed_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_reward_claims_user_period UNIQUE (user_id, period_date),
            CONSTRAINT ck_reward_claims_amount_gt_0 CHECK (amount > 0)
        );
    """)

    op.execute("""
        CREATE OR REPLACE FUNCTION claim_reward(
            p_user_id       UUID,
            p_date          DATE,
            p_amount        NUMERIC,
            p_volume_score  NUMERIC,
            p_pool_volume   NUMERIC,
            p_wallet        VARCHAR
        )
        RETURNS TABLE (claim_id UUID, new_kdx_balance NUMERIC) AS $$
        DECLARE
            v_claim_id UUID;
        BEGIN
            INSERT INTO reward_claims
                (user_id, period_date, amount, volume_score, pool_volume, wallet_address)
            VALUES
                (p_user_id, p_date, p_amount, p_volume_score, p_pool_volume, p_wallet)
            ON CONFLICT (user_id, period_date) DO NOTHING
            RETURNING id INTO v_claim_id;

            IF v_claim_id IS NULL THEN
                RETURN;
            END IF;

            INSERT INTO balances (user_id) VALUES (p_user_id)
            ON CONFLICT (user_id) DO NOTHING;

            RETURN QUERY
            UPDATE balances b
            SET kdx_balance = b.kdx_balance + p_amount,
                updated_at = NOW()
            WHERE b.user_id = p_user_id
            RETURNING v_claim_id, b.kdx_balance;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS claim_reward(UUID, DATE, NUMERIC, NUMERIC, NUMERIC, VARCHAR);")
    op.execute("DROP TABLE IF EXISTS reward_claims CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS add_counted_volume(UUID, DATE, NUMERIC, NUMERIC);")
    op.execute("DROP TABLE IF EXISTS daily_volume CASCADE;")
