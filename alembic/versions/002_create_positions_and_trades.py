"""002: create open_positions and trades_history

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE open_positions (
            id                      UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id                 UUID            NOT NULL REFERENCES users (id),
            symbol                  VARCHAR(20)     NOT NULL,
            side                    VARCHAR(5)      NOT NULL,
            entry_price             NUMERIC(38, 18) NOT NULL,
            entry_price_executed    NUMERIC(38, 18),
            leverage                INTEGER         NOT NULL,
            margin                  NUMERIC(38, 18) NOT NULL,
            position_size           NUMERIC(38, 18) NOT NULL,
            position_size_usdt      NUMERIC(38, 18),
            liquidation_price       NUMERIC(38, 18) NOT NULL,
            fee_oil_paid            NUMERIC(38, 18) NOT NULL,
            slippage_rate           NUMERIC(10, 8)  NOT NULL,
            opened_at               TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_open_positions_side       CHECK (side IN ('long', 'short')),
            CONSTRAINT ck_open_positions_leverage   CHECK (leverage BETWEEN 1 AND 50),
            CONSTRAINT ck_open_positions_margin     CHECK (margin >= 5),
            CONSTRAINT ck_open_positions_liq_gte_0  CHECK (liquidation_price >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_open_positions_user_opened ON open_positions (user_id, opened_at DESC);"
    )

    op.execute("""
        CREATE TABLE trades_history (
            id                      UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            position_id             UUID            NOT NULL,
            user_id                 UUID            NOT NULL REFERENCES users (id),
            symbol                  VARCHAR(20)     NOT NULL,
            side                    VARCHAR(5)      NOT NULL,
            leverage                INTEGER         NOT NULL,
            margin                  NUMERIC(38, 18) NOT NULL,
            position_size           NUMERIC(38, 18) NOT NULL,
            entry_price             NUMERIC(38, 18) NOT NULL,
            entry_price_executed    NUMERIC(38, 18) NOT NULL,
            exit_price              NUMERIC(38, 18) NOT NULL,
            exit_price_executed     NUMERIC(38, 18) NOT NULL,
            liquidation_price       NUMERIC(38, 18) NOT NULL,
            realized_pnl            NUMERIC(38, 18) NOT NULL,
            fee_oil_paid            NUMERIC(38, 18) NOT NULL,
            slippage_rate           NUMERIC(10, 8)  NOT NULL,
            open_time_seconds       INTEGER         NOT NULL,
            counted_volume          NUMERIC(38, 18) NOT NULL DEFAULT 0,
            counted_volume_reason   VARCHAR(20),
            period_date             DATE            NOT NULL,
            opened_at               TIMESTAMPTZ     NOT NULL,
            closed_at               TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_trades_history_position   UNIQUE (position_id),
            CONSTRAINT ck_trades_history_side       CHECK (side IN ('long', 'short')),
            CONSTRAINT ck_trades_history_open_time  CHECK (open_time_seconds >= 0),
            CONSTRAINT ck_trades_history_reason     CHECK (
                counted_volume_reason IS NULL
                OR counted_volume_reason IN ('too_fast', 'too_small', 'daily_cap_reached')
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_trades_history_user_closed "
        "ON trades_history (user_id, closed_at DESC, id DESC);"
    )
    op.execute(
        "CREATE INDEX idx_trades_history_user_opened ON trades_history (user_id, opened_at);"
    )
    op.execute("COMMENT ON TABLE trades_history IS 'Closed positions, append-only';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades_history CASCADE;")
    op.execute("DROP TABLE IF EXISTS open_positions CASCADE;")
