"""001: create timestamp trigger function, users and balances

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.execute("""
        CREATE TABLE users (
            id                      UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            username                VARCHAR(64)     NOT NULL,
            email                   VARCHAR(255)    NOT NULL,
            password_hash           VARCHAR(255)    NOT NULL,
            is_active               BOOLEAN         NOT NULL DEFAULT TRUE,
            linked_wallet_address   VARCHAR(64),
            referral_code           VARCHAR(16)     NOT NULL,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username        UNIQUE (username),
            CONSTRAINT uq_users_email           UNIQUE (email),
            CONSTRAINT uq_users_referral_code   UNIQUE (referral_code),
            CONSTRAINT ck_users_username_len    CHECK (LENGTH(username) >= 3)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE balances (
            user_id             UUID            PRIMARY KEY REFERENCES users (id),
            demo_usdt_balance   NUMERIC(38, 18) NOT NULL DEFAULT 0,
            oil_balance         NUMERIC(38, 18) NOT NULL DEFAULT 0,
            kdx_balance         NUMERIC(38, 18) NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_balances_usdt_gte_0   CHECK (demo_usdt_balance >= 0),
            CONSTRAINT ck_balances_oil_gte_0    CHECK (oil_balance >= 0),
            CONSTRAINT ck_balances_kdx_gte_0    CHECK (kdx_balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_balances_updated_at
            BEFORE UPDATE ON balances
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE balances IS 'Demo USDT, OIL fee units and KDX rewards, one row per user';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS balances CASCADE;")
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
