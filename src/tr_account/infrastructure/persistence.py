"""BalanceRepository: concrete implementation of BalanceRepositoryProtocol.

All balance-mutating operations are single atomic UPDATE/UPSERT ... RETURNING
statements. For guarded debits a result of 0 rows means the guard failed
(insufficient funds at the moment of the write).

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from decimal import Decimal

from sqlalchemy import TextClause, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_account.domain.models import Balance
from src.tr_common.decimals import to_decimal
from src.tr_common.enums import RewardKind
from src.tr_common.errors import InternalError

_COLUMNS = "user_id, demo_usdt_balance, oil_balance, kdx_balance, updated_at"

_GET_BALANCE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM balances
    WHERE user_id = :user_id
""")

_CREATE_BALANCE_SQL = text(f"""
    INSERT INTO balances (user_id, demo_usdt_balance, oil_balance, kdx_balance)
    VALUES (:user_id, :demo_usdt, :oil, 0)
    RETURNING {_COLUMNS}
""")

# Margin and fee leave together or not at all.
_DEBIT_FOR_OPEN_SQL = text(f"""
    UPDATE balances
    SET demo_usdt_balance = demo_usdt_balance - :margin,
        oil_balance       = oil_balance       - :fee_oil,
        updated_at = NOW()
    WHERE user_id = :user_id
      AND demo_usdt_balance >= :margin
      AND oil_balance       >= :fee_oil
    RETURNING {_COLUMNS}
""")

_CREDIT_USDT_CLAMPED_SQL = text(f"""
    UPDATE balances
    SET demo_usdt_balance = GREATEST(0, demo_usdt_balance + :amount),
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_COLUMNS}
""")


_ENSURE_BALANCE_SQL = text("""
    INSERT INTO balances (user_id, demo_usdt_balance, oil_balance, kdx_balance)
    VALUES (:user_id, 0, 0, 0)
    ON CONFLICT (user_id) DO NOTHING
""")


def _credit_sql(column: str) -> TextClause:
    return text(f"""
        UPDATE balances
        SET {column} = {column} + :amount,
            updated_at = NOW()
        WHERE user_id = :user_id
        RETURNING {_COLUMNS}
    """)


# The only place a RewardKind is mapped to a balance column.
_CREDIT_REWARD_SQL: dict[RewardKind, TextClause] = {
    RewardKind.USDT: _credit_sql("demo_usdt_balance"),
    RewardKind.OIL: _credit_sql("oil_balance"),
    RewardKind.KDX: _credit_sql("kdx_balance"),
}


def _row_to_balance(row: object) -> Balance:
    return Balance(
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        demo_usdt_balance=to_decimal(row.demo_usdt_balance),  # type: ignore[attr-defined]
        oil_balance=to_decimal(row.oil_balance),  # type: ignore[attr-defined]
        kdx_balance=to_decimal(row.kdx_balance),  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class BalanceRepository:
    """Concrete repository: all operations atomic at the SQL level."""

    async def get_balance(self, db: AsyncSession, user_id: str) -> Balance | None:
        result = await db.execute(_GET_BALANCE_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def create_balance(
        self,
        db: AsyncSession,
        user_id: str,
        demo_usdt: Decimal,
        oil: Decimal,
    ) -> Balance:
        result = await db.execute(
            _CREATE_BALANCE_SQL,
            {"user_id": user_id, "demo_usdt": demo_usdt, "oil": oil},
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Balance insert returned no rows")
        return _row_to_balance(row)

    async def debit_for_open(
        self, db: AsyncSession, user_id: str, margin: Decimal, fee_oil: Decimal
    ) -> Balance | None:
        """Returns None when either balance is short at write time."""
        result = await db.execute(
            _DEBIT_FOR_OPEN_SQL,
            {"user_id": user_id, "margin": margin, "fee_oil": fee_oil},
        )
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def credit_usdt_clamped(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> Balance:
        result = await db.execute(
            _CREDIT_USDT_CLAMPED_SQL, {"user_id": user_id, "amount": amount}
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Balance not found for user {user_id}")
        return _row_to_balance(row)

    async def credit_reward(
        self, db: AsyncSession, user_id: str, kind: RewardKind, amount: Decimal
    ) -> Balance:
        """Credit a reward into the column selected by kind, creating the row if absent."""
        try:
            credit_sql = _CREDIT_REWARD_SQL[RewardKind(kind)]
        except (KeyError, ValueError):
            raise InternalError(f"Unsupported reward kind: {kind}") from None
        await db.execute(_ENSURE_BALANCE_SQL, {"user_id": user_id})
        result = await db.execute(credit_sql, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Balance not found for user {user_id}")
        return _row_to_balance(row)
