"""Repository Protocol for open positions and trade history."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_trading.domain.models import OpenPosition, TradeRecord


class TradingRepositoryProtocol(Protocol):
    async def count_recent_opens(
        self, db: AsyncSession, user_id: str, since: datetime
    ) -> int: ...

    async def insert_position(
        self, db: AsyncSession, position: OpenPosition
    ) -> OpenPosition: ...

    async def get_position_for_user(
        self, db: AsyncSession, user_id: str, position_id: str
    ) -> OpenPosition | None: ...

    async def delete_position(
        self, db: AsyncSession, user_id: str, position_id: str
    ) -> bool: ...

    async def insert_trade(self, db: AsyncSession, trade: TradeRecord) -> TradeRecord: ...

    async def list_open_positions(
        self, db: AsyncSession, user_id: str
    ) -> list[OpenPosition]: ...

    async def list_trades(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[TradeRecord]: ...
