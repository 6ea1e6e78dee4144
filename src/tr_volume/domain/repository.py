"""Repository Protocol for the per-user, per-period counted volume row."""

from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_volume.domain.models import VolumeIncrement


class DailyVolumeRepositoryProtocol(Protocol):
    async def add_counted_volume(
        self,
        db: AsyncSession,
        user_id: str,
        period_date: date,
        volume: Decimal,
        cap: Decimal,
    ) -> VolumeIncrement: ...
