"""DailyVolumeRepository: capped increment through the add_counted_volume function.

The function (Alembic 003) creates the row if needed, locks it with
SELECT ... FOR UPDATE and applies min(volume, cap - current). Two concurrent
closes for the same user therefore serialize on the row and the total never
exceeds the cap.

Transaction ownership: the CALLER commits or rolls back.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.decimals import to_decimal
from src.tr_common.errors import InternalError
from src.tr_volume.domain.models import VolumeIncrement

_ADD_COUNTED_VOLUME_SQL = text("""
    SELECT applied, capped, total
    FROM add_counted_volume(:user_id, :period_date, :volume, :cap)
""")


class DailyVolumeRepository:
    async def add_counted_volume(
        self,
        db: AsyncSession,
        user_id: str,
        period_date: date,
        volume: Decimal,
        cap: Decimal,
    ) -> VolumeIncrement:
        result = await db.execute(
            _ADD_COUNTED_VOLUME_SQL,
            {
                "user_id": user_id,
                "period_date": period_date,
                "volume": volume,
                "cap": cap,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("add_counted_volume returned no rows")
        return VolumeIncrement(
            applied=to_decimal(row.applied),
            capped=bool(row.capped),
            total=to_decimal(row.total),
        )
