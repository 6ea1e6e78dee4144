"""VolumeAccountant: how much of a closed trade counts toward rewards.

Runs inside the Close transaction and never commits itself.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tr_common.decimals import ZERO
from src.tr_common.enums import CountedVolumeReason
from src.tr_volume.domain.counting import weighted_volume
from src.tr_volume.domain.models import CountedVolume
from src.tr_volume.domain.repository import DailyVolumeRepositoryProtocol
from src.tr_volume.infrastructure.persistence import DailyVolumeRepository

logger = logging.getLogger("tr.volume")


class VolumeAccountant:
    def __init__(
        self,
        repo: DailyVolumeRepositoryProtocol | None = None,
        daily_cap: Decimal | None = None,
    ) -> None:
        self._repo: DailyVolumeRepositoryProtocol = repo or DailyVolumeRepository()
        self._cap = settings.DAILY_VOLUME_CAP if daily_cap is None else daily_cap

    async def count(
        self,
        db: AsyncSession,
        user_id: str,
        period_date: date,
        open_time_seconds: int,
        position_size_usdt: Decimal,
    ) -> CountedVolume:
        raw, reason = weighted_volume(open_time_seconds, position_size_usdt)
        if raw <= ZERO:
            return CountedVolume(amount=ZERO, reason=reason)

        inc = await self._repo.add_counted_volume(
            db, user_id, period_date, raw, self._cap
        )
        if inc.capped and inc.applied <= ZERO:
            logger.info("User %s hit the daily volume cap for %s", user_id, period_date)
            return CountedVolume(amount=ZERO, reason=CountedVolumeReason.DAILY_CAP_REACHED)
        if inc.capped:
            logger.info(
                "User %s volume partially counted: %s of %s (total %s)",
                user_id, inc.applied, raw, inc.total,
            )
        return CountedVolume(amount=inc.applied)
