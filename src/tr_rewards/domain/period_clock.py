"""Reward period clock: maps a UTC instant to accounting periods.

A period is named by the UTC date on which it starts; it runs from
`reset_hour_utc` that day until one second before `reset_hour_utc` the next
day. Two independent clocks exist (claim window, trade attribution), each
built from its own setting.

All methods are pure functions of `now` and the reset hour. `now` must be
timezone-aware.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from config.settings import settings

_ONE_DAY = timedelta(days=1)
_ONE_SECOND = timedelta(seconds=1)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        raise ValueError("RewardPeriodClock requires a timezone-aware datetime")
    return now.astimezone(UTC)


@dataclass(frozen=True)
class RewardPeriodClock:
    reset_hour_utc: int

    def __post_init__(self) -> None:
        if not (0 <= self.reset_hour_utc <= 23):
            raise ValueError(f"reset_hour_utc must be 0-23, got {self.reset_hour_utc}")

    def current_period(self, now: datetime) -> date:
        now = _as_utc(now)
        if now.hour < self.reset_hour_utc:
            return (now - _ONE_DAY).date()
        return now.date()

    def claimable_period(self, now: datetime) -> date:
        """The most recently closed period."""
        return self.current_period(now) - _ONE_DAY

    def is_within_claim_window(self, now: datetime) -> bool:
        return _as_utc(now).hour >= self.reset_hour_utc

    def expiry_instant(self, now: datetime) -> datetime:
        """One second before the next reset, strictly after now."""
        now = _as_utc(now)
        boundary = (
            datetime.combine(now.date(), time(self.reset_hour_utc), tzinfo=UTC)
            - _ONE_SECOND
        )
        while boundary <= now:
            boundary += _ONE_DAY
        return boundary

    def next_reset(self, now: datetime) -> datetime:
        """Start of the period after the current one."""
        start = self.current_period(now) + _ONE_DAY
        return datetime.combine(start, time(self.reset_hour_utc), tzinfo=UTC)


def claim_clock() -> RewardPeriodClock:
    return RewardPeriodClock(settings.CLAIM_RESET_HOUR_UTC)


def trade_period_clock() -> RewardPeriodClock:
    return RewardPeriodClock(settings.TRADE_PERIOD_RESET_HOUR_UTC)
