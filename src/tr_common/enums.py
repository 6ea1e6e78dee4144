"""Global enums: values must match the DB CHECK constraints exactly."""

from enum import Enum


class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"


class FillDirection(str, Enum):
    """Whether a fill opens or closes a position (slippage flips between them)."""

    OPEN = "open"
    CLOSE = "close"


class CountedVolumeReason(str, Enum):
    TOO_FAST = "too_fast"
    TOO_SMALL = "too_small"
    DAILY_CAP_REACHED = "daily_cap_reached"


class RewardKind(str, Enum):
    """Balance column a reward is paid into."""

    USDT = "usdt"
    OIL = "oil"
    KDX = "kdx"


class ReferralStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class BonusType(str, Enum):
    WELCOME_OIL = "WELCOME_OIL"
    DAILY_OIL = "DAILY_OIL"


class LeaderboardType(str, Enum):
    VOLUME = "volume"
    PNL = "pnl"
    WINRATE = "winrate"


class LeaderboardPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
