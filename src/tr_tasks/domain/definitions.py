"""Daily task and volume-milestone catalogues.

Both reset with the trade period (UTC day). Milestones measure raw notional
traded today, not counted volume.
"""

from dataclasses import dataclass
from decimal import Decimal

from src.tr_common.enums import RewardKind


@dataclass(frozen=True)
class TaskDefinition:
    id: str
    name: str
    description: str
    target: Decimal
    reward_kind: RewardKind
    reward_amount: Decimal


TRADE_COUNT_TASK = "trade_3"
VOLUME_TASK = "volume_1000"
WIN_COUNT_TASK = "win_2"

DAILY_TASKS: dict[str, TaskDefinition] = {
    t.id: t
    for t in (
        TaskDefinition(
            TRADE_COUNT_TASK, "Active Trader", "Complete 3 trades today",
            Decimal("3"), RewardKind.KDX, Decimal("50"),
        ),
        TaskDefinition(
            VOLUME_TASK, "Volume Master", "Trade $1,000 volume today",
            Decimal("1000"), RewardKind.KDX, Decimal("100"),
        ),
        TaskDefinition(
            WIN_COUNT_TASK, "Winning Streak", "Win 2 profitable trades",
            Decimal("2"), RewardKind.KDX, Decimal("50"),
        ),
    )
}


@dataclass(frozen=True)
class VolumeMilestone:
    id: str
    name: str
    target_volume: Decimal
    reward_oil: Decimal


VOLUME_MILESTONES: dict[str, VolumeMilestone] = {
    m.id: m
    for m in (
        VolumeMilestone("volume_10k", "Volume Master I", Decimal("10000"), Decimal("500")),
        VolumeMilestone("volume_50k", "Volume Master II", Decimal("50000"), Decimal("200")),
    )
}
