"""
targets.py
----------

Target hit rate and planned-vs-actual R multiple.

Only trades with entry, exit, stop and target all set (and positive) take
part. Planned R is the entry-to-target distance in the trade's direction
over the entry-to-stop distance. A target on the wrong side of entry gives
a negative planned R; such setups are left out of the R averages and the
risk:reward buckets, but still count for the hit rate.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .config import DEFAULT_CONFIG, AnalyticsConfig
from .grouping import RISK_REWARD_LABELS, GroupStat, group_by, risk_reward_bucket
from .models import Trade, parse_float

logger = logging.getLogger(__name__)


@dataclass
class RSample:
    trade_id: Optional[str]
    planned_r: float
    actual_r: float
    pnl: float


@dataclass
class TargetStats:
    trades_with_targets: int
    targets_hit: int
    targets_missed: int
    target_hit_rate: float
    avg_planned_r: float
    avg_actual_r: float
    # avg_actual_r / avg_planned_r * 100, not clamped
    execution_efficiency: float
    samples: List[RSample] = field(default_factory=list)
    risk_reward: List[GroupStat] = field(default_factory=list)

    @property
    def efficiency_bar(self) -> float:
        """Execution efficiency clamped to [0, 100] for progress-bar display."""
        return min(100.0, max(0.0, self.execution_efficiency))

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["efficiency_bar"] = self.efficiency_bar
        return out


def has_target_data(trade: Trade) -> bool:
    return all(
        parse_float(value) > 0 for value in (trade.target, trade.stop, trade.entry, trade.exit)
    )


def is_target_hit(trade: Trade) -> bool:
    exit_price = parse_float(trade.exit)
    target = parse_float(trade.target)
    if trade.is_short:
        return exit_price <= target
    return exit_price >= target


def risk_of(trade: Trade) -> float:
    """Entry-to-stop distance in the trade's direction (negative if the stop is inverted)."""
    entry = parse_float(trade.entry)
    stop = parse_float(trade.stop)
    return stop - entry if trade.is_short else entry - stop


def reward_of(trade: Trade) -> float:
    entry = parse_float(trade.entry)
    target = parse_float(trade.target)
    return entry - target if trade.is_short else target - entry


def planned_r(trade: Trade) -> float:
    risk = risk_of(trade)
    if risk == 0:
        return 0.0
    return reward_of(trade) / abs(risk)


def actual_r(trade: Trade) -> float:
    risk = risk_of(trade)
    if risk == 0:
        return 0.0
    return trade.pnl_value / abs(risk)


def by_risk_reward(
    trades: Sequence[Trade], config: AnalyticsConfig = DEFAULT_CONFIG
) -> List[GroupStat]:
    """Win rate and pnl per planned risk:reward bucket (1:1, 1:2, 1:3+)."""

    def key_fn(trade: Trade) -> List[str]:
        if not has_target_data(trade):
            return []
        r = planned_r(trade)
        if r <= 0:
            return []
        return [risk_reward_bucket(r, config)]

    return group_by(trades, key_fn, RISK_REWARD_LABELS)


def compute_target_stats(
    trades: Sequence[Trade], config: AnalyticsConfig = DEFAULT_CONFIG
) -> Optional[TargetStats]:
    """Target hit rate and R accuracy over trades carrying full target data.

    Returns ``None`` when no trade has entry, exit, stop and target set.
    """
    with_targets = [trade for trade in trades if has_target_data(trade)]
    if not with_targets:
        logger.debug("no trades with target data among %d trades", len(trades))
        return None

    hits = sum(1 for trade in with_targets if is_target_hit(trade))

    samples = []
    for trade in with_targets:
        r = planned_r(trade)
        if r <= 0:
            continue
        samples.append(
            RSample(trade_id=trade.id, planned_r=r, actual_r=actual_r(trade), pnl=trade.pnl_value)
        )

    avg_planned = sum(s.planned_r for s in samples) / len(samples) if samples else 0.0
    avg_actual = sum(s.actual_r for s in samples) / len(samples) if samples else 0.0
    efficiency = avg_actual / avg_planned * 100 if avg_planned > 0 else 0.0

    return TargetStats(
        trades_with_targets=len(with_targets),
        targets_hit=hits,
        targets_missed=len(with_targets) - hits,
        target_hit_rate=hits / len(with_targets) * 100,
        avg_planned_r=avg_planned,
        avg_actual_r=avg_actual,
        execution_efficiency=efficiency,
        samples=samples,
        risk_reward=by_risk_reward(with_targets, config),
    )
