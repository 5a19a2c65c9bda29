"""
grouping.py
-----------

Per-bucket performance breakdowns: by setup template, by tagged mistake,
by checked 4H profile item and by planned risk:reward.

A trade may land in several buckets at once (a trade tagged with two
mistakes counts towards both), so bucket totals can add up to more than
the number of trades.
"""

import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .analytics import win_rate
from .config import DEFAULT_CONFIG, AnalyticsConfig
from .models import Mistake, Template, Trade

logger = logging.getLogger(__name__)

UNKNOWN_TEMPLATE_KEY = "unknown"
UNKNOWN_TEMPLATE_LABEL = "Unknown/No Template"

RISK_REWARD_LABELS = OrderedDict(
    [
        ("1:1", "1:1 or less"),
        ("1:2", "1:1 to 1:2"),
        ("1:3+", "1:3 or higher"),
    ]
)


@dataclass
class GroupStat:
    key: str
    label: str
    trades: int = 0
    wins: int = 0
    losses: int = 0
    breakeven: int = 0
    total_pnl: float = 0.0
    win_rate: float = 0.0
    avg_pnl: float = 0.0
    color: Optional[str] = None

    def add(self, pnl: float) -> None:
        self.trades += 1
        self.total_pnl += pnl
        if pnl > 0:
            self.wins += 1
        elif pnl < 0:
            self.losses += 1
        else:
            self.breakeven += 1

    def finish(self) -> "GroupStat":
        if self.trades:
            self.win_rate = self.wins / self.trades * 100
            self.avg_pnl = self.total_pnl / self.trades
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def group_by(
    trades: Iterable[Trade],
    key_fn: Callable[[Trade], Iterable[str]],
    label_map: Optional[Mapping[str, str]] = None,
) -> List[GroupStat]:
    """Group trades into buckets and compute win rate / pnl per bucket.

    Parameters
    ----------
    trades: Iterable[Trade]
        Trades to group. They are only read.
    key_fn: Callable[[Trade], Iterable[str]]
        Returns every bucket key a trade belongs to. An empty result
        leaves the trade out; several keys count it in each bucket.
    label_map: Optional[Mapping[str, str]]
        Bucket vocabulary ``key -> label``. When given, it also fixes the
        tie order, and keys missing from it are ignored. Without it, every
        key becomes a bucket labelled with the key itself.

    Returns
    -------
    List[GroupStat]
        Non-empty buckets, most trades first.
    """
    buckets: "OrderedDict[str, GroupStat]" = OrderedDict()
    if label_map is not None:
        for key, label in label_map.items():
            buckets[key] = GroupStat(key=key, label=label)

    for trade in trades:
        pnl = trade.pnl_value
        for key in key_fn(trade):
            bucket = buckets.get(key)
            if bucket is None:
                if label_map is not None:
                    continue
                bucket = buckets[key] = GroupStat(key=key, label=str(key))
            bucket.add(pnl)

    stats = [bucket.finish() for bucket in buckets.values() if bucket.trades > 0]
    stats.sort(key=lambda s: s.trades, reverse=True)
    return stats


def by_template(trades: Sequence[Trade], templates: Sequence[Template]) -> List[GroupStat]:
    """Breakdown by setup template; unknown or missing templates share one bucket."""
    labels: "OrderedDict[str, str]" = OrderedDict()
    for template in templates:
        if template.id:
            labels[template.id] = template.name
    labels[UNKNOWN_TEMPLATE_KEY] = UNKNOWN_TEMPLATE_LABEL

    def key_fn(trade: Trade) -> List[str]:
        if trade.template_id in labels:
            return [trade.template_id]
        return [UNKNOWN_TEMPLATE_KEY]

    return group_by(trades, key_fn, labels)


def by_mistake(trades: Sequence[Trade], mistakes: Sequence[Mistake]) -> List[GroupStat]:
    """Breakdown by tagged mistake; one increment per tag on a trade."""
    if not trades or not mistakes:
        logger.debug("mistake breakdown skipped: %d trades, %d mistakes", len(trades), len(mistakes))
        return []
    labels = OrderedDict((m.id, m.label) for m in mistakes if m.id)
    colors = {m.id: m.color for m in mistakes if m.id}
    stats = group_by(trades, lambda t: t.mistake_ids, labels)
    for stat in stats:
        stat.color = colors.get(stat.key) or None
    return stats


def profile4h_vocabulary(templates: Sequence[Template]) -> List[str]:
    """Every distinct 4H profile item across templates, in first-seen order."""
    items: "OrderedDict[str, None]" = OrderedDict()
    for template in templates:
        for item in template.profile4h:
            items[item] = None
    return list(items)


def by_profile4h(trades: Sequence[Trade], templates: Sequence[Template]) -> List[GroupStat]:
    """Breakdown by checked 4H profile item, limited to items defined on templates."""
    vocabulary = profile4h_vocabulary(templates)
    if not trades or not vocabulary:
        return []
    labels = OrderedDict((item, item) for item in vocabulary)
    return group_by(trades, lambda t: t.checked_profile4h, labels)


def risk_reward_bucket(planned_r: float, config: AnalyticsConfig = DEFAULT_CONFIG) -> str:
    if planned_r <= config.rr_low:
        return "1:1"
    if planned_r <= config.rr_high:
        return "1:2"
    return "1:3+"


def mistake_impact(
    group_win_rate: float, overall_win_rate: float, config: AnalyticsConfig = DEFAULT_CONFIG
) -> str:
    """How far a mistake drags the win rate below the overall one."""
    if group_win_rate < overall_win_rate - config.impact_major_gap:
        return "high"
    if group_win_rate < overall_win_rate - config.impact_minor_gap:
        return "medium"
    if group_win_rate < overall_win_rate:
        return "slight"
    return "low"


def profile_correlation(
    group_win_rate: float, overall_win_rate: float, config: AnalyticsConfig = DEFAULT_CONFIG
) -> str:
    """How far a checked 4H profile item lifts the win rate above the overall one."""
    if group_win_rate > overall_win_rate + config.impact_major_gap:
        return "strong"
    if group_win_rate > overall_win_rate + config.impact_minor_gap:
        return "good"
    if group_win_rate > overall_win_rate:
        return "weak"
    return "negative"


def _annotate(
    stats: List[GroupStat], overall: float, level_fn: Callable[..., str], config: AnalyticsConfig
) -> Dict[str, Any]:
    groups = []
    for stat in stats:
        row = stat.to_dict()
        row["level"] = level_fn(stat.win_rate, overall, config)
        groups.append(row)
    return {"overall_win_rate": overall, "groups": groups}


def mistake_breakdown(
    trades: Sequence[Trade], mistakes: Sequence[Mistake], config: AnalyticsConfig = DEFAULT_CONFIG
) -> Dict[str, Any]:
    """Mistake buckets, each with its impact level against the overall win rate."""
    return _annotate(by_mistake(trades, mistakes), win_rate(trades), mistake_impact, config)


def profile4h_breakdown(
    trades: Sequence[Trade], templates: Sequence[Template], config: AnalyticsConfig = DEFAULT_CONFIG
) -> Dict[str, Any]:
    """4H profile buckets, each with its correlation level against the overall win rate."""
    return _annotate(by_profile4h(trades, templates), win_rate(trades), profile_correlation, config)
