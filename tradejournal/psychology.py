"""
psychology.py
-------------

Links the trader's recorded state of mind to trading results.

``compute_correlations`` splits trades into two-sided cohorts along five
axes (sleep, confidence, stress, mood, discipline) and reports the win
rate of each cohort. ``generate_insights`` turns the clearest of those
gaps into qualitative verdicts. Both stay silent until enough trades carry
pre-trade data, since a handful of trades says nothing about a habit.

The module also scores discipline (four 25-point components) and builds
the recent mood timeline.
"""

import logging
import math
from collections import Counter, OrderedDict
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .analytics import sort_by_date, win_rate
from .config import DEFAULT_CONFIG, MOOD_SCALE, AnalyticsConfig
from .models import PreTrade, Trade, parse_int, parse_optional_float

logger = logging.getLogger(__name__)

NEGATIVE_EMOTIONS = ("fear", "greed", "fomo", "revenge", "overconfidence", "impatience", "doubt")
POSITIVE_EMOTIONS = ("calm", "focused", "confident")


@dataclass
class CohortWinRate:
    label: str
    win_rate: float
    trades: int


@dataclass
class Correlation:
    axis: str
    title: str
    cohorts: List[CohortWinRate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Insight:
    axis: str
    severity: str  # success | warning | danger | neutral
    title: str
    cohorts: List[CohortWinRate] = field(default_factory=list)
    gap: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DisciplineScore:
    score: int = 0
    plan_followed: int = 0
    emotions_controlled: int = 0
    checklist_completed: int = 0
    confidence_aligned: int = 0
    trades: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MoodDay:
    date: str
    average_index: float
    dominant_mood: str
    trades: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _with_pre_trade(trades: Sequence[Trade]) -> List[Tuple[Trade, PreTrade]]:
    out = []
    for trade in trades:
        pre = trade.pre_trade
        if pre is not None:
            out.append((trade, pre))
    return out


def _select(
    rows: Sequence[Tuple[Trade, PreTrade]], predicate: Callable[[PreTrade], bool]
) -> List[Trade]:
    return [trade for trade, pre in rows if predicate(pre)]


def _with_discipline(trades: Sequence[Trade], value: str) -> List[Trade]:
    return [t for t in trades if t.post_trade is not None and t.post_trade.discipline == value]


def _cohort(label: str, trades: Sequence[Trade]) -> CohortWinRate:
    return CohortWinRate(label=label, win_rate=win_rate(trades), trades=len(trades))


class _Cohorts:
    """Cohort membership for one trade set, computed once and shared."""

    def __init__(self, trades: Sequence[Trade], config: AnalyticsConfig) -> None:
        rows = _with_pre_trade(trades)
        self.sample_size = len(rows)

        def sleep(pre: PreTrade) -> Optional[float]:
            return parse_optional_float(pre.sleep)

        def confidence(pre: PreTrade) -> Optional[int]:
            return parse_int(pre.confidence)

        def stress(pre: PreTrade) -> Optional[int]:
            return parse_int(pre.stress)

        def pick(read: Callable[[PreTrade], Any], test: Callable[[Any], bool]) -> List[Trade]:
            return _select(rows, lambda pre: read(pre) is not None and test(read(pre)))

        self.well_rested = pick(sleep, lambda v: v >= config.well_rested_hours)
        self.tired = pick(sleep, lambda v: v < config.tired_hours)

        def sleep_or_default(pre: PreTrade) -> float:
            # unrecorded or zero sleep counts as a full night
            return sleep(pre) or config.well_rested_hours

        self.slept_enough = _select(
            rows, lambda pre: sleep_or_default(pre) >= config.well_rested_hours
        )
        self.slept_short = _select(
            rows, lambda pre: sleep_or_default(pre) < config.well_rested_hours
        )

        self.high_confidence = pick(confidence, lambda v: v >= config.high_confidence)
        self.low_confidence = pick(confidence, lambda v: v <= config.low_confidence)
        self.medium_confidence = pick(
            confidence, lambda v: config.low_confidence < v < config.high_confidence
        )
        self.low_stress = pick(stress, lambda v: v <= config.low_stress)
        self.high_stress = pick(stress, lambda v: v >= config.high_stress)
        self.good_mood = _select(rows, lambda pre: pre.mood in config.good_moods)
        self.bad_mood = _select(rows, lambda pre: pre.mood in config.bad_moods)

        # post-trade reviews do not depend on a pre-trade record
        self.disciplined = _with_discipline(trades, "yes")
        self.undisciplined = _with_discipline(trades, "no")


def _both_sides(first: Sequence[Trade], second: Sequence[Trade], config: AnalyticsConfig) -> bool:
    return len(first) >= config.min_cohort and len(second) >= config.min_cohort


def compute_correlations(
    trades: Sequence[Trade], config: AnalyticsConfig = DEFAULT_CONFIG
) -> List[Correlation]:
    """Win rate per psychological cohort for every axis with enough data.

    Parameters
    ----------
    trades: Sequence[Trade]
        Trades to analyse. At least ``config.min_psychology_trades`` of
        them must carry a pre-trade record, otherwise the result is empty.
    config: AnalyticsConfig
        Cohort cut-offs and the minimum cohort size (3 by default), which
        must be met on both sides of an axis before it is reported.

    Returns
    -------
    List[Correlation]
        In axis order sleep, confidence, stress, mood, discipline.
    """
    c = _Cohorts(trades, config)
    if c.sample_size < config.min_psychology_trades:
        logger.debug("only %d trades with pre-trade data, skipping correlations", c.sample_size)
        return []

    correlations = []
    if _both_sides(c.well_rested, c.tired, config):
        correlations.append(
            Correlation(
                axis="sleep",
                title="Sleep Quality Impact",
                cohorts=[
                    _cohort(f"Well Rested ({config.well_rested_hours:g}+ hrs)", c.well_rested),
                    _cohort(f"Tired (< {config.tired_hours:g} hrs)", c.tired),
                ],
            )
        )

    if _both_sides(c.high_confidence, c.low_confidence, config):
        cohorts = [_cohort(f"High Confidence ({config.high_confidence}-10)", c.high_confidence)]
        if len(c.medium_confidence) >= config.min_cohort:
            cohorts.append(
                _cohort(
                    f"Medium Confidence ({config.low_confidence + 1}-{config.high_confidence - 1})",
                    c.medium_confidence,
                )
            )
        cohorts.append(_cohort(f"Low Confidence (1-{config.low_confidence})", c.low_confidence))
        correlations.append(Correlation(axis="confidence", title="Confidence Level Impact", cohorts=cohorts))

    if _both_sides(c.low_stress, c.high_stress, config):
        correlations.append(
            Correlation(
                axis="stress",
                title="Stress Level Impact",
                cohorts=[
                    _cohort(f"Low Stress (1-{config.low_stress})", c.low_stress),
                    _cohort(f"High Stress ({config.high_stress}-10)", c.high_stress),
                ],
            )
        )

    if _both_sides(c.good_mood, c.bad_mood, config):
        correlations.append(
            Correlation(
                axis="mood",
                title="Mood Impact",
                cohorts=[_cohort("Good Mood", c.good_mood), _cohort("Bad Mood", c.bad_mood)],
            )
        )

    if _both_sides(c.disciplined, c.undisciplined, config):
        correlations.append(
            Correlation(
                axis="discipline",
                title="Discipline Impact",
                cohorts=[
                    _cohort("Followed Plan", c.disciplined),
                    _cohort("Deviated from Plan", c.undisciplined),
                ],
            )
        )
    return correlations


def generate_insights(
    trades: Sequence[Trade], config: AnalyticsConfig = DEFAULT_CONFIG
) -> List[Insight]:
    """Qualitative verdicts for the psychological patterns that stand out.

    Axes are checked in the order sleep, overconfidence, stress, discipline,
    mood; a verdict is only produced when its cohort gap exceeds the
    configured threshold. At most ``config.max_insights`` are returned.

    The sleep verdict splits every trade with a pre-trade record in two:
    at least ``config.well_rested_hours`` of sleep, or less. Unlike the
    sleep correlation there is no gap between the cohorts, and a missing
    sleep value counts as a full night.
    """
    c = _Cohorts(trades, config)
    if c.sample_size < config.min_psychology_trades:
        return []

    insights = []
    if _both_sides(c.slept_enough, c.slept_short, config):
        rested = _cohort("well_rested", c.slept_enough)
        short = _cohort("short_sleep", c.slept_short)
        gap = rested.win_rate - short.win_rate
        if gap > config.sleep_gap:
            insights.append(Insight("sleep", "success", "Sleep Matters!", [rested, short], gap))

    if len(c.high_confidence) >= config.min_cohort:
        high = _cohort("high_confidence", c.high_confidence)
        if high.win_rate < config.overconfidence_win_rate:
            insights.append(Insight("confidence", "warning", "Overconfidence Pattern", [high]))

    if _both_sides(c.low_stress, c.high_stress, config):
        low, high = _cohort("low_stress", c.low_stress), _cohort("high_stress", c.high_stress)
        gap = low.win_rate - high.win_rate
        if gap > config.stress_gap:
            insights.append(Insight("stress", "danger", "Stress Impact", [low, high], gap))

    if _both_sides(c.disciplined, c.undisciplined, config):
        kept = _cohort("disciplined", c.disciplined)
        broke = _cohort("undisciplined", c.undisciplined)
        gap = kept.win_rate - broke.win_rate
        severity = "success" if gap > 0 else "neutral"
        insights.append(Insight("discipline", severity, "Discipline Impact", [kept, broke], gap))

    if _both_sides(c.good_mood, c.bad_mood, config):
        good, bad = _cohort("good_mood", c.good_mood), _cohort("bad_mood", c.bad_mood)
        gap = good.win_rate - bad.win_rate
        if gap > config.mood_gap:
            insights.append(Insight("mood", "success", "Mood Advantage", [good, bad], gap))

    return insights[: config.max_insights]


def discipline_score(trades: Sequence[Trade]) -> DisciplineScore:
    """Average discipline over trades with a post-trade review, out of 100.

    Each reviewed trade earns up to 25 points for following the plan, for
    emotional control, for checklist completion and for confidence that
    matched the outcome.
    """
    reviewed = [trade for trade in trades if trade.post_trade is not None]
    if not reviewed:
        return DisciplineScore()

    plan = emotions = checklist = aligned = 0
    for trade in reviewed:
        post = trade.post_trade
        pre = trade.pre_trade

        if post.discipline == "yes":
            plan += 25
        elif post.discipline == "partial":
            plan += 12

        has_negative = any(e in NEGATIVE_EMOTIONS for e in post.emotions)
        has_positive = any(e in POSITIVE_EMOTIONS for e in post.emotions)
        if not has_negative and has_positive:
            emotions += 25
        elif not has_negative:
            emotions += 15
        elif has_positive:
            emotions += 10

        if pre is not None and pre.checklist:
            done = sum(1 for item in pre.checklist if item.checked)
            checklist += _round_half_up(done / len(pre.checklist) * 25)

        confidence = (parse_int(pre.confidence) if pre is not None else None) or 5
        outcome = trade.outcome
        if outcome == "win" and confidence >= 7:
            aligned += 25
        elif outcome == "loss" and confidence <= 4:
            aligned += 25
        elif outcome == "win" and confidence >= 5:
            aligned += 15
        elif outcome == "loss" and confidence <= 6:
            aligned += 15

    count = len(reviewed)
    total = _round_half_up(plan / count + emotions / count + checklist / count + aligned / count)
    return DisciplineScore(
        score=min(100, max(0, total)),
        plan_followed=_round_half_up(plan / count),
        emotions_controlled=_round_half_up(emotions / count),
        checklist_completed=_round_half_up(checklist / count),
        confidence_aligned=_round_half_up(aligned / count),
        trades=count,
    )


def mood_timeline(
    trades: Sequence[Trade],
    days: Optional[int] = None,
    today: Optional[date] = None,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> List[MoodDay]:
    """Average pre-trade mood per day over the recent window.

    ``average_index`` is on the ``MOOD_SCALE`` (0 = bad ... 4 = excellent).
    Moods outside the scale are ignored.
    """
    window = config.mood_window_days if days is None else days
    since = (today or date.today()) - timedelta(days=window)

    by_day: "OrderedDict[date, List[str]]" = OrderedDict()
    for trade in sort_by_date(trades):
        day = trade.trade_date
        pre = trade.pre_trade
        if day is None or day < since or pre is None or pre.mood not in MOOD_SCALE:
            continue
        by_day.setdefault(day, []).append(pre.mood)

    timeline = []
    for day, moods in by_day.items():
        counts = Counter(moods)
        top = max(counts.values())
        # ties go to the mood recorded last that day
        dominant = [m for m in moods if counts[m] == top][-1]
        timeline.append(
            MoodDay(
                date=day.isoformat(),
                average_index=sum(MOOD_SCALE.index(m) for m in moods) / len(moods),
                dominant_mood=dominant,
                trades=len(moods),
            )
        )
    return timeline
