"""Tests for psychology correlations, insights, discipline score and mood timeline."""

from dataclasses import replace
from datetime import date

import pytest

from tradejournal.config import DEFAULT_CONFIG
from tradejournal.psychology import (
    compute_correlations,
    discipline_score,
    generate_insights,
    mood_timeline,
)


def _pre(**values):
    return {key: value for key, value in values.items() if value is not None}


@pytest.fixture
def split_trades(make_trade):
    """Three rested, calm, disciplined winners and three tired, stressed, undisciplined losers."""
    winners = [
        make_trade(pnl=10, pre=_pre(sleep=8, stress=2, mood="good"), post={"discipline": "yes"})
        for _ in range(3)
    ]
    losers = [
        make_trade(pnl=-10, pre=_pre(sleep=5, stress=8, mood="bad"), post={"discipline": "no"})
        for _ in range(3)
    ]
    return winners + losers


class TestCorrelations:
    def test_needs_enough_pre_trade_records(self, make_trade):
        trades = [make_trade(pnl=10, pre=_pre(sleep=8)) for _ in range(4)]
        trades += [make_trade(pnl=-10) for _ in range(10)]
        assert compute_correlations(trades) == []

    def test_axis_order_and_labels(self, split_trades):
        correlations = compute_correlations(split_trades)
        assert [c.axis for c in correlations] == ["sleep", "stress", "mood", "discipline"]

        sleep = correlations[0]
        assert [c.label for c in sleep.cohorts] == ["Well Rested (7+ hrs)", "Tired (< 6 hrs)"]
        assert [c.win_rate for c in sleep.cohorts] == [100.0, 0.0]
        assert [c.trades for c in sleep.cohorts] == [3, 3]

    def test_both_sides_need_three_trades(self, make_trade):
        trades = [make_trade(pnl=10, pre=_pre(sleep=8)) for _ in range(4)]
        trades += [make_trade(pnl=-10, pre=_pre(sleep=5)) for _ in range(2)]
        assert compute_correlations(trades) == []

    def test_between_sleep_cut_offs_is_in_neither_cohort(self, make_trade):
        trades = [make_trade(pnl=10, pre=_pre(sleep=8)) for _ in range(3)]
        trades += [make_trade(pnl=-10, pre=_pre(sleep=6.5)) for _ in range(3)]
        assert compute_correlations(trades) == []

    def test_medium_confidence_only_with_enough_trades(self, make_trade):
        trades = [make_trade(pnl=10, pre=_pre(confidence=c)) for c in (8, 9, 10)]
        trades += [make_trade(pnl=-10, pre=_pre(confidence=c)) for c in (2, 3, 4)]
        trades += [make_trade(pnl=5, pre=_pre(confidence=c)) for c in (5, 7)]
        (confidence,) = compute_correlations(trades)
        assert [c.label for c in confidence.cohorts] == [
            "High Confidence (8-10)",
            "Low Confidence (1-4)",
        ]

        trades.append(make_trade(pnl=-5, pre=_pre(confidence=6)))
        (confidence,) = compute_correlations(trades)
        assert [c.label for c in confidence.cohorts] == [
            "High Confidence (8-10)",
            "Medium Confidence (5-7)",
            "Low Confidence (1-4)",
        ]
        assert confidence.cohorts[1].win_rate == pytest.approx(200 / 3)

    def test_confidence_needs_both_extremes(self, make_trade):
        trades = [make_trade(pnl=10, pre=_pre(confidence=9)) for _ in range(3)]
        trades += [make_trade(pnl=-10, pre=_pre(confidence=2)) for _ in range(2)]
        assert compute_correlations(trades) == []


class TestInsights:
    def test_order(self, split_trades):
        insights = generate_insights(split_trades)
        assert [i.axis for i in insights] == ["sleep", "stress", "discipline", "mood"]
        assert [i.severity for i in insights] == ["success", "danger", "success", "success"]
        assert insights[0].gap == pytest.approx(100.0)
        assert [c.label for c in insights[0].cohorts] == ["well_rested", "short_sleep"]

    def test_capped(self, split_trades):
        config = replace(DEFAULT_CONFIG, max_insights=2)
        assert [i.axis for i in generate_insights(split_trades, config)] == ["sleep", "stress"]

    def test_overconfidence(self, make_trade):
        trades = [make_trade(pnl=10, pre=_pre(confidence=9))]
        trades += [make_trade(pnl=-10, pre=_pre(confidence=9)) for _ in range(4)]
        (insight,) = generate_insights(trades)
        assert insight.axis == "confidence"
        assert insight.severity == "warning"
        assert insight.cohorts[0].win_rate == pytest.approx(20.0)

    def test_discipline_is_always_reported(self, make_trade):
        trades = [make_trade(pnl=-10, pre=_pre(mood="neutral"), post={"discipline": "yes"}) for _ in range(3)]
        trades += [make_trade(pnl=10, pre=_pre(mood="neutral"), post={"discipline": "no"}) for _ in range(3)]
        (insight,) = generate_insights(trades)
        assert insight.axis == "discipline"
        assert insight.severity == "neutral"
        assert insight.gap == pytest.approx(-100.0)

    def test_small_gap_is_not_reported(self, make_trade):
        trades = [make_trade(pnl=p, pre=_pre(sleep=8)) for p in (10, 10, -10)]
        trades += [make_trade(pnl=p, pre=_pre(sleep=5)) for p in (10, 10, -10)]
        assert generate_insights(trades) == []

    def test_sleep_just_under_a_full_night_counts_as_short(self, make_trade):
        trades = [make_trade(pnl=10, pre=_pre(sleep=8)) for _ in range(3)]
        trades += [make_trade(pnl=-10, pre=_pre(sleep=6.5)) for _ in range(3)]
        (insight,) = generate_insights(trades)
        assert insight.axis == "sleep"
        assert [c.trades for c in insight.cohorts] == [3, 3]
        assert insight.gap == pytest.approx(100.0)

    def test_missing_sleep_counts_as_rested(self, make_trade):
        trades = [make_trade(pnl=10, pre=_pre(mood="neutral")) for _ in range(2)]
        trades.append(make_trade(pnl=10, pre=_pre(sleep=0)))
        trades += [make_trade(pnl=-10, pre=_pre(sleep=5)) for _ in range(3)]
        (insight,) = generate_insights(trades)
        assert insight.axis == "sleep"
        assert insight.cohorts[0].win_rate == pytest.approx(100.0)
        assert insight.cohorts[0].trades == 3


class TestDisciplineScore:
    def test_no_reviews(self, make_trade):
        score = discipline_score([make_trade(pnl=10, pre=_pre(confidence=9))])
        assert score.score == 0
        assert score.trades == 0

    def test_components(self, make_trade):
        followed = make_trade(
            pnl=10,
            pre={
                "confidence": 8,
                "checklist": [{"text": "a", "checked": True}, {"text": "b", "checked": False}],
            },
            post={"discipline": "yes", "emotions": ["calm"]},
        )
        partial = make_trade(pnl=-10, post={"discipline": "partial", "emotions": ["fear", "calm"]})
        unreviewed = make_trade(pnl=100)

        score = discipline_score([followed, partial, unreviewed])
        assert score.trades == 2
        assert score.plan_followed == 19
        assert score.emotions_controlled == 18
        assert score.checklist_completed == 7
        assert score.confidence_aligned == 20
        assert score.score == 63

    def test_neutral_emotions(self, make_trade):
        score = discipline_score([make_trade(pnl=0, post={"discipline": "no"})])
        assert score.emotions_controlled == 15
        assert score.plan_followed == 0
        assert score.confidence_aligned == 0


class TestMoodTimeline:
    def test_window_average_and_dominant_mood(self, make_trade):
        trades = [
            make_trade(date="2024-03-12", pre=_pre(mood="excellent")),
            make_trade(date="2024-03-10", pre=_pre(mood="Good")),
            make_trade(date="2024-02-15", pre=_pre(mood="good")),
            make_trade(date="2024-03-12", pre=_pre(mood="poor")),
            make_trade(date="2024-03-10", pre=_pre(mood="bad")),
            make_trade(date="2024-03-12", pre=_pre(mood="excellent")),
            make_trade(date="2024-03-11", pre=_pre(mood="ecstatic")),
            make_trade(date="2024-03-11"),
        ]
        timeline = mood_timeline(trades, days=30, today=date(2024, 3, 31))

        assert [d.date for d in timeline] == ["2024-03-10", "2024-03-12"]
        first, second = timeline
        assert first.average_index == pytest.approx(1.5)
        assert first.dominant_mood == "bad"
        assert first.trades == 2
        assert second.average_index == pytest.approx(3.0)
        assert second.dominant_mood == "excellent"
