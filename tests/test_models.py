"""Tests for record parsing and the pnl / R helpers."""

from datetime import date, datetime

import pytest

from tradejournal.models import (
    Trade,
    calculate_pnl,
    calculate_r_multiple,
    normalize_direction,
    parse_date,
    parse_int,
    parse_optional_float,
)


class TestParsing:
    @pytest.mark.parametrize(
        "value, expected",
        [("1.5", 1.5), (3, 3.0), (" 2 ", 2.0), ("abc", None), ("", None), (None, None), (True, None)],
    )
    def test_parse_optional_float(self, value, expected):
        assert parse_optional_float(value) == expected

    def test_non_finite_numbers_are_rejected(self):
        assert parse_optional_float(float("nan")) is None
        assert parse_optional_float("inf") is None

    def test_parse_int_truncates(self):
        assert parse_int("7.9") == 7
        assert parse_int(None) is None

    def test_parse_date_accepts_timestamps(self):
        assert parse_date("2024-01-05T10:00:00Z") == date(2024, 1, 5)
        assert parse_date(datetime(2024, 1, 5, 9, 30)) == date(2024, 1, 5)

    def test_parse_date_rejects_garbage(self):
        assert parse_date("garbage") is None
        assert parse_date("2024-13-40") is None
        assert parse_date(20240105) is None

    def test_normalize_direction(self):
        assert normalize_direction("SHORT") == "short"
        assert normalize_direction(None) == "long"
        assert normalize_direction("sideways") == "long"


class TestCalculations:
    def test_pnl_long_and_short(self):
        assert calculate_pnl("long", 100, 110, 2) == pytest.approx(20.0)
        assert calculate_pnl("short", 100, 110, 2) == pytest.approx(-20.0)

    def test_r_multiple_long_winner(self):
        assert calculate_r_multiple(100, 120, 90, "long") == pytest.approx(2.0)

    def test_r_multiple_short_loser(self):
        assert calculate_r_multiple(100, 105, 110, "short") == pytest.approx(-0.5)

    def test_r_multiple_without_stop(self):
        assert calculate_r_multiple(100, 120, None, "long") == 0.0
        assert calculate_r_multiple(100, 120, 100, "long") == 0.0


class TestTrade:
    def test_malformed_fields_degrade(self):
        trade = Trade.from_dict(
            {"symbol": " btc ", "direction": "SHORT", "pnl": "abc", "entry": "n/a", "date": 5}
        )
        assert trade.symbol == "BTC"
        assert trade.is_short
        assert trade.pnl == 0.0
        assert trade.entry is None
        assert trade.trade_date is None
        assert trade.outcome == "breakeven"

    def test_outcome_follows_pnl_sign_not_result(self, make_trade):
        assert make_trade(pnl=-5, result="win").outcome == "loss"
        assert make_trade(pnl="12.5").outcome == "win"

    def test_psychology_accessors(self, make_trade):
        trade = make_trade(
            pre={
                "mood": "Good",
                "confidence": "8",
                "checklist": ["plain item"],
                "profile4h": [
                    {"text": "HTF bias", "checked": True},
                    {"text": "4H structure", "checked": False},
                ],
            },
            post={"discipline": "YES", "mistakeIds": ["m1", "", "m2"]},
        )
        assert trade.pre_trade.mood == "good"
        assert trade.pre_trade.confidence == 8.0
        assert trade.pre_trade.checklist[0].text == "plain item"
        assert trade.checked_profile4h == ["HTF bias"]
        assert trade.post_trade.discipline == "yes"
        assert trade.mistake_ids == ["m1", "m2"]

    def test_missing_psychology(self, make_trade):
        trade = make_trade(psychology="not a dict")
        assert trade.pre_trade is None
        assert trade.post_trade is None
        assert trade.mistake_ids == []
        assert trade.checked_profile4h == []

    def test_to_dict_uses_camel_case(self, make_trade):
        out = make_trade(pnl=10, accountId="acc-1", rMultiple=1.5, post={"mistakeIds": ["m1"]}).to_dict()
        assert out["accountId"] == "acc-1"
        assert out["rMultiple"] == 1.5
        assert out["psychology"]["postTrade"]["mistakeIds"] == ["m1"]
        assert Trade.from_dict(out).to_dict() == out
