"""Tests for the base statistics and account helpers."""

import pytest

from tradejournal.analytics import (
    account_summary,
    compute_stats,
    filter_by_account,
    filter_by_date_range,
    max_drawdown,
    sort_by_date,
)
from tradejournal.config import PROFIT_FACTOR_NO_LOSSES
from tradejournal.models import Account


def test_empty_trades_give_none():
    assert compute_stats([]) is None


def test_basic_stats(make_trade):
    trades = [make_trade(pnl=100), make_trade(pnl=-50), make_trade(pnl=-30)]
    s = compute_stats(trades)

    assert s.total_trades == 3
    assert s.wins == 1
    assert s.losses == 2
    assert s.breakeven == 0
    assert s.total_pnl == pytest.approx(20.0)
    assert s.win_rate == pytest.approx(100 / 3)
    assert s.gross_profit == pytest.approx(100.0)
    assert s.gross_loss == pytest.approx(80.0)
    assert s.profit_factor == pytest.approx(1.25)
    assert s.avg_win == pytest.approx(100.0)
    assert s.avg_loss == pytest.approx(40.0)
    assert s.expectancy == pytest.approx(20 / 3)


def test_breakeven_trades_count_in_total_only(make_trade):
    s = compute_stats([make_trade(pnl=0), make_trade(pnl="bad"), make_trade(pnl=10)])
    assert s.breakeven == 2
    assert s.wins == 1
    assert s.win_rate == pytest.approx(100 / 3)


def test_profit_factor_without_losses(make_trade):
    assert compute_stats([make_trade(pnl=50)]).profit_factor == PROFIT_FACTOR_NO_LOSSES
    assert compute_stats([make_trade(pnl=0)]).profit_factor == 0.0


def test_average_r_skips_missing_values(make_trade):
    trades = [make_trade(pnl=10, rMultiple=2), make_trade(pnl=-5, rMultiple=-1), make_trade(pnl=1)]
    assert compute_stats(trades).avg_r_multiple == pytest.approx(0.5)


def test_max_drawdown_walks_in_date_order(make_trade):
    trades = [
        make_trade(pnl=50, date="2024-01-03"),
        make_trade(pnl=100, date="2024-01-01"),
        make_trade(pnl=-150, date="2024-01-02"),
    ]
    assert max_drawdown(trades) == pytest.approx(150.0)
    assert compute_stats(trades).max_drawdown == pytest.approx(150.0)


def test_drawdown_from_a_losing_start(make_trade):
    trades = [make_trade(pnl=-40, date="2024-01-01"), make_trade(pnl=10, date="2024-01-02")]
    assert max_drawdown(trades) == pytest.approx(40.0)


def test_sort_by_date_is_stable_and_puts_undated_first(make_trade):
    a = make_trade(pnl=1, date="2024-01-02")
    b = make_trade(pnl=2, date="2024-01-01")
    c = make_trade(pnl=3, date="2024-01-02T18:00:00")
    d = make_trade(pnl=4, date=None)
    ordered = sort_by_date([a, b, c, d])
    assert [t.pnl for t in ordered] == [4, 2, 1, 3]


def test_compute_stats_does_not_reorder_input(make_trade):
    trades = [make_trade(pnl=1, date="2024-01-02"), make_trade(pnl=2, date="2024-01-01")]
    compute_stats(trades)
    assert [t.pnl for t in trades] == [1, 2]


def test_filters(make_trade):
    trades = [
        make_trade(pnl=1, date="2024-01-01", accountId="a"),
        make_trade(pnl=2, date="2024-01-05", accountId="b"),
        make_trade(pnl=3, date=None, accountId="a"),
    ]
    assert len(filter_by_account(trades, None)) == 3
    assert [t.pnl for t in filter_by_account(trades, "a")] == [1, 3]
    assert [t.pnl for t in filter_by_date_range(trades, "2024-01-02", None)] == [2]
    assert [t.pnl for t in filter_by_date_range(trades, None, "2024-01-01")] == [1]
    assert len(filter_by_date_range(trades)) == 3


class TestAccountSummary:
    def test_single_account(self, make_trade):
        accounts = [Account(id="a", name="Main", opening_balance=1000), Account(id="b", opening_balance=500)]
        trades = [make_trade(pnl=100, accountId="a"), make_trade(pnl=-20, accountId="b")]
        summary = account_summary(trades, accounts, "a")
        assert summary.opening_balance == 1000
        assert summary.total_pnl == pytest.approx(100.0)
        assert summary.current_balance == pytest.approx(1100.0)
        assert summary.return_percent == pytest.approx(10.0)

    def test_all_accounts(self, make_trade):
        accounts = [Account(id="a", opening_balance=1000), Account(id="b", opening_balance=500)]
        trades = [make_trade(pnl=100, accountId="a"), make_trade(pnl=-25, accountId="b")]
        summary = account_summary(trades, accounts)
        assert summary.opening_balance == 1500
        assert summary.return_percent == pytest.approx(5.0)

    def test_zero_opening_balance(self, make_trade):
        summary = account_summary([make_trade(pnl=10)], [])
        assert summary.return_percent == 0.0
        assert summary.current_balance == pytest.approx(10.0)
