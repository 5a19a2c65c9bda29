"""
analytics.py
-------------

This module contains functions to compute performance metrics from a list
of Trade objects. Splitting analytics into its own module makes it easy
to reuse these functions in different contexts (Flask app, tests, future
tooling) without coupling them to UI or storage concerns.

Every function here is pure: it never mutates the trades it receives and
never raises on malformed data.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import PROFIT_FACTOR_NO_LOSSES
from .models import Account, Trade, parse_date, parse_float, parse_optional_float

logger = logging.getLogger(__name__)


@dataclass
class Stats:
    """Base statistics over a set of trades. Amounts are in account currency."""

    total_trades: int
    wins: int
    losses: int
    breakeven: int
    win_rate: float
    profit_factor: float
    expectancy: float
    avg_win: float
    avg_loss: float
    avg_r_multiple: float
    max_drawdown: float
    gross_profit: float
    gross_loss: float
    total_pnl: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AccountSummary:
    opening_balance: float
    total_pnl: float
    current_balance: float
    return_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def win_rate(trades: Sequence[Trade]) -> float:
    """Percentage of trades with a positive pnl (0 for an empty set)."""
    if not trades:
        return 0.0
    wins = sum(1 for trade in trades if trade.pnl_value > 0)
    return wins / len(trades) * 100


def sort_by_date(trades: Iterable[Trade]) -> List[Trade]:
    """Return a new list ordered by calendar date.

    The sort is stable, so trades on the same day keep their input order.
    Trades without a usable date sort first.
    """
    return sorted(trades, key=lambda t: (t.trade_date is not None, t.trade_date or date.min))


def max_drawdown(trades: Sequence[Trade]) -> float:
    """Largest peak-to-trough fall of cumulative pnl, walked in date order."""
    peak = 0.0
    running = 0.0
    worst = 0.0
    for trade in sort_by_date(trades):
        running += trade.pnl_value
        if running > peak:
            peak = running
        drawdown = peak - running
        if drawdown > worst:
            worst = drawdown
    return worst


def compute_stats(trades: Sequence[Trade]) -> Optional[Stats]:
    """Compute performance statistics for the given trades.

    Parameters
    ----------
    trades: Sequence[Trade]
        Trades to aggregate. Classification uses the sign of ``pnl`` only.

    Returns
    -------
    Optional[Stats]
        ``None`` when there are no trades, so that "no data" can be told
        apart from a set of breakeven trades.
    """
    if not trades:
        logger.debug("compute_stats called with no trades")
        return None

    pnls = [trade.pnl_value for trade in trades]
    wins = [pnl for pnl in pnls if pnl > 0]
    losses = [pnl for pnl in pnls if pnl < 0]
    total_trades = len(pnls)
    breakeven = total_trades - len(wins) - len(losses)

    rate = len(wins) / total_trades * 100
    gross_profit = sum(abs(pnl) for pnl in wins)
    gross_loss = sum(abs(pnl) for pnl in losses)
    if gross_loss > 0:
        profit_factor = gross_profit / gross_loss
    elif gross_profit > 0:
        profit_factor = PROFIT_FACTOR_NO_LOSSES
    else:
        profit_factor = 0.0

    avg_win = gross_profit / len(wins) if wins else 0.0
    avg_loss = gross_loss / len(losses) if losses else 0.0
    expectancy = (rate / 100 * avg_win) - ((1 - rate / 100) * avg_loss)

    # trades without a stored R multiple are left out entirely, not counted as 0R
    r_values = [
        r for r in (parse_optional_float(trade.r_multiple) for trade in trades) if r is not None
    ]
    avg_r = sum(r_values) / len(r_values) if r_values else 0.0

    return Stats(
        total_trades=total_trades,
        wins=len(wins),
        losses=len(losses),
        breakeven=breakeven,
        win_rate=rate,
        profit_factor=profit_factor,
        expectancy=expectancy,
        avg_win=avg_win,
        avg_loss=avg_loss,
        avg_r_multiple=avg_r,
        max_drawdown=max_drawdown(trades),
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        total_pnl=sum(pnls),
    )


def filter_by_account(trades: Iterable[Trade], account_id: Optional[str]) -> List[Trade]:
    """Trades of one account; an empty ``account_id`` selects every trade."""
    if not account_id:
        return list(trades)
    return [trade for trade in trades if trade.account_id == account_id]


def filter_by_date_range(
    trades: Iterable[Trade], start: Any = None, end: Any = None
) -> List[Trade]:
    """Trades whose date lies within [start, end]; either bound may be omitted."""
    start_date = parse_date(start)
    end_date = parse_date(end)
    out = []
    for trade in trades:
        day = trade.trade_date
        if day is None:
            if start_date is None and end_date is None:
                out.append(trade)
            continue
        if start_date is not None and day < start_date:
            continue
        if end_date is not None and day > end_date:
            continue
        out.append(trade)
    return out


def account_summary(
    trades: Sequence[Trade],
    accounts: Sequence[Account],
    account_id: Optional[str] = None,
) -> AccountSummary:
    """Opening balance, current balance and return for one or all accounts."""
    if account_id:
        selected = [a for a in accounts if a.id == account_id]
        opening = parse_float(selected[0].opening_balance) if selected else 0.0
    else:
        opening = sum(parse_float(a.opening_balance) for a in accounts)
    total_pnl = sum(trade.pnl_value for trade in filter_by_account(trades, account_id))
    return AccountSummary(
        opening_balance=opening,
        total_pnl=total_pnl,
        current_balance=opening + total_pnl,
        return_percent=total_pnl / opening * 100 if opening > 0 else 0.0,
    )
