"""
timeline.py
-----------

Daily series for the equity chart.

Trades are summed per calendar day and walked in date order. Trades
without a usable date cannot be placed on the axis and are left out.
"""

from typing import Any, Dict, List, Sequence

import pandas as pd

from .models import Trade, parse_float

SERIES_COLUMNS = ["pnl", "cumulative", "equity", "peak", "drawdown"]


def daily_pnl(trades: Sequence[Trade]) -> pd.DataFrame:
    """DataFrame indexed by date with the summed pnl and trade count of each day."""
    rows = [(t.trade_date, t.pnl_value) for t in trades if t.trade_date is not None]
    df = pd.DataFrame(rows, columns=["date", "pnl"])
    if df.empty:
        return pd.DataFrame({"pnl": pd.Series(dtype=float), "trades": pd.Series(dtype=int)})
    return df.groupby("date", sort=True).agg(pnl=("pnl", "sum"), trades=("pnl", "size"))


def equity_curve(trades: Sequence[Trade], opening_balance: Any = 0.0) -> List[Dict[str, Any]]:
    """One point per trading day: pnl, cumulative pnl, equity, running peak, drawdown.

    The running peak starts at zero, so a losing first day already shows
    as drawdown.
    """
    daily = daily_pnl(trades)
    if daily.empty:
        return []

    opening = parse_float(opening_balance)
    daily["cumulative"] = daily["pnl"].cumsum()
    daily["equity"] = opening + daily["cumulative"]
    daily["peak"] = daily["cumulative"].cummax().clip(lower=0.0)
    daily["drawdown"] = daily["peak"] - daily["cumulative"]

    out = []
    for day, row in daily.iterrows():
        point: Dict[str, Any] = {"date": day.isoformat(), "trades": int(row["trades"])}
        for column in SERIES_COLUMNS:
            point[column] = float(row[column])
        out.append(point)
    return out
