"""Shared fixtures for the tradejournal test suite."""

from typing import Any, Dict, Optional

import pytest

from tradejournal.models import Mistake, Template, Trade


def build_trade(
    pnl: Any = 0.0,
    date: Optional[str] = "2024-01-02",
    pre: Optional[Dict[str, Any]] = None,
    post: Optional[Dict[str, Any]] = None,
    **fields: Any,
) -> Trade:
    """Trade from camelCase fields, with optional pre/post-trade records."""
    data: Dict[str, Any] = {"symbol": "BTCUSD", "date": date, "pnl": pnl}
    data.update(fields)
    psychology: Dict[str, Any] = {}
    if pre is not None:
        psychology["preTrade"] = pre
    if post is not None:
        psychology["postTrade"] = post
    if psychology:
        data["psychology"] = psychology
    return Trade.from_dict(data)


@pytest.fixture
def make_trade():
    return build_trade


@pytest.fixture
def templates():
    return [
        Template(id="tpl-a", name="Setup A", profile4h=["HTF bias", "4H structure"]),
        Template(id="tpl-b", name="Setup B", profile4h=["4H structure", "Premium/Discount"]),
    ]


@pytest.fixture
def mistakes():
    return [
        Mistake(id="m-early", label="Entered too early", color="#ef4444"),
        Mistake(id="m-fomo", label="FOMO", color="#ec4899"),
        Mistake(id="m-unused", label="Never tagged", color="#06b6d4"),
    ]


@pytest.fixture
def journal_db(tmp_path):
    from tradejournal.database import TradeJournalDB

    db = TradeJournalDB(str(tmp_path / "journal.db"))
    yield db
    db.close()
