"""
database.py
-----------

This module encapsulates all interactions with the underlying SQLite
database used to persist the journal. Keeping database logic here makes
it easy to change the storage backend in the future without affecting
the analytics or the web layer.

Every entity (trade, account, template, mistake) is kept as a JSON
document in its own table. Trades additionally carry their date and
account id in indexed columns so that range and account queries stay in
SQL. Rows come back in insertion order.
"""

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from .errors import InvalidRecord, RecordNotFound
from .models import Account, Mistake, Template, Trade, parse_date

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "id": "default-fractal",
        "name": "Fractal Model",
        "description": "ICT Fractal Model - C2/C3 setups with CISD and Protected Swings",
        "checklist": [
            "C2 or C3 structure identified",
            "CISD (Change in State of Delivery) confirmed",
            "Protected Swing highs/lows marked",
            "Fair Value Gap (FVG) present",
            "Order Block (OB) identified",
            "Risk:Reward minimum 1:2",
            "Draw on Liquidity (DOL) aligned",
        ],
        "profile4h": [
            "HTF PD Array identified",
            "4H Structure clear",
            "Premium/Discount assessed",
        ],
        "drivers": [
            "SMT/Divergence present",
            "Economic driver active",
            "Killzone aligned",
        ],
        "isDefault": True,
    },
    {
        "id": "template-c3-long",
        "name": "C3 Long",
        "description": "Classic C3 long setup with optimal entry",
        "checklist": [
            "C3 structure confirmed bullish",
            "Price at discount array",
            "FVG bullish aligned",
            "Stop below protected low",
            "Target at opposing PD Array",
        ],
        "isDefault": False,
    },
    {
        "id": "template-c3-short",
        "name": "C3 Short",
        "description": "Classic C3 short setup with optimal entry",
        "checklist": [
            "C3 structure confirmed bearish",
            "Price at premium array",
            "FVG bearish aligned",
            "Stop above protected high",
            "Target at opposing PD Array",
        ],
        "isDefault": False,
    },
    {
        "id": "template-breakout",
        "name": "Breakout",
        "description": "High-probability breakout setup",
        "checklist": [
            "Clear resistance/support level",
            "Volume confirmation",
            "Consolidation before breakout",
            "Retest of breakout level",
            "Momentum indicator aligned",
        ],
        "isDefault": False,
    },
]

DEFAULT_MISTAKES: List[Dict[str, Any]] = [
    {"id": "mistake-1", "label": "Entered too early", "color": "#ef4444"},
    {"id": "mistake-2", "label": "No FVG present", "color": "#f97316"},
    {"id": "mistake-3", "label": "Wrong DOL", "color": "#f59e0b"},
    {"id": "mistake-4", "label": "Ignored CISD", "color": "#eab308"},
    {"id": "mistake-5", "label": "Poor risk management", "color": "#ef4444"},
    {"id": "mistake-6", "label": "Emotional trade", "color": "#ec4899"},
    {"id": "mistake-7", "label": "No HTF confluence", "color": "#8b5cf6"},
    {"id": "mistake-8", "label": "Stop too tight", "color": "#06b6d4"},
]

_DOCUMENT_TABLES = ("accounts", "templates", "mistakes")


def _new_id() -> str:
    return uuid.uuid4().hex


class TradeJournalDB:
    """SQLite-backed repository for trades, accounts, templates and mistakes."""

    def __init__(self, db_path: str = "tradejournal.db") -> None:
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._create_tables()
        self._seed_defaults()

    # ---------- schema ----------
    def _create_tables(self) -> None:
        """Create the document tables and their indexes."""
        with self.conn:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS trades (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    date TEXT,          -- ISO date, NULL when unparseable
                    account_id TEXT,
                    data TEXT NOT NULL  -- camelCase JSON document
                )
                """
            )
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_trades_date ON trades(date)")
            self.conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_trades_account ON trades(account_id)"
            )
            for table in _DOCUMENT_TABLES:
                self.conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        seq INTEGER PRIMARY KEY AUTOINCREMENT,
                        id TEXT NOT NULL UNIQUE,
                        data TEXT NOT NULL
                    )
                    """
                )
            self.conn.execute(
                "CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT)"
            )

    def _seed_defaults(self) -> None:
        """Install the default templates and mistakes once per database."""
        row = self.conn.execute("SELECT value FROM meta WHERE key = 'seeded'").fetchone()
        if row is not None:
            return
        with self.conn:
            for data in DEFAULT_TEMPLATES:
                self._insert_document("templates", Template.from_dict(data).to_dict())
            for data in DEFAULT_MISTAKES:
                self._insert_document("mistakes", Mistake.from_dict(data).to_dict())
            self.conn.execute("INSERT INTO meta(key, value) VALUES ('seeded', '1')")
        logger.debug("seeded %d templates and %d mistakes", len(DEFAULT_TEMPLATES), len(DEFAULT_MISTAKES))

    # ---------- generic document helpers ----------
    def _insert_document(self, table: str, doc: Dict[str, Any]) -> None:
        self.conn.execute(
            f"INSERT INTO {table}(id, data) VALUES (?, ?)", (doc["id"], json.dumps(doc))
        )

    def _list_documents(self, table: str) -> List[Dict[str, Any]]:
        cur = self.conn.execute(f"SELECT data FROM {table} ORDER BY seq")
        return [json.loads(row["data"]) for row in cur.fetchall()]

    def _get_document(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        row = self.conn.execute(f"SELECT data FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return json.loads(row["data"]) if row is not None else None

    def _write_document(self, table: str, doc: Dict[str, Any]) -> None:
        self.conn.execute(
            f"UPDATE {table} SET data = ? WHERE id = ?", (json.dumps(doc), doc["id"])
        )

    def _delete_document(self, table: str, record_id: str, kind: str) -> None:
        with self.conn:
            cur = self.conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
        if cur.rowcount == 0:
            raise RecordNotFound(kind, record_id)
        logger.info("deleted %s %s", kind, record_id)

    def _clear_default_flag(self, table: str) -> None:
        for doc in self._list_documents(table):
            if doc.get("isDefault"):
                doc["isDefault"] = False
                self._write_document(table, doc)

    def _add_flagged(self, table: str, doc: Dict[str, Any], kind: str) -> None:
        with self.conn:
            if doc.get("isDefault"):
                self._clear_default_flag(table)
            self._insert_document(table, doc)
        logger.info("added %s %s", kind, doc["id"])

    def _update_document(
        self,
        table: str,
        record_id: str,
        updates: Dict[str, Any],
        kind: str,
        parse: Callable[[Dict[str, Any]], Any],
    ) -> Any:
        current = self._get_document(table, record_id)
        if current is None:
            raise RecordNotFound(kind, record_id)
        merged = parse({**current, **updates, "id": record_id})
        doc = merged.to_dict()
        with self.conn:
            if doc.get("isDefault"):
                self._clear_default_flag(table)
            self._write_document(table, doc)
        logger.info("updated %s %s", kind, record_id)
        return merged

    # ---------- trades ----------
    def _write_trade_row(self, trade: Trade, insert: bool) -> None:
        day = trade.trade_date
        params = (day.isoformat() if day else None, trade.account_id, json.dumps(trade.to_dict()), trade.id)
        if insert:
            self.conn.execute(
                "INSERT INTO trades(date, account_id, data, id) VALUES (?, ?, ?, ?)", params
            )
        else:
            self.conn.execute(
                "UPDATE trades SET date = ?, account_id = ?, data = ? WHERE id = ?", params
            )

    def add_trade(self, trade: Trade) -> Trade:
        """Insert a new trade under a freshly assigned id and return it."""
        stored = Trade.from_dict({**trade.to_dict(), "id": _new_id()})
        with self.conn:
            self._write_trade_row(stored, insert=True)
        logger.info("added trade %s (%s %s)", stored.id, stored.symbol, stored.date)
        return stored

    def update_trade(self, trade_id: str, updates: Dict[str, Any]) -> Trade:
        """Shallow-merge camelCase ``updates`` into a stored trade."""
        current = self._get_document("trades", trade_id)
        if current is None:
            raise RecordNotFound("trade", trade_id)
        trade = Trade.from_dict({**current, **updates, "id": trade_id})
        with self.conn:
            self._write_trade_row(trade, insert=False)
        logger.info("updated trade %s", trade_id)
        return trade

    def delete_trade(self, trade_id: str) -> None:
        self._delete_document("trades", trade_id, "trade")

    def get_trade(self, trade_id: str) -> Trade:
        doc = self._get_document("trades", trade_id)
        if doc is None:
            raise RecordNotFound("trade", trade_id)
        return Trade.from_dict(doc)

    def list_trades(self, account_id: Optional[str] = None) -> List[Trade]:
        """Return all trades (optionally of one account) in insertion order."""
        if account_id:
            cur = self.conn.execute(
                "SELECT data FROM trades WHERE account_id = ? ORDER BY seq", (account_id,)
            )
        else:
            cur = self.conn.execute("SELECT data FROM trades ORDER BY seq")
        return [Trade.from_dict(json.loads(row["data"])) for row in cur.fetchall()]

    def trades_between(self, start_date: Any, end_date: Any) -> List[Trade]:
        """Return trades dated within [start_date, end_date], oldest first."""
        start = parse_date(start_date)
        end = parse_date(end_date)
        if start is None or end is None:
            raise InvalidRecord(f"invalid date range: {start_date!r} .. {end_date!r}")
        cur = self.conn.execute(
            """
            SELECT data FROM trades
            WHERE date >= ? AND date <= ?
            ORDER BY date, seq
            """,
            (start.isoformat(), end.isoformat()),
        )
        return [Trade.from_dict(json.loads(row["data"])) for row in cur.fetchall()]

    # ---------- accounts ----------
    def list_accounts(self) -> List[Account]:
        return [Account.from_dict(doc) for doc in self._list_documents("accounts")]

    def get_account(self, account_id: str) -> Account:
        doc = self._get_document("accounts", account_id)
        if doc is None:
            raise RecordNotFound("account", account_id)
        return Account.from_dict(doc)

    def add_account(self, account: Account) -> Account:
        """Save a new account; flagging it default clears the flag on the others."""
        stored = Account.from_dict({**account.to_dict(), "id": _new_id()})
        self._add_flagged("accounts", stored.to_dict(), "account")
        return stored

    def update_account(self, account_id: str, updates: Dict[str, Any]) -> Account:
        return self._update_document("accounts", account_id, updates, "account", Account.from_dict)

    def delete_account(self, account_id: str) -> None:
        self._delete_document("accounts", account_id, "account")

    def set_accounts(self, accounts: Iterable[Account]) -> List[Account]:
        """Replace every account. Only the first account flagged default keeps the flag."""
        stored = []
        seen_default = False
        for account in accounts:
            doc = account.to_dict()
            doc["id"] = doc.get("id") or _new_id()
            if doc.get("isDefault"):
                doc["isDefault"] = not seen_default
                seen_default = True
            stored.append(Account.from_dict(doc))
        with self.conn:
            self.conn.execute("DELETE FROM accounts")
            for account in stored:
                self._insert_document("accounts", account.to_dict())
        logger.info("replaced accounts (%d)", len(stored))
        return stored

    def get_default_account(self) -> Optional[Account]:
        """The account flagged default, else the first one, else None."""
        accounts = self.list_accounts()
        for account in accounts:
            if account.is_default:
                return account
        return accounts[0] if accounts else None

    # ---------- templates ----------
    def list_templates(self) -> List[Template]:
        return [Template.from_dict(doc) for doc in self._list_documents("templates")]

    def add_template(self, template: Template) -> Template:
        stored = Template.from_dict({**template.to_dict(), "id": _new_id()})
        self._add_flagged("templates", stored.to_dict(), "template")
        return stored

    def update_template(self, template_id: str, updates: Dict[str, Any]) -> Template:
        return self._update_document(
            "templates", template_id, updates, "template", Template.from_dict
        )

    def delete_template(self, template_id: str) -> None:
        self._delete_document("templates", template_id, "template")

    def get_default_template(self) -> Optional[Template]:
        templates = self.list_templates()
        for template in templates:
            if template.is_default:
                return template
        return templates[0] if templates else None

    # ---------- mistakes ----------
    def list_mistakes(self) -> List[Mistake]:
        return [Mistake.from_dict(doc) for doc in self._list_documents("mistakes")]

    def add_mistake(self, mistake: Mistake) -> Mistake:
        stored = Mistake.from_dict({**mistake.to_dict(), "id": _new_id()})
        with self.conn:
            self._insert_document("mistakes", stored.to_dict())
        logger.info("added mistake %s", stored.id)
        return stored

    def update_mistake(self, mistake_id: str, updates: Dict[str, Any]) -> Mistake:
        return self._update_document("mistakes", mistake_id, updates, "mistake", Mistake.from_dict)

    def delete_mistake(self, mistake_id: str) -> None:
        self._delete_document("mistakes", mistake_id, "mistake")

    # ---------- backup ----------
    def export_data(self) -> Dict[str, Any]:
        """Whole journal as one JSON-serialisable document."""
        return {
            "trades": [trade.to_dict() for trade in self.list_trades()],
            "templates": self._list_documents("templates"),
            "mistakes": self._list_documents("mistakes"),
            "accounts": self._list_documents("accounts"),
            "exportedAt": datetime.now(timezone.utc).isoformat(),
        }

    def import_data(self, data: Dict[str, Any]) -> Dict[str, int]:
        """Replace each collection present in ``data``; others are left alone."""
        if not isinstance(data, dict):
            raise InvalidRecord("backup must be a JSON object")
        parsers: Dict[str, Callable[[Any], Any]] = {
            "trades": Trade.from_dict,
            "templates": Template.from_dict,
            "mistakes": Mistake.from_dict,
            "accounts": Account.from_dict,
        }
        for table in parsers:
            if table in data and not isinstance(data[table], list):
                raise InvalidRecord(f"'{table}' must be a list")

        counts: Dict[str, int] = {}
        try:
            with self.conn:
                for table, parse in parsers.items():
                    if table not in data:
                        continue
                    self.conn.execute(f"DELETE FROM {table}")
                    for item in data[table]:
                        record = parse(item)
                        if not record.id:
                            record.id = _new_id()
                        if table == "trades":
                            self._write_trade_row(record, insert=True)
                        else:
                            self._insert_document(table, record.to_dict())
                    counts[table] = len(data[table])
        except sqlite3.IntegrityError as exc:
            raise InvalidRecord(f"backup rejected: {exc}") from exc
        logger.info("imported backup: %s", counts)
        return counts

    # ---------- housekeeping ----------
    def close(self) -> None:
        self.conn.close()
