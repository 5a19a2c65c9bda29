"""
models.py
---------

Defines the data model of the journal: a trade with its nested
psychology sub-records, plus the configuration entities a trade refers to
(accounts, setup templates and the mistake vocabulary).

Records are stored as camelCase JSON documents. The ``from_dict``
constructors accept that shape and never raise: a missing or malformed
field becomes ``None`` (or ``0.0`` for pnl).
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

DIRECTIONS = ("long", "short")
DISCIPLINE_VALUES = ("yes", "partial", "no")


def parse_optional_float(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None`` if that is not possible."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_float(value: Any, default: float = 0.0) -> float:
    """Return ``value`` as a finite float, falling back to ``default``."""
    number = parse_optional_float(value)
    return default if number is None else number


def parse_int(value: Any) -> Optional[int]:
    """Truncate a numeric value to an int (``"7.9"`` -> 7); ``None`` if absent."""
    number = parse_optional_float(value)
    if number is None:
        return None
    return int(number)


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO date (a longer ISO timestamp is cut to its date part)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value.strip()) < 10:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _as_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def calculate_pnl(direction: str, entry: Any, exit: Any, quantity: Any) -> float:
    """PnL of a closed position: (exit - entry) * qty for longs, reversed for shorts."""
    entry_price = parse_float(entry)
    exit_price = parse_float(exit)
    qty = parse_float(quantity)
    if normalize_direction(direction) == "long":
        return (exit_price - entry_price) * qty
    return (entry_price - exit_price) * qty


def calculate_r_multiple(entry: Any, exit: Any, stop: Any, direction: str) -> float:
    """Realised R multiple stored with a trade when it is saved.

    The distance travelled divided by the entry-to-stop distance, positive
    when price moved in the trade's favour. Zero when entry or stop is
    missing or the risk distance is zero.
    """
    entry_price = parse_float(entry)
    exit_price = parse_float(exit)
    stop_price = parse_float(stop)
    if not entry_price or not stop_price:
        return 0.0
    risk = abs(entry_price - stop_price)
    if risk == 0:
        return 0.0
    r_multiple = abs(exit_price - entry_price) / risk
    if normalize_direction(direction) == "long":
        return r_multiple if exit_price > entry_price else -r_multiple
    return r_multiple if exit_price < entry_price else -r_multiple


def normalize_direction(value: Any) -> str:
    """Anything other than 'short' is treated as a long trade."""
    if isinstance(value, str) and value.strip().lower() == "short":
        return "short"
    return "long"


@dataclass
class ChecklistItem:
    text: str = ""
    checked: bool = False

    @classmethod
    def from_value(cls, value: Any) -> "ChecklistItem":
        if isinstance(value, str):
            return cls(text=value)
        data = _as_dict(value)
        return cls(text=str(data.get("text") or ""), checked=bool(data.get("checked")))

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "checked": self.checked}


@dataclass
class PreTrade:
    """State of mind recorded before entering a trade."""

    mood: Optional[str] = None
    confidence: Optional[float] = None  # 1-10
    stress: Optional[float] = None  # 1-10
    sleep: Optional[float] = None  # hours
    checklist: List[ChecklistItem] = field(default_factory=list)
    profile4h: List[ChecklistItem] = field(default_factory=list)
    drivers: List[ChecklistItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "PreTrade":
        data = _as_dict(data)
        mood = data.get("mood")
        return cls(
            mood=mood.strip().lower() if isinstance(mood, str) and mood.strip() else None,
            confidence=parse_optional_float(data.get("confidence")),
            stress=parse_optional_float(data.get("stress")),
            sleep=parse_optional_float(data.get("sleep")),
            checklist=[ChecklistItem.from_value(v) for v in _as_list(data.get("checklist"))],
            profile4h=[ChecklistItem.from_value(v) for v in _as_list(data.get("profile4h"))],
            drivers=[ChecklistItem.from_value(v) for v in _as_list(data.get("drivers"))],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "confidence": self.confidence,
            "stress": self.stress,
            "sleep": self.sleep,
            "checklist": [item.to_dict() for item in self.checklist],
            "profile4h": [item.to_dict() for item in self.profile4h],
            "drivers": [item.to_dict() for item in self.drivers],
        }


@dataclass
class PostTrade:
    """Review recorded after the trade was closed."""

    discipline: Optional[str] = None  # yes | partial | no
    emotions: List[str] = field(default_factory=list)
    mistake_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "PostTrade":
        data = _as_dict(data)
        discipline = data.get("discipline")
        if isinstance(discipline, str):
            discipline = discipline.strip().lower() or None
        else:
            discipline = None
        return cls(
            discipline=discipline,
            emotions=[str(e) for e in _as_list(data.get("emotions")) if e],
            mistake_ids=[str(m) for m in _as_list(data.get("mistakeIds")) if m],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "discipline": self.discipline,
            "emotions": list(self.emotions),
            "mistakeIds": list(self.mistake_ids),
        }


@dataclass
class Psychology:
    pre_trade: Optional[PreTrade] = None
    post_trade: Optional[PostTrade] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Psychology":
        data = _as_dict(data)
        pre = data.get("preTrade")
        post = data.get("postTrade")
        return cls(
            pre_trade=PreTrade.from_dict(pre) if isinstance(pre, dict) else None,
            post_trade=PostTrade.from_dict(post) if isinstance(post, dict) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.pre_trade is not None:
            out["preTrade"] = self.pre_trade.to_dict()
        if self.post_trade is not None:
            out["postTrade"] = self.post_trade.to_dict()
        return out


@dataclass
class Trade:
    """Represents a single logged position.

    Attributes
    ----------
    id: Optional[str]
        Store-assigned identifier (None until the trade is saved).
    date: Optional[str]
        ISO calendar date, used for chronological ordering.
    direction: str
        Either 'long' or 'short'.
    entry, exit, stop, target: Optional[float]
        Prices; any may be missing, which disables the R and target
        computations for this trade.
    pnl: float
        Realised profit or loss. Its sign alone decides win/loss/breakeven;
        the ``result`` field chosen in the form is informational.
    r_multiple: Optional[float]
        R multiple stored with the trade, if any.
    """

    id: Optional[str] = None
    symbol: str = ""
    date: Optional[str] = None
    time: Optional[str] = None
    account_id: Optional[str] = None
    direction: str = "long"
    result: Optional[str] = None
    entry: Optional[float] = None
    exit: Optional[float] = None
    stop: Optional[float] = None
    target: Optional[float] = None
    quantity: Optional[float] = None
    pnl: float = 0.0
    r_multiple: Optional[float] = None
    template_id: Optional[str] = None
    notes: str = ""
    psychology: Psychology = field(default_factory=Psychology)

    @classmethod
    def from_dict(cls, data: Any) -> "Trade":
        data = _as_dict(data)
        raw_date = data.get("date")
        if isinstance(raw_date, (date, datetime)):
            raw_date = raw_date.isoformat()
        return cls(
            id=_as_str(data.get("id")),
            symbol=str(data.get("symbol") or "").strip().upper(),
            date=_as_str(raw_date),
            time=_as_str(data.get("time")),
            account_id=_as_str(data.get("accountId")),
            direction=normalize_direction(data.get("direction")),
            result=_as_str(data.get("result")),
            entry=parse_optional_float(data.get("entry")),
            exit=parse_optional_float(data.get("exit")),
            stop=parse_optional_float(data.get("stop")),
            target=parse_optional_float(data.get("target")),
            quantity=parse_optional_float(data.get("quantity")),
            pnl=parse_float(data.get("pnl")),
            r_multiple=parse_optional_float(data.get("rMultiple")),
            template_id=_as_str(data.get("templateId")),
            notes=str(data.get("notes") or ""),
            psychology=Psychology.from_dict(data.get("psychology")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "date": self.date,
            "time": self.time,
            "accountId": self.account_id,
            "direction": self.direction,
            "result": self.result,
            "entry": self.entry,
            "exit": self.exit,
            "stop": self.stop,
            "target": self.target,
            "quantity": self.quantity,
            "pnl": self.pnl,
            "rMultiple": self.r_multiple,
            "templateId": self.template_id,
            "notes": self.notes,
            "psychology": self.psychology.to_dict(),
        }

    # ---------- derived values used by the engines ----------
    @property
    def pnl_value(self) -> float:
        return parse_float(self.pnl)

    @property
    def outcome(self) -> str:
        pnl = self.pnl_value
        if pnl > 0:
            return "win"
        if pnl < 0:
            return "loss"
        return "breakeven"

    @property
    def is_short(self) -> bool:
        return normalize_direction(self.direction) == "short"

    @property
    def trade_date(self) -> Optional[date]:
        return parse_date(self.date)

    @property
    def pre_trade(self) -> Optional[PreTrade]:
        psychology = self.psychology
        return psychology.pre_trade if isinstance(psychology, Psychology) else None

    @property
    def post_trade(self) -> Optional[PostTrade]:
        psychology = self.psychology
        return psychology.post_trade if isinstance(psychology, Psychology) else None

    @property
    def mistake_ids(self) -> List[str]:
        post = self.post_trade
        return list(post.mistake_ids) if post is not None else []

    @property
    def checked_profile4h(self) -> List[str]:
        pre = self.pre_trade
        if pre is None:
            return []
        return [item.text for item in pre.profile4h if item.checked]


@dataclass
class Account:
    id: Optional[str] = None
    name: str = ""
    opening_balance: float = 0.0
    is_default: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "Account":
        data = _as_dict(data)
        return cls(
            id=_as_str(data.get("id")),
            name=str(data.get("name") or ""),
            opening_balance=parse_float(data.get("openingBalance")),
            is_default=bool(data.get("isDefault")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "openingBalance": self.opening_balance,
            "isDefault": self.is_default,
        }


@dataclass
class Template:
    """A setup template: pre-trade checklist plus 4H profile and driver items."""

    id: Optional[str] = None
    name: str = ""
    description: str = ""
    checklist: List[str] = field(default_factory=list)
    profile4h: List[str] = field(default_factory=list)
    drivers: List[str] = field(default_factory=list)
    is_default: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "Template":
        data = _as_dict(data)
        return cls(
            id=_as_str(data.get("id")),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            checklist=[str(v) for v in _as_list(data.get("checklist")) if v],
            profile4h=[str(v) for v in _as_list(data.get("profile4h")) if v],
            drivers=[str(v) for v in _as_list(data.get("drivers")) if v],
            is_default=bool(data.get("isDefault")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "checklist": list(self.checklist),
            "profile4h": list(self.profile4h),
            "drivers": list(self.drivers),
            "isDefault": self.is_default,
        }


@dataclass
class Mistake:
    id: Optional[str] = None
    label: str = ""
    color: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Mistake":
        data = _as_dict(data)
        return cls(
            id=_as_str(data.get("id")),
            label=str(data.get("label") or ""),
            color=str(data.get("color") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "color": self.color}
