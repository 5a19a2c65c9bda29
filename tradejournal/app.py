"""
app.py
------

Flask application serving the journal as a JSON API. It is the
presentation side of the project: it reads records from the SQLite store,
hands them to the analytics engines and shapes the results for the
browser client, which draws the tables and charts. Rounding and text for
display are produced here and nowhere else.

To run the application:
    1. Install the package (``pip install -e .``).
    2. Execute ``python -m tradejournal.app``.
    3. Point the client at http://localhost:5004.

Settings come from the environment (``TJ_DB``, ``SECRET_KEY``,
``TJ_LOG_LEVEL``, ``TJ_HOST``, ``TJ_PORT``). The Flask development server
is intended for local use only.
"""

import csv
import io
import json
import logging
from typing import Any, Dict, List, Optional

from flask import Flask, Response, jsonify, request

from .analytics import account_summary, compute_stats, filter_by_account, filter_by_date_range
from .config import DEFAULT_CONFIG, AnalyticsConfig, Settings, configure_logging
from .database import TradeJournalDB
from .errors import InvalidRecord, JournalError, RecordNotFound
from .grouping import by_template, mistake_breakdown, profile4h_breakdown
from .models import (
    DIRECTIONS,
    DISCIPLINE_VALUES,
    Account,
    Mistake,
    Template,
    Trade,
    calculate_pnl,
    calculate_r_multiple,
    parse_optional_float,
)
from .psychology import (
    Insight,
    compute_correlations,
    discipline_score,
    generate_insights,
    mood_timeline,
)
from .targets import compute_target_stats
from .timeline import equity_curve

logger = logging.getLogger(__name__)

ALLOWED_BACKUP = {"json"}

# fields that stored pnl and R are derived from
PNL_INPUTS = ("direction", "entry", "exit", "quantity")
R_INPUTS = ("direction", "entry", "exit", "stop")

CSV_COLUMNS = [
    "id", "date", "time", "symbol", "direction", "entry", "exit", "stop", "target",
    "quantity", "pnl", "rMultiple", "accountId", "templateId", "notes",
]


def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_BACKUP


def describe_insight(insight: Insight, config: AnalyticsConfig = DEFAULT_CONFIG) -> str:
    """Sentence shown under an insight title."""
    rates = [c.win_rate for c in insight.cohorts]
    if insight.axis == "sleep":
        return (
            f"Your win rate is {rates[0]:.0f}% with {config.well_rested_hours:g}+ hours sleep "
            f"vs {rates[1]:.0f}% when rested less."
        )
    if insight.axis == "confidence":
        return "Your high-confidence trades are underperforming. Consider more thorough analysis."
    if insight.axis == "stress":
        return (
            f"Trading under high stress ({rates[1]:.0f}% win rate) "
            "significantly hurts performance."
        )
    if insight.axis == "discipline":
        return f"Win rate when following plan: {rates[0]:.0f}% vs deviating: {rates[1]:.0f}%"
    if insight.axis == "mood":
        return f"You trade better when in good mood ({rates[0]:.0f}% vs {rates[1]:.0f}%)."
    return ""


def trade_from_payload(payload: Dict[str, Any]) -> Trade:
    """Build a trade from a submitted form, filling pnl and R like the entry form does."""
    missing = [name for name in ("symbol", "date", "entry", "exit") if not payload.get(name)]
    if missing:
        raise InvalidRecord(f"missing required fields: {', '.join(missing)}")

    direction = payload.get("direction")
    if direction and str(direction).strip().lower() not in DIRECTIONS:
        raise InvalidRecord(f"direction must be one of {', '.join(DIRECTIONS)}")
    psychology = payload.get("psychology")
    post = psychology.get("postTrade") if isinstance(psychology, dict) else None
    discipline = post.get("discipline") if isinstance(post, dict) else None
    if discipline and str(discipline).strip().lower() not in DISCIPLINE_VALUES:
        raise InvalidRecord(f"discipline must be one of {', '.join(DISCIPLINE_VALUES)}")

    trade = Trade.from_dict(payload)
    if parse_optional_float(payload.get("pnl")) is None and trade.quantity:
        trade.pnl = calculate_pnl(trade.direction, trade.entry, trade.exit, trade.quantity)
    if trade.r_multiple is None:
        trade.r_multiple = calculate_r_multiple(trade.entry, trade.exit, trade.stop, trade.direction)
    return trade


def merge_trade_update(current: Trade, updates: Dict[str, Any]) -> Trade:
    """Apply an edit to a stored trade.

    Stored pnl and R are recomputed when the prices they derive from change,
    unless the edit supplies new values itself.
    """
    merged = {**current.to_dict(), **updates, "id": current.id}
    if "pnl" not in updates and any(k in updates for k in PNL_INPUTS):
        if parse_optional_float(merged.get("quantity")):
            merged["pnl"] = None
    if "rMultiple" not in updates and any(k in updates for k in R_INPUTS):
        merged["rMultiple"] = None
    return trade_from_payload(merged)


def trades_to_csv(trades: List[Trade]) -> str:
    out = io.StringIO()
    w = csv.writer(out)
    w.writerow(CSV_COLUMNS)
    for t in trades:
        row = t.to_dict()
        row["notes"] = (t.notes or "").replace("\n", " ").strip()
        w.writerow(["" if row[col] is None else row[col] for col in CSV_COLUMNS])
    return out.getvalue()


def create_app(settings: Optional[Settings] = None) -> Flask:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    db = TradeJournalDB(settings.db_path)
    app.config["JOURNAL_DB"] = db
    logger.info("journal database at %s", settings.db_path)

    # ---------- helpers ----------
    def account_arg() -> Optional[str]:
        return request.args.get("account") or None

    def selected_trades() -> List[Trade]:
        trades = db.list_trades(account_arg())
        start = request.args.get("start", "").strip()
        end = request.args.get("end", "").strip()
        if start and end:
            return filter_by_account(db.trades_between(start, end), account_arg())
        if start or end:
            return filter_by_date_range(trades, start or None, end or None)
        return trades

    def json_body() -> Dict[str, Any]:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise InvalidRecord("expected a JSON object")
        return payload

    # ---------- errors ----------
    @app.errorhandler(RecordNotFound)
    def not_found(exc: RecordNotFound):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(JournalError)
    def bad_request(exc: JournalError):
        return jsonify({"error": str(exc)}), 400

    # ---------- trades ----------
    @app.route("/api/trades", methods=["GET"])
    def list_trades():
        return jsonify([t.to_dict() for t in selected_trades()])

    @app.route("/api/trades", methods=["POST"])
    def add_trade():
        trade = db.add_trade(trade_from_payload(json_body()))
        return jsonify(trade.to_dict()), 201

    @app.route("/api/trades/<trade_id>", methods=["GET"])
    def get_trade(trade_id: str):
        return jsonify(db.get_trade(trade_id).to_dict())

    @app.route("/api/trades/<trade_id>", methods=["PUT"])
    def update_trade(trade_id: str):
        trade = merge_trade_update(db.get_trade(trade_id), json_body())
        return jsonify(db.update_trade(trade_id, trade.to_dict()).to_dict())

    @app.route("/api/trades/<trade_id>", methods=["DELETE"])
    def delete_trade(trade_id: str):
        db.delete_trade(trade_id)
        return "", 204

    # ---------- analytics ----------
    @app.route("/api/stats")
    def stats():
        trades = selected_trades()
        s = compute_stats(trades)
        summary = account_summary(trades, db.list_accounts(), account_arg())
        return jsonify({"stats": s.to_dict() if s else None, "account": summary.to_dict()})

    @app.route("/api/breakdown/templates")
    def breakdown_templates():
        groups = by_template(selected_trades(), db.list_templates())
        return jsonify([g.to_dict() for g in groups])

    @app.route("/api/breakdown/mistakes")
    def breakdown_mistakes():
        return jsonify(mistake_breakdown(selected_trades(), db.list_mistakes()))

    @app.route("/api/breakdown/profile4h")
    def breakdown_profile4h():
        return jsonify(profile4h_breakdown(selected_trades(), db.list_templates()))

    @app.route("/api/psychology")
    def psychology():
        trades = selected_trades()
        insights = []
        for insight in generate_insights(trades):
            row = insight.to_dict()
            row["description"] = describe_insight(insight)
            insights.append(row)
        return jsonify(
            {
                "correlations": [c.to_dict() for c in compute_correlations(trades)],
                "insights": insights,
                "discipline": discipline_score(trades).to_dict(),
                "mood": [m.to_dict() for m in mood_timeline(trades)],
            }
        )

    @app.route("/api/targets")
    def targets():
        target_stats = compute_target_stats(selected_trades())
        return jsonify(target_stats.to_dict() if target_stats else None)

    @app.route("/api/equity")
    def equity():
        summary = account_summary([], db.list_accounts(), account_arg())
        return jsonify(equity_curve(selected_trades(), summary.opening_balance))

    # ---------- configuration entities ----------
    @app.route("/api/accounts", methods=["GET"])
    def list_accounts():
        return jsonify([a.to_dict() for a in db.list_accounts()])

    @app.route("/api/accounts", methods=["POST"])
    def add_account():
        payload = json_body()
        if not payload.get("name"):
            raise InvalidRecord("account name is required")
        return jsonify(db.add_account(Account.from_dict(payload)).to_dict()), 201

    @app.route("/api/accounts/<account_id>", methods=["GET"])
    def get_account(account_id: str):
        return jsonify(db.get_account(account_id).to_dict())

    @app.route("/api/accounts/<account_id>", methods=["PUT"])
    def update_account(account_id: str):
        return jsonify(db.update_account(account_id, json_body()).to_dict())

    @app.route("/api/accounts/<account_id>", methods=["DELETE"])
    def delete_account(account_id: str):
        db.delete_account(account_id)
        return "", 204

    @app.route("/api/templates", methods=["GET"])
    def list_templates():
        return jsonify([t.to_dict() for t in db.list_templates()])

    @app.route("/api/templates", methods=["POST"])
    def add_template():
        payload = json_body()
        if not payload.get("name"):
            raise InvalidRecord("template name is required")
        return jsonify(db.add_template(Template.from_dict(payload)).to_dict()), 201

    @app.route("/api/mistakes", methods=["GET"])
    def list_mistakes():
        return jsonify([m.to_dict() for m in db.list_mistakes()])

    @app.route("/api/mistakes", methods=["POST"])
    def add_mistake():
        payload = json_body()
        if not payload.get("label"):
            raise InvalidRecord("mistake label is required")
        return jsonify(db.add_mistake(Mistake.from_dict(payload)).to_dict()), 201

    # ---------- backup / export ----------
    @app.route("/api/backup", methods=["GET"])
    def backup():
        return jsonify(db.export_data())

    @app.route("/api/restore", methods=["POST"])
    def restore():
        f = request.files.get("file")
        if f is not None:
            if not f.filename or not allowed_file(f.filename):
                raise InvalidRecord("only .json backups are supported")
            try:
                data = json.loads(f.read().decode("utf-8", errors="ignore"))
            except json.JSONDecodeError as exc:
                raise InvalidRecord(f"backup is not valid JSON: {exc}") from exc
        else:
            data = json_body()
        return jsonify({"imported": db.import_data(data)})

    @app.route("/export", methods=["GET"], endpoint="export")
    def export_trades():
        return Response(
            trades_to_csv(selected_trades()),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=trades.csv"},
        )

    return app


# Run directly
if __name__ == "__main__":
    settings = Settings.from_env()
    app = create_app(settings)
    app.run(host=settings.host, port=settings.port, debug=True, use_reloader=False)
