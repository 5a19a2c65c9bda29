"""
config.py
---------

Central place for every tunable number used by the analytics engines and
for the environment-driven settings of the web application.

The analytics thresholds live in a frozen dataclass so that a caller can
build a variant (``dataclasses.replace(DEFAULT_CONFIG, min_cohort=5)``)
without touching the algorithms themselves.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

# Profit factor reported when there are winning trades but no losing ones.
PROFIT_FACTOR_NO_LOSSES = 999.0

MOOD_SCALE: Tuple[str, ...] = ("bad", "poor", "neutral", "good", "excellent")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class AnalyticsConfig:
    """Thresholds used by the grouping, psychology and target engines."""

    # psychology sample guards
    min_psychology_trades: int = 5
    min_cohort: int = 3

    # cohort cut-offs
    well_rested_hours: float = 7.0
    tired_hours: float = 6.0
    high_confidence: int = 8
    low_confidence: int = 4
    low_stress: int = 3
    high_stress: int = 7
    good_moods: Tuple[str, ...] = ("excellent", "good")
    bad_moods: Tuple[str, ...] = ("poor", "bad")

    # win-rate gaps (percentage points) needed before an insight is emitted
    sleep_gap: float = 10.0
    stress_gap: float = 15.0
    mood_gap: float = 10.0
    overconfidence_win_rate: float = 50.0
    max_insights: int = 5

    # planned R edges for the risk:reward buckets
    rr_low: float = 1.0
    rr_high: float = 2.0

    # distance from the overall win rate for mistake / 4H profile levels
    impact_major_gap: float = 10.0
    impact_minor_gap: float = 5.0

    mood_window_days: int = 30


DEFAULT_CONFIG = AnalyticsConfig()


@dataclass
class Settings:
    """Runtime settings for the Flask app and the SQLite store."""

    secret_key: str = "dev-secret"
    db_path: str = "tradejournal.db"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 5004

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            secret_key=os.getenv("SECRET_KEY", "dev-secret"),
            db_path=os.getenv("TJ_DB", "tradejournal.db"),
            log_level=os.getenv("TJ_LOG_LEVEL", "INFO").upper(),
            host=os.getenv("TJ_HOST", "127.0.0.1"),
            port=int(os.getenv("TJ_PORT", "5004")),
        )


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a single stream handler to the package logger."""
    pkg_logger = logging.getLogger("tradejournal")
    pkg_logger.setLevel((level or "INFO").upper())
    if not pkg_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        pkg_logger.addHandler(handler)
