"""
Global configuration for the option data audit pipeline.

Keeps all magic numbers in one place. The module-level constants are the
defaults; the pipeline itself only ever reads an AuditConfig, which main.py
builds from these plus any CLI overrides.
"""

from dataclasses import dataclass, field
from datetime import date, time
from pathlib import Path
from typing import Optional, Tuple


# ── paths ────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data" / "SPX"
ERROR_LOG_NAME = "error_log.txt"


# ── vendor file format ───────────────────────────────────────────────────
# one zip per trading day; "calcs_oi" is the variant bought with greeks + OI
FILE_PATTERN = "UnderlyingOptionsIntervals_900sec_calcs_oi*.zip"
EXPECTED_HEADER = (
    "underlying_symbol,quote_datetime,root,expiration,strike,option_type,"
    "open,high,low,close,trade_volume,bid_size,bid,ask_size,ask,"
    "underlying_bid,underlying_ask,implied_underlying_price,"
    "active_underlying_price,implied_volatility,delta,gamma,theta,vega,rho,"
    "open_interest"
)
UNDERLYING_SYMBOL = "^SPX"
VALID_ROOTS = ("SPX", "SPXW", "SPXQ")   # in precedence order
SKIPPED_ROOTS = ("BSZ", "SRO")          # binary options on SPX


# ── record filters ───────────────────────────────────────────────────────
MIN_STRIKE = 625
MAX_STRIKE = 10000
STRIKE_STEP_FILTER = True       # keep only strikes that are multiples of STRIKE_STEP
STRIKE_STEP = 25
MAX_DTE = 200                   # days to expiration retained
MIN_UNDERLYING = 500.0          # SPX has not traded below this since the 90s


# ── session clock ────────────────────────────────────────────────────────
MARKET_CLOSE_HOUR = 16          # quotes stamped after HH:00 of this hour are dropped
SESSION_OPEN = time(9, 30)
SESSION_CLOSE = time(16, 0)
DAYS_PER_YEAR = 365.0


# ── concurrency ──────────────────────────────────────────────────────────
MAX_WORKERS = 16                # each worker holds one archive + decompressed buffer
INDEX_SHARDS = 64


# ── rate lookups ─────────────────────────────────────────────────────────
EARLIEST_DATE = date(2013, 1, 1)
RISK_FREE_RATE = 0.043          # flat fallback when no rate series is given
DIVIDEND_YIELD = 0.013          # flat fallback when no yield series is given


@dataclass(frozen=True)
class AuditConfig:
    """
    Everything the pipeline needs to know, passed explicitly from the
    orchestrator down to the record parser.
    """

    data_dir: Path = DATA_DIR
    file_pattern: str = FILE_PATTERN
    underlying_symbol: str = UNDERLYING_SYMBOL
    skipped_roots: Tuple[str, ...] = SKIPPED_ROOTS
    min_strike: int = MIN_STRIKE
    max_strike: int = MAX_STRIKE
    strike_step_filter: bool = STRIKE_STEP_FILTER
    strike_step: int = STRIKE_STEP
    max_dte: int = MAX_DTE
    min_underlying: float = MIN_UNDERLYING
    market_close_hour: int = MARKET_CLOSE_HOUR
    session_open: time = SESSION_OPEN
    session_close: time = SESSION_CLOSE
    max_workers: int = MAX_WORKERS
    earliest_date: date = EARLIEST_DATE
    error_log_path: Optional[Path] = field(default=None)

    def __post_init__(self):
        if self.min_strike > self.max_strike:
            raise ValueError(
                f"min_strike ({self.min_strike}) is above max_strike ({self.max_strike})"
            )
        if self.strike_step <= 0:
            raise ValueError(f"strike_step must be positive, got {self.strike_step}")
        if self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        if self.max_dte < 0:
            raise ValueError(f"max_dte must be non-negative, got {self.max_dte}")
        if self.session_open >= self.session_close:
            raise ValueError("session_open must be before session_close")

    @property
    def session_seconds(self) -> float:
        """Length of the regular trading session in seconds (390 min for SPX)."""
        return _seconds(self.session_close) - _seconds(self.session_open)

    def resolved_error_log_path(self) -> Path:
        """Error log location: explicit path, else inside the data directory."""
        if self.error_log_path is not None:
            return Path(self.error_log_path)
        return Path(self.data_dir) / ERROR_LOG_NAME


def _seconds(t: time) -> float:
    return t.hour * 3600 + t.minute * 60 + t.second + t.microsecond / 1e6
