"""
Record types shared by the parser, the root deduplicator and the index.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import NamedTuple


class OptionType(str, Enum):
    PUT = "put"
    CALL = "call"

    @classmethod
    def from_code(cls, code: str) -> "OptionType":
        """Vendor code 'P' / 'C' (any case, surrounding blanks ignored)."""
        normalized = code.strip().upper()
        if normalized == "P":
            return cls.PUT
        if normalized == "C":
            return cls.CALL
        raise ValueError(f"option_type is neither 'P' or 'C': {code!r}")


# lower rank wins when two roots share an expiration on the same day
ROOT_PRECEDENCE = {"SPX": 0, "SPXW": 1, "SPXQ": 2}


class QuoteKey(NamedTuple):
    """Global index key. The day component keeps each trading day disjoint."""
    option_type: OptionType
    root: str
    expiration: date
    strike: int
    day: date


@dataclass(frozen=True)
class Quote:
    """
    One end-of-interval option quote with derived rates and greeks.

    Built in one shot by the record parser; never mutated afterwards.
    implied_volatility is +1/-1 when the inversion ran off the model's
    range and NaN when the solver failed; greeks are 0 in the first case.
    """

    quote_datetime: datetime
    expiration: date
    strike: int
    option_type: OptionType
    root: str
    underlying: float
    bid: float
    ask: float
    open_interest: int
    implied_volatility: float = 0.0
    delta: float = 0.0
    theta: float = 0.0
    gamma: float = 0.0
    vega: float = 0.0
    rho: float = 0.0
    risk_free_rate: float = 0.0
    dividend_yield: float = 0.0

    @property
    def day(self) -> date:
        return self.quote_datetime.date()

    @property
    def time_of_day(self) -> time:
        return self.quote_datetime.time()

    @property
    def dte(self) -> int:
        return (self.expiration - self.day).days

    @property
    def mid(self) -> float:
        return 0.5 * (self.bid + self.ask)

    @property
    def key(self) -> QuoteKey:
        return QuoteKey(self.option_type, self.root, self.expiration, self.strike, self.day)

    @property
    def iv_is_nan(self) -> bool:
        return math.isnan(self.implied_volatility)


class RejectKind(Enum):
    SKIP = "skip"      # out of scope economically, dropped silently
    ERROR = "error"    # data-integrity violation, goes to the error log


@dataclass(frozen=True)
class Rejected:
    kind: RejectKind
    message: str = ""

    @property
    def is_error(self) -> bool:
        return self.kind is RejectKind.ERROR


SKIPPED = Rejected(RejectKind.SKIP)
