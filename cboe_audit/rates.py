"""
Risk-free rate and dividend yield lookups.

The parser only depends on two small interfaces:

    RiskFreeRateProvider.risk_free_rate(when, days_to_expiration) -> float
    DividendYieldProvider.dividend_yield(day) -> float

Both return decimal rates (0.043, not 4.3). Concrete providers:

    FlatRiskFreeRate / FlatDividendYield : constants, for tests and quick runs
    TreasuryCurveRates                    : FRED constant-maturity treasury CSV
    DividendYieldSeries                   : S&P 500 dividend yield CSV

Every provider refuses dates before its earliest supported date by raising
RateLookupError, which the parser records as a data error.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

import numpy as np
import pandas as pd


class RateLookupError(LookupError):
    """No rate / yield is available for the requested date."""


class RiskFreeRateProvider(Protocol):
    def risk_free_rate(self, when: datetime, days_to_expiration: int) -> float: ...


class DividendYieldProvider(Protocol):
    def dividend_yield(self, day: date) -> float: ...


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


class _EarliestDateGuard:
    def __init__(self, earliest_date: Optional[date] = None):
        self.earliest_date = earliest_date

    def _check(self, day: date, what: str) -> None:
        if self.earliest_date is not None and day < self.earliest_date:
            raise RateLookupError(
                f"{what} requested for {day}, before earliest supported date {self.earliest_date}"
            )


# ════════════════════════════════════════════════════════════════════════
#  FLAT PROVIDERS
# ════════════════════════════════════════════════════════════════════════

class FlatRiskFreeRate(_EarliestDateGuard):
    """Same rate for every date and tenor."""

    def __init__(self, rate: float, earliest_date: Optional[date] = None):
        super().__init__(earliest_date)
        self.rate = float(rate)

    def risk_free_rate(self, when: datetime, days_to_expiration: int) -> float:
        self._check(_as_date(when), "risk-free rate")
        return self.rate


class FlatDividendYield(_EarliestDateGuard):
    """Same dividend yield for every date."""

    def __init__(self, value: float, earliest_date: Optional[date] = None):
        super().__init__(earliest_date)
        self.value = float(value)

    def dividend_yield(self, day: date) -> float:
        self._check(_as_date(day), "dividend yield")
        return self.value


# ════════════════════════════════════════════════════════════════════════
#  SERIES PROVIDERS (pandas)
# ════════════════════════════════════════════════════════════════════════

# FRED constant-maturity series and their tenor in calendar days
TREASURY_TENORS: Dict[str, int] = {
    "DGS1MO": 30,
    "DGS3MO": 91,
    "DGS6MO": 182,
    "DGS1": 365,
    "DGS2": 730,
    "DGS3": 1095,
    "DGS5": 1826,
    "DGS7": 2557,
    "DGS10": 3652,
}


def _asof_row(frame: pd.DataFrame, day: date, what: str) -> pd.Series:
    """Last observation on or before `day`."""
    pos = frame.index.searchsorted(pd.Timestamp(day), side="right") - 1
    if pos < 0:
        raise RateLookupError(f"no {what} observation on or before {day}")
    return frame.iloc[pos]


class TreasuryCurveRates(_EarliestDateGuard):
    """
    Risk-free rate from a treasury yield curve, interpolated by DTE.

    The curve is a DataFrame indexed by date with one column per tenor
    (see TREASURY_TENORS) holding percent yields. For a lookup the last
    row on or before the quote date is used, missing tenors in that row
    are ignored, and the remaining points are linearly interpolated at
    days_to_expiration (flat beyond either end).
    """

    def __init__(self, curve: pd.DataFrame, earliest_date: Optional[date] = None):
        super().__init__(earliest_date)
        columns = [c for c in curve.columns if c in TREASURY_TENORS]
        if not columns:
            raise ValueError(
                f"treasury curve has none of the expected tenor columns {list(TREASURY_TENORS)}"
            )
        columns.sort(key=TREASURY_TENORS.get)
        frame = curve[columns].apply(pd.to_numeric, errors="coerce")
        frame.index = pd.to_datetime(frame.index)
        frame = frame.dropna(how="all").sort_index()
        if frame.empty:
            raise ValueError("treasury curve has no observations")
        self.curve = frame
        self.tenor_days = np.array([TREASURY_TENORS[c] for c in columns], dtype=float)

    @classmethod
    def from_csv(cls, path: Union[str, Path], earliest_date: Optional[date] = None,
                 date_column: str = "DATE") -> "TreasuryCurveRates":
        """Load a FRED download ('.' marks a missing value)."""
        curve = pd.read_csv(path, na_values=["."], parse_dates=[date_column])
        curve = curve.set_index(date_column)
        return cls(curve, earliest_date)

    def risk_free_rate(self, when: datetime, days_to_expiration: int) -> float:
        day = _as_date(when)
        self._check(day, "risk-free rate")
        row = _asof_row(self.curve, day, "treasury curve").to_numpy(dtype=float)
        available = ~np.isnan(row)
        if not available.any():
            raise RateLookupError(f"treasury curve row for {day} has no values")
        pct = np.interp(float(days_to_expiration), self.tenor_days[available], row[available])
        return 0.01 * float(pct)


class DividendYieldSeries(_EarliestDateGuard):
    """As-of lookup in a dated series of percent dividend yields."""

    def __init__(self, series: pd.Series, earliest_date: Optional[date] = None):
        super().__init__(earliest_date)
        series = pd.to_numeric(series, errors="coerce")
        series.index = pd.to_datetime(series.index)
        series = series.dropna().sort_index()
        if series.empty:
            raise ValueError("dividend yield series has no observations")
        self.series = series.to_frame("yield")

    @classmethod
    def from_csv(cls, path: Union[str, Path], earliest_date: Optional[date] = None,
                 date_column: str = "Date", value_column: str = "Value") -> "DividendYieldSeries":
        frame = pd.read_csv(path, parse_dates=[date_column])
        series = frame.set_index(date_column)[value_column]
        return cls(series, earliest_date)

    def dividend_yield(self, day: date) -> float:
        day = _as_date(day)
        self._check(day, "dividend yield")
        return 0.01 * float(_asof_row(self.series, day, "dividend yield")["yield"])
