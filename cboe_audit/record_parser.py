"""
One vendor CSV line -> a validated Quote with rates and greeks, or a Rejected.

Validation short-circuits on the first failing check. Each failure is
either a silent skip (economically out of scope: late quote, filtered
strike, DTE beyond the horizon, binary-option root) or an error that the
caller appends to the error log (bad symbol, bad type, implausible
underlying, negative bid/ask, expiration before quote date, malformed
fields, quote from another day).

Only records that pass every check get priced. Degenerate prices are
kept rather than rejected:
    - mid == 0           -> IV and all greeks 0, no rate lookup
    - IV solver +/-inf   -> IV recorded as +1/-1, greeks 0
    - IV solver NaN      -> kept as NaN, logged at DEBUG as an anomaly
"""

import logging
import math
from datetime import date, datetime
from enum import IntEnum
from typing import Union

from . import black_scholes as bs
from .config import AuditConfig, DAYS_PER_YEAR
from .models import ROOT_PRECEDENCE, SKIPPED, OptionType, Quote, Rejected, RejectKind
from .rates import DividendYieldProvider, RateLookupError, RiskFreeRateProvider

logger = logging.getLogger(__name__)


class Field(IntEnum):
    """Column positions in the vendor file (order is fixed)."""
    UNDERLYING_SYMBOL = 0
    QUOTE_DATETIME = 1
    ROOT = 2
    EXPIRATION = 3
    STRIKE = 4
    OPTION_TYPE = 5
    OPEN = 6
    HIGH = 7
    LOW = 8
    CLOSE = 9
    TRADE_VOLUME = 10
    BID_SIZE = 11
    BID = 12
    ASK_SIZE = 13
    ASK = 14
    UNDERLYING_BID = 15
    UNDERLYING_ASK = 16
    IMPLIED_UNDERLYING_PRICE = 17
    ACTIVE_UNDERLYING_PRICE = 18
    IMPLIED_VOLATILITY = 19
    DELTA = 20
    GAMMA = 21
    THETA = 22
    VEGA = 23
    RHO = 24
    OPEN_INTEREST = 25


N_FIELDS = len(Field)


class _MalformedField(ValueError):
    def __init__(self, name: str, raw: str):
        super().__init__(f"{name} {raw!r} cannot be parsed")
        self.name = name
        self.raw = raw


def _field(fields, col: Field, convert):
    raw = fields[col].strip()
    try:
        return convert(raw)
    except (ValueError, OverflowError):
        raise _MalformedField(col.name.lower(), raw) from None


def _finite(raw: str) -> float:
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {raw!r}")
    return value


def _strike(raw: str) -> int:
    # +.001 so that e.g. "1924.9999" from a float export lands on 1925
    return int(_finite(raw) + 0.001)


def _integer(raw: str) -> int:
    return int(_finite(raw))


def time_to_expiration(quote_datetime: datetime, dte: int, config: AuditConfig) -> float:
    """
    Year fraction used for pricing.

    Whole calendar days / 365 when dte > 0. On expiration day the fraction
    is the share of the regular session still left at quote time, clamped
    to [0, 1], so 0DTE quotes decay through the day.
    """
    if dte > 0:
        return dte / DAYS_PER_YEAR
    close = datetime.combine(quote_datetime.date(), config.session_close)
    remaining = (close - quote_datetime).total_seconds() / config.session_seconds
    return min(max(remaining, 0.0), 1.0) / DAYS_PER_YEAR


def _error(message: str) -> Rejected:
    return Rejected(RejectKind.ERROR, message)


def parse_record(
    line: str,
    file_day: date,
    config: AuditConfig,
    rates: RiskFreeRateProvider,
    dividends: DividendYieldProvider,
    file_name: str = "",
    line_number: int = 0,
) -> Union[Quote, Rejected]:
    """
    Parse and price one data line.

    Parameters
    ----------
    line : raw CSV line without the trailing newline
    file_day : trading day of the archive the line came from
    config : filters and session clock (max DTE is config.max_dte)
    rates, dividends : rate providers, called as (quote datetime, DTE)
        and (expiration date)
    file_name, line_number : only used to build error messages

    Returns
    -------
    Quote on success, Rejected(SKIP) or Rejected(ERROR, message) otherwise
    """
    where = f"for file {file_name}, line {line_number}"
    fields = line.split(",")
    if len(fields) < N_FIELDS:
        return _error(f"*Error*: expected {N_FIELDS} fields but found {len(fields)} {where}, {line}")

    try:
        return _parse_fields(fields, line, where, file_day, config, rates, dividends)
    except _MalformedField as ex:
        return _error(f"*Error*: {ex} {where}, {line}")


def _parse_fields(fields, line, where, file_day, config, rates, dividends):
    if fields[Field.UNDERLYING_SYMBOL] != config.underlying_symbol:
        return _error(
            f"*Error*: underlying_symbol is not {config.underlying_symbol} {where}, "
            f"underlying_symbol {fields[Field.UNDERLYING_SYMBOL]}, {line}"
        )

    root = fields[Field.ROOT].strip().upper()
    if root not in ROOT_PRECEDENCE:
        if root in config.skipped_roots:
            return SKIPPED
        return _error(
            f"*Error*: root is not {', '.join(ROOT_PRECEDENCE)} {where}, root {root}, {line}"
        )

    try:
        option_type = OptionType.from_code(fields[Field.OPTION_TYPE])
    except ValueError:
        return _error(
            f"*Error*: option_type is neither 'P' or 'C' {where}, root {root}, "
            f"option_type {fields[Field.OPTION_TYPE]}, {line}"
        )

    quote_datetime = _field(fields, Field.QUOTE_DATETIME, datetime.fromisoformat)
    if quote_datetime.date() != file_day:
        return _error(
            f"*Error*: quote_datetime {quote_datetime} is not on file date {file_day} {where}, {line}"
        )

    hour = quote_datetime.hour
    if hour > config.market_close_hour or (hour == config.market_close_hour and quote_datetime.minute > 0):
        return SKIPPED

    strike = _field(fields, Field.STRIKE, _strike)
    if config.strike_step_filter and strike % config.strike_step != 0:
        return SKIPPED
    if strike < config.min_strike or strike > config.max_strike:
        return SKIPPED

    underlying = _field(fields, Field.UNDERLYING_BID, _finite)
    if not underlying > 0.0:
        return _error(f"*Error*: underlying_bid is {underlying} {where}, {line}")
    if underlying < config.min_underlying:
        return _error(
            f"*Error*: underlying_bid is less than {config.min_underlying} {where}, "
            f"underlying_bid {underlying}, {line}"
        )

    expiration = _field(fields, Field.EXPIRATION, date.fromisoformat)
    dte = (expiration - quote_datetime.date()).days
    if dte < 0:
        return _error(f"*Error*: quote_datetime is later than expiration {where}, {line}")
    if dte > config.max_dte:
        return SKIPPED

    bid = _field(fields, Field.BID, _finite)
    if not bid >= 0.0:
        return _error(f"*Error*: bid is less than 0 {where}, bid {bid}, {line}")
    ask = _field(fields, Field.ASK, _finite)
    if not ask >= 0.0:
        return _error(f"*Error*: ask is less than 0 {where}, ask {ask}, {line}")
    open_interest = _field(fields, Field.OPEN_INTEREST, _integer)

    base = dict(
        quote_datetime=quote_datetime,
        expiration=expiration,
        strike=strike,
        option_type=option_type,
        root=root,
        underlying=underlying,
        bid=bid,
        ask=ask,
        open_interest=open_interest,
    )

    mid = 0.5 * (bid + ask)
    if mid == 0:
        # kept: a worthless leg can still belong to an open position
        return Quote(**base)

    try:
        r = rates.risk_free_rate(quote_datetime, dte)
        q = dividends.dividend_yield(expiration)
    except RateLookupError as ex:
        return _error(f"*Error*: {ex} {where}, {line}")

    t = time_to_expiration(quote_datetime, dte, config)
    S, K = underlying, float(strike)
    iv = float(bs.implied_vol(mid, S, K, t, r, q, option_type))

    if math.isinf(iv):
        return Quote(**base, implied_volatility=1.0 if iv > 0 else -1.0,
                     risk_free_rate=r, dividend_yield=q)

    if math.isnan(iv):
        logger.debug("IV inversion returned NaN %s: mid %.4f, S %.2f, K %d, t %.6f",
                     where, mid, S, strike, t)

    return Quote(
        **base,
        implied_volatility=iv,
        delta=float(bs.delta(S, K, t, r, iv, q, option_type)),
        theta=float(bs.theta(S, K, t, r, iv, q, option_type)),
        gamma=float(bs.gamma(S, K, t, r, iv, q, option_type)),
        vega=float(bs.vega(S, K, t, r, iv, q, option_type)),
        rho=float(bs.rho(S, K, t, r, iv, q, option_type)),
        risk_free_rate=r,
        dividend_yield=q,
    )
