"""
Black-Scholes-Merton pricing, greeks, and implied volatility inversion.

Argument order follows the pricing-library convention used throughout the
audit pipeline: (S, K, T, r, sigma, q, option_type). Everything is
closed-form except the IV solver, which brackets the root and then runs
Brent's method.

The IV solver distinguishes three kinds of failure, because the record
parser treats them differently:

    -inf : price below discounted intrinsic value (no volatility can match)
    +inf : price at/above the model's upper bound (S*e^{-qT} or K*e^{-rT})
    NaN  : bad inputs (T <= 0, non-positive price) or no convergence

References:
    Black, F. & Scholes, M. (1973). The Pricing of Options and Corporate Liabilities.
    Hull, J.C. (2018). Options, Futures, and Other Derivatives. 10th ed.
"""

import numpy as np
from scipy.stats import norm
from scipy.optimize import brentq


def _is_call(option_type) -> bool:
    kind = str(getattr(option_type, "value", option_type)).lower()
    if kind in ("c", "call"):
        return True
    if kind in ("p", "put"):
        return False
    raise ValueError(f"Unknown option_type: {option_type}. Use 'call' or 'put'.")


# ════════════════════════════════════════════════════════════════════════
#  PRICING
# ════════════════════════════════════════════════════════════════════════

def d1(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """
    d1 term of Black-Scholes-Merton.

    Parameters
    ----------
    S : underlying price
    K : strike
    T : time to expiry in years
    r : risk-free rate (annualized, continuous compounding)
    sigma : volatility (annualized)
    q : continuous dividend yield
    """
    if T <= 0 or sigma <= 0:
        return 0.0
    return (np.log(S / K) + (r - q + 0.5 * sigma**2) * T) / (sigma * np.sqrt(T))


def d2(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """d2 = d1 - sigma * sqrt(T)."""
    return d1(S, K, T, r, sigma, q) - sigma * np.sqrt(T)


def call_price(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """European call under BSM. Collapses to discounted intrinsic at zero vol."""
    if T <= 0:
        return max(S - K, 0.0)
    if sigma <= 0:
        return max(S * np.exp(-q * T) - K * np.exp(-r * T), 0.0)

    _d1 = d1(S, K, T, r, sigma, q)
    _d2 = _d1 - sigma * np.sqrt(T)
    return S * np.exp(-q * T) * norm.cdf(_d1) - K * np.exp(-r * T) * norm.cdf(_d2)


def put_price(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """European put under BSM: K*e^{-rT}*N(-d2) - S*e^{-qT}*N(-d1)."""
    if T <= 0:
        return max(K - S, 0.0)
    if sigma <= 0:
        return max(K * np.exp(-r * T) - S * np.exp(-q * T), 0.0)

    _d1 = d1(S, K, T, r, sigma, q)
    _d2 = _d1 - sigma * np.sqrt(T)
    return K * np.exp(-r * T) * norm.cdf(-_d2) - S * np.exp(-q * T) * norm.cdf(-_d1)


def bs_price(S: float, K: float, T: float, r: float, sigma: float,
             q: float = 0.0, option_type="call") -> float:
    """Dispatch to call_price or put_price. Accepts 'call'/'put'/'c'/'p' or an OptionType."""
    if _is_call(option_type):
        return call_price(S, K, T, r, sigma, q)
    return put_price(S, K, T, r, sigma, q)


def intrinsic_value(S: float, K: float, T: float, r: float, q: float, option_type) -> float:
    """Discounted intrinsic value, the lower bound of the BSM price."""
    if _is_call(option_type):
        return max(S * np.exp(-q * T) - K * np.exp(-r * T), 0.0)
    return max(K * np.exp(-r * T) - S * np.exp(-q * T), 0.0)


def price_upper_bound(S: float, K: float, T: float, r: float, q: float, option_type) -> float:
    """Limit of the BSM price as sigma -> infinity."""
    if _is_call(option_type):
        return S * np.exp(-q * T)
    return K * np.exp(-r * T)


# ════════════════════════════════════════════════════════════════════════
#  GREEKS
# ════════════════════════════════════════════════════════════════════════

def delta(S: float, K: float, T: float, r: float, sigma: float,
          q: float = 0.0, option_type="call") -> float:
    """
    dV/dS. Call delta in [0, 1], put delta in [-1, 0].

    At T <= 0 or zero vol it degenerates to a step at the strike.
    """
    if T <= 0 or sigma <= 0:
        if _is_call(option_type):
            return 1.0 if S > K else 0.0
        return -1.0 if S < K else 0.0

    _d1 = d1(S, K, T, r, sigma, q)
    if _is_call(option_type):
        return np.exp(-q * T) * norm.cdf(_d1)
    return np.exp(-q * T) * (norm.cdf(_d1) - 1.0)


def gamma(S: float, K: float, T: float, r: float, sigma: float,
          q: float = 0.0, option_type="call") -> float:
    """
    d²V/dS². Identical for calls and puts; option_type is accepted so all
    five greeks share one signature.
    """
    if T <= 0 or sigma <= 0 or S <= 0:
        return 0.0
    _d1 = d1(S, K, T, r, sigma, q)
    return np.exp(-q * T) * norm.pdf(_d1) / (S * sigma * np.sqrt(T))


def vega(S: float, K: float, T: float, r: float, sigma: float,
         q: float = 0.0, option_type="call") -> float:
    """dV/dσ per unit (100%) vol. Identical for calls and puts."""
    if T <= 0 or sigma <= 0 or S <= 0:
        return 0.0
    _d1 = d1(S, K, T, r, sigma, q)
    return S * np.exp(-q * T) * norm.pdf(_d1) * np.sqrt(T)


def theta(S: float, K: float, T: float, r: float, sigma: float,
          q: float = 0.0, option_type="call") -> float:
    """-dV/dT per year. Divide by 365 for calendar-day decay."""
    if T <= 0 or sigma <= 0:
        return 0.0

    _d1 = d1(S, K, T, r, sigma, q)
    _d2 = _d1 - sigma * np.sqrt(T)
    decay = -(S * np.exp(-q * T) * norm.pdf(_d1) * sigma) / (2 * np.sqrt(T))

    if _is_call(option_type):
        return (decay
                + q * S * np.exp(-q * T) * norm.cdf(_d1)
                - r * K * np.exp(-r * T) * norm.cdf(_d2))
    return (decay
            - q * S * np.exp(-q * T) * norm.cdf(-_d1)
            + r * K * np.exp(-r * T) * norm.cdf(-_d2))


def rho(S: float, K: float, T: float, r: float, sigma: float,
        q: float = 0.0, option_type="call") -> float:
    """dV/dr per unit rate."""
    if T <= 0 or sigma <= 0:
        return 0.0

    _d2 = d2(S, K, T, r, sigma, q)
    if _is_call(option_type):
        return K * T * np.exp(-r * T) * norm.cdf(_d2)
    return -K * T * np.exp(-r * T) * norm.cdf(-_d2)


# ════════════════════════════════════════════════════════════════════════
#  IMPLIED VOLATILITY
# ════════════════════════════════════════════════════════════════════════

def implied_vol(
    price: float,
    S: float,
    K: float,
    T: float,
    r: float,
    q: float = 0.0,
    option_type="put",
    vol_lower: float = 1e-6,
    vol_upper: float = 5.0,
    vol_ceiling: float = 1e4,
    tol: float = 1e-10,
) -> float:
    """
    Invert BSM for volatility.

    Parameters
    ----------
    price : observed option price (mid of bid/ask)
    S, K, T, r, q : as for the pricing functions
    option_type : "call"/"put" or an OptionType
    vol_lower, vol_upper : initial bracket; vol_upper is doubled until the
        bracket contains the root or vol_ceiling is hit
    tol : solver tolerance on sigma

    Returns
    -------
    float : implied vol, -inf / +inf when the price is outside the model's
        range, 0.0 when the price is exactly intrinsic, NaN otherwise
    """
    if not (price > 0) or T <= 0 or S <= 0 or K <= 0:
        return np.nan

    floor = intrinsic_value(S, K, T, r, q, option_type)
    if price < floor:
        return -np.inf
    if price == floor:
        return 0.0
    if price >= price_upper_bound(S, K, T, r, q, option_type):
        return np.inf

    def objective(sigma):
        return bs_price(S, K, T, r, sigma, q, option_type) - price

    # price is strictly inside (floor, cap), so widening the top always
    # brackets it eventually; only the ceiling stops us
    hi = vol_upper
    while objective(hi) < 0:
        hi *= 2.0
        if hi > vol_ceiling:
            return np.nan

    if objective(vol_lower) > 0:
        # root sits below vol_lower; this happens when price barely
        # exceeds intrinsic and the time value is lost in rounding
        return np.nan

    try:
        return brentq(objective, vol_lower, hi, xtol=tol)
    except (ValueError, RuntimeError):
        return np.nan
