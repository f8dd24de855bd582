"""
Shared test fixtures and pytest configuration.
"""

import zipfile
from datetime import date

import pytest
import numpy as np

from cboe_audit.config import AuditConfig, EXPECTED_HEADER
from cboe_audit.error_log import ErrorLog
from cboe_audit.rates import FlatDividendYield, FlatRiskFreeRate


DAY = date(2014, 1, 2)
RATE = 0.02
DIV_YIELD = 0.015


@pytest.fixture(autouse=True)
def set_random_seed():
    """Ensure test reproducibility."""
    np.random.seed(42)
    yield


@pytest.fixture
def cfg(tmp_path):
    return AuditConfig(data_dir=tmp_path, max_workers=4)


@pytest.fixture
def rates():
    return FlatRiskFreeRate(RATE, date(2013, 1, 1))


@pytest.fixture
def dividends():
    return FlatDividendYield(DIV_YIELD, date(2013, 1, 1))


@pytest.fixture
def error_log():
    with ErrorLog() as log:
        yield log


def _line(
    root="SPX",
    option_type="P",
    strike=2000,
    bid=10.0,
    ask=12.0,
    underlying=2000.0,
    quote_datetime="2014-01-02 10:00:00",
    expiration="2014-02-01",
    underlying_symbol="^SPX",
    open_interest=100,
):
    """One vendor row; unused columns get plausible filler."""
    fields = [
        underlying_symbol, quote_datetime, root, expiration, f"{float(strike):.3f}", option_type,
        "0", "0", "0", "0", "0",                     # open high low close trade_volume
        "10", f"{bid}", "10", f"{ask}",              # bid_size bid ask_size ask
        f"{underlying}", f"{underlying + 0.5}",      # underlying_bid underlying_ask
        f"{underlying}", f"{underlying}",            # implied / active underlying
        "0.2", "0", "0", "0", "0", "0",              # vendor iv + greeks (ignored)
        f"{open_interest}",
    ]
    return ",".join(fields)


@pytest.fixture
def make_line():
    return _line


@pytest.fixture
def write_archive():
    """
    Factory: write_archive(directory, day, lines, header=..., extra_entries=(), name=None)
    -> Path of a vendor-named zip holding one CSV (plus any extra entries).
    """
    def _write(directory, day, lines, header=EXPECTED_HEADER, extra_entries=(), name=None):
        directory.mkdir(parents=True, exist_ok=True)
        if name is None:
            name = f"UnderlyingOptionsIntervals_900sec_calcs_oi_{day.isoformat()}.zip"
        path = directory / name
        body = "\n".join([header] + list(lines)) + "\n" if header is not None else ""
        with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(f"UnderlyingOptionsIntervals_900sec_calcs_oi_{day.isoformat()}.csv", body)
            for entry_name, entry_body in extra_entries:
                zf.writestr(entry_name, entry_body)
        return path
    return _write
