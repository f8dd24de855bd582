#!/usr/bin/env python3
"""
main.py — Audit a directory of CBOE DataShop SPX option archives.

Usage:
    python main.py --data-dir ~/CBOEDataShop/SPX
    python main.py --data-dir data/SPX --rates-csv DGS.csv --dividends-csv spx_yield.csv
    python main.py --data-dir data/SPX --workers 4 --all-strikes --export data/index.csv
"""

import argparse
import logging
import sys
import time
from datetime import date
from pathlib import Path

from cboe_audit import config
from cboe_audit.aggregator import compute_index_statistics
from cboe_audit.config import AuditConfig
from cboe_audit.error_log import ErrorLog
from cboe_audit.orchestrator import discover_files, run_ingestion
from cboe_audit.rates import (
    DividendYieldSeries, FlatDividendYield, FlatRiskFreeRate, TreasuryCurveRates,
)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Validate and aggregate bulk SPX option data.")
    p.add_argument("--data-dir", type=Path, default=config.DATA_DIR)
    p.add_argument("--pattern", type=str, default=config.FILE_PATTERN)
    p.add_argument("--workers", type=int, default=config.MAX_WORKERS)
    p.add_argument("--min-strike", type=int, default=config.MIN_STRIKE)
    p.add_argument("--max-strike", type=int, default=config.MAX_STRIKE)
    p.add_argument("--strike-step", type=int, default=config.STRIKE_STEP)
    p.add_argument("--all-strikes", action="store_true", help="disable the strike-step filter")
    p.add_argument("--max-dte", type=int, default=config.MAX_DTE)
    p.add_argument("--close-hour", type=int, default=config.MARKET_CLOSE_HOUR)
    p.add_argument("--rate", type=float, default=config.RISK_FREE_RATE,
                   help="flat risk-free rate (decimal) when --rates-csv is not given")
    p.add_argument("--dividend-yield", type=float, default=config.DIVIDEND_YIELD,
                   help="flat dividend yield (decimal) when --dividends-csv is not given")
    p.add_argument("--rates-csv", type=Path, default=None, help="FRED treasury curve CSV")
    p.add_argument("--dividends-csv", type=Path, default=None, help="Date,Value dividend yield CSV")
    p.add_argument("--earliest-date", type=date.fromisoformat, default=config.EARLIEST_DATE)
    p.add_argument("--error-log", type=Path, default=None)
    p.add_argument("--export", type=Path, default=None, help="write the index as CSV")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def build_providers(args):
    if args.rates_csv is not None:
        rates = TreasuryCurveRates.from_csv(args.rates_csv, args.earliest_date)
    else:
        rates = FlatRiskFreeRate(args.rate, args.earliest_date)
    if args.dividends_csv is not None:
        dividends = DividendYieldSeries.from_csv(args.dividends_csv, args.earliest_date)
    else:
        dividends = FlatDividendYield(args.dividend_yield, args.earliest_date)
    return rates, dividends


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    print(f"\n{'='*60}")
    print(f"  CBOE Option Data Audit")
    print(f"  Data: {args.data_dir}  |  Workers: {args.workers}")
    print(f"{'='*60}\n")

    t0 = time.time()
    try:
        cfg = AuditConfig(
            data_dir=args.data_dir,
            file_pattern=args.pattern,
            min_strike=args.min_strike,
            max_strike=args.max_strike,
            strike_step_filter=not args.all_strikes,
            strike_step=args.strike_step,
            max_dte=args.max_dte,
            market_close_hour=args.close_hour,
            max_workers=args.workers,
            earliest_date=args.earliest_date,
            error_log_path=args.error_log,
        )

        # step 1: inputs
        print("[1/3] Locating archives and rate series...")
        files = discover_files(cfg)
        rates, dividends = build_providers(args)
        print(f"       Files: {len(files)}")

        # step 2: ingestion
        print("\n[2/3] Parsing, pricing and indexing...")
        with ErrorLog(cfg.resolved_error_log_path()) as error_log:
            index = run_ingestion(cfg, rates, dividends, error_log, files=files)
            n_errors = len(error_log)
    except Exception as e:
        print(f"\n  ERROR: {e}")
        sys.exit(1)

    # step 3: summary
    print("\n[3/3] Summary")
    stats = compute_index_statistics(index)
    print(f"       Quotes: {stats['n_quotes']}  in {stats['n_keys']} keys")
    print(f"       Days: {stats['n_days']}  |  Expirations: {stats['n_expirations']}")
    print(f"       Strike range: {stats['strike_range'][0]} - {stats['strike_range'][1]}")
    print(f"       Roots: {stats['roots']}")
    print(f"       IV NaN: {stats['n_iv_nan']}  |  IV clamped: {stats['n_iv_clamped']}")
    print(f"       Errors logged: {n_errors} -> {cfg.resolved_error_log_path()}")

    if args.export is not None:
        args.export.parent.mkdir(parents=True, exist_ok=True)
        index.to_frame().to_csv(args.export, index=False)
        print(f"\n       Index saved to {args.export}")

    elapsed = time.time() - t0
    print(f"\n  Done in {elapsed:.1f}s.\n")


if __name__ == "__main__":
    main()
