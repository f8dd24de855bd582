"""
Ingestion driver: find the daily archives and fan them out over a bounded
thread pool, each worker feeding its day's quotes into the shared index.

Files are independent end to end. A worker never waits on another one;
the index and the error log are the only shared state and both handle
their own locking. No exception from a single file reaches the caller.
Only setup problems (missing data directory) abort the run.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from .aggregator import QuoteIndex
from .config import AuditConfig
from .daily_file import process_daily_file
from .error_log import ErrorLog
from .rates import DividendYieldProvider, RiskFreeRateProvider

logger = logging.getLogger(__name__)


def discover_files(config: AuditConfig) -> List[Path]:
    """All archives under data_dir (recursively) matching file_pattern, sorted."""
    data_dir = Path(config.data_dir)
    if not data_dir.exists():
        raise FileNotFoundError(f"Data directory not found: {data_dir}")
    if not data_dir.is_dir():
        raise NotADirectoryError(f"Data path is not a directory: {data_dir}")
    return sorted(p for p in data_dir.rglob(config.file_pattern) if p.is_file())


def run_ingestion(
    config: AuditConfig,
    rates: RiskFreeRateProvider,
    dividends: DividendYieldProvider,
    error_log: ErrorLog,
    index: Optional[QuoteIndex] = None,
    files: Optional[List[Path]] = None,
) -> QuoteIndex:
    """
    Process every daily archive into `index` (a new one if not given).

    Parameters
    ----------
    config : filters, pattern, data_dir and max_workers
    rates, dividends : rate providers handed to the record parser
    error_log : shared sink for data errors and fatal files
    index : existing index to add to
    files : explicit archive list; default is discover_files(config)

    Returns
    -------
    QuoteIndex : the populated index
    """
    if index is None:
        index = QuoteIndex()
    if files is None:
        files = discover_files(config)
    if not files:
        logger.warning("no files matching %s under %s", config.file_pattern, config.data_dir)
        return index

    counter_lock = threading.Lock()
    started = [0]

    def work(path: Path) -> int:
        with counter_lock:
            started[0] += 1
            n = started[0]
        logger.info("Processing file %d: %s", n, path)
        try:
            quotes = process_daily_file(path, config, rates, dividends, error_log)
        except Exception as ex:
            msg = f"*Error* unexpected {type(ex).__name__} processing file {path} Message {ex}"
            logger.exception(msg)
            error_log.append(msg)
            return 0
        return index.insert_many(quotes)

    with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
        inserted = sum(executor.map(work, files))

    logger.info("%d files processed, %d quotes inserted, %d errors logged",
                len(files), inserted, len(error_log))
    return index
