"""
One trading day's archive -> the day's surviving quotes.

Each vendor zip holds a single CSV. The header is checked loosely (a
mismatch only warns), every following line goes through the record
parser, accepted quotes are grouped by expiration with root resolution
applied, and the groups are flattened at the end of the file.

Anything that stops the archive from being read (corrupt zip, bad
deflate stream, truncated entry, undecodable bytes) is fatal for that
file only: it is logged and the file contributes nothing, even if some
lines had already been parsed.
"""

import io
import logging
import re
import zipfile
import zlib
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import AuditConfig, EXPECTED_HEADER
from .dedup import RootDeduplicator
from .error_log import ErrorLog
from .models import Quote, Rejected
from .rates import DividendYieldProvider, RiskFreeRateProvider
from .record_parser import parse_record

logger = logging.getLogger(__name__)

_DATE_IN_NAME = re.compile(r"(\d{4}-\d{2}-\d{2})")

# errors that mean the archive itself cannot be trusted
ARCHIVE_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, OSError, UnicodeDecodeError)


def file_day_from_name(path: Union[str, Path]) -> date:
    """Trading day encoded in the archive name (last YYYY-MM-DD in it)."""
    matches = _DATE_IN_NAME.findall(Path(path).name)
    if not matches:
        raise ValueError(f"no YYYY-MM-DD date in file name {Path(path).name}")
    return date.fromisoformat(matches[-1])


def process_daily_file(
    path: Union[str, Path],
    config: AuditConfig,
    rates: RiskFreeRateProvider,
    dividends: DividendYieldProvider,
    error_log: ErrorLog,
) -> List[Quote]:
    """
    Read one daily archive end to end.

    Returns
    -------
    list of Quote : every surviving quote of the day, grouped by expiration
        (first-seen order) and in file order within each group. Empty when
        the file is fatal or holds no data lines.
    """
    path = Path(path)
    try:
        file_day = file_day_from_name(path)
    except ValueError as ex:
        _file_fatal(error_log, f"*Error* {ex}, file {path} skipped")
        return []

    try:
        groups = _read_archive(path, file_day, config, rates, dividends, error_log)
    except ARCHIVE_ERRORS as ex:
        _file_fatal(error_log, f"*Error* {type(ex).__name__} reading file {path} Message {ex}")
        return []
    if groups is None:
        return []

    return [quote for group in groups.values() for quote in group.quotes]


def _file_fatal(error_log: ErrorLog, message: str) -> None:
    logger.error(message)
    error_log.append(message)


def _read_archive(path, file_day, config, rates, dividends,
                  error_log) -> Optional[Dict[date, RootDeduplicator]]:
    with zipfile.ZipFile(path) as archive:
        entries = [info for info in archive.infolist() if not info.is_dir()]
        if not entries:
            logger.warning("%s contains no data file", path.name)
            return None
        entry = entries[0]
        if len(entries) != 1:
            logger.warning("%s contains more than one file (%d). Processing first one: %s",
                           path.name, len(entries), entry.filename)

        with archive.open(entry) as raw, io.TextIOWrapper(raw, encoding="utf-8", newline="") as reader:
            return _read_lines(reader, entry.filename, file_day, config, rates, dividends, error_log)


def _read_lines(reader, file_name, file_day, config, rates, dividends,
                error_log) -> Dict[date, RootDeduplicator]:
    groups: Dict[date, RootDeduplicator] = {}

    header = reader.readline().rstrip("\r\n")
    if not header:
        return groups
    if not header.startswith(EXPECTED_HEADER):
        logger.warning("file %s does not have expected header: %s. Line skipped anyways",
                       file_name, header)

    n_accepted = n_errors = 0
    # header is row 1 when the file is opened in a spreadsheet
    for line_number, line in enumerate(reader, start=2):
        line = line.rstrip("\r\n")
        if not line.strip():
            continue
        result = parse_record(line, file_day, config, rates, dividends, file_name, line_number)
        if isinstance(result, Rejected):
            if result.is_error:
                n_errors += 1
                error_log.append(result.message)
            continue
        n_accepted += 1
        groups.setdefault(result.expiration, RootDeduplicator()).add(result)

    logger.debug("%s: %d quotes accepted, %d errors, %d expirations",
                 file_name, n_accepted, n_errors, len(groups))
    return groups
