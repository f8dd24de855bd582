"""
Tests for reading one daily archive.
"""

import logging
import zipfile
from datetime import date

import pytest

from cboe_audit.daily_file import file_day_from_name, process_daily_file
from cboe_audit.models import OptionType


DAY = date(2014, 1, 2)


@pytest.fixture
def process(cfg, rates, dividends, error_log):
    def _process(path):
        return process_daily_file(path, cfg, rates, dividends, error_log)
    return _process


class TestFileDay:

    def test_vendor_name(self):
        name = "UnderlyingOptionsIntervals_900sec_calcs_oi_2014-01-02.zip"
        assert file_day_from_name(name) == DAY

    def test_last_date_wins(self, tmp_path):
        assert file_day_from_name(tmp_path / "2013-12-31_export_2014-01-02.zip") == DAY

    def test_no_date(self):
        with pytest.raises(ValueError):
            file_day_from_name("options.zip")


class TestProcessing:

    def test_single_valid_line(self, tmp_path, process, make_line, write_archive):
        path = write_archive(tmp_path, DAY, [make_line()])
        quotes = process(path)
        assert len(quotes) == 1
        assert quotes[0].key == (OptionType.PUT, "SPX", date(2014, 2, 1), 2000, DAY)
        assert quotes[0].implied_volatility > 0

    def test_errors_logged_skips_silent(self, tmp_path, process, make_line, write_archive, error_log):
        lines = [
            make_line(underlying_symbol="^SPY"),
            make_line(root="BSZ"),
            make_line(quote_datetime="2014-01-02 16:15:00"),
            make_line(expiration="2013-12-31"),
            make_line(strike=2025),
        ]
        path = write_archive(tmp_path, DAY, lines)
        quotes = process(path)
        assert [q.strike for q in quotes] == [2025]
        assert len(error_log) == 2
        assert "line 2" in error_log.messages[0]
        assert "line 5" in error_log.messages[1]

    def test_root_resolution_per_expiration(self, tmp_path, process, make_line, write_archive):
        lines = [
            make_line(root="SPXW", strike=2000),
            make_line(root="SPX", strike=2025),
            make_line(root="SPXW", strike=2050, expiration="2014-01-10"),
        ]
        quotes = process(write_archive(tmp_path, DAY, lines))
        assert [(q.root, q.strike) for q in quotes] == [("SPX", 2025), ("SPXW", 2050)]

    def test_header_only(self, tmp_path, process, write_archive, error_log):
        assert process(write_archive(tmp_path, DAY, [])) == []
        assert len(error_log) == 0

    def test_empty_data_file(self, tmp_path, process, write_archive, error_log):
        assert process(write_archive(tmp_path, DAY, [], header=None)) == []
        assert len(error_log) == 0

    def test_blank_lines_ignored(self, tmp_path, process, make_line, write_archive, error_log):
        quotes = process(write_archive(tmp_path, DAY, [make_line(), "", make_line(strike=2025)]))
        assert len(quotes) == 2
        assert len(error_log) == 0

    def test_header_mismatch_warns(self, tmp_path, process, make_line, write_archive, caplog):
        path = write_archive(tmp_path, DAY, [make_line()], header="symbol,when,root")
        with caplog.at_level(logging.WARNING, logger="cboe_audit.daily_file"):
            quotes = process(path)
        assert len(quotes) == 1
        assert "does not have expected header" in caplog.text

    def test_multiple_entries_first_only(self, tmp_path, process, make_line, write_archive, caplog):
        path = write_archive(tmp_path, DAY, [make_line()],
                             extra_entries=[("zz_second.csv", "junk\n" + make_line(strike=2025))])
        with caplog.at_level(logging.WARNING, logger="cboe_audit.daily_file"):
            quotes = process(path)
        assert [q.strike for q in quotes] == [2000]
        assert "more than one file" in caplog.text

    def test_bad_number_does_not_abort_file(self, tmp_path, process, make_line, write_archive, error_log):
        """An overflowing field costs only its own row."""
        lines = [
            make_line(strike=1975),
            make_line(strike=2000, open_interest="1e999"),
            make_line(strike=2025),
            make_line(strike=2050).replace(",2050.000,", ",inf,"),
            make_line(strike=2075).replace(",2000.0,2000.5,", ",inf,2000.5,"),
            make_line(strike=2100),
        ]
        quotes = process(write_archive(tmp_path, DAY, lines))
        assert [q.strike for q in quotes] == [1975, 2025, 2100]
        assert len(error_log) == 3
        assert "open_interest" in error_log.messages[0] and "line 3" in error_log.messages[0]
        assert "strike" in error_log.messages[1] and "line 5" in error_log.messages[1]
        assert "underlying_bid" in error_log.messages[2] and "line 6" in error_log.messages[2]


class TestFatalFiles:

    def test_corrupt_zip(self, tmp_path, process, error_log):
        path = tmp_path / "UnderlyingOptionsIntervals_900sec_calcs_oi_2014-01-02.zip"
        path.write_bytes(b"this is not a zip archive")
        assert process(path) == []
        assert len(error_log) == 1
        assert "BadZipFile" in error_log.messages[0]

    def test_undecodable_entry(self, tmp_path, process, error_log, make_line):
        path = tmp_path / "UnderlyingOptionsIntervals_900sec_calcs_oi_2014-01-02.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("data.csv", b"header\n" + make_line().encode() + b"\n\xff\xfe\xfa\n")
        assert process(path) == []
        assert "UnicodeDecodeError" in error_log.messages[-1]

    def test_name_without_date(self, tmp_path, process, write_archive, make_line, error_log):
        path = write_archive(tmp_path, DAY, [make_line()], name="options.zip")
        assert process(path) == []
        assert "no YYYY-MM-DD date" in error_log.messages[0]
