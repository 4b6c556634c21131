"""Tests for the CSV log sink."""

import csv
import logging

import pytest

from conftest import BASE_TS, make_sample
from hostpulse.errors import LogSinkError
from hostpulse.logsink import HEADER, CsvLogSink, format_row, open_log_sink, parse_row, read_log


def read_rows(path):
    with open(path, newline="", encoding="utf-8") as fh:
        return list(csv.reader(fh))


class TestFormatRow:
    def test_values_and_precision(self):
        row = format_row(make_sample(cpu=12.34, ram=56.78, disk=90.0))
        assert row == [
            "2024-05-01 12:00:00",
            "12.3", "56.8", "90.0",
            "4096",
            "1.5", "12.2", "100.0", "50.0",
        ]

    def test_unavailable_fields_are_empty(self):
        row = format_row(make_sample(net_sent_kbps=None, net_recv_kbps=None))
        assert row[5] == ""
        assert row[6] == ""
        assert len(row) == len(HEADER)

    def test_parse_row_round_trip(self):
        sample = make_sample(cpu=33.3, disk_read_kbps=None)
        back = parse_row(format_row(sample))
        assert back.timestamp == BASE_TS
        assert back.cpu_percent == pytest.approx(33.3)
        assert back.disk_read_kbps is None
        assert back.ram_available_mb == pytest.approx(4096.0)

    def test_parse_row_wrong_width(self):
        with pytest.raises(ValueError):
            parse_row(["2024-05-01 12:00:00", "1.0"])


class TestCsvLogSink:
    def test_header_written_once(self, tmp_path):
        path = tmp_path / "log.csv"
        sink = CsvLogSink(str(path))
        assert sink.append(make_sample(cpu=1))
        assert sink.append(make_sample(cpu=2))
        rows = read_rows(path)
        assert rows[0] == HEADER
        assert len(rows) == 3
        assert [r[1] for r in rows[1:]] == ["1.0", "2.0"]

    def test_appends_to_existing_log(self, tmp_path):
        path = tmp_path / "log.csv"
        CsvLogSink(str(path)).append(make_sample())
        CsvLogSink(str(path)).append(make_sample())
        rows = read_rows(path)
        assert rows.count(HEADER) == 1
        assert len(rows) == 3

    def test_header_added_to_empty_file(self, tmp_path):
        path = tmp_path / "log.csv"
        path.write_text("")
        CsvLogSink(str(path)).append(make_sample())
        assert read_rows(path)[0] == HEADER

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "log.csv"
        CsvLogSink(str(path)).append(make_sample())
        assert path.exists()

    def test_write_failure_raises(self, tmp_path):
        # a directory where the file should be
        path = tmp_path / "log.csv"
        path.mkdir()
        with pytest.raises(LogSinkError):
            CsvLogSink(str(path)).append(make_sample())

    def test_read_log(self, tmp_path):
        path = tmp_path / "log.csv"
        sink = CsvLogSink(str(path))
        for cpu in (5, 15, 25):
            sink.append(make_sample(cpu=cpu))
        assert [s.cpu_percent for s in read_log(str(path))] == [5.0, 15.0, 25.0]


def test_open_log_sink_unusable_location(tmp_path, caplog):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with caplog.at_level(logging.WARNING, logger="hostpulse.logsink"):
        assert open_log_sink(str(blocker / "log.csv")) is None
    assert "Logging disabled" in caplog.text


def test_open_log_sink_announces_path(tmp_path, caplog):
    path = tmp_path / "log.csv"
    with caplog.at_level(logging.INFO, logger="hostpulse.logsink"):
        sink = open_log_sink(str(path))
    assert sink is not None
    assert sink.full_path in caplog.text
