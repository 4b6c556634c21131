from __future__ import annotations
import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .errors import LogSinkError
from .models import Sample

logger = logging.getLogger(__name__)

HEADER = [
    "Timestamp",
    "CPU(%)",
    "RAM(%)",
    "Disk(%)",
    "RAM_Available(MB)",
    "Network_Sent(KB/s)",
    "Network_Received(KB/s)",
    "Disk_Read(KB/s)",
    "Disk_Write(KB/s)",
]

# (column, Sample attribute, format); "" in the row means unavailable
COLUMNS = [
    ("CPU(%)",                 "cpu_percent",      "{:.1f}"),
    ("RAM(%)",                 "ram_percent",      "{:.1f}"),
    ("Disk(%)",                "disk_percent",     "{:.1f}"),
    ("RAM_Available(MB)",      "ram_available_mb", "{:.0f}"),
    ("Network_Sent(KB/s)",     "net_sent_kbps",    "{:.1f}"),
    ("Network_Received(KB/s)", "net_recv_kbps",    "{:.1f}"),
    ("Disk_Read(KB/s)",        "disk_read_kbps",   "{:.1f}"),
    ("Disk_Write(KB/s)",       "disk_write_kbps",  "{:.1f}"),
]

TIMESTAMP_FMT = "%Y-%m-%d %H:%M:%S"


def format_row(sample: Sample) -> List[str]:
    row = [sample.timestamp.strftime(TIMESTAMP_FMT)]
    for _col, attr, fmt in COLUMNS:
        v = getattr(sample, attr)
        row.append("" if v is None else fmt.format(v))
    return row


def parse_row(row: Sequence[str]) -> Sample:
    """Inverse of format_row (values come back rounded)."""
    if len(row) != len(HEADER):
        raise ValueError(f"expected {len(HEADER)} fields, got {len(row)}")
    values = {}
    for (_col, attr, _fmt), raw in zip(COLUMNS, row[1:]):
        raw = raw.strip()
        values[attr] = float(raw) if raw else None
    return Sample(timestamp=datetime.strptime(row[0], TIMESTAMP_FMT), **values)


def read_log(path: str) -> Iterator[Sample]:
    with open(path, "r", encoding="utf-8", newline="") as fh:
        reader = csv.reader(fh)
        for i, row in enumerate(reader):
            if i == 0 and row == HEADER:
                continue
            if row:
                yield parse_row(row)


class CsvLogSink:
    """
    Append-only CSV log, one row per tick. The header is written once,
    when the file is new or empty. The file is reopened per append so the
    log stays readable while monitoring runs.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LogSinkError(f"cannot create log directory {self.path.parent}: {e}") from e

    @property
    def full_path(self) -> str:
        return str(self.path.resolve())

    def append(self, sample: Sample) -> bool:
        try:
            new_file = not self.path.exists() or self.path.stat().st_size == 0
            with open(self.path, "a", encoding="utf-8", newline="") as fh:
                writer = csv.writer(fh)
                if new_file:
                    writer.writerow(HEADER)
                writer.writerow(format_row(sample))
        except OSError as e:
            raise LogSinkError(f"cannot write {self.path}: {e}") from e
        return True

    def close(self) -> None:
        pass


def open_log_sink(path: str) -> Optional[CsvLogSink]:
    """CsvLogSink for path, or None when the log location is unusable."""
    try:
        sink = CsvLogSink(path)
    except LogSinkError as e:
        logger.warning("Logging disabled: %s", e)
        return None
    logger.info("Log saved to: %s", sink.full_path)
    return sink
