"""Shared fixtures: scripted metric source, recording renderer, in-memory log sink."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta

import pytest

from hostpulse.config import AppConfig
from hostpulse.errors import RequiredMetricError
from hostpulse.models import Sample

BASE_TS = datetime(2024, 5, 1, 12, 0, 0)


def make_sample(
    cpu: float = 10.0,
    ram: float = 20.0,
    disk: float = 30.0,
    ts: datetime | None = None,
    **optional,
) -> Sample:
    fields = {
        "ram_available_mb": 4096.0,
        "net_sent_kbps": 1.5,
        "net_recv_kbps": 12.25,
        "disk_read_kbps": 100.0,
        "disk_write_kbps": 50.0,
    }
    fields.update(optional)
    return Sample(
        timestamp=ts or BASE_TS,
        cpu_percent=cpu,
        ram_percent=ram,
        disk_percent=disk,
        **fields,
    )


class ScriptedSource:
    """Replays a list of Samples / exceptions; the first read is the warm-up."""

    def __init__(self, script: list, warmup: Sample | Exception | None = None):
        self._script = list(script)
        self._warmup = warmup if warmup is not None else make_sample()
        self._warmed = False
        self.reads = 0
        self.closed = False

    def read(self) -> Sample:
        self.reads += 1
        if not self._warmed:
            self._warmed = True
            if isinstance(self._warmup, Exception):
                raise self._warmup
            return self._warmup
        item = self._script.pop(0) if self._script else make_sample()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class RecordingRenderer:
    def __init__(self, fail_on: set[int] | None = None, reset_fails: bool = False):
        self.frames = []
        self.statuses = []
        self.resets = 0
        self.calls = 0
        self._fail_on = fail_on or set()
        self._reset_fails = reset_fails

    def render(self, frame) -> None:
        self.calls += 1
        if self.calls in self._fail_on:
            raise RuntimeError(f"render failure #{self.calls}")
        self.frames.append(frame)

    def reset(self) -> None:
        self.resets += 1
        if self._reset_fails:
            raise RuntimeError("cannot reinitialize")

    def status(self, message: str) -> None:
        self.statuses.append(message)


class ListSink:
    def __init__(self, fail_on: int | None = None, return_false_on: int | None = None):
        self.rows = []
        self.calls = 0
        self.closed = False
        self._fail_on = fail_on
        self._false_on = return_false_on

    def append(self, sample) -> bool:
        self.calls += 1
        if self.calls == self._fail_on:
            raise OSError("disk full")
        if self.calls == self._false_on:
            return False
        self.rows.append(sample)
        return True

    def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def cfg() -> AppConfig:
    return AppConfig(refresh_interval_ms=100, history_capacity=30, disk_path="/")


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def samples() -> Iterator[list]:
    yield [
        make_sample(cpu=10 + i * 10, ram=40 + i, disk=50, ts=BASE_TS + timedelta(seconds=2 * i))
        for i in range(6)
    ]


@pytest.fixture
def required_failure() -> RequiredMetricError:
    return RequiredMetricError("cpu_percent", "counter not ready")
