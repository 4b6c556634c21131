from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Dict, Optional, Tuple

# Metric names, in log-column order.
REQUIRED_METRICS = ("cpu_percent", "ram_percent", "disk_percent")
OPTIONAL_METRICS = (
    "ram_available_mb",
    "net_sent_kbps",
    "net_recv_kbps",
    "disk_read_kbps",
    "disk_write_kbps",
)
METRICS = REQUIRED_METRICS + OPTIONAL_METRICS
NETWORK_METRICS = ("net_sent_kbps", "net_recv_kbps")
DISK_IO_METRICS = ("disk_read_kbps", "disk_write_kbps")


class Level(IntEnum):
    NORMAL = 0
    CAUTION = 1
    WARNING = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class Sample:
    """One reading of every tracked metric. ``None`` means unavailable."""
    timestamp: datetime
    cpu_percent: float
    ram_percent: float
    disk_percent: float
    ram_available_mb: Optional[float] = None
    net_sent_kbps: Optional[float] = None
    net_recv_kbps: Optional[float] = None
    disk_read_kbps: Optional[float] = None
    disk_write_kbps: Optional[float] = None

    def __post_init__(self):
        for name in REQUIRED_METRICS:
            if getattr(self, name) is None:
                raise ValueError(f"required metric {name} is missing")

    def metrics(self) -> Dict[str, float]:
        """Available metric values keyed by name."""
        out: Dict[str, float] = {}
        for f in fields(self):
            if f.name == "timestamp":
                continue
            v = getattr(self, f.name)
            if v is not None:
                out[f.name] = float(v)
        return out

    def unavailable(self) -> Tuple[str, ...]:
        return tuple(name for name in METRICS if getattr(self, name) is None)


@dataclass(frozen=True)
class StatsSnapshot:
    count: int
    max: float
    mean: float


@dataclass(frozen=True)
class AlertEvent:
    timestamp: datetime
    metric: str
    level: Level
    value: float

    @property
    def summary(self) -> str:
        return f"[{self.level.label}] {METRIC_LABELS.get(self.metric, self.metric)} at {self.value:.1f}%"


@dataclass(frozen=True)
class ProcInfo:
    pid: int
    name: str
    rss_mb: float
    cpu_seconds: Optional[float] = None


@dataclass(frozen=True)
class Frame:
    """Everything a renderer needs for one tick. Immutable."""
    tick: int
    elapsed: timedelta
    sample: Sample
    stats: Dict[str, StatsSnapshot]
    history: Dict[str, Tuple[float, ...]]
    levels: Dict[str, Level]
    overall: Level
    events: Tuple[AlertEvent, ...] = ()
    extras: Dict[str, object] = field(default_factory=dict)


METRIC_LABELS = {
    "cpu_percent":      "CPU",
    "ram_percent":      "RAM",
    "disk_percent":     "DISK",
    "ram_available_mb": "RAM available",
    "net_sent_kbps":    "Net sent",
    "net_recv_kbps":    "Net received",
    "disk_read_kbps":   "Disk read",
    "disk_write_kbps":  "Disk write",
}
