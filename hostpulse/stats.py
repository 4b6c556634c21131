from __future__ import annotations
import math
from typing import Tuple

from .models import StatsSnapshot


class RunningStats:
    """
    Online count / max / mean for one metric.
    Mean uses the incremental form so long runs do not drift.
    """

    __slots__ = ("count", "max", "mean")

    def __init__(self):
        self.count = 0
        self.max = 0.0
        self.mean = 0.0

    def update(self, value: float) -> Tuple[float, float]:
        value = float(value)
        if not math.isfinite(value):
            raise ValueError(f"non-finite value: {value!r}")
        self.count += 1
        if self.count == 1:
            self.max = value
            self.mean = value
        else:
            if value > self.max:
                self.max = value
            self.mean += (value - self.mean) / self.count
        return self.max, self.mean

    def snapshot(self) -> StatsSnapshot:
        return StatsSnapshot(count=self.count, max=self.max, mean=self.mean)

    def __repr__(self) -> str:
        return f"RunningStats(count={self.count}, max={self.max:.3f}, mean={self.mean:.3f})"
