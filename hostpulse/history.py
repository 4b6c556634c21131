from __future__ import annotations
from collections import deque
from typing import Deque, List, Optional, Sequence, Tuple

SPARK_CHARS = "▁▂▃▄▅▆▇█"


def scale_heights(values: Sequence[float], levels: int) -> List[int]:
    """
    Bucket each value into [0, levels-1], scaled linearly between the
    sequence's own min and max. Flat sequences scale against min+1.
    """
    if levels < 1:
        raise ValueError("levels must be >= 1")
    if not values:
        return []
    lo = min(values)
    hi = max(values)
    if hi <= lo:
        hi = lo + 1.0
    span = hi - lo
    return [min(int((v - lo) / span * levels), levels - 1) for v in values]


def sparkline(values: Sequence[float]) -> str:
    return "".join(SPARK_CHARS[h] for h in scale_heights(values, len(SPARK_CHARS)))


class HistoryBuffer:
    """Fixed-capacity FIFO of the most recent values, oldest first."""

    def __init__(self, capacity: int = 30):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._values: Deque[float] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def capacity(self) -> int:
        return self._values.maxlen or 0

    def push(self, value: float) -> None:
        # deque(maxlen) drops the oldest entry before appending
        self._values.append(float(value))

    def snapshot(self) -> Tuple[float, ...]:
        return tuple(self._values)

    def window_range(self) -> Optional[Tuple[float, float]]:
        if not self._values:
            return None
        return min(self._values), max(self._values)

    def render_heights(self, levels: int) -> List[int]:
        # Recomputed per call; no cached min/max.
        return scale_heights(self.snapshot(), levels)

    def sparkline(self) -> str:
        return sparkline(self.snapshot())
