from __future__ import annotations
import logging
import time
from datetime import datetime
from typing import List, Optional, Tuple

import psutil

from .errors import RequiredMetricError, SourceInitError
from .models import ProcInfo, Sample

logger = logging.getLogger(__name__)

BYTES_PER_KB = 1024.0
BYTES_PER_MB = 1024.0 * 1024.0


# ──────────────────────────────────────────────
# Network interface detection
# ──────────────────────────────────────────────
def _is_loopback(name: str, stats) -> bool:
    if "loopback" in (getattr(stats, "flags", "") or ""):
        return True
    low = name.lower()
    return low in ("lo", "lo0") or low.startswith("loopback")


def detect_network_interfaces() -> List[str]:
    """
    Interfaces worth monitoring: up, not loopback, and preferably already
    carrying traffic. Empty when nothing suitable exists.
    """
    try:
        if_stats = psutil.net_if_stats()
        counters = psutil.net_io_counters(pernic=True)
    except (psutil.Error, OSError) as e:
        logger.warning("Network interface detection failed: %s", e)
        return []

    up = [name for name, st in if_stats.items() if st.isup and not _is_loopback(name, st)]
    active = [
        name for name in up
        if name in counters and counters[name].bytes_sent > 0
    ]
    return sorted(active or [n for n in up if n in counters])


# ──────────────────────────────────────────────
# PsutilSource – cpu / memory / disk / network metrics
# ──────────────────────────────────────────────
class PsutilSource:
    """
    Metric source backed by psutil. Rates are computed from counter deltas
    between consecutive reads, so the first read yields no rates; the
    monitor's warm-up read takes care of that.
    """

    def __init__(self, disk_path: str = "/", network_enabled: bool = True):
        self.disk_path = disk_path
        try:
            # primes the cpu_percent(None) baseline
            psutil.cpu_percent(interval=None)
            psutil.virtual_memory()
            psutil.disk_usage(disk_path)
        except (psutil.Error, OSError) as e:
            raise SourceInitError(f"psutil cannot read system metrics: {e}") from e

        self.interfaces: List[str] = detect_network_interfaces() if network_enabled else []
        self.network_enabled = bool(self.interfaces)
        if network_enabled and not self.network_enabled:
            logger.info("No active network interface found; network monitoring disabled")
        elif self.network_enabled:
            logger.info("Monitoring network interfaces: %s", ", ".join(self.interfaces))

        # disk_percent: busy time where the platform counts it, else space used
        self.disk_busy_supported = _busy_time(_disk_io_counters()) is not None
        logger.info(
            "Disk usage reported as %s",
            "busy time" if self.disk_busy_supported else f"space used on {disk_path}",
        )

        self._last_net: Optional[Tuple[int, int]] = None
        self._last_disk: Optional[Tuple[int, int]] = None
        self._last_busy: Optional[float] = None
        self._last_ts: Optional[float] = None

    # ── sample ────────────────────────────────
    def read(self) -> Sample:
        ts = datetime.now()
        try:
            cpu_total = psutil.cpu_percent(interval=None)
        except (psutil.Error, OSError) as e:
            raise RequiredMetricError("cpu_percent", str(e)) from e
        try:
            mem = psutil.virtual_memory()
        except (psutil.Error, OSError) as e:
            raise RequiredMetricError("ram_percent", str(e)) from e

        t = time.monotonic()
        dt = max(0.001, t - self._last_ts) if self._last_ts is not None else None
        self._last_ts = t

        io = _disk_io_counters()
        disk_pct = self._disk_busy_percent(io, dt)
        if disk_pct is None:
            try:
                disk_pct = psutil.disk_usage(self.disk_path).percent
            except (psutil.Error, OSError) as e:
                raise RequiredMetricError("disk_percent", str(e)) from e

        net_sent, net_recv = self._network_rates(dt)
        disk_read, disk_write = self._disk_io_rates(io, dt)

        return Sample(
            timestamp=ts,
            cpu_percent=_clamp_pct(cpu_total),
            ram_percent=_clamp_pct(mem.percent),
            disk_percent=_clamp_pct(disk_pct),
            ram_available_mb=float(mem.available) / BYTES_PER_MB,
            net_sent_kbps=net_sent,
            net_recv_kbps=net_recv,
            disk_read_kbps=disk_read,
            disk_write_kbps=disk_write,
        )

    def _network_rates(self, dt: Optional[float]) -> Tuple[Optional[float], Optional[float]]:
        if not self.network_enabled:
            return None, None
        try:
            counters = psutil.net_io_counters(pernic=True)
            picked = [counters[name] for name in self.interfaces]
        except (psutil.Error, OSError, KeyError) as e:
            logger.debug("Network counters unavailable this tick: %s", e)
            self._last_net = None
            return None, None

        cur = (sum(c.bytes_sent for c in picked), sum(c.bytes_recv for c in picked))
        prev, self._last_net = self._last_net, cur
        if prev is None or dt is None:
            return None, None
        return _rate(cur[0], prev[0], dt), _rate(cur[1], prev[1], dt)

    def _disk_busy_percent(self, io, dt: Optional[float]) -> Optional[float]:
        """Share of the interval the disks spent on I/O; None without a baseline."""
        busy = _busy_time(io) if self.disk_busy_supported else None
        prev, self._last_busy = self._last_busy, busy
        if busy is None or prev is None or dt is None:
            return None
        # busy_time is in milliseconds
        return max(0.0, busy - prev) / (dt * 1000.0) * 100.0

    def _disk_io_rates(self, io, dt: Optional[float]) -> Tuple[Optional[float], Optional[float]]:
        if io is None:
            self._last_disk = None
            return None, None

        cur = (int(io.read_bytes), int(io.write_bytes))
        prev, self._last_disk = self._last_disk, cur
        if prev is None or dt is None:
            return None, None
        return _rate(cur[0], prev[0], dt), _rate(cur[1], prev[1], dt)

    # ── processes ─────────────────────────────
    def top_processes(self, max_rows: int = 5) -> List[ProcInfo]:
        """Processes with the largest resident set, biggest first."""
        rows: List[ProcInfo] = []
        for p in psutil.process_iter(["pid", "name", "memory_info"]):
            try:
                mi = p.info.get("memory_info")
                name = p.info.get("name") or ""
                if mi is None or not name:
                    continue
                cpu_seconds = None
                try:
                    ct = p.cpu_times()
                    cpu_seconds = float(ct.user + ct.system)
                except (psutil.AccessDenied, psutil.ZombieProcess):
                    pass
                rows.append(ProcInfo(
                    pid=int(p.info["pid"]),
                    name=name,
                    rss_mb=float(mi.rss) / BYTES_PER_MB,
                    cpu_seconds=cpu_seconds,
                ))
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue

        rows.sort(key=lambda r: r.rss_mb, reverse=True)
        return rows[:max_rows]

    def close(self) -> None:
        self._last_net = None
        self._last_disk = None
        self._last_busy = None


def _disk_io_counters():
    try:
        return psutil.disk_io_counters()
    except (psutil.Error, OSError) as e:
        logger.debug("Disk I/O counters unavailable this tick: %s", e)
        return None


def _busy_time(io) -> Optional[float]:
    busy = getattr(io, "busy_time", None)
    return None if busy is None else float(busy)


def _rate(cur: int, prev: int, dt: float) -> float:
    # counters can reset (interface flap, wrap); never report negative rates
    return max(0.0, (cur - prev) / dt / BYTES_PER_KB)


def _clamp_pct(v: float) -> float:
    return max(0.0, min(100.0, float(v)))
