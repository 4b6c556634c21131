from __future__ import annotations
import logging
import math
import threading
import time
from datetime import timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from .alerts import AlertEvaluator
from .config import AppConfig
from .errors import MetricSourceError, SourceInitError
from .history import HistoryBuffer
from .models import METRICS, AlertEvent, Frame, Level, Sample, StatsSnapshot
from .stats import RunningStats

logger = logging.getLogger(__name__)

STOPPED_MESSAGE = "Monitoring stopped."


class MonitorState(Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    STOPPED = "stopped"


# ──────────────────────────────────────────────
# Collaborator interfaces
# ──────────────────────────────────────────────
# Duck-typed; these bases document the contract and give no-op defaults.

class MetricSource:
    def read(self) -> Sample:
        raise NotImplementedError

    def close(self) -> None:
        pass


class Renderer:
    def render(self, frame: Frame) -> None:
        raise NotImplementedError

    def reset(self) -> None:
        pass

    def status(self, message: str) -> None:
        pass


class LogSink:
    def append(self, sample: Sample) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        pass


# ──────────────────────────────────────────────
# Monitor – the sampling loop
# ──────────────────────────────────────────────
class Monitor:
    """
    Owns per-metric RunningStats and HistoryBuffers plus the alert
    evaluator, and drives one tick per refresh interval:

        source.read() → stats / history / levels → renderer.render → log_sink.append

    All aggregator state is touched only by the thread calling tick()/run().
    Collaborators receive immutable Frames and Samples.
    """

    def __init__(
        self,
        source,
        renderer=None,
        log_sink=None,
        cfg: Optional[AppConfig] = None,
        evaluator: Optional[AlertEvaluator] = None,
        slow_tasks: Optional[Dict[str, Callable[[], object]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cfg = cfg or AppConfig()
        self.source = source
        self.renderer = renderer
        self.log_sink = log_sink
        self.evaluator = evaluator or AlertEvaluator.from_config(self.cfg)
        self._clock = clock

        self.state = MonitorState.INITIALIZING
        self.stats: Dict[str, RunningStats] = {m: RunningStats() for m in METRICS}
        self.history: Dict[str, HistoryBuffer] = {
            m: HistoryBuffer(self.cfg.history_capacity) for m in METRICS
        }
        self.levels: Dict[str, Level] = {}

        self.tick_count = 0
        self.skipped_ticks = 0
        self.rendering_enabled = renderer is not None
        self.logging_enabled = log_sink is not None and self.cfg.enable_logging
        self._renderer_reset_attempted = False

        # Expensive collaborators refreshed every slow_refresh_divisor ticks
        self._slow_tasks: Dict[str, Callable[[], object]] = dict(slow_tasks or {})
        self._slow_results: Dict[str, object] = {}

        self._alert_listeners: List[Callable[[AlertEvent], None]] = []
        self._started_at: Optional[float] = None

    # ── public API ────────────────────────────
    def on_alert(self, listener: Callable[[AlertEvent], None]) -> None:
        self._alert_listeners.append(listener)

    def start(self) -> None:
        """Warm-up read (discarded), then RUNNING. Raises SourceInitError."""
        if self.state is not MonitorState.INITIALIZING:
            raise RuntimeError(f"cannot start a monitor that is {self.state.value}")
        try:
            self.source.read()
        except SourceInitError:
            raise
        except MetricSourceError as e:
            raise SourceInitError(f"metric source failed on warm-up read: {e}") from e
        self._started_at = self._clock()
        self.state = MonitorState.RUNNING
        logger.info(
            "Monitoring started - refresh every %d ms, history %d samples",
            self.cfg.refresh_interval_ms, self.cfg.history_capacity,
        )

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Blocking loop until stop_event is set. Cancellation is polled once per tick."""
        if stop_event is None:
            stop_event = threading.Event()
        self.start()
        try:
            while not stop_event.is_set():
                self.tick()
                # wakes early when cancelled
                if stop_event.wait(self.cfg.refresh_interval):
                    break
        finally:
            self.stop()

    def tick(self) -> Optional[Frame]:
        """One sampling iteration. Returns None when the tick was skipped."""
        if self.state is not MonitorState.RUNNING:
            raise RuntimeError(f"tick() on a monitor that is {self.state.value}")

        try:
            sample = self.source.read()
        except MetricSourceError as e:
            self.skipped_ticks += 1
            logger.warning("Skipping tick: %s", e)
            return None

        for name, value in sample.metrics().items():
            if name not in self.stats:
                continue
            if not math.isfinite(value):
                logger.debug("Ignoring non-finite %s reading: %r", name, value)
                continue
            self.stats[name].update(value)
            self.history[name].push(value)

        levels = self.evaluator.evaluate(sample)
        events = self.evaluator.events(sample, levels, self.levels)
        self.levels = levels

        self._refresh_slow_tasks()
        self.tick_count += 1

        frame = Frame(
            tick=self.tick_count,
            elapsed=self.elapsed,
            sample=sample,
            stats=self.stats_snapshot(),
            history=self.history_snapshot(),
            levels=dict(levels),
            overall=self.evaluator.overall(levels),
            events=tuple(events),
            extras=dict(self._slow_results),
        )

        self._notify(events)
        self._render(frame)
        self._log(sample)
        return frame

    def stop(self) -> None:
        if self.state is MonitorState.STOPPED:
            return
        self.state = MonitorState.STOPPED
        if self.rendering_enabled:
            try:
                status = getattr(self.renderer, "status", None)
                if status is not None:
                    status(STOPPED_MESSAGE)
            except Exception as e:
                logger.warning("Renderer could not show final status: %s", e)
        logger.info("%s %d ticks, %d skipped", STOPPED_MESSAGE, self.tick_count, self.skipped_ticks)
        for name, obj in (("log sink", self.log_sink), ("metric source", self.source)):
            close = getattr(obj, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:
                logger.warning("Closing %s failed: %s", name, e)

    # ── snapshots ─────────────────────────────
    @property
    def elapsed(self) -> timedelta:
        if self._started_at is None:
            return timedelta(0)
        return timedelta(seconds=self._clock() - self._started_at)

    def stats_snapshot(self) -> Dict[str, StatsSnapshot]:
        return {name: s.snapshot() for name, s in self.stats.items() if s.count}

    def history_snapshot(self) -> Dict[str, tuple]:
        return {name: h.snapshot() for name, h in self.history.items() if len(h)}

    # ── collaborator calls ────────────────────
    def _refresh_slow_tasks(self) -> None:
        if not self._slow_tasks:
            return
        if self.tick_count % self.cfg.slow_refresh_divisor != 0:
            return
        for name, task in self._slow_tasks.items():
            try:
                self._slow_results[name] = task()
            except Exception as e:
                logger.warning("Slow refresh of %s failed: %s", name, e)

    def _notify(self, events: List[AlertEvent]) -> None:
        for ev in events:
            logger.debug("Alert %s", ev.summary)
            for listener in self._alert_listeners:
                try:
                    listener(ev)
                except Exception as e:
                    logger.warning("Alert listener failed: %s", e)

    def _render(self, frame: Frame) -> None:
        if not self.rendering_enabled:
            return
        try:
            self.renderer.render(frame)
            return
        except Exception as e:
            logger.error("Renderer failed: %s", e, exc_info=True)

        if self._renderer_reset_attempted:
            self._disable_rendering("renderer failed again after reset")
            return
        self._renderer_reset_attempted = True
        reset = getattr(self.renderer, "reset", None)
        if reset is None:
            return
        try:
            reset()
            logger.info("Renderer reinitialized")
        except Exception as e:
            self._disable_rendering(f"renderer reset failed: {e}")

    def _disable_rendering(self, reason: str) -> None:
        self.rendering_enabled = False
        logger.error("Rendering disabled for the rest of the run (%s); sampling continues", reason)

    def _log(self, sample: Sample) -> None:
        if not self.logging_enabled:
            return
        try:
            ok = self.log_sink.append(sample)
        except Exception as e:
            logger.error("Error saving log: %s", e)
            ok = False
        if ok is False:
            self.logging_enabled = False
            logger.error("Logging disabled for the rest of the run")
