from __future__ import annotations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import ConfigError
from .models import AlertEvent, Level, REQUIRED_METRICS, Sample

EVERY_TICK = "every_tick"
ON_TRANSITION = "on_transition"


def classify(value: float, caution: float, warning: float, critical: float) -> Level:
    if value > critical:
        return Level.CRITICAL
    if value > warning:
        return Level.WARNING
    if value > caution:
        return Level.CAUTION
    return Level.NORMAL


def _check_ascending(what: str, triple: Sequence[float]) -> None:
    caution, warning, critical = triple
    if not (caution < warning < critical):
        raise ConfigError(f"{what} must be ascending (got {caution}/{warning}/{critical})")


class AlertEvaluator:
    """
    Stateless classifier: sample → {metric: Level}.

    Alert events are raised for every metric above the caution boundary.
    With mode ``on_transition`` only a rise in level raises an event; the
    caller supplies the previous levels.
    """

    def __init__(
        self,
        caution: float = 60.0,
        warning: float = 80.0,
        critical: float = 90.0,
        metrics: Iterable[str] = REQUIRED_METRICS,
        mode: str = EVERY_TICK,
        overrides: Optional[Mapping[str, Sequence[float]]] = None,
    ):
        _check_ascending("thresholds", (caution, warning, critical))
        if mode not in (EVERY_TICK, ON_TRANSITION):
            raise ConfigError(f"unknown alert mode: {mode}")
        self.caution = float(caution)
        self.warning = float(warning)
        self.critical = float(critical)
        self.metrics = tuple(metrics)
        self.mode = mode
        self.overrides: Dict[str, Tuple[float, float, float]] = {}
        for name, triple in (overrides or {}).items():
            if len(triple) != 3:
                raise ConfigError(f"thresholds for {name} need caution/warning/critical")
            _check_ascending(f"thresholds for {name}", triple)
            self.overrides[name] = tuple(float(v) for v in triple)

    @classmethod
    def from_config(cls, cfg) -> "AlertEvaluator":
        return cls(
            cfg.caution_threshold,
            cfg.warning_threshold,
            cfg.critical_threshold,
            mode=cfg.alert_mode,
            overrides=cfg.metric_thresholds,
        )

    def classify(
        self,
        value: float,
        caution: Optional[float] = None,
        warning: Optional[float] = None,
        critical: Optional[float] = None,
    ) -> Level:
        return classify(
            value,
            self.caution if caution is None else caution,
            self.warning if warning is None else warning,
            self.critical if critical is None else critical,
        )

    def thresholds_for(self, metric: str) -> Tuple[float, float, float]:
        return self.overrides.get(metric, (self.caution, self.warning, self.critical))

    def evaluate(self, sample: Sample) -> Dict[str, Level]:
        levels: Dict[str, Level] = {}
        for name in self.metrics:
            value = getattr(sample, name, None)
            if value is None:
                continue
            levels[name] = self.classify(value, *self.thresholds_for(name))
        return levels

    def events(
        self,
        sample: Sample,
        levels: Mapping[str, Level],
        previous: Optional[Mapping[str, Level]] = None,
    ) -> List[AlertEvent]:
        previous = previous or {}
        out: List[AlertEvent] = []
        for name, level in levels.items():
            if level <= Level.NORMAL:
                continue
            if self.mode == ON_TRANSITION and level <= previous.get(name, Level.NORMAL):
                continue
            out.append(AlertEvent(
                timestamp=sample.timestamp,
                metric=name,
                level=level,
                value=float(getattr(sample, name)),
            ))
        return out

    @staticmethod
    def overall(levels: Mapping[str, Level]) -> Level:
        return max(levels.values(), default=Level.NORMAL)


STATUS_TEXT = {
    Level.NORMAL:   "Status: resources stable",
    Level.CAUTION:  "CAUTION: keep an eye on resources",
    Level.WARNING:  "ALERT: excessive resource usage",
    Level.CRITICAL: "CRITICAL ALERT: critical resource usage",
}


def status_text(level: Level) -> str:
    return STATUS_TEXT[level]
