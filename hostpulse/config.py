from __future__ import annotations
from dataclasses import dataclass, asdict, field, fields
from pathlib import Path
import json
import logging
from typing import Dict, List, Tuple

from .errors import ConfigError
from .models import REQUIRED_METRICS

logger = logging.getLogger(__name__)

APP_DIR = Path.home() / ".hostpulse"
CFG_PATH = APP_DIR / "config.json"

DEFAULT_LOG_PATH = "resource_monitor_log.csv"
ALERT_MODES = ("every_tick", "on_transition")
MIN_REFRESH_MS = 100


def _default_disk_path() -> str:
    return Path.cwd().anchor or "/"


@dataclass
class AppConfig:
    refresh_interval_ms: int = 2000
    history_capacity: int = 30

    # Alert boundaries, percent, ascending
    caution_threshold: float = 60.0
    warning_threshold: float = 80.0
    critical_threshold: float = 90.0
    # Per-metric overrides: {"ram_percent": [50, 70, 85]}
    metric_thresholds: Dict[str, List[float]] = field(default_factory=dict)
    alert_mode: str = "every_tick"        # every_tick | on_transition
    alert_sound: bool = True

    # CSV log
    enable_logging: bool = True
    log_path: str = DEFAULT_LOG_PATH

    # Source
    network_monitoring_enabled: bool = True   # auto-detection may still turn it off
    disk_path: str = ""                       # "" → filesystem root

    # Expensive collaborators (process list) refresh every Nth tick
    slow_refresh_divisor: int = 4
    top_processes: int = 5

    log_level: str = "INFO"

    def __post_init__(self):
        if self.disk_path == "":
            self.disk_path = _default_disk_path()
        self.validate()

    def validate(self) -> None:
        self._check_types()
        if self.refresh_interval_ms < MIN_REFRESH_MS:
            raise ConfigError(f"refresh_interval_ms must be >= {MIN_REFRESH_MS}")
        if self.history_capacity < 1:
            raise ConfigError("history_capacity must be >= 1")
        _check_ascending("thresholds", self.thresholds)
        for metric, triple in self.metric_thresholds.items():
            if metric not in REQUIRED_METRICS:
                raise ConfigError(f"metric_thresholds: unknown metric {metric!r}")
            if not isinstance(triple, (list, tuple)) or len(triple) != 3 \
                    or not all(_is_number(v) for v in triple):
                raise ConfigError(f"metric_thresholds[{metric}] must be three numbers")
            _check_ascending(f"metric_thresholds[{metric}]", triple)
        if self.alert_mode not in ALERT_MODES:
            raise ConfigError(f"alert_mode must be one of {', '.join(ALERT_MODES)}")
        if self.slow_refresh_divisor < 1:
            raise ConfigError("slow_refresh_divisor must be >= 1")
        if self.top_processes < 0:
            raise ConfigError("top_processes must be >= 0")
        if logging.getLevelName(self.log_level.upper()) not in _LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(_LOG_LEVEL_NAMES)}")

    def _check_types(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            kind = _FIELD_KINDS.get(f.name)
            if kind == "int" and not (isinstance(value, int) and not isinstance(value, bool)):
                raise ConfigError(f"{f.name} must be an integer (got {value!r})")
            if kind == "number" and not _is_number(value):
                raise ConfigError(f"{f.name} must be a number (got {value!r})")
            if kind == "bool" and not isinstance(value, bool):
                raise ConfigError(f"{f.name} must be true or false (got {value!r})")
            if kind == "str" and not isinstance(value, str):
                raise ConfigError(f"{f.name} must be a string (got {value!r})")
            if kind == "dict" and not isinstance(value, dict):
                raise ConfigError(f"{f.name} must be an object (got {value!r})")

    @property
    def refresh_interval(self) -> float:
        """Refresh interval in seconds."""
        return self.refresh_interval_ms / 1000.0

    @property
    def thresholds(self) -> Tuple[float, float, float]:
        return (self.caution_threshold, self.warning_threshold, self.critical_threshold)

    def thresholds_for(self, metric: str) -> Tuple[float, float, float]:
        triple = self.metric_thresholds.get(metric)
        return tuple(float(v) for v in triple) if triple else self.thresholds


_FIELD_KINDS = {
    "refresh_interval_ms": "int",
    "history_capacity": "int",
    "slow_refresh_divisor": "int",
    "top_processes": "int",
    "caution_threshold": "number",
    "warning_threshold": "number",
    "critical_threshold": "number",
    "metric_thresholds": "dict",
    "alert_sound": "bool",
    "enable_logging": "bool",
    "network_monitoring_enabled": "bool",
    "alert_mode": "str",
    "log_path": "str",
    "disk_path": "str",
    "log_level": "str",
}

_LOG_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_LEVELS = {getattr(logging, name) for name in _LOG_LEVEL_NAMES}


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _check_ascending(what: str, triple) -> None:
    caution, warning, critical = triple
    if not (caution < warning < critical):
        raise ConfigError(
            f"{what} must be ascending: caution < warning < critical "
            f"(got {caution}/{warning}/{critical})"
        )


def ensure_dirs(path: Path = APP_DIR) -> None:
    path.mkdir(parents=True, exist_ok=True)


def load_config(path: Path = CFG_PATH) -> AppConfig:
    """Read the JSON config, writing defaults when the file does not exist.

    Unknown keys are ignored. A file that cannot be parsed or holds invalid
    values is left alone and the defaults are used instead.
    """
    path = Path(path)
    if not path.exists():
        cfg = AppConfig()
        try:
            save_config(cfg, path)
        except OSError as e:
            logger.warning("Cannot write default config to %s: %s", path, e)
        return cfg
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ConfigError("config root must be an object")
        known = {k: data[k] for k in data if k in AppConfig.__dataclass_fields__}
        return AppConfig(**known)
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Ignoring config %s (%s); using defaults", path, e)
        return AppConfig()


def save_config(cfg: AppConfig, path: Path = CFG_PATH) -> None:
    path = Path(path)
    ensure_dirs(path.parent)
    path.write_text(json.dumps(asdict(cfg), indent=2), encoding="utf-8")
