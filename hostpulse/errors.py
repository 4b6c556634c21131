from __future__ import annotations


class HostPulseError(Exception):
    pass


class ConfigError(HostPulseError, ValueError):
    pass


class MetricSourceError(HostPulseError):
    """Raised by a metric source that cannot produce a sample."""


class SourceInitError(MetricSourceError):
    """No usable metric source; the monitor cannot start."""


class RequiredMetricError(MetricSourceError):
    """CPU, RAM or disk could not be read this tick."""

    def __init__(self, metric: str, reason: str = ""):
        self.metric = metric
        self.reason = reason
        msg = f"cannot read {metric}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class LogSinkError(HostPulseError):
    pass
