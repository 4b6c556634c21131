"""Tests for alert classification and alert events."""

import pytest

from conftest import make_sample
from hostpulse.alerts import AlertEvaluator, classify, status_text
from hostpulse.config import AppConfig
from hostpulse.errors import ConfigError
from hostpulse.models import Level


class TestClassify:
    def test_default_boundaries(self):
        levels = [classify(v, 60, 80, 90) for v in (10, 65, 85, 95)]
        assert levels == [Level.NORMAL, Level.CAUTION, Level.WARNING, Level.CRITICAL]

    @pytest.mark.parametrize(
        "value,expected",
        [
            (60.0, Level.NORMAL),
            (60.01, Level.CAUTION),
            (80.0, Level.CAUTION),
            (90.0, Level.WARNING),
            (90.5, Level.CRITICAL),
        ],
    )
    def test_boundaries_are_strict(self, value, expected):
        assert classify(value, 60, 80, 90) == expected

    def test_monotonic_in_value(self):
        values = [v / 2 for v in range(0, 201)]
        levels = [classify(v, 60, 80, 90) for v in values]
        assert levels == sorted(levels)

    def test_deterministic(self):
        assert {classify(72.5, 60, 80, 90) for _ in range(50)} == {Level.CAUTION}

    def test_levels_are_ordered(self):
        assert Level.NORMAL < Level.CAUTION < Level.WARNING < Level.CRITICAL


class TestAlertEvaluator:
    def test_rejects_unordered_thresholds(self):
        with pytest.raises(ConfigError):
            AlertEvaluator(80, 60, 90)

    def test_rejects_unknown_mode(self):
        with pytest.raises(ConfigError):
            AlertEvaluator(mode="sometimes")

    def test_method_classify_uses_configured_thresholds(self):
        ev = AlertEvaluator(10, 20, 30)
        assert ev.classify(25) == Level.WARNING
        assert ev.classify(25, 60, 80, 90) == Level.NORMAL

    def test_evaluate_percent_metrics(self):
        ev = AlertEvaluator()
        levels = ev.evaluate(make_sample(cpu=95, ram=65, disk=10))
        assert levels == {
            "cpu_percent": Level.CRITICAL,
            "ram_percent": Level.CAUTION,
            "disk_percent": Level.NORMAL,
        }

    def test_evaluate_skips_unavailable(self):
        ev = AlertEvaluator(metrics=("cpu_percent", "net_sent_kbps"))
        levels = ev.evaluate(make_sample(cpu=50, net_sent_kbps=None))
        assert levels == {"cpu_percent": Level.NORMAL}

    def test_overall(self):
        assert AlertEvaluator.overall({}) == Level.NORMAL
        assert AlertEvaluator.overall(
            {"a": Level.CAUTION, "b": Level.CRITICAL, "c": Level.NORMAL}
        ) == Level.CRITICAL

    def test_events_every_tick(self):
        ev = AlertEvaluator()
        sample = make_sample(cpu=85, ram=65, disk=10)
        levels = ev.evaluate(sample)
        first = ev.events(sample, levels, None)
        again = ev.events(sample, levels, levels)
        assert {e.metric for e in first} == {"cpu_percent", "ram_percent"}
        # no debouncing: same events on the next tick
        assert [(e.metric, e.level) for e in again] == [(e.metric, e.level) for e in first]

    def test_events_carry_value_and_timestamp(self):
        ev = AlertEvaluator()
        sample = make_sample(cpu=91.5)
        (event,) = ev.events(sample, ev.evaluate(sample))
        assert event.level == Level.CRITICAL
        assert event.value == pytest.approx(91.5)
        assert event.timestamp == sample.timestamp
        assert "CPU" in event.summary

    def test_events_on_transition(self):
        ev = AlertEvaluator(mode="on_transition")
        seq = [make_sample(cpu=v) for v in (65, 66, 85, 85, 70, 95)]
        fired = []
        previous = {}
        for s in seq:
            levels = ev.evaluate(s)
            fired.append([e.level for e in ev.events(s, levels, previous)])
            previous = levels
        assert fired == [
            [Level.CAUTION],
            [],
            [Level.WARNING],
            [],
            [],
            [Level.CRITICAL],
        ]

    def test_from_config(self, cfg):
        ev = AlertEvaluator.from_config(cfg)
        assert (ev.caution, ev.warning, ev.critical) == (60.0, 80.0, 90.0)
        assert ev.mode == "every_tick"

    def test_per_metric_thresholds(self):
        ev = AlertEvaluator(overrides={"ram_percent": (40, 50, 70)})
        levels = ev.evaluate(make_sample(cpu=65, ram=65, disk=65))
        assert levels == {
            "cpu_percent": Level.CAUTION,
            "ram_percent": Level.WARNING,
            "disk_percent": Level.CAUTION,
        }
        assert ev.thresholds_for("ram_percent") == (40.0, 50.0, 70.0)
        assert ev.thresholds_for("cpu_percent") == (60.0, 80.0, 90.0)

    def test_per_metric_thresholds_from_config(self):
        cfg = AppConfig(metric_thresholds={"ram_percent": [40, 50, 70]}, disk_path="/")
        ev = AlertEvaluator.from_config(cfg)
        sample = make_sample(cpu=55, ram=75)
        (event,) = ev.events(sample, ev.evaluate(sample))
        assert (event.metric, event.level) == ("ram_percent", Level.CRITICAL)

    def test_rejects_unordered_override(self):
        with pytest.raises(ConfigError):
            AlertEvaluator(overrides={"ram_percent": (70, 50, 90)})


def test_status_text_per_level():
    texts = {status_text(level) for level in Level}
    assert len(texts) == 4
