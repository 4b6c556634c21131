"""Tests for AppConfig validation and the JSON config file."""

import json

import pytest

from hostpulse.config import AppConfig, load_config, save_config
from hostpulse.errors import ConfigError


class TestAppConfig:
    def test_defaults(self):
        cfg = AppConfig()
        assert cfg.refresh_interval_ms == 2000
        assert cfg.refresh_interval == pytest.approx(2.0)
        assert cfg.history_capacity == 30
        assert cfg.thresholds == (60.0, 80.0, 90.0)
        assert cfg.alert_mode == "every_tick"
        assert cfg.enable_logging
        assert cfg.log_path == "resource_monitor_log.csv"
        assert cfg.disk_path

    @pytest.mark.parametrize("kwargs", [
        {"refresh_interval_ms": 50},
        {"history_capacity": 0},
        {"caution_threshold": 85.0},
        {"warning_threshold": 95.0},
        {"alert_mode": "sometimes"},
        {"slow_refresh_divisor": 0},
        {"top_processes": -1},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            AppConfig(**kwargs)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            AppConfig(history_capacity=-3)

    @pytest.mark.parametrize("kwargs", [
        {"history_capacity": 2.5},
        {"refresh_interval_ms": "500"},
        {"slow_refresh_divisor": True},
        {"top_processes": None},
        {"caution_threshold": "60"},
        {"enable_logging": "yes"},
        {"alert_sound": 1},
        {"network_monitoring_enabled": None},
        {"log_level": 10},
        {"log_level": "LOUD"},
        {"alert_mode": 1},
        {"log_path": None},
        {"disk_path": 0},
        {"metric_thresholds": [50, 70, 85]},
    ])
    def test_wrong_types_rejected(self, kwargs):
        with pytest.raises(ConfigError):
            AppConfig(**kwargs)

    def test_integral_float_thresholds_accepted(self):
        cfg = AppConfig(caution_threshold=50, warning_threshold=70.5, critical_threshold=95)
        assert cfg.thresholds == (50, 70.5, 95)

    def test_metric_thresholds(self):
        cfg = AppConfig(metric_thresholds={"ram_percent": [40, 50, 70]})
        assert cfg.thresholds_for("ram_percent") == (40.0, 50.0, 70.0)
        assert cfg.thresholds_for("cpu_percent") == (60.0, 80.0, 90.0)

    @pytest.mark.parametrize("overrides", [
        {"ram_percent": [70, 50, 90]},
        {"ram_percent": [40, 50]},
        {"ram_percent": ["40", "50", "70"]},
        {"net_sent_kbps": [1, 2, 3]},
    ])
    def test_invalid_metric_thresholds(self, overrides):
        with pytest.raises(ConfigError):
            AppConfig(metric_thresholds=overrides)


class TestConfigFile:
    def test_missing_file_written_with_defaults(self, tmp_path):
        path = tmp_path / "cfg" / "config.json"
        cfg = load_config(path)
        assert path.exists()
        data = json.loads(path.read_text())
        assert data["refresh_interval_ms"] == cfg.refresh_interval_ms == 2000

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        cfg = AppConfig(refresh_interval_ms=500, history_capacity=10,
                        alert_mode="on_transition", disk_path="/")
        save_config(cfg, path)
        assert load_config(path) == cfg

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"history_capacity": 12, "theme": "dark"}))
        cfg = load_config(path)
        assert cfg.history_capacity == 12

    def test_broken_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        cfg = load_config(path)
        assert cfg.refresh_interval_ms == 2000
        # left alone for the user to fix
        assert path.read_text() == "{not json"

    def test_invalid_values_fall_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"caution_threshold": 95}))
        assert load_config(path).caution_threshold == 60.0

    def test_non_object_root(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        assert load_config(path) == AppConfig()

    @pytest.mark.parametrize("content", [
        {"history_capacity": 2.5},
        {"log_level": 10},
        {"enable_logging": "false"},
    ])
    def test_wrong_typed_values_fall_back_to_defaults(self, tmp_path, content):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(content))
        assert load_config(path) == AppConfig()

    def test_metric_thresholds_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        cfg = AppConfig(metric_thresholds={"ram_percent": [40.0, 50.0, 70.0]}, disk_path="/")
        save_config(cfg, path)
        assert load_config(path).thresholds_for("ram_percent") == (40.0, 50.0, 70.0)
