import json
import logging

import pytest

from geofleet.config import Settings
from geofleet.observability.logging import JsonFormatter, configure_logging


def test_defaults_are_valid():
    s = Settings()
    s.validate_runtime()
    assert s.earth_radius_m == 6_371_000.0
    assert s.average_speed_mps == 1.5
    assert s.two_opt_max_iterations == 100
    assert (s.auto_nearest_neighbor_max, s.auto_hybrid_max) == (5, 15)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GEOFLEET_DWELL_REFIRE", "true")
    monkeypatch.setenv("GEOFLEET_AVERAGE_SPEED_MPS", "2.5")
    s = Settings()
    assert s.dwell_refire is True
    assert s.average_speed_mps == 2.5


@pytest.mark.parametrize(
    "overrides",
    [
        {"average_speed_mps": 0},
        {"earth_radius_m": -1},
        {"two_opt_max_iterations": 0},
        {"auto_nearest_neighbor_max": 20, "auto_hybrid_max": 10},
    ],
)
def test_invalid_settings_fail_fast(overrides):
    with pytest.raises(RuntimeError):
        Settings(**overrides).validate_runtime()


def test_configure_logging_installs_one_handler():
    configure_logging(level="DEBUG")
    configure_logging(level="INFO")
    logger = logging.getLogger("geofleet")
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO


def test_json_formatter_emits_one_object():
    record = logging.LogRecord("geofleet.test", logging.WARNING, __file__, 1, "robot %s", ("r1",), None)
    entry = json.loads(JsonFormatter().format(record))
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "geofleet.test"
    assert entry["message"] == "robot r1"


def test_settings_cover_algorithms_logging_and_monitor_only(monkeypatch):
    monkeypatch.setenv("GEOFLEET_ENVIRONMENT", "production")
    s = Settings()
    assert not hasattr(s, "environment")
    assert set(Settings.model_fields) == {
        "log_level",
        "log_json",
        "earth_radius_m",
        "average_speed_mps",
        "two_opt_max_iterations",
        "auto_nearest_neighbor_max",
        "auto_hybrid_max",
        "dwell_refire",
    }
