"""Tests for the structured logger."""

import io
import json

import pytest

from aerotest.core.logging import StructuredLogger, get_logger, set_log_level
from aerotest.geometry.features import extract_features


def test_json_lines():
    buf = io.StringIO()
    log = StructuredLogger("test", output=buf, min_level="DEBUG")
    log.info("hello", seed=521)
    record = json.loads(buf.getvalue())
    assert record["level"] == "INFO"
    assert record["message"] == "hello"
    assert record["logger"] == "test"
    assert record["seed"] == 521


def test_level_filtering():
    buf = io.StringIO()
    log = StructuredLogger("test", output=buf, min_level="WARN")
    log.debug("hidden")
    log.info("hidden")
    log.warn("shown")
    lines = buf.getvalue().splitlines()
    assert len(lines) == 1
    assert not log.is_enabled_for("INFO")
    assert log.is_enabled_for("ERROR")


def test_timer_logs_elapsed():
    buf = io.StringIO()
    log = StructuredLogger("test", output=buf, min_level="DEBUG")
    with log.timer("stage", tier="standard"):
        pass
    record = json.loads(buf.getvalue())
    assert record["message"] == "stage completed"
    assert record["elapsed_ms"] >= 0.0
    assert record["tier"] == "standard"


def test_get_logger_cached():
    assert get_logger("aerotest.test") is get_logger("aerotest.test")


def test_set_log_level():
    log = get_logger("aerotest.test.level")
    try:
        set_log_level("ERROR")
        assert not log.is_enabled_for("WARN")
        assert get_logger("aerotest.test.level.new").is_enabled_for("ERROR")
        assert not get_logger("aerotest.test.level.new").is_enabled_for("INFO")
    finally:
        set_log_level("INFO")


def test_unknown_level():
    with pytest.raises(ValueError):
        set_log_level("LOUD")


def test_fallback_logs_warning(capsys):
    features = extract_features(b"")
    assert features.fallback
    err = capsys.readouterr().err
    assert "nominal envelope" in err
