"""
Logging Tests
=============
"""

import json
import logging

from jt.utils.log import JSONFormatter, get_logger, log_file_path, set_level


def make_record(**extra):
    record = logging.LogRecord("jt.test", logging.INFO, __file__, 1, "stored %d", (7,), None)
    record.__dict__.update(extra)
    return record


class TestJSONFormatter:
    def test_core_fields(self):
        out = json.loads(JSONFormatter().format(make_record()))
        assert out["level"] == "INFO"
        assert out["logger"] == "jt.test"
        assert out["message"] == "stored 7"

    def test_known_extras_are_flattened(self):
        out = json.loads(JSONFormatter().format(make_record(trip_id=7, reason="jitter", colour="red")))
        assert out["trip_id"] == 7
        assert out["reason"] == "jitter"
        assert "colour" not in out


def test_log_file_path_honours_env(tmp_path, monkeypatch):
    monkeypatch.setenv("JT_LOG_DIR", str(tmp_path))
    assert log_file_path("replay") == tmp_path / "replay.log"


def test_set_level_reaches_existing_loggers():
    logger = get_logger("jt.test_set_level")
    try:
        set_level(logging.DEBUG)
        assert logger.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in logger.handlers)
    finally:
        set_level(logging.INFO)
