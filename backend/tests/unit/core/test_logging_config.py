"""
Unit Tests for logging configuration
"""
import json
import logging

from patchstream.core.logging_config import (
    JSONFormatter,
    PatchStreamLogger,
    generate_request_id,
    get_run_id,
    logger,
    set_run_id,
)


def make_record(message="hello", **extra):
    record = logging.LogRecord("patchstream", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogger:
    """Test custom logger"""

    def test_logger_class(self):
        assert isinstance(logger, PatchStreamLogger)

    def test_request_id_shape(self):
        assert len(generate_request_id()) == 8

    def test_agent_event_extra(self, caplog):
        with caplog.at_level(logging.INFO, logger="patchstream"):
            logger.log_agent_event("css", "completed", model="deepseek-chat", duration_ms=12.0)

        record = caplog.records[-1]
        assert record.getMessage() == "Agent css: completed [deepseek-chat] (12ms)"
        assert record.agent_role == "css"

    def test_gate_failure_is_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger="patchstream"):
            logger.log_gate_result("plan", False, issues=["a", "b"], attempt=2)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Gate plan attempt 2: failed (2 issues)"


class TestJSONFormatter:
    """Test structured output"""

    def test_includes_run_id_and_extra(self):
        set_run_id("run-1")
        try:
            data = json.loads(JSONFormatter().format(make_record(gate="patch")))
        finally:
            set_run_id("")

        assert data["message"] == "hello"
        assert data["run_id"] == "run-1"
        assert data["gate"] == "patch"
        assert get_run_id() == ""
