"""
Unit Tests for custom exceptions
"""
from patchstream.core.exceptions import (
    GateError,
    ModelResponseParseError,
    MultiAgentTimeoutError,
    PatchStreamError,
    ProviderConfigError,
    UpstreamError,
)


class TestGateError:
    """Test GateError"""

    def test_joins_issues(self):
        error = GateError(["Plan must contain 6-12 steps", "", "Missing HTML file in plan"])

        assert error.message == "Plan must contain 6-12 steps | Missing HTML file in plan"
        assert error.issues == ["Plan must contain 6-12 steps", "Missing HTML file in plan"]
        assert error.code == "MULTI_AGENT_GATE_FAILED"
        assert error.status_code == 422

    def test_fallback_message(self):
        assert GateError([]).message == "Strict gate failed"
        assert GateError(None, "Patch gate failed").message == "Patch gate failed"

    def test_to_dict(self):
        data = GateError(["x"]).to_dict()
        assert data == {"code": "MULTI_AGENT_GATE_FAILED", "message": "x", "details": {"issues": ["x"]}}


class TestOtherErrors:
    """Test error codes"""

    def test_timeout(self):
        error = MultiAgentTimeoutError("css", 500)
        assert str(error) == "MULTI_AGENT_TIMEOUT"
        assert error.details == {"role": "css", "timeout_ms": 500}

    def test_parse_error_truncates_preview(self):
        error = ModelResponseParseError("bad json", role="planner", raw_preview="x" * 500)
        assert len(error.details["raw_preview"]) == 200

    def test_hierarchy(self):
        for error in (UpstreamError("down", 500), ProviderConfigError(), GateError(["x"])):
            assert isinstance(error, PatchStreamError)

    def test_provider_default_message(self):
        assert ProviderConfigError().message == "API Key missing on Backend"
