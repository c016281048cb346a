"""
Custom Exceptions for PatchStream
=================================

Every failure the orchestrator surfaces carries a stable ``code`` so callers
can branch without string-matching messages.

Usage:
    from patchstream.core.exceptions import GateError, MultiAgentTimeoutError

    try:
        result = await run_generate_multi_agent(...)
    except GateError as e:
        return {"error": e.message, "issues": e.issues}, e.status_code
"""

from typing import Optional, Any, Dict, List


class PatchStreamError(Exception):
    """Base exception for all PatchStream errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Strict gate
# ============================================

class GateError(PatchStreamError):
    """Merged output still failed strict validation after the repair attempt"""

    status_code = 422

    def __init__(self, issues: Optional[List[str]] = None, fallback_message: str = "Strict gate failed"):
        self.issues = [issue for issue in (issues or []) if issue]
        message = " | ".join(self.issues) if self.issues else fallback_message
        super().__init__(
            message,
            code="MULTI_AGENT_GATE_FAILED",
            details={"issues": self.issues}
        )


# ============================================
# Model call errors
# ============================================

class MultiAgentTimeoutError(PatchStreamError):
    """A role-scoped model call exceeded its time budget"""

    status_code = 504

    def __init__(self, role: str = "", timeout_ms: int = 0):
        super().__init__(
            "MULTI_AGENT_TIMEOUT",
            code="MULTI_AGENT_TIMEOUT",
            details={"role": role, "timeout_ms": timeout_ms}
        )
        self.role = role
        self.timeout_ms = timeout_ms


class EmptyModelResponseError(PatchStreamError):
    """Model returned no content"""

    status_code = 502

    def __init__(self, role: str = ""):
        super().__init__(
            "Empty model response",
            code="MULTI_AGENT_EMPTY_RESPONSE",
            details={"role": role}
        )


class ModelResponseParseError(PatchStreamError):
    """Model response could not be decoded as JSON"""

    status_code = 502

    def __init__(self, message: str, role: str = "", raw_preview: str = ""):
        super().__init__(
            message,
            code="MULTI_AGENT_INVALID_JSON",
            details={"role": role, "raw_preview": raw_preview[:200]}
        )


# ============================================
# Provider errors
# ============================================

class UpstreamError(PatchStreamError):
    """Chat-completion provider returned an error or could not be reached"""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(
            message,
            code="UPSTREAM_ERROR",
            details={"upstream_status": upstream_status}
        )
        self.upstream_status = upstream_status


class ProviderConfigError(PatchStreamError):
    """Provider is not configured (missing API key, unknown provider)"""

    status_code = 503

    def __init__(self, message: str = "API Key missing on Backend"):
        super().__init__(message, code="PROVIDER_NOT_CONFIGURED")


# ============================================
# Write policy
# ============================================

class PolicyViolationError(PatchStreamError):
    """A streamed file operation was blocked by the write policy gate"""

    status_code = 409

    def __init__(self, violation):
        self.violation = violation
        super().__init__(
            violation.message,
            code="POLICY_VIOLATION",
            details=violation.to_dict()
        )
