"""
Multi-agent architect

Usage:
    from patchstream.modules.orchestrator import run_generate_multi_agent

    result = await run_generate_multi_agent(
        prompt,
        client.create_chat_completion,
        on_status=lambda phase, label: print(phase, label),
    )
"""

from patchstream.modules.orchestrator.role_models import (
    RoleModelMap,
    resolve_role_models,
    is_multi_agent_architect_enabled,
)
from patchstream.modules.orchestrator.multi_agent_orchestrator import (
    BYPASS_RULES,
    GenerateRunResult,
    PlanRunResult,
    classify_bypass,
    resolve_conflicts_with_lead_planner,
    run_chat_completion,
    run_generate_multi_agent,
    run_plan_multi_agent,
)

__all__ = [
    "RoleModelMap",
    "resolve_role_models",
    "is_multi_agent_architect_enabled",
    "BYPASS_RULES",
    "GenerateRunResult",
    "PlanRunResult",
    "classify_bypass",
    "resolve_conflicts_with_lead_planner",
    "run_chat_completion",
    "run_generate_multi_agent",
    "run_plan_multi_agent",
]
