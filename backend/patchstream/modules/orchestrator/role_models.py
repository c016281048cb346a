"""
Role model resolution for the multi-agent architect.

Each role gets its model from, in order:
1. model_routing["multiAgent"]["models"][role]
2. DEEPSEEK_MODEL_{ROLE}_{THINKING|FAST} environment override
3. routing fallback (plannerModel / executorModel)
4. deepseek-chat (fast) or deepseek-reasoner (thinking)
"""

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from patchstream.core.config import parse_bool, settings


DEFAULT_FAST_MODEL = "deepseek-chat"
DEFAULT_THINKING_MODEL = "deepseek-reasoner"

# Routing key -> environment key segment
ROLE_ENV_NAMES = {
    "planner": "PLANNER",
    "html": "HTML",
    "css": "CSS",
    "js": "JS",
    "resolver": "RESOLVER",
}


@dataclass(frozen=True)
class RoleModelMap:
    planner: str
    html: str
    css: str
    javascript: str
    resolver: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def default_role_model(thinking_mode: bool) -> str:
    return DEFAULT_THINKING_MODEL if thinking_mode else DEFAULT_FAST_MODEL


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def role_env_key(role: str, thinking_mode: bool) -> str:
    suffix = "THINKING" if thinking_mode else "FAST"
    return f"DEEPSEEK_MODEL_{ROLE_ENV_NAMES.get(role, role.upper())}_{suffix}"


def resolve_role_models(thinking_mode: bool = False,
                        model_routing: Optional[Mapping[str, Any]] = None,
                        env: Optional[Mapping[str, str]] = None) -> RoleModelMap:
    """
    Build the per-role model map for one run.

    ``env`` defaults to the live process environment so overrides set after
    import are honoured.
    """
    routing = model_routing or {}
    environ = os.environ if env is None else env

    multi_agent = routing.get("multiAgent")
    from_routing = {}
    if isinstance(multi_agent, Mapping) and isinstance(multi_agent.get("models"), Mapping):
        from_routing = multi_agent["models"]
    planner_fallback = _clean(routing.get("plannerModel"))
    executor_fallback = _clean(routing.get("executorModel"))
    default = default_role_model(thinking_mode)

    def pick(role: str, fallback: str) -> str:
        return (
            _clean(from_routing.get(role))
            or _clean(environ.get(role_env_key(role, thinking_mode)))
            or fallback
            or default
        )

    return RoleModelMap(
        planner=pick("planner", planner_fallback),
        html=pick("html", executor_fallback),
        css=pick("css", executor_fallback),
        javascript=pick("js", executor_fallback),
        resolver=pick("resolver", planner_fallback or executor_fallback),
    )


ARCHITECT_ENABLED_ENV = "MULTI_AGENT_ARCHITECT_ENABLED"


def is_multi_agent_architect_enabled(architect_mode: Any,
                                     model_routing: Optional[Mapping[str, Any]] = None,
                                     env: Optional[Mapping[str, str]] = None) -> bool:
    """
    Multi-agent runs only for architect-mode requests that did not opt out.

    The switch is read from the live environment like the role overrides;
    settings only supply the default when the variable is unset.
    """
    environ = os.environ if env is None else env
    if not parse_bool(environ.get(ARCHITECT_ENABLED_ENV), settings.MULTI_AGENT_ARCHITECT_ENABLED):
        return False

    requested = (model_routing or {}).get("multiAgent") or {}
    if isinstance(requested, Mapping) and requested.get("enabled") is False:
        return False

    # "architect_only" is the only activation mode
    return bool(architect_mode)
