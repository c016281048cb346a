"""
Multi-Agent Architect Orchestrator

Runs one request through role-scoped model calls and a strict gate:

    plan:     Planner -> HTML | CSS | JavaScript (concurrent) -> Resolver
              -> Plan Validator -> (one repair) -> GateError
    generate: HTML | CSS | JavaScript (concurrent) -> Resolver
              -> Patch Validator -> (one repair) -> GateError

Model access is injected as ``create_chat_completion(payload) -> response``
so runs are isolated and testable; nothing here holds a client.
"""

import asyncio
import re
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Pattern, Tuple

from patchstream.core.config import settings
from patchstream.core.exceptions import (
    EmptyModelResponseError,
    GateError,
    ModelResponseParseError,
    MultiAgentTimeoutError,
)
from patchstream.core.logging_config import logger, get_run_id, set_run_id
from patchstream.modules.orchestrator.prompts import (
    build_generate_specialist_prompt,
    build_plan_specialist_prompt,
    build_resolver_generate_prompt,
    build_resolver_generate_repair_prompt,
    build_resolver_plan_prompt,
    build_resolver_plan_repair_prompt,
)
from patchstream.modules.orchestrator.role_models import RoleModelMap, resolve_role_models
from patchstream.schemas.plan import PlanCandidate
from patchstream.schemas.validation import ValidationResult
from patchstream.services.patch_validator import validate_patch_strict
from patchstream.services.plan_validator import validate_plan_strict
from patchstream.utils.response_parser import (
    JsonParseResult,
    extract_message_content,
    parse_json_loose,
)


DEFAULT_TIMEOUT_MS = 120_000

ChatCompletionFn = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]
StatusCallback = Callable[[str, str], None]

SPECIALIST_ROLES: Tuple[Tuple[str, str], ...] = (
    # (role key, status label)
    ("html", "HTML"),
    ("css", "CSS"),
    ("javascript", "JavaScript"),
)


# ============================================
# Prompt classification
# ============================================

@dataclass(frozen=True)
class BypassRule:
    pattern: Pattern
    reason: str


# Prompts matching a rule skip orchestration and go straight to the single-call path
BYPASS_RULES: Tuple[BypassRule, ...] = (
    BypassRule(
        pattern=re.compile(r"(?:^|\n)\s*CONTINUE\s+.+\s+FROM\s+LINE\s+\d+", re.IGNORECASE),
        reason="resume_prompt",
    ),
)


def classify_bypass(prompt: Optional[str]) -> Optional[str]:
    """Reason of the first matching bypass rule, or None"""
    text = str(prompt or "")
    for rule in BYPASS_RULES:
        if rule.pattern.search(text):
            return rule.reason
    return None


# ============================================
# Results
# ============================================

@dataclass(frozen=True)
class ChatCompletionResult:
    content: str
    role: str
    model: str
    duration_ms: float
    parsed: Optional[JsonParseResult] = None


@dataclass(frozen=True)
class PlanRunResult:
    plan: PlanCandidate
    role_models: RoleModelMap
    validation: ValidationResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "roleModels": self.role_models.to_dict(),
            "validation": self.validation.to_dict(),
        }


@dataclass(frozen=True)
class GenerateRunResult:
    bypass: bool
    text: str
    role_models: Optional[RoleModelMap] = None
    validation: Optional[ValidationResult] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"bypass": self.bypass, "text": self.text}
        if self.reason:
            data["reason"] = self.reason
        if self.role_models is not None:
            data["roleModels"] = self.role_models.to_dict()
        if self.validation is not None:
            data["validation"] = self.validation.to_dict()
        return data


# ============================================
# Model calls
# ============================================

async def _invoke_with_timeout(create_chat_completion: ChatCompletionFn, payload: Dict[str, Any],
                               timeout_ms: int, role: str) -> Dict[str, Any]:
    try:
        return await asyncio.wait_for(create_chat_completion(payload), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        logger.log_agent_event(role, "timeout", payload.get("model"), duration_ms=float(timeout_ms))
        raise MultiAgentTimeoutError(role=role, timeout_ms=timeout_ms) from None


async def run_chat_completion(
    create_chat_completion: ChatCompletionFn,
    model: str,
    system_prompt: Optional[str],
    user_prompt: Optional[str],
    expect_json: bool = False,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    role: str = "",
) -> ChatCompletionResult:
    """
    One role-scoped chat completion.

    With ``expect_json`` the call asks for ``response_format=json_object``
    first and retries once in plain mode if the provider rejects it. A
    timeout is never retried.
    """
    payload: Dict[str, Any] = {
        "model": model,
        "temperature": settings.MULTI_AGENT_TEMPERATURE,
        "messages": [
            {"role": "system", "content": str(system_prompt or "")},
            {"role": "user", "content": str(user_prompt or "")},
        ],
    }

    started = time.perf_counter()
    if expect_json:
        try:
            response = await _invoke_with_timeout(
                create_chat_completion,
                {**payload, "response_format": {"type": "json_object"}},
                timeout_ms,
                role,
            )
        except MultiAgentTimeoutError:
            raise
        except Exception as e:
            logger.warning(f"[MultiAgent] {role} JSON mode failed, retrying in plain mode: {e}")
            response = await _invoke_with_timeout(create_chat_completion, payload, timeout_ms, role)
    else:
        response = await _invoke_with_timeout(create_chat_completion, payload, timeout_ms, role)
    duration_ms = (time.perf_counter() - started) * 1000

    content = extract_message_content(response)
    if not content:
        raise EmptyModelResponseError(role=role)

    logger.log_agent_event(role, "completed", model, duration_ms=duration_ms, output_chars=len(content))
    return ChatCompletionResult(
        content=content,
        role=role,
        model=model,
        duration_ms=duration_ms,
        parsed=parse_json_loose(content) if expect_json else None,
    )


def _require_json(result: ChatCompletionResult) -> Any:
    if not result.parsed.ok:
        raise ModelResponseParseError(
            f"{result.role} returned invalid JSON: {result.parsed.error}",
            role=result.role,
            raw_preview=result.content,
        )
    return result.parsed.value


async def gather_all_or_nothing(*aws: Awaitable[Any]) -> List[Any]:
    """
    Await all in parallel; on the first failure cancel the rest and re-raise.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def resolve_conflicts_with_lead_planner(
    create_chat_completion: ChatCompletionFn,
    resolver_model: str,
    system_prompt: Optional[str],
    user_prompt: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> str:
    """Resolver call for patch streams; returns the merged text"""
    result = await run_chat_completion(
        create_chat_completion,
        model=resolver_model,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        expect_json=False,
        timeout_ms=timeout_ms,
        role="resolver",
    )
    return result.content


def _status_emitter(on_status: Optional[StatusCallback]) -> StatusCallback:
    if not callable(on_status):
        return lambda phase, label: None
    return on_status


def _ensure_run_id() -> str:
    run_id = get_run_id()
    if not run_id:
        run_id = uuid.uuid4().hex[:12]
        set_run_id(run_id)
    return run_id


def _validate_plan_response(result: ChatCompletionResult) -> ValidationResult:
    """Undecodable resolver output is a validation issue so it can be repaired"""
    if not result.parsed.ok:
        return ValidationResult.from_issues(
            [f"Resolver output is not valid JSON: {result.parsed.error}"],
            normalized=PlanCandidate(),
        )
    return validate_plan_strict(result.parsed.value)


# ============================================
# Plan flow
# ============================================

async def run_plan_multi_agent(
    prompt: str,
    create_chat_completion: ChatCompletionFn,
    thinking_mode: bool = False,
    model_routing: Optional[Mapping[str, Any]] = None,
    planner_system_prompt: Optional[str] = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    on_status: Optional[StatusCallback] = None,
) -> PlanRunResult:
    """
    Produce a validated architecture plan.

    Raises:
        GateError: the plan failed strict validation after one repair
        MultiAgentTimeoutError: a role call exceeded ``timeout_ms``
        ModelResponseParseError: planner or a specialist returned invalid JSON
    """
    run_id = _ensure_run_id()
    role_models = resolve_role_models(thinking_mode, model_routing)
    emit = _status_emitter(on_status)
    started = time.perf_counter()
    logger.info(f"[MultiAgent] Plan run {run_id} started", extra={"role_models": role_models.to_dict()})

    emit("planning", "Planner")
    planner = await run_chat_completion(
        create_chat_completion,
        model=role_models.planner,
        system_prompt=planner_system_prompt,
        user_prompt=prompt,
        expect_json=True,
        timeout_ms=timeout_ms,
        role="planner",
    )
    _require_json(planner)

    for _, label in SPECIALIST_ROLES:
        emit("planning", label)
    specialists = await gather_all_or_nothing(*[
        run_chat_completion(
            create_chat_completion,
            model=getattr(role_models, role),
            system_prompt=planner_system_prompt,
            user_prompt=build_plan_specialist_prompt(role, prompt, planner.content),
            expect_json=True,
            timeout_ms=timeout_ms,
            role=role,
        )
        for role, _ in SPECIALIST_ROLES
    ])
    for specialist in specialists:
        _require_json(specialist)
    html, css, javascript = specialists

    emit("planning", "Resolver")
    resolver = await run_chat_completion(
        create_chat_completion,
        model=role_models.resolver,
        system_prompt=planner_system_prompt,
        user_prompt=build_resolver_plan_prompt(
            user_prompt=prompt,
            planner_candidate=planner.content,
            html_candidate=html.content,
            css_candidate=css.content,
            js_candidate=javascript.content,
        ),
        expect_json=True,
        timeout_ms=timeout_ms,
        role="resolver",
    )

    emit("validating", "Strict gate")
    validation = _validate_plan_response(resolver)
    logger.log_gate_result("plan", validation.ok, list(validation.issues), attempt=1)

    if not validation.ok:
        emit("repairing", "Resolver")
        repaired = await run_chat_completion(
            create_chat_completion,
            model=role_models.resolver,
            system_prompt=planner_system_prompt,
            user_prompt=build_resolver_plan_repair_prompt(resolver.content, validation.issues),
            expect_json=True,
            timeout_ms=timeout_ms,
            role="resolver",
        )
        validation = _validate_plan_response(repaired)
        logger.log_gate_result("plan", validation.ok, list(validation.issues), attempt=2)

    if not validation.ok:
        raise GateError(list(validation.issues), "Plan strict gate failed")

    logger.log_performance("multi_agent_plan", (time.perf_counter() - started) * 1000,
                           threshold_ms=timeout_ms)
    return PlanRunResult(plan=validation.normalized, role_models=role_models, validation=validation)


# ============================================
# Patch flow
# ============================================

async def run_generate_multi_agent(
    prompt: str,
    create_chat_completion: ChatCompletionFn,
    thinking_mode: bool = False,
    model_routing: Optional[Mapping[str, Any]] = None,
    code_system_prompt: Optional[str] = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    on_status: Optional[StatusCallback] = None,
) -> GenerateRunResult:
    """
    Produce a validated file-op patch stream.

    Bypassed prompts return ``bypass=True`` with the prompt unchanged and no
    model call.

    Raises:
        GateError: the patch failed strict validation after one repair
        MultiAgentTimeoutError: a role call exceeded ``timeout_ms``
    """
    bypass_reason = classify_bypass(prompt)
    if bypass_reason:
        logger.info(f"[MultiAgent] Generate bypassed: {bypass_reason}")
        return GenerateRunResult(bypass=True, text=prompt, reason=bypass_reason)

    run_id = _ensure_run_id()
    role_models = resolve_role_models(thinking_mode, model_routing)
    emit = _status_emitter(on_status)
    started = time.perf_counter()
    logger.info(f"[MultiAgent] Generate run {run_id} started", extra={"role_models": role_models.to_dict()})

    for _, label in SPECIALIST_ROLES:
        emit("planning", label)
    html, css, javascript = await gather_all_or_nothing(*[
        run_chat_completion(
            create_chat_completion,
            model=getattr(role_models, role),
            system_prompt=code_system_prompt,
            user_prompt=build_generate_specialist_prompt(role, prompt),
            expect_json=False,
            timeout_ms=timeout_ms,
            role=role,
        )
        for role, _ in SPECIALIST_ROLES
    ])

    emit("planning", "Resolver")
    merged = await resolve_conflicts_with_lead_planner(
        create_chat_completion,
        resolver_model=role_models.resolver,
        system_prompt=code_system_prompt,
        user_prompt=build_resolver_generate_prompt(
            user_prompt=prompt,
            html=html.content,
            css=css.content,
            javascript=javascript.content,
        ),
        timeout_ms=timeout_ms,
    )

    emit("validating", "Strict gate")
    output = merged
    validation = validate_patch_strict(output)
    logger.log_gate_result("patch", validation.ok, list(validation.issues), attempt=1)

    if not validation.ok:
        emit("repairing", "Resolver")
        output = await resolve_conflicts_with_lead_planner(
            create_chat_completion,
            resolver_model=role_models.resolver,
            system_prompt=code_system_prompt,
            user_prompt=build_resolver_generate_repair_prompt(merged, validation.issues),
            timeout_ms=timeout_ms,
        )
        validation = validate_patch_strict(output)
        logger.log_gate_result("patch", validation.ok, list(validation.issues), attempt=2)

    if not validation.ok:
        raise GateError(list(validation.issues), "Patch strict gate failed")

    logger.log_performance("multi_agent_generate", (time.perf_counter() - started) * 1000,
                           threshold_ms=timeout_ms)
    return GenerateRunResult(bypass=False, text=output, role_models=role_models, validation=validation)
