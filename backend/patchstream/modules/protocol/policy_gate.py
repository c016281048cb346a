"""
File-Op Policy Gate - per-event write policy for streamed file operations

The gate sits between the parser and the workspace. Every patch start,
delete and move is checked against the request's write policy before it is
applied:

1. Touch budget (how many distinct files one response may touch)
2. Edit / delete / move scope in edit mode
3. Create rules (glob patterns)
4. Duplicate-purpose primary stylesheet / script creation
5. Sensitive root files (package.json, lockfiles, framework configs)
"""

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from patchstream.core.logging_config import logger
from patchstream.modules.protocol.events import FileOp, FileOpEvent, PatchMode, PatchPhase
from patchstream.utils.paths import basename, glob_to_regex, normalize_path


SENSITIVE_ROOT_BASENAMES = frozenset({
    'package.json',
    'package-lock.json',
    'pnpm-lock.yaml',
    'yarn.lock',
    'tsconfig.json',
    'tsconfig.base.json',
    'vite.config.js',
    'vite.config.ts',
    'next.config.js',
    'next.config.mjs',
})

CSS_DUP_BASENAMES = frozenset({'style.css', 'styles.css', 'main.css', 'app.css'})
JS_DUP_BASENAMES = frozenset({'script.js', 'main.js', 'app.js'})

CSS_PRIMARY = 'css:primary'
JS_PRIMARY = 'js:primary'

_SECURITY_REASON = re.compile(
    r'\b(security|vuln|vulnerability|cve|exploit|malware|credential|secret|token|compromise|exposure|leak)\b',
    re.IGNORECASE,
)

MAX_ADAPTIVE_TOUCH_BUDGET = 48


def duplicate_purpose_key(name: str) -> str:
    """Files sharing a purpose key compete for the same role"""
    lower = str(name or '').lower()
    if lower in CSS_DUP_BASENAMES:
        return CSS_PRIMARY
    if lower in JS_DUP_BASENAMES:
        return JS_PRIMARY
    return f'file:{lower}'


def has_explicit_security_reason(reason: Optional[str]) -> bool:
    return bool(_SECURITY_REASON.search(str(reason or '')))


@dataclass(frozen=True)
class PolicyViolation:
    code: str
    message: str
    path: str = ''
    existing_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "message": self.message, "path": self.path}
        if self.existing_path:
            data["existingPath"] = self.existing_path
        return data


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    violation: Optional[PolicyViolation] = None


ALLOWED = PolicyDecision(allowed=True)


def _violation(code: str, message: str, path: Optional[str], **extra) -> PolicyDecision:
    return PolicyDecision(
        allowed=False,
        violation=PolicyViolation(code=code, message=message, path=normalize_path(path), **extra),
    )


@dataclass
class WritePolicy:
    """
    Write policy for one generation request.

    ``from_dict`` accepts the camelCase payload the UI sends.
    """
    allowed_edit_paths: List[str] = field(default_factory=list)
    allowed_create_rules: List[str] = field(default_factory=list)
    manifest_paths: Optional[List[str]] = None
    max_touched_files: int = 0
    touch_budget_mode: str = 'minimal'
    interaction_mode: str = ''
    analysis_confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "WritePolicy":
        data = data or {}
        rules = []
        for rule in data.get('allowedCreateRules') or []:
            pattern = rule.get('pattern') if isinstance(rule, dict) else rule
            if str(pattern or '').strip():
                rules.append(str(pattern).strip())

        manifest = data.get('manifestPaths')
        try:
            max_touched = int(data.get('maxTouchedFiles') or 0)
        except (TypeError, ValueError):
            max_touched = 0

        return cls(
            allowed_edit_paths=[str(p) for p in data.get('allowedEditPaths') or []],
            allowed_create_rules=rules,
            manifest_paths=[str(p) for p in manifest] if isinstance(manifest, list) else None,
            max_touched_files=max_touched,
            touch_budget_mode=str(data.get('touchBudgetMode') or 'minimal'),
            interaction_mode=str(data.get('interactionMode') or ''),
            analysis_confidence=data.get('analysisConfidence'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowedEditPaths": list(self.allowed_edit_paths),
            "allowedCreateRules": [{"pattern": p} for p in self.allowed_create_rules],
            "maxTouchedFiles": self.max_touched_files or 1,
            "touchBudgetMode": self.touch_budget_mode or 'minimal',
            "analysisConfidence": self.analysis_confidence,
        }


class FileOpPolicyGate:
    """
    Stateful gate for one response stream.

    Decisions depend on what the stream already did (touched paths, created
    files, moved canonical files), so use one gate per stream.
    """

    def __init__(self, write_policy: Optional[WritePolicy] = None,
                 workspace_manifest: Optional[Iterable[str]] = None):
        self.policy = write_policy or WritePolicy()

        self._allowed_edits = {
            normalize_path(p).lower() for p in self.policy.allowed_edit_paths if normalize_path(p)
        }
        self._create_rules = [glob_to_regex(p) for p in self.policy.allowed_create_rules]

        self._existing_by_purpose: Dict[str, str] = {}
        self._purpose_by_path: Dict[str, str] = {}
        manifest = self.policy.manifest_paths
        if manifest is None:
            manifest = list(workspace_manifest or [])
        for path in manifest:
            self._register_path(path)

        self._touched: List[str] = []
        self._created: set = set()

        self.max_touched_files = self._resolve_touch_budget()
        self.strict_edit_scope = (
            bool(self._allowed_edits) and self.policy.interaction_mode.lower() == 'edit'
        )

    def _resolve_touch_budget(self) -> int:
        if self.policy.max_touched_files > 0:
            return self.policy.max_touched_files
        if self.policy.touch_budget_mode.lower() == 'adaptive':
            edits = len(self._allowed_edits)
            inferred = edits + len(self._create_rules) + max(2, math.ceil(edits / 6))
            return max(2, min(MAX_ADAPTIVE_TOUCH_BUDGET, inferred))
        return 1

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _register_path(self, raw_path: str) -> None:
        path = normalize_path(raw_path)
        if not path:
            return
        purpose = duplicate_purpose_key(basename(path))
        self._purpose_by_path[path.lower()] = purpose
        self._existing_by_purpose.setdefault(purpose, path)

    def _unregister_path(self, raw_path: str) -> None:
        lower = normalize_path(raw_path).lower()
        purpose = self._purpose_by_path.pop(lower, None)
        if purpose is None:
            return
        current = self._existing_by_purpose.get(purpose)
        if current is not None and current.lower() == lower:
            del self._existing_by_purpose[purpose]

    def _track_touched(self, path: str) -> Optional[PolicyDecision]:
        lower = normalize_path(path).lower()
        if not lower or lower in self._touched:
            return None
        if len(self._touched) + 1 > self.max_touched_files:
            return _violation(
                'TOUCH_BUDGET_EXCEEDED',
                f'Touched files exceeded budget ({len(self._touched) + 1}/{self.max_touched_files})',
                lower,
            )
        self._touched.append(lower)
        return None

    def is_create_allowed(self, path: str) -> bool:
        normalized = normalize_path(path)
        if not normalized or not self._create_rules:
            return False
        return any(rule.match(normalized) for rule in self._create_rules)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check(self, event: FileOpEvent) -> PolicyDecision:
        if event.op == FileOp.PATCH and event.phase == PatchPhase.START:
            decision = self._check_patch_start(event)
        elif event.op == FileOp.DELETE:
            decision = self._check_delete(event)
        elif event.op == FileOp.MOVE:
            decision = self._check_move(event)
        else:
            return ALLOWED

        if not decision.allowed:
            logger.warning(
                f"[PolicyGate] Blocked {event.op.value} {event.path}: {decision.violation.code}",
                extra={"event_type": "policy_violation", "violation": decision.violation.to_dict()},
            )
        return decision

    def _check_patch_start(self, event: FileOpEvent) -> PolicyDecision:
        path = normalize_path(event.path)
        if not path:
            return _violation('INVALID_PATH', 'Patch operation without path', event.path)

        blocked = self._track_touched(path)
        if blocked:
            return blocked

        if event.mode == PatchMode.EDIT:
            lower = path.lower()
            if self.strict_edit_scope and lower not in self._allowed_edits and lower not in self._created:
                return _violation('PATCH_OUT_OF_SCOPE', 'Edit path is outside write policy scope', path)
            return ALLOWED

        if not self.is_create_allowed(path):
            return _violation('CREATE_OUT_OF_SCOPE', 'Create path is outside allowed create rules', path)

        purpose = duplicate_purpose_key(basename(path))
        existing = self._existing_by_purpose.get(purpose)
        if existing and existing.lower() != path.lower() and purpose in (CSS_PRIMARY, JS_PRIMARY):
            return _violation(
                'DUPLICATE_PURPOSE_CREATE',
                f'Duplicate-purpose create blocked; canonical file already exists at {existing}',
                path,
                existing_path=existing,
            )

        self._register_path(path)
        self._created.add(path.lower())
        return ALLOWED

    def _check_delete(self, event: FileOpEvent) -> PolicyDecision:
        path = normalize_path(event.path)
        if not path:
            return _violation('INVALID_PATH', 'Delete operation without path', event.path)

        blocked = self._track_touched(path)
        if blocked:
            return blocked

        if self.strict_edit_scope and path.lower() not in self._allowed_edits:
            return _violation('DELETE_OUT_OF_SCOPE', 'Delete path is outside write policy scope', path)

        if basename(path) in SENSITIVE_ROOT_BASENAMES and not has_explicit_security_reason(event.reason):
            return _violation(
                'SENSITIVE_DELETE_BLOCKED',
                'Sensitive file delete blocked without explicit safety reason',
                path,
            )

        self._unregister_path(path)
        return ALLOWED

    def _check_move(self, event: FileOpEvent) -> PolicyDecision:
        from_path = normalize_path(event.path)
        to_path = normalize_path(event.to_path)
        if not from_path or not to_path:
            return _violation('INVALID_MOVE', 'Move operation missing source/target path', from_path or to_path)

        blocked = self._track_touched(from_path) or self._track_touched(to_path)
        if blocked:
            return blocked

        if self.strict_edit_scope and from_path.lower() not in self._allowed_edits:
            return _violation('MOVE_OUT_OF_SCOPE', 'Move source path is outside write policy scope', from_path)
        if (self.strict_edit_scope and to_path.lower() not in self._allowed_edits
                and not self.is_create_allowed(to_path)):
            return _violation('MOVE_TARGET_OUT_OF_SCOPE', 'Move target path is outside allowed scope', to_path)

        if basename(from_path) in SENSITIVE_ROOT_BASENAMES and not has_explicit_security_reason(event.reason):
            return _violation(
                'SENSITIVE_MOVE_BLOCKED',
                'Sensitive file move blocked without explicit safety reason',
                from_path,
            )

        self._unregister_path(from_path)
        self._register_path(to_path)
        return ALLOWED

    def snapshot(self) -> Dict[str, Any]:
        return {
            "touchedCount": len(self._touched),
            "touchedPaths": list(self._touched),
            "createdPaths": sorted(self._created),
        }


def build_policy_repair_prompt(original_prompt: str, violation: Optional[PolicyViolation],
                               write_policy: Optional[WritePolicy] = None) -> str:
    """Prompt for one re-generation after a blocked stream"""
    policy = write_policy or WritePolicy()
    lines = [
        '[POLICY_REPAIR_ATTEMPT]',
        'Your last patch stream violated strict write policy.',
        'Output ONLY valid file-op protocol markers and full file contents.',
        'Do not output explanations.',
        '',
        '[VIOLATION]',
        f'code={violation.code if violation else "UNKNOWN"}',
        f'message={violation.message if violation else "Policy violation"}',
        f'path={violation.path}' if violation and violation.path else '',
        '',
        '[WRITE_POLICY]',
        json.dumps(policy.to_dict(), indent=2),
        '',
        '[ORIGINAL_REQUEST]',
        str(original_prompt or ''),
    ]
    return '\n'.join(line for line in lines if line)
