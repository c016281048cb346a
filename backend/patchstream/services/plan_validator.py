"""
Plan Validator - strict structural gate for merged architecture plans

Checks (all issues are collected, nothing short-circuits):
1. Title present
2. 4-8 steps
3. fileTree entries unique (case-insensitive)
4. Each step: title, description, allowed category
5. Step ids follow position ("1", "2", ...)
6. Step files listed in fileTree (when fileTree is non-empty)
7. HTML, CSS and JS/TS responsibilities all covered
"""

from typing import Any, List

from patchstream.schemas.plan import PlanCandidate
from patchstream.schemas.validation import ValidationResult
from patchstream.utils.paths import extname
from patchstream.utils.response_parser import normalize_plan_payload


MIN_STEPS = 4
MAX_STEPS = 8

ALLOWED_CATEGORIES = frozenset({
    'setup',
    'layout',
    'components',
    'interactivity',
    'styling',
    'polish',
    'config',
    'frontend',
    'backend',
    'integration',
    'testing',
    'deployment',
})

HTML_EXTENSIONS = frozenset({'html', 'htm'})
CSS_EXTENSIONS = frozenset({'css'})
SCRIPT_EXTENSIONS = frozenset({'js', 'mjs', 'cjs', 'jsx', 'ts', 'tsx'})


def validate_plan_strict(plan_like: Any) -> ValidationResult:
    """
    Validate a plan given as decoded JSON or an already normalized candidate.

    Returns ``normalized`` even when the plan fails so callers can show it.
    """
    plan = plan_like if isinstance(plan_like, PlanCandidate) else normalize_plan_payload(plan_like)
    issues: List[str] = []

    if not plan.title.strip():
        issues.append('Plan title is missing')

    if not MIN_STEPS <= len(plan.steps) <= MAX_STEPS:
        issues.append(f'Plan must include {MIN_STEPS}-{MAX_STEPS} steps, received {len(plan.steps)}')

    known_files = set()
    for file in plan.file_tree:
        key = file.lower()
        if key in known_files:
            issues.append(f'Duplicate fileTree entry: {file}')
        known_files.add(key)

    extensions = {extname(file) for file in plan.file_tree}

    for index, step in enumerate(plan.steps):
        position = index + 1
        if not step.title.strip():
            issues.append(f'Step {position}: title is required')
        if not step.description.strip():
            issues.append(f'Step {position}: description is required')
        if step.category.lower() not in ALLOWED_CATEGORIES:
            issues.append(f'Step {position}: invalid category "{step.category}"')

        expected_id = str(position)
        if step.id != expected_id:
            issues.append(f'Step order mismatch at index {position}: expected id "{expected_id}"')

        for file in step.files:
            extensions.add(extname(file))
            if plan.file_tree and file.lower() not in known_files:
                issues.append(f'Step {step.id} references file not present in fileTree: {file}')

    if not extensions & HTML_EXTENSIONS:
        issues.append('Plan must include HTML responsibility')
    if not extensions & CSS_EXTENSIONS:
        issues.append('Plan must include CSS responsibility')
    if not extensions & SCRIPT_EXTENSIONS:
        issues.append('Plan must include JavaScript responsibility')

    return ValidationResult.from_issues(issues, normalized=plan)
