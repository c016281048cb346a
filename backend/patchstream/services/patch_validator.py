"""
Patch Validator - strict gate for merged file-op patch streams

Runs the merged text through the FileOpParser and checks the result as a
whole. Every problem is reported; the validator never raises.
"""

import re
from typing import Dict, List

from patchstream.modules.protocol.events import FileOp
from patchstream.modules.protocol.file_op_parser import parse_file_ops
from patchstream.modules.protocol.policy_gate import (
    CSS_DUP_BASENAMES,
    JS_DUP_BASENAMES,
    SENSITIVE_ROOT_BASENAMES,
)
from patchstream.schemas.validation import PatchStats, ValidationResult
from patchstream.utils.paths import basename, normalize_path


START_MARKER_PATTERN = re.compile(r'\[\[(PATCH_FILE|START_FILE|EDIT_FILE|EDIT_NODE):')
END_MARKER_PATTERN = re.compile(r'\[\[END_FILE\]\]')

# Files a static web output cannot ship empty
CRITICAL_BASENAMES = ('index.html', 'style.css', 'script.js')


def validate_patch_strict(text: str) -> ValidationResult:
    text = str(text or '')
    issues: List[str] = []

    starts = len(START_MARKER_PATTERN.findall(text))
    ends = len(END_MARKER_PATTERN.findall(text))
    if starts == 0:
        issues.append('No patch file markers were found')
    if starts != ends:
        issues.append(f'File marker mismatch: starts={starts}, ends={ends}')

    events = parse_file_ops(text)

    content_by_path: Dict[str, str] = {}
    css_candidates: Dict[str, None] = {}
    js_candidates: Dict[str, None] = {}

    for event in events:
        path = normalize_path(event.path)
        name = basename(path)

        if event.op in (FileOp.DELETE, FileOp.MOVE):
            if name in SENSITIVE_ROOT_BASENAMES:
                issues.append(f'Unsafe {event.op.value} operation for sensitive file: {path}')
            continue

        if event.is_patch_chunk:
            content_by_path[path] = content_by_path.get(path, '') + (event.chunk or '')
            continue

        if not event.is_patch_start:
            continue
        if not path:
            issues.append('Patch start without a valid path')
            continue

        content_by_path.setdefault(path, '')
        if name in CSS_DUP_BASENAMES:
            css_candidates[path.lower()] = None
        if name in JS_DUP_BASENAMES:
            js_candidates[path.lower()] = None

    if len(css_candidates) > 1:
        issues.append(f'Duplicate-purpose CSS files in one output: {", ".join(css_candidates)}')
    if len(js_candidates) > 1:
        issues.append(f'Duplicate-purpose JavaScript files in one output: {", ".join(js_candidates)}')

    for path, content in content_by_path.items():
        if basename(path) in CRITICAL_BASENAMES and not content.strip():
            issues.append(f'Critical file emitted with empty content: {path}')

    return ValidationResult.from_issues(
        issues,
        stats=PatchStats(events=len(events), starts=starts, ends=ends),
    )
