"""
Prompt builders for the role-scoped model calls.

Section tags in square brackets are what the models are instructed to key on;
keep them stable.
"""

from typing import Iterable


PLAN_JSON_SHAPE = (
    '{"title":"...","description":"...","stack":"...","fileTree":[...],'
    '"steps":[{"id":"1","title":"...","category":"...","files":[...],"description":"..."}]}'
)

# Default system prompts used by the CLI when the caller supplies none
PLANNER_SYSTEM_PROMPT = "\n".join([
    "You are a senior web architect planning a static HTML/CSS/JavaScript project.",
    "Respond with a single JSON object and nothing else:",
    PLAN_JSON_SHAPE,
    "Use 4-8 steps with ids \"1\", \"2\", ... in order.",
    "Allowed categories: setup, layout, components, interactivity, styling, polish, "
    "config, frontend, backend, integration, testing, deployment.",
    "Every file referenced by a step must appear in fileTree.",
])

CODE_SYSTEM_PROMPT = "\n".join([
    "You are a code generator that writes files using the file-op protocol.",
    "Open a new file with [[START_FILE: path]] and an existing one with [[EDIT_FILE: path]].",
    "Write the full file content, then close it with [[END_FILE]].",
    "Remove files with [[DELETE_FILE: path | reason: why]] and rename with [[MOVE_FILE: from -> to]].",
    "Use index.html, style.css and script.js as the primary files.",
    "Output nothing outside the markers.",
])


def _join(lines: Iterable[str]) -> str:
    return "\n".join(str(line) for line in lines)


def _issue_list(issues: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in issues)


def build_plan_specialist_prompt(role: str, user_prompt: str, planner_candidate: str) -> str:
    tag = role.upper()
    return _join([
        f"[SPECIALIST:{tag}]",
        "Return ONLY JSON matching shape:",
        PLAN_JSON_SHAPE,
        "",
        "[BASE PLAN CANDIDATE]",
        planner_candidate,
        "",
        "[USER REQUEST]",
        user_prompt,
        "",
        f"Focus strictly on {tag} responsibilities while preserving end-to-end consistency.",
    ])


def build_resolver_plan_prompt(user_prompt: str, planner_candidate: str, html_candidate: str,
                               css_candidate: str, js_candidate: str) -> str:
    return _join([
        "[RESOLVE_PLAN]",
        "Merge the following plan candidates into one final JSON plan.",
        "Must keep strict consistency between fileTree and step files.",
        "Must include HTML + CSS + JavaScript responsibilities.",
        "Return ONLY JSON with the required shape.",
        "",
        "[USER REQUEST]",
        user_prompt,
        "",
        "[PLANNER CANDIDATE]",
        planner_candidate,
        "",
        "[HTML CANDIDATE]",
        html_candidate,
        "",
        "[CSS CANDIDATE]",
        css_candidate,
        "",
        "[JAVASCRIPT CANDIDATE]",
        js_candidate,
    ])


def build_resolver_plan_repair_prompt(candidate: str, issues: Iterable[str]) -> str:
    return _join([
        "[REPAIR_PLAN]",
        "Repair the plan to satisfy strict validation.",
        "Return ONLY JSON.",
        "",
        "[VALIDATION_ISSUES]",
        _issue_list(issues),
        "",
        "[CANDIDATE]",
        candidate,
    ])


def build_generate_specialist_prompt(role: str, user_prompt: str) -> str:
    return _join([
        f"[SPECIALIST:{role.upper()}]",
        "Output ONLY file-op protocol markers and file content.",
        "No explanations, no markdown, no JSON wrappers.",
        "Keep cross-file references valid.",
        "",
        "[USER REQUEST]",
        user_prompt,
    ])


def build_resolver_generate_prompt(user_prompt: str, html: str, css: str, javascript: str) -> str:
    return _join([
        "[RESOLVE_PATCH]",
        "Merge specialist outputs into one canonical patch stream.",
        "Respect file-op protocol strictly.",
        "Avoid duplicate-purpose stylesheet/script files.",
        "",
        "[USER REQUEST]",
        user_prompt,
        "",
        "[HTML OUTPUT]",
        html,
        "",
        "[CSS OUTPUT]",
        css,
        "",
        "[JAVASCRIPT OUTPUT]",
        javascript,
    ])


def build_resolver_generate_repair_prompt(merged: str, issues: Iterable[str]) -> str:
    return _join([
        "[REPAIR_PATCH]",
        "Repair this patch stream to satisfy strict validator.",
        "Output ONLY fixed patch stream with protocol markers.",
        "",
        "[VALIDATION_ISSUES]",
        _issue_list(issues),
        "",
        "[PATCH_STREAM]",
        merged,
    ])
