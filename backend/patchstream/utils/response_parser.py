"""
Model response decoding

Model output is untrusted text. Everything here returns explicit results
instead of assuming a shape:

- extract_message_content: chat-completion response -> content string
- parse_json_loose: raw text -> JsonParseResult (ok / value / error)
- normalize_plan_payload: decoded JSON -> PlanCandidate
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from patchstream.schemas.plan import PlanCandidate, PlanStep
from patchstream.utils.paths import normalize_path


_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCED_ANY = re.compile(r"```\s*([\s\S]*?)\s*```")

DEFAULT_PLAN_TITLE = "Architecture Plan"
DEFAULT_STEP_CATEGORY = "frontend"


@dataclass(frozen=True)
class JsonParseResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None


def extract_message_content(response: Any) -> str:
    """``choices[0].message.content`` or empty string for any other shape"""
    if not isinstance(response, dict):
        return ""
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content.strip() if isinstance(content, str) else ""


def extract_delta_content(chunk: Any) -> str:
    """``choices[0].delta.content`` of a streaming chunk"""
    if not isinstance(chunk, dict):
        return ""
    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


def _try_json(text: str) -> JsonParseResult:
    try:
        return JsonParseResult(ok=True, value=json.loads(text))
    except (json.JSONDecodeError, ValueError) as e:
        return JsonParseResult(ok=False, error=str(e))


def parse_json_loose(text: Optional[str]) -> JsonParseResult:
    """
    Decode JSON the way models actually return it:
    raw JSON, a fenced ```json block, any fenced block, or the outermost {...}
    """
    raw = str(text or "").strip()
    if not raw:
        return JsonParseResult(ok=False, error="Empty AI response")

    direct = _try_json(raw)
    if direct.ok:
        return direct

    fenced = _FENCED_JSON.search(raw) or _FENCED_ANY.search(raw)
    if fenced and fenced.group(1):
        return _try_json(fenced.group(1))

    start = raw.find("{")
    end = raw.rfind("}")
    if start != -1 and end > start:
        return _try_json(raw[start:end + 1])

    return direct


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _normalize_files(value: Any) -> list:
    if not isinstance(value, list):
        return []
    files = [normalize_path(_as_text(item)) for item in value if isinstance(item, (str, int, float))]
    return [f for f in files if f]


def _normalize_step(step: Any, index: int) -> Optional[PlanStep]:
    if isinstance(step, str):
        title = step.strip()
        if not title:
            return None
        return PlanStep(id=str(index + 1), title=title, category=DEFAULT_STEP_CATEGORY)

    if not isinstance(step, dict):
        return None

    raw_title = next(
        (step[key] for key in ("title", "text", "step") if step.get(key) is not None),
        "",
    )
    title = _as_text(raw_title).strip()
    if not title:
        return None

    raw_id = step.get("id")
    category = step.get("category")
    return PlanStep(
        id=_as_text(raw_id) if raw_id is not None else str(index + 1),
        title=title,
        category=_as_text(category if category is not None else DEFAULT_STEP_CATEGORY).strip().lower(),
        files=_normalize_files(step.get("files")),
        description=_as_text(step.get("description")).strip(),
    )


def normalize_plan_payload(parsed: Any) -> PlanCandidate:
    """
    Build a PlanCandidate from decoded JSON.

    Accepts a plan object or a bare list of steps. Steps without a title are
    dropped; ids are kept as given so the validator can check their order.
    """
    if isinstance(parsed, list):
        steps_raw, obj = parsed, {}
    elif isinstance(parsed, dict):
        steps_raw, obj = parsed.get("steps"), parsed
    else:
        steps_raw, obj = None, {}

    steps = []
    if isinstance(steps_raw, list):
        for index, raw in enumerate(steps_raw):
            step = _normalize_step(raw, index)
            if step is not None:
                steps.append(step)

    title = obj.get("title")
    description = obj.get("description")
    stack = obj.get("stack")
    return PlanCandidate(
        title=title if isinstance(title, str) else DEFAULT_PLAN_TITLE,
        description=description if isinstance(description, str) else "",
        stack=stack if isinstance(stack, str) else "",
        file_tree=_normalize_files(obj.get("fileTree")),
        steps=steps,
    )
