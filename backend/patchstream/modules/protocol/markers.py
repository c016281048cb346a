"""
Marker tokens and payload decoding.

Payload grammar (text between the marker colon and ``]]``):

    path[|mode:create|edit][|reason:free text]
    from->to[|reason:free text]        (MOVE_FILE only)

Decoding never validates beyond "is there a path"; an empty path means the
payload is dropped by the caller.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from patchstream.modules.protocol.events import PatchMode


PATCH_TOKEN = "[[PATCH_FILE:"
START_TOKEN = "[[START_FILE:"
EDIT_TOKEN = "[[EDIT_FILE:"
EDIT_NODE_TOKEN = "[[EDIT_NODE:"
DELETE_TOKEN = "[[DELETE_FILE:"
MOVE_TOKEN = "[[MOVE_FILE:"
END_TOKEN = "[[END_FILE]]"
PAYLOAD_CLOSE = "]]"

OPENING_TOKENS = (
    PATCH_TOKEN,
    START_TOKEN,
    EDIT_TOKEN,
    EDIT_NODE_TOKEN,
    DELETE_TOKEN,
    MOVE_TOKEN,
)

# Mode each patch-opening token implies when the payload has no mode segment
TOKEN_DEFAULT_MODES = {
    PATCH_TOKEN: PatchMode.CREATE,
    START_TOKEN: PatchMode.CREATE,
    EDIT_TOKEN: PatchMode.EDIT,
    EDIT_NODE_TOKEN: PatchMode.EDIT,
}

MAX_TOKEN_LENGTH = max(len(token) for token in OPENING_TOKENS + (END_TOKEN,))

_MODE_SEGMENT = re.compile(r"^mode\s*[:=]\s*(create|edit)\s*$", re.IGNORECASE)
_REASON_LABEL = re.compile(r"^reason\s*[:=]\s*", re.IGNORECASE)
_MOVE_ARROW = "->"


@dataclass(frozen=True)
class PatchPayload:
    path: str
    mode: PatchMode
    reason: Optional[str] = None


@dataclass(frozen=True)
class DeletePayload:
    path: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class MovePayload:
    from_path: str
    to_path: str
    reason: Optional[str] = None


def _segments(text: str) -> List[str]:
    return [part.strip() for part in text.split("|") if part.strip()]


def _strip_reason_label(text: str) -> Optional[str]:
    text = text.strip()
    if not text:
        return None
    return _REASON_LABEL.sub("", text, count=1).strip()


def parse_patch_payload(payload: Optional[str], fallback_mode: PatchMode = PatchMode.CREATE) -> PatchPayload:
    """Decode ``path|mode:..|reason:..``; later mode/reason segments win"""
    parts = _segments(str(payload or "").strip())
    if not parts:
        return PatchPayload(path="", mode=fallback_mode)

    mode = fallback_mode
    reason = None
    for part in parts[1:]:
        mode_match = _MODE_SEGMENT.match(part)
        if mode_match:
            mode = PatchMode(mode_match.group(1).lower())
            continue
        if _REASON_LABEL.match(part):
            reason = _strip_reason_label(part)

    return PatchPayload(path=parts[0], mode=mode, reason=reason)


def parse_delete_payload(payload: Optional[str]) -> DeletePayload:
    parts = _segments(str(payload or "").strip())
    if not parts:
        return DeletePayload(path="")
    return DeletePayload(path=parts[0], reason=_strip_reason_label(" | ".join(parts[1:])))


def parse_move_payload(payload: Optional[str]) -> MovePayload:
    """Decode ``from->to|reason:..``; the first arrow splits source and target"""
    text = str(payload or "").strip()
    if not text:
        return MovePayload(from_path="", to_path="")

    route, _, rest = text.partition("|")
    route = route.strip()
    arrow = route.find(_MOVE_ARROW)
    if arrow == -1:
        return MovePayload(from_path="", to_path="")

    reason = _strip_reason_label(" | ".join(_segments(rest)))
    return MovePayload(
        from_path=route[:arrow].strip(),
        to_path=route[arrow + len(_MOVE_ARROW):].strip(),
        reason=reason,
    )
