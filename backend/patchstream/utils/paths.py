"""
Path helpers shared by the validators and the policy gate.

All comparisons on generated paths are case-insensitive and use forward
slashes, whatever the model emitted.
"""

import re
from typing import Optional


def normalize_path(raw_path: Optional[str]) -> str:
    """Forward slashes, no leading ``./`` or ``/``, trimmed"""
    path = str(raw_path or "").replace("\\", "/").strip()
    path = re.sub(r"^(\./+)+", "", path)
    path = path.lstrip("/")
    return path.strip()


def basename(raw_path: Optional[str]) -> str:
    """Lower-cased last path segment"""
    path = normalize_path(raw_path)
    if not path:
        return ""
    return path.split("/")[-1].lower()


def extname(raw_path: Optional[str]) -> str:
    """Lower-cased extension without the dot; dotfiles have none"""
    name = basename(raw_path)
    idx = name.rfind(".")
    if idx <= 0:
        return ""
    return name[idx + 1:]


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """
    Compile a create-rule glob.

    ``**`` matches across directories, ``*`` within one segment.
    """
    escaped = re.escape(str(pattern or "").strip())
    escaped = escaped.replace(r"\*\*", "\0").replace(r"\*", "[^/]*").replace("\0", ".*")
    return re.compile(f"^{escaped}$", re.IGNORECASE)
