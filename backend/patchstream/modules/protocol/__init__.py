"""
File-op protocol

- FileOpParser: streamed text -> FileOpEvents
- FileOpPolicyGate: per-event write policy
- FileOpStreamSession: parser + gate + assembled files for one response
"""

from patchstream.modules.protocol.events import FileOp, FileOpEvent, PatchMode, PatchPhase
from patchstream.modules.protocol.file_op_parser import FileOpParser, parse_file_ops
from patchstream.modules.protocol.policy_gate import (
    FileOpPolicyGate,
    PolicyDecision,
    PolicyViolation,
    WritePolicy,
    build_policy_repair_prompt,
)
from patchstream.modules.protocol.stream_session import FileOpStreamSession, StreamResult

__all__ = [
    "FileOp",
    "FileOpEvent",
    "PatchMode",
    "PatchPhase",
    "FileOpParser",
    "parse_file_ops",
    "FileOpPolicyGate",
    "PolicyDecision",
    "PolicyViolation",
    "WritePolicy",
    "build_policy_repair_prompt",
    "FileOpStreamSession",
    "StreamResult",
]
