"""
File-op events emitted by the protocol parser.

A single tagged dataclass covers the three operations; ``op`` is the tag:

    patch  -> phase start | chunk | end, path, mode, reason?, chunk?
    delete -> phase end, path, reason?
    move   -> phase end, path (source), to_path, reason?
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class FileOp(str, Enum):
    PATCH = "patch"
    DELETE = "delete"
    MOVE = "move"


class PatchPhase(str, Enum):
    START = "start"
    CHUNK = "chunk"
    END = "end"


class PatchMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


@dataclass(frozen=True)
class FileOpEvent:
    """One typed file operation event"""
    op: FileOp
    phase: PatchPhase
    path: str
    mode: Optional[PatchMode] = None
    reason: Optional[str] = None
    chunk: Optional[str] = None
    to_path: Optional[str] = None
    implicit: bool = False  # end emitted because a new marker arrived before [[END_FILE]]

    @classmethod
    def patch(cls, phase: PatchPhase, path: str, mode: PatchMode,
              reason: Optional[str] = None, chunk: Optional[str] = None,
              implicit: bool = False) -> "FileOpEvent":
        return cls(FileOp.PATCH, phase, path, mode=mode, reason=reason,
                   chunk=chunk, implicit=implicit)

    @classmethod
    def delete(cls, path: str, reason: Optional[str] = None) -> "FileOpEvent":
        return cls(FileOp.DELETE, PatchPhase.END, path, reason=reason)

    @classmethod
    def move(cls, path: str, to_path: str, reason: Optional[str] = None) -> "FileOpEvent":
        return cls(FileOp.MOVE, PatchPhase.END, path, reason=reason, to_path=to_path)

    @property
    def is_patch_start(self) -> bool:
        return self.op == FileOp.PATCH and self.phase == PatchPhase.START

    @property
    def is_patch_chunk(self) -> bool:
        return self.op == FileOp.PATCH and self.phase == PatchPhase.CHUNK

    @property
    def is_patch_end(self) -> bool:
        return self.op == FileOp.PATCH and self.phase == PatchPhase.END

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape sent to the UI (camelCase, optional keys omitted)"""
        data: Dict[str, Any] = {
            "op": self.op.value,
            "phase": self.phase.value,
            "path": self.path,
        }
        if self.mode is not None:
            data["mode"] = self.mode.value
        if self.to_path is not None:
            data["toPath"] = self.to_path
        if self.reason is not None:
            data["reason"] = self.reason
        if self.chunk is not None:
            data["chunk"] = self.chunk
        if self.implicit:
            data["implicit"] = True
        return data
