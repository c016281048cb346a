"""
Stream session - applies live model output to an in-memory workspace view

Feeds text deltas into a FileOpParser, checks each operation with an optional
FileOpPolicyGate, and assembles the resulting files. A blocked operation stops
the session with PolicyViolationError; nothing after it is applied.
"""

from dataclasses import dataclass, field
from typing import AsyncIterable, Callable, Dict, List, Optional, Tuple

from patchstream.core.exceptions import PolicyViolationError
from patchstream.core.logging_config import logger
from patchstream.modules.protocol.events import FileOp, FileOpEvent, PatchMode, PatchPhase
from patchstream.modules.protocol.file_op_parser import FileOpParser
from patchstream.modules.protocol.policy_gate import FileOpPolicyGate, PolicyViolation


@dataclass
class StreamResult:
    files: Dict[str, str] = field(default_factory=dict)
    modes: Dict[str, PatchMode] = field(default_factory=dict)
    deleted: List[str] = field(default_factory=list)
    moved: List[Tuple[str, str]] = field(default_factory=list)
    events: int = 0
    violation: Optional[PolicyViolation] = None


class FileOpStreamSession:
    """One session per model response"""

    def __init__(self, policy_gate: Optional[FileOpPolicyGate] = None,
                 on_event: Optional[Callable[[FileOpEvent], None]] = None,
                 chunk_size: Optional[int] = None):
        self.policy_gate = policy_gate
        self.on_event = on_event
        self.result = StreamResult()
        self._parser = FileOpParser(self._handle_event, chunk_size=chunk_size)
        self._closed = False

    def _handle_event(self, event: FileOpEvent) -> None:
        if self.result.violation is not None:
            return

        if self.policy_gate is not None:
            decision = self.policy_gate.check(event)
            if not decision.allowed:
                self.result.violation = decision.violation
                return

        self.result.events += 1
        self._apply(event)
        if self.on_event is not None:
            self.on_event(event)

    def _apply(self, event: FileOpEvent) -> None:
        files = self.result.files
        if event.op == FileOp.PATCH:
            if event.phase == PatchPhase.START:
                files[event.path] = ""
                self.result.modes[event.path] = event.mode
            elif event.phase == PatchPhase.CHUNK:
                files[event.path] = files.get(event.path, "") + (event.chunk or "")
        elif event.op == FileOp.DELETE:
            files.pop(event.path, None)
            self.result.deleted.append(event.path)
        elif event.op == FileOp.MOVE:
            if event.path in files:
                files[event.to_path] = files.pop(event.path)
            self.result.moved.append((event.path, event.to_path))

    def _raise_if_blocked(self) -> None:
        if self.result.violation is not None:
            raise PolicyViolationError(self.result.violation)

    def feed(self, text: str) -> None:
        if self._closed:
            raise RuntimeError("Stream session already closed")
        self._parser.push(text)
        self._raise_if_blocked()

    def close(self) -> StreamResult:
        if not self._closed:
            self._closed = True
            self._parser.finalize()
        self._raise_if_blocked()
        return self.result

    async def consume(self, deltas: AsyncIterable[str]) -> StreamResult:
        """Drain an async text stream through the session"""
        try:
            async for delta in deltas:
                self.feed(delta)
        except PolicyViolationError:
            logger.warning(f"[StreamSession] Stopped after {self.result.events} events: policy violation")
            raise
        return self.close()
