"""
FileOpParser - incremental scanner for the file-op marker protocol

Streamed model output is pushed in arbitrary chunks; the parser turns it into
FileOpEvents as soon as they can be decided:

    buffer += chunk
    while a marker or [[END_FILE]] is in the buffer:
        emit body text before it, then open / close / delete / move
    otherwise keep only the last MAX_TOKEN_LENGTH - 1 chars

Body text is cut every ``chunk_size`` characters counted from the start of the
file body (and at markers), so the emitted events depend only on the text and
never on where the chunk boundaries fell.

The parser never raises on malformed protocol text:
- an opening marker without ``]]`` is held until more input arrives
- a new marker while a file is open closes it implicitly
- payloads without a path are dropped
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from patchstream.core.config import settings
from patchstream.core.logging_config import logger
from patchstream.modules.protocol.events import FileOpEvent, PatchMode, PatchPhase
from patchstream.modules.protocol.markers import (
    DELETE_TOKEN,
    END_TOKEN,
    MAX_TOKEN_LENGTH,
    MOVE_TOKEN,
    OPENING_TOKENS,
    PAYLOAD_CLOSE,
    TOKEN_DEFAULT_MODES,
    parse_delete_payload,
    parse_move_payload,
    parse_patch_payload,
)


# Enough trailing text to still recognise a token split across two pushes
SCAN_WINDOW = MAX_TOKEN_LENGTH - 1

EventCallback = Callable[[FileOpEvent], None]


@dataclass
class _OpenPatch:
    path: str
    mode: PatchMode
    reason: Optional[str]
    offset: int = 0  # body chars already emitted


def _find_first(text: str, tokens) -> Tuple[int, Optional[str]]:
    """Leftmost occurrence of any token"""
    best_idx, best_token = -1, None
    for token in tokens:
        idx = text.find(token)
        if idx != -1 and (best_idx == -1 or idx < best_idx):
            best_idx, best_token = idx, token
    return best_idx, best_token


class FileOpParser:
    """
    Streaming parser for [[START_FILE:]] / [[EDIT_NODE:]] / ... markers.

    One instance per producer; ``on_event`` is called synchronously from
    ``push()`` and ``finalize()``.
    """

    def __init__(self, on_event: EventCallback, chunk_size: Optional[int] = None):
        if not callable(on_event):
            raise TypeError("FileOpParser requires an on_event callback")
        if chunk_size is not None and chunk_size < 1:
            raise ValueError("chunk_size must be positive")

        self._on_event = on_event
        self._chunk_size = chunk_size or settings.FILE_OP_CHUNK_SIZE
        self._scan = ""
        self._open: Optional[_OpenPatch] = None

        self.implicit_closes: List[str] = []
        self.dropped_payloads: int = 0

    @property
    def in_patch(self) -> bool:
        return self._open is not None

    @property
    def current_path(self) -> Optional[str]:
        return self._open.path if self._open else None

    @property
    def buffered(self) -> int:
        """Number of characters held back waiting for more input"""
        return len(self._scan)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def push(self, chunk: Optional[str]) -> None:
        if not chunk:
            return
        self._scan += str(chunk)
        self._drain()

    def finalize(self) -> None:
        """Flush what is left; close an open file, drop trailing prose"""
        tail, self._scan = self._scan, ""
        if self._open is None:
            if tail.strip():
                logger.debug(f"[FileOpParser] Discarding {len(tail)} trailing chars outside any file")
            return

        if tail:
            self._emit_body(tail)
        else:
            self._emit_chunk("")
        self._close_patch()

    # ------------------------------------------------------------------
    # Scanner
    # ------------------------------------------------------------------

    def _drain(self) -> None:
        while self._scan:
            if self._open is None:
                idx, token = _find_first(self._scan, OPENING_TOKENS)
                if idx == -1:
                    # Idle text is not part of any file
                    self._scan = self._scan[-SCAN_WINDOW:]
                    return
                if idx > 0:
                    self._scan = self._scan[idx:]

                payload = self._read_payload(token)
                if payload is None:
                    return
                self._handle_marker(token, payload)
                continue

            end_idx = self._scan.find(END_TOKEN)
            marker_idx, _ = _find_first(self._scan, OPENING_TOKENS)

            if marker_idx != -1 and (end_idx == -1 or marker_idx < end_idx):
                self._emit_body(self._scan[:marker_idx])
                self.implicit_closes.append(self._open.path)
                logger.debug(f"[FileOpParser] Implicit close of {self._open.path} (marker before [[END_FILE]])")
                self._close_patch(implicit=True)
                self._scan = self._scan[marker_idx:]
                continue

            if end_idx != -1:
                self._emit_body(self._scan[:end_idx])
                self._close_patch()
                self._scan = self._scan[end_idx + len(END_TOKEN):]
                continue

            flush = self._aligned_flush_length(len(self._scan) - SCAN_WINDOW)
            if flush > 0:
                self._emit_body(self._scan[:flush])
                self._scan = self._scan[flush:]
            return

    def _read_payload(self, token: str) -> Optional[str]:
        """Consume ``token payload ]]`` from the head of the buffer"""
        close_idx = self._scan.find(PAYLOAD_CLOSE, len(token))
        if close_idx == -1:
            return None
        payload = self._scan[len(token):close_idx].strip()
        self._scan = self._scan[close_idx + len(PAYLOAD_CLOSE):]
        return payload

    def _handle_marker(self, token: str, payload: str) -> None:
        if token == DELETE_TOKEN:
            parsed = parse_delete_payload(payload)
            if parsed.path:
                self._emit(FileOpEvent.delete(parsed.path, reason=parsed.reason))
            else:
                self._drop(token, payload)
            return

        if token == MOVE_TOKEN:
            parsed = parse_move_payload(payload)
            if parsed.from_path and parsed.to_path:
                self._emit(FileOpEvent.move(parsed.from_path, parsed.to_path, reason=parsed.reason))
            else:
                self._drop(token, payload)
            return

        parsed = parse_patch_payload(payload, TOKEN_DEFAULT_MODES[token])
        if not parsed.path:
            self._drop(token, payload)
            return

        self._open = _OpenPatch(path=parsed.path, mode=parsed.mode, reason=parsed.reason)
        self._emit(FileOpEvent.patch(PatchPhase.START, parsed.path, parsed.mode, reason=parsed.reason))

    def _drop(self, token: str, payload: str) -> None:
        self.dropped_payloads += 1
        logger.debug(f"[FileOpParser] Dropped {token} marker without usable path: {payload[:80]!r}")

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def _aligned_flush_length(self, limit: int) -> int:
        """Longest prefix <= limit that ends on a chunk boundary of the body"""
        if limit <= 0:
            return 0
        offset = self._open.offset
        boundary = ((offset + limit) // self._chunk_size) * self._chunk_size
        return max(0, boundary - offset)

    def _emit_body(self, text: str) -> None:
        while text:
            room = self._chunk_size - (self._open.offset % self._chunk_size)
            piece, text = text[:room], text[room:]
            self._emit_chunk(piece)

    def _emit_chunk(self, piece: str) -> None:
        current = self._open
        current.offset += len(piece)
        self._emit(FileOpEvent.patch(
            PatchPhase.CHUNK, current.path, current.mode, reason=current.reason, chunk=piece
        ))

    def _close_patch(self, implicit: bool = False) -> None:
        current, self._open = self._open, None
        self._emit(FileOpEvent.patch(
            PatchPhase.END, current.path, current.mode, reason=current.reason, implicit=implicit
        ))

    def _emit(self, event: FileOpEvent) -> None:
        try:
            self._on_event(event)
        except Exception as e:
            # A faulty consumer must not corrupt scanner state
            logger.warning(f"[FileOpParser] on_event callback failed for {event.op.value}/{event.phase.value} {event.path}: {e}")


def parse_file_ops(text: str, chunk_size: Optional[int] = None) -> List[FileOpEvent]:
    """Parse a complete protocol text into its event list"""
    events: List[FileOpEvent] = []
    parser = FileOpParser(events.append, chunk_size=chunk_size)
    parser.push(text)
    parser.finalize()
    return events
