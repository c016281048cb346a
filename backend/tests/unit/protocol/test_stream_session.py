"""
Unit Tests for FileOpStreamSession
"""
import pytest

from patchstream.core.exceptions import PolicyViolationError
from patchstream.modules.protocol.events import PatchMode
from patchstream.modules.protocol.policy_gate import FileOpPolicyGate, WritePolicy
from patchstream.modules.protocol.stream_session import FileOpStreamSession


async def deltas(*parts):
    for part in parts:
        yield part


class TestStreamSession:
    """Test assembling files from a stream"""

    def test_feed_and_close_assembles_files(self):
        session = FileOpStreamSession(chunk_size=4)
        session.feed("[[START_FILE: index.html]]<h1>Hi</h1>[[END_")
        session.feed("FILE]][[EDIT_FILE: app.js]]run()")
        result = session.close()

        assert result.files == {"index.html": "<h1>Hi</h1>", "app.js": "run()"}
        assert result.modes == {"index.html": PatchMode.CREATE, "app.js": PatchMode.EDIT}

    def test_delete_and_move_update_files(self):
        session = FileOpStreamSession()
        session.feed("[[START_FILE: a.css]]body{}[[END_FILE]]")
        session.feed("[[MOVE_FILE: a.css -> styles/a.css]][[DELETE_FILE: old.js]]")
        result = session.close()

        assert result.files == {"styles/a.css": "body{}"}
        assert result.moved == [("a.css", "styles/a.css")]
        assert result.deleted == ["old.js"]

    def test_on_event_receives_applied_events(self):
        seen = []
        session = FileOpStreamSession(on_event=seen.append)
        session.feed("[[DELETE_FILE: x.js]]")
        session.close()
        assert [e.path for e in seen] == ["x.js"]

    def test_feed_after_close_raises(self):
        session = FileOpStreamSession()
        session.close()
        with pytest.raises(RuntimeError):
            session.feed("text")

    def test_blocked_event_raises_and_is_not_applied(self):
        gate = FileOpPolicyGate(WritePolicy(max_touched_files=1))
        session = FileOpStreamSession(policy_gate=gate)

        session.feed("[[EDIT_FILE: a.js]]ok[[END_FILE]]")
        with pytest.raises(PolicyViolationError) as exc_info:
            session.feed("[[EDIT_FILE: b.js]]nope[[END_FILE]]")

        assert exc_info.value.code == "POLICY_VIOLATION"
        assert exc_info.value.violation.code == "TOUCH_BUDGET_EXCEEDED"
        assert "b.js" not in session.result.files
        assert session.result.files == {"a.js": "ok"}

    @pytest.mark.asyncio
    async def test_consume_async_stream(self):
        session = FileOpStreamSession()
        result = await session.consume(deltas("[[START_FI", "LE: s.js]]let a", " = 1;[[END_FILE]]"))

        assert result.files == {"s.js": "let a = 1;"}
        assert result.events == 3

    @pytest.mark.asyncio
    async def test_consume_stops_on_violation(self):
        gate = FileOpPolicyGate(WritePolicy(interaction_mode="edit", allowed_edit_paths=["a.js"]))
        session = FileOpStreamSession(policy_gate=gate)

        with pytest.raises(PolicyViolationError):
            await session.consume(deltas("[[EDIT_FILE: z.js]]", "x[[END_FILE]]"))
