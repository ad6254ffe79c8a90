"""
Tests for ConnectionManager session bookkeeping and typed sends.
"""

import pytest

from frontdesk.models import ActivityState, Role, Turn
from frontdesk.websocket import ConnectionManager


class FakeWebSocket:

    def __init__(self, fail=False):
        self.client = ("127.0.0.1", 5555)
        self.accepted = False
        self.fail = fail
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


class TestConnectionManager:

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()

        session_id = await manager.connect(ws)
        assert ws.accepted
        assert session_id in manager.active_connections
        assert manager.get_session_count() == 1
        assert manager.session_metadata[session_id]["total_messages"] == 0

        await manager.disconnect(session_id)
        await manager.disconnect(session_id)
        assert session_id not in manager.active_connections
        assert session_id not in manager.session_metadata

    @pytest.mark.asyncio
    async def test_typed_messages(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        session_id = await manager.connect(ws)

        turn = Turn(role=Role.ASSISTANT, text="Hello")
        await manager.send_session_ready(session_id, "scripted")
        await manager.send_turn(session_id, turn)
        await manager.send_history(session_id, [turn])
        await manager.send_state_change(session_id, ActivityState.IDLE, ActivityState.SPEAKING)
        await manager.send_error(session_id, "backend_error", "timeout", recoverable=True)

        assert [m["type"] for m in ws.sent] == [
            "session_ready", "transcript_turn", "history", "state_change", "error",
        ]
        assert ws.sent[1]["data"]["role"] == "assistant"
        assert ws.sent[3]["data"]["to_state"] == "SPEAKING"
        assert manager.session_metadata[session_id]["total_messages"] == 5

    @pytest.mark.asyncio
    async def test_send_to_unknown_or_broken_session(self):
        manager = ConnectionManager()
        assert not await manager.send_message("missing", {"type": "pong"})

        session_id = await manager.connect(FakeWebSocket(fail=True))
        assert not await manager.send_message(session_id, {"type": "pong"})
