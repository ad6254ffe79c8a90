"""
Unit tests for Transcript and Turn.
"""

import pytest
from pydantic import ValidationError

from frontdesk.models import Role, Turn
from frontdesk.orchestration.transcript import Transcript


class TestTranscript:

    def test_append_preserves_order(self):
        transcript = Transcript()
        transcript.add(Role.ASSISTANT, "Hello")
        transcript.add(Role.VISITOR, "Hi")
        transcript.add(Role.ASSISTANT, "How can I help?")

        assert [t.text for t in transcript] == ["Hello", "Hi", "How can I help?"]
        assert len(transcript) == 3
        assert transcript.last().text == "How can I help?"

    def test_empty_transcript(self):
        transcript = Transcript()
        assert len(transcript) == 0
        assert transcript.last() is None
        assert transcript.all() == ()

    def test_all_is_a_snapshot(self):
        transcript = Transcript()
        transcript.add(Role.VISITOR, "one")
        snapshot = transcript.all()

        transcript.add(Role.VISITOR, "two")
        assert len(snapshot) == 1
        assert len(transcript.all()) == 2

    def test_chat_messages(self):
        transcript = Transcript()
        transcript.add(Role.ASSISTANT, "Welcome")
        transcript.add(Role.VISITOR, "I'm here to see Alex")

        assert transcript.as_chat_messages() == [
            {"role": "assistant", "content": "Welcome"},
            {"role": "user", "content": "I'm here to see Alex"},
        ]

    def test_timestamps_are_milliseconds(self):
        turn = Transcript().add(Role.VISITOR, "hi")
        assert turn.timestamp > 1_000_000_000_000


class TestTurn:

    def test_turn_is_immutable(self):
        turn = Turn(role=Role.VISITOR, text="hi")
        with pytest.raises(ValidationError):
            turn.text = "changed"

    def test_empty_text_rejected(self):
        with pytest.raises(ValidationError):
            Turn(role=Role.ASSISTANT, text="")
