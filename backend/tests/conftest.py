"""
Shared test doubles.

FakeSpeechEngine stands in for the browser's Web Speech API: it records every
command it receives and lets a test play engine events back deterministically.
"""

import asyncio
from typing import List, Optional

import pytest

from frontdesk.dialogue.base import AssistantReply, DialogueStrategy
from frontdesk.models import SpeechCapabilities, SpeechEvent, SpeechEventType
from frontdesk.speech.adapter import AdapterListener, SpeechAdapter
from frontdesk.speech.engine import SpeechEngine


class FakeSpeechEngine(SpeechEngine):
    """
    Scriptable speech engine.

    start_on_speak: report speak_start on the Nth speak command (1 = every
    command starts immediately, None = never starts).
    yield_commands: every command yields to the event loop first, the way a
    WebSocket send does.
    """

    def __init__(
        self,
        speech: bool = True,
        recognition: bool = True,
        start_on_speak: Optional[int] = 1,
        fail_speak: bool = False,
        yield_commands: bool = False,
    ):
        super().__init__()
        self._capabilities = SpeechCapabilities(speech=speech, recognition=recognition)
        self.start_on_speak = start_on_speak
        self.fail_speak = fail_speak
        self.yield_commands = yield_commands
        self.commands: List[tuple] = []
        self.speak_generation: Optional[int] = None
        self.listen_generation: Optional[int] = None
        self.closed = False

    @property
    def capabilities(self) -> SpeechCapabilities:
        return self._capabilities

    def count(self, command: str) -> int:
        return sum(1 for c in self.commands if c[0] == command)

    @property
    def spoken(self) -> List[str]:
        return [c[1] for c in self.commands if c[0] == "speak"]

    async def _send(self, command: tuple):
        if self.yield_commands:
            await asyncio.sleep(0)
        self.commands.append(command)

    async def speak(self, text, voice, generation):
        await self._send(("speak", text, generation))
        if self.fail_speak:
            raise ConnectionError("engine offline")
        self.speak_generation = generation
        if self.start_on_speak is not None and self.count("speak") >= self.start_on_speak:
            await self.emit(SpeechEvent(event=SpeechEventType.SPEAK_START, generation=generation))

    async def cancel_speech(self):
        await self._send(("cancel_speech",))

    async def start_recognition(self, locale, generation):
        await self._send(("listen", locale, generation))
        self.listen_generation = generation

    async def stop_recognition(self):
        await self._send(("stop_listen",))

    async def close(self):
        self.closed = True

    # Engine-side event playback

    async def finish_speaking(self, generation: Optional[int] = None):
        await self.emit(SpeechEvent(
            event=SpeechEventType.SPEAK_END,
            generation=self.speak_generation if generation is None else generation,
        ))

    async def speech_error(self, code: str, generation: Optional[int] = None):
        await self.emit(SpeechEvent(
            event=SpeechEventType.SPEAK_ERROR,
            generation=self.speak_generation if generation is None else generation,
            error=code,
        ))

    async def listening_started(self):
        await self.emit(SpeechEvent(event=SpeechEventType.LISTEN_START, generation=self.listen_generation))

    async def hear(self, text: str, end: bool = True):
        """Recognize text, then end the recognition like a browser does."""
        generation = self.listen_generation
        await self.emit(SpeechEvent(event=SpeechEventType.RECOGNIZED, generation=generation, text=text))
        if end:
            await self.emit(SpeechEvent(event=SpeechEventType.LISTEN_END, generation=generation))

    async def listen_error(self, code: str, end: bool = True):
        generation = self.listen_generation
        await self.emit(SpeechEvent(event=SpeechEventType.LISTEN_ERROR, generation=generation, error=code))
        if end:
            await self.emit(SpeechEvent(event=SpeechEventType.LISTEN_END, generation=generation))


class RecordingListener(AdapterListener):
    """Adapter listener that logs every callback as a tuple."""

    def __init__(self):
        self.events: List[tuple] = []

    def names(self) -> List[str]:
        return [e[0] for e in self.events]

    async def on_speak_start(self, session):
        self.events.append(("speak_start", session.generation))

    async def on_speak_end(self, session):
        self.events.append(("speak_end", session.generation))

    async def on_speak_error(self, session, kind):
        self.events.append(("speak_error", kind))

    async def on_listen_start(self, session):
        self.events.append(("listen_start", session.generation))

    async def on_recognized(self, session, text):
        self.events.append(("recognized", text))

    async def on_listen_error(self, session, kind):
        self.events.append(("listen_error", kind))

    async def on_listen_end(self, session):
        self.events.append(("listen_end", session.generation))


class FakeRemoteStrategy(DialogueStrategy):
    """
    Chat-like strategy whose replies are released by the test.

    Clear `gate` to hold next_turn in flight; set it to let the reply through.
    """

    name = "chat"
    is_remote = True

    def __init__(self, replies=None, error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.error = error
        self.gate = asyncio.Event()
        self.gate.set()
        self.seen: List[List[str]] = []
        self.closed = False

    @property
    def greeting(self) -> str:
        return "Welcome to the office."

    async def next_turn(self, transcript, user_text):
        self.seen.append([turn.text for turn in transcript])
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return AssistantReply(text=self.replies.pop(0) if self.replies else "Noted.")

    async def close(self):
        self.closed = True


@pytest.fixture
def engine():
    return FakeSpeechEngine()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def adapter(engine, listener):
    return SpeechAdapter(engine, start_grace_ms=50, listener=listener)
