"""
Conversation Orchestrator - drives the receptionist's turn-taking loop.

Coordinates:
- Transcript ownership (append-only)
- Dialogue strategy invocation (scripted FSM or chat backend)
- Speech output and input through the SpeechAdapter
- Error recovery: every failure ends as a spoken apology or a flag reset

Critical: Listening and Speaking are mutually exclusive. Starting either one
stops the other first, and both flags are read straight from the adapter's
active sessions so a stale engine event can never flip them.

Activity (derived, not stored):
    SPEAKING > LISTENING > AWAITING_BACKEND > IDLE
"""

import asyncio
import logging
from typing import Awaitable, Callable, Coroutine, Optional, Set, Tuple

from frontdesk.dialogue.base import DialogueStrategy
from frontdesk.errors import (
    BackendError,
    ConfigError,
    RecognitionErrorKind,
    SpeechUnsupported,
    SynthesisErrorKind,
)
from frontdesk.models import ActivityState, OrchestratorSnapshot, Role, Turn
from frontdesk.orchestration.transcript import Transcript
from frontdesk.speech.adapter import AdapterListener, SpeechAdapter, SpeechSession

logger = logging.getLogger(__name__)

APOLOGY_TEXT = "Sorry, I encountered an error. Please try again."
SPEECH_FAILED_TEXT = "Speech synthesis failed. Please check your browser settings."
RECOGNITION_UNSUPPORTED_TEXT = "Speech recognition is not supported here. Please use text input."

RECOGNITION_HINTS = {
    RecognitionErrorKind.NO_SPEECH: "I didn't hear anything. Please try again or use text input.",
    RecognitionErrorKind.NOT_ALLOWED: "Microphone access was denied. Please allow it or use text input.",
    RecognitionErrorKind.NETWORK: "Voice input failed because of a network problem. Please try again or use text input.",
    RecognitionErrorKind.OTHER: "Voice input failed. Please try again or use text input.",
}


class ConversationOrchestrator(AdapterListener):
    """
    Owns one conversation: its transcript, dialogue strategy and speech adapter.

    UI callbacks are optional and async:
    - on_turn(turn): a turn was appended
    - on_state_change(from_state, to_state): activity changed
    - on_error(code, message, recoverable): something the visitor should see
    """

    def __init__(
        self,
        strategy: DialogueStrategy,
        speech: SpeechAdapter,
        greeting: Optional[str] = None,
        on_turn: Optional[Callable[[Turn], Awaitable[None]]] = None,
        on_state_change: Optional[Callable[[ActivityState, ActivityState], Awaitable[None]]] = None,
        on_error: Optional[Callable[[str, str, bool], Awaitable[None]]] = None,
    ):
        self.strategy = strategy
        self.speech = speech
        self.speech.set_listener(self)

        self.on_turn = on_turn
        self.on_state_change = on_state_change
        self.on_error = on_error

        self._greeting = greeting
        self._transcript = Transcript()
        self._greeted = False
        self._awaiting_backend = False
        self._closed = False
        self._last_error: Optional[str] = None
        self._activity = ActivityState.IDLE
        self._config_error_reported = False

        # Background turns started from recognized speech
        self._tasks: Set[asyncio.Task] = set()

        capabilities = speech.is_supported()
        if not capabilities.speech:
            logger.warning("Speech synthesis unavailable - replies will be text only")
        if not capabilities.recognition:
            logger.warning("Speech recognition unavailable - text input only")

        if strategy.config_error is not None:
            self._last_error = str(strategy.config_error)

        logger.info(f"ConversationOrchestrator initialized with {strategy.name or type(strategy).__name__} dialogue")

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def is_speaking(self) -> bool:
        return self.speech.is_speaking

    @property
    def is_listening(self) -> bool:
        return self.speech.is_listening

    @property
    def is_awaiting_backend(self) -> bool:
        return self._awaiting_backend

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def transcript(self) -> Tuple[Turn, ...]:
        """Ordered turns; a snapshot, never the live buffer."""
        return self._transcript.all()

    @property
    def activity(self) -> ActivityState:
        if self.is_speaking:
            return ActivityState.SPEAKING
        if self.is_listening:
            return ActivityState.LISTENING
        if self._awaiting_backend:
            return ActivityState.AWAITING_BACKEND
        return ActivityState.IDLE

    def snapshot(self) -> OrchestratorSnapshot:
        return OrchestratorSnapshot(
            activity=self.activity,
            is_speaking=self.is_speaking,
            is_listening=self.is_listening,
            is_awaiting_backend=self._awaiting_backend,
            last_error=self._last_error,
            transcript=list(self._transcript.all()),
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Report a standing configuration error once, then greet."""
        error = self.strategy.config_error
        if error is not None and not self._config_error_reported:
            self._config_error_reported = True
            await self._notify(self.on_error, "config_error", str(error), False)
        await self.greet()

    async def greet(self) -> None:
        """Append and speak the opening line. Runs once per orchestrator."""
        if self._greeted:
            return
        self._greeted = True

        text = self._greeting or self.strategy.greeting
        logger.info(f"Greeting: {text}")
        await self._append(Role.ASSISTANT, text)
        await self._speak(text)

    async def send_user_text(self, text: Optional[str]) -> bool:
        """
        Run one visitor turn.

        Args:
            text: Typed or recognized visitor input

        Returns:
            True if the input was accepted. Blank input, input arriving while a
            backend reply is outstanding, and input after close are rejected.
        """
        if self._closed:
            return False
        if text is None or not text.strip():
            return False
        if self._awaiting_backend:
            logger.info("Backend reply outstanding - rejecting visitor input")
            return False

        text = text.strip()
        # Claimed before the first await so a concurrent submit sees it
        self._awaiting_backend = self.strategy.is_remote
        if self.strategy.config_error is None:
            self._last_error = None

        await self._append(Role.VISITOR, text)
        await self._publish()

        try:
            reply = (await self.strategy.next_turn(self._transcript, text)).text
        except ConfigError as e:
            reply = await self._turn_failed("config_error", e, recoverable=False)
        except BackendError as e:
            reply = await self._turn_failed("backend_error", e, recoverable=True)
        except Exception as e:
            logger.error(f"Error generating reply: {e}", exc_info=True)
            reply = await self._turn_failed("dialogue_error", e, recoverable=True)
        finally:
            self._awaiting_backend = False

        if self._closed:
            logger.info("Conversation closed while awaiting reply - dropping it")
            return True

        if not reply or not reply.strip():
            reply = APOLOGY_TEXT

        await self._append(Role.ASSISTANT, reply)
        await self._speak(reply)
        return True

    def submit_user_text(self, text: str) -> None:
        """Run send_user_text in the background (transport receive loops)."""
        self._spawn(self.send_user_text(text))

    async def start_voice_input(self) -> bool:
        """
        Begin listening, cancelling any speech first (barge-in).

        Returns:
            True if a recognition session was started
        """
        if self._closed:
            return False
        if self.speech.is_listening:
            logger.debug("Already listening - ignoring start request")
            return False
        if self._awaiting_backend:
            logger.info("Backend reply outstanding - not listening yet")
            return False

        if self.speech.is_speaking:
            # listen() silences the utterance itself
            logger.info("Barge-in: cancelling speech to listen")

        try:
            session = await self.speech.listen()
        except SpeechUnsupported:
            self._last_error = RECOGNITION_UNSUPPORTED_TEXT
            await self._notify(self.on_error, "recognition_unsupported", RECOGNITION_UNSUPPORTED_TEXT, True)
            await self._publish()
            return False

        await self._publish()
        return session is not None and self.speech.listen_session is session

    async def stop_voice_input(self) -> None:
        """Stop listening (and any speech)."""
        await self.speech.cancel_speak()
        await self.speech.stop_listen()
        await self._publish()

    async def stop_speaking(self) -> None:
        """Silence the current reply."""
        await self.speech.cancel_speak()
        await self._publish()

    async def drain(self) -> None:
        """Wait for turns started from recognized speech to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Stop speech activity and release the strategy. Turns in flight are cancelled."""
        if self._closed:
            return
        self._closed = True

        pending = [task for task in self._tasks if task is not asyncio.current_task()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} turn(s) in flight")

        await self.speech.close()
        await self.strategy.close()
        logger.info(f"ConversationOrchestrator closed after {len(self._transcript)} turns")

    # ------------------------------------------------------------------
    # Adapter events
    # ------------------------------------------------------------------

    async def on_speak_start(self, session: SpeechSession) -> None:
        await self._publish()

    async def on_speak_end(self, session: SpeechSession) -> None:
        await self._publish()

    async def on_speak_error(self, session: SpeechSession, kind: SynthesisErrorKind) -> None:
        self._last_error = SPEECH_FAILED_TEXT
        await self._notify(self.on_error, "speech_error", SPEECH_FAILED_TEXT, True)
        await self._publish()

    async def on_listen_start(self, session: SpeechSession) -> None:
        await self._publish()

    async def on_recognized(self, session: SpeechSession, text: str) -> None:
        # Off the event path so a backend round trip does not stall engine events
        self.submit_user_text(text)

    async def on_listen_error(self, session: SpeechSession, kind: RecognitionErrorKind) -> None:
        hint = RECOGNITION_HINTS.get(kind)
        if hint:
            self._last_error = hint
            await self._notify(self.on_error, "recognition_error", hint, True)
        await self.speech.stop_listen()

    async def on_listen_end(self, session: SpeechSession) -> None:
        await self._publish()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _speak(self, text: str) -> None:
        if self._closed:
            return

        if not self.speech.is_supported().speech:
            await self.speech.stop_listen()
            await self._publish()
            return

        # speak() ends an active recognition itself

        try:
            await self.speech.speak(text)
        except SpeechUnsupported:
            logger.warning("Speech synthesis unavailable - reply shown as text only")
        await self._publish()

    async def _turn_failed(self, code: str, error: Exception, recoverable: bool) -> str:
        message = str(error) or type(error).__name__
        self._last_error = message

        if isinstance(error, ConfigError):
            # Surfaced once; later turns only get the apology
            if self._config_error_reported:
                return APOLOGY_TEXT
            self._config_error_reported = True

        logger.warning(f"Turn failed ({code}): {message}")
        await self._notify(self.on_error, code, message, recoverable)
        return APOLOGY_TEXT

    async def _append(self, role: Role, text: str) -> Turn:
        turn = self._transcript.add(role, text)
        await self._notify(self.on_turn, turn)
        return turn

    async def _publish(self) -> None:
        new_state = self.activity
        if new_state == self._activity:
            return
        old_state = self._activity
        self._activity = new_state
        logger.info(f"Activity: {old_state.value} → {new_state.value}")
        await self._notify(self.on_state_change, old_state, new_state)

    async def _notify(self, callback: Optional[Callable[..., Awaitable[None]]], *args) -> None:
        if callback is None:
            return
        try:
            await callback(*args)
        except Exception as e:
            logger.error(f"Error in UI callback: {e}", exc_info=True)

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def __repr__(self) -> str:
        return (
            f"ConversationOrchestrator(activity={self.activity.value}, "
            f"turns={len(self._transcript)})"
        )
