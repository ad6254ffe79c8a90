"""
Speech Engine Adapter.

Wraps a SpeechEngine behind session objects and generation tokens so that
"is an utterance playing" and "is a recognition running" are race-free facts:

- speak() cancels whatever is playing first (cancel-then-speak, never queued)
- at most one session exists at a time: speak() ends an active recognition and
  listen() silences an active utterance, claiming the new session before any
  engine command is awaited
- every session gets a fresh generation; engine events carrying any other
  generation are stale and dropped
- cancel_speak()/stop_listen() are idempotent and end the session on the spot
- engines that never report a speak start get one cancel+speak retry after a
  short grace interval, then the utterance fails

States per kind: no session → active session → finished (session cleared).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from frontdesk.errors import RecognitionErrorKind, SpeechUnsupported, SynthesisErrorKind
from frontdesk.models import SpeechCapabilities, SpeechEvent, SpeechEventType, VoiceSettings
from frontdesk.orchestration.delay_timer import DelayTimer
from frontdesk.speech.engine import SpeechEngine

logger = logging.getLogger(__name__)

# First attempt plus one retry
MAX_SPEAK_ATTEMPTS = 2

SPEAK_EVENTS = {
    SpeechEventType.SPEAK_START,
    SpeechEventType.SPEAK_END,
    SpeechEventType.SPEAK_ERROR,
}


class SessionKind(str, Enum):
    SPEAK = "speak"
    LISTEN = "listen"


@dataclass
class SpeechSession:
    """
    One in-flight speak or listen operation.

    generation is replaced when a speak is re-issued by the start-grace
    retry, which turns the first attempt's late events stale.
    """
    kind: SessionKind
    generation: int
    text: Optional[str] = None
    attempts: int = 1
    started: bool = False
    finished: bool = False
    # listen: recognized/error already reported
    result_delivered: bool = False


class AdapterListener:
    """
    Receives normalized session events. Override what you need.

    Only events for the active session are delivered.
    """

    async def on_speak_start(self, session: SpeechSession) -> None:
        pass

    async def on_speak_end(self, session: SpeechSession) -> None:
        pass

    async def on_speak_error(self, session: SpeechSession, kind: SynthesisErrorKind) -> None:
        pass

    async def on_listen_start(self, session: SpeechSession) -> None:
        pass

    async def on_recognized(self, session: SpeechSession, text: str) -> None:
        pass

    async def on_listen_error(self, session: SpeechSession, kind: RecognitionErrorKind) -> None:
        pass

    async def on_listen_end(self, session: SpeechSession) -> None:
        pass


class SpeechAdapter:
    """
    Session-based wrapper around a SpeechEngine.

    One adapter per conversation; the orchestrator that owns it registers
    itself as listener.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        voice: Optional[VoiceSettings] = None,
        start_grace_ms: int = 100,
        listener: Optional[AdapterListener] = None,
    ):
        """
        Initialize adapter.

        Args:
            engine: Platform speech engine
            voice: Rate/pitch/volume/locale sent with every utterance
            start_grace_ms: How long a speak may go without a start event
            listener: Receiver of session events
        """
        self.engine = engine
        self.voice = voice or VoiceSettings()
        self._listener = listener or AdapterListener()

        # Evaluated once; engines do not gain capabilities mid-session
        self._capabilities = engine.capabilities

        self._generation = 0
        self._speak_session: Optional[SpeechSession] = None
        self._listen_session: Optional[SpeechSession] = None

        self._grace_timer = DelayTimer(
            self._on_start_grace_expired,
            start_grace_ms,
            name="speak start grace",
        )

        engine.bind(self.handle_event)

        logger.info(
            f"SpeechAdapter initialized: speech={self._capabilities.speech}, "
            f"recognition={self._capabilities.recognition}"
        )

    def set_listener(self, listener: AdapterListener) -> None:
        self._listener = listener

    def is_supported(self) -> SpeechCapabilities:
        """Capabilities as probed at construction."""
        return self._capabilities.model_copy()

    @property
    def speak_session(self) -> Optional[SpeechSession]:
        return self._speak_session

    @property
    def listen_session(self) -> Optional[SpeechSession]:
        return self._listen_session

    @property
    def is_speaking(self) -> bool:
        return self._speak_session is not None

    @property
    def is_listening(self) -> bool:
        return self._listen_session is not None

    @property
    def generation(self) -> int:
        """Most recently issued generation."""
        return self._generation

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    # ------------------------------------------------------------------
    # Speech output
    # ------------------------------------------------------------------

    async def speak(self, text: str) -> SpeechSession:
        """
        Speak text, cancelling any utterance in progress and ending any
        active recognition.

        Args:
            text: Non-empty text to speak

        Returns:
            The new speak session

        Raises:
            ValueError: text is empty
            SpeechUnsupported: engine has no synthesis
        """
        if not text or not text.strip():
            raise ValueError("text to speak must be non-empty")
        if not self._capabilities.speech:
            raise SpeechUnsupported("synthesis")

        # Claim before awaiting anything
        previous_speak = self._detach_speak()
        previous_listen = self._detach_listen()
        session = SpeechSession(
            kind=SessionKind.SPEAK,
            generation=self._next_generation(),
            text=text,
        )
        self._speak_session = session

        if previous_speak is not None:
            await self._silence(previous_speak)
        if previous_listen is not None:
            await self._end_listen(previous_listen)

        if self._speak_session is not session:
            logger.info(f"Utterance superseded before it was issued (generation {session.generation})")
            return session

        logger.info(f"Speaking (generation {session.generation}): {text[:50]}")
        await self._issue_speak(session)
        return session

    async def _issue_speak(self, session: SpeechSession) -> None:
        if self._speak_session is not session:
            return
        try:
            await self.engine.speak(session.text, self.voice, session.generation)
        except Exception as e:
            logger.error(f"Speech engine failed to accept utterance: {e}")
            await self._finish_speak(session, SynthesisErrorKind.OTHER)
            return

        # The engine may already have reported start, or the session may
        # have been superseded while the command was in flight
        if self._speak_session is session and not session.started:
            self._grace_timer.start()

    async def _on_start_grace_expired(self) -> None:
        session = self._speak_session
        if session is None or session.started or session.finished:
            return

        if session.attempts < MAX_SPEAK_ATTEMPTS:
            session.attempts += 1
            session.generation = self._next_generation()
            logger.warning(
                f"Speech may have failed to start, retrying "
                f"(generation {session.generation})"
            )
            try:
                await self.engine.cancel_speech()
            except Exception as e:
                logger.warning(f"Cancel before retry failed: {e}")
            await self._issue_speak(session)
            return

        logger.error(f"Speech did not start after {session.attempts} attempts")
        await self._finish_speak(session, SynthesisErrorKind.OTHER)

    async def _finish_speak(
        self,
        session: SpeechSession,
        error_kind: Optional[SynthesisErrorKind] = None,
    ) -> None:
        if session.finished:
            return
        session.finished = True
        if self._speak_session is session:
            self._speak_session = None
        self._grace_timer.cancel()

        if error_kind is None:
            await self._listener.on_speak_end(session)
        else:
            await self._listener.on_speak_error(session, error_kind)

    async def cancel_speak(self) -> bool:
        """
        Silence the active utterance. No events fire for it afterwards.

        Returns:
            True if something was cancelled, False if already silent
        """
        session = self._detach_speak()
        if session is None:
            return False

        await self._silence(session)
        return True

    def _detach_speak(self) -> Optional[SpeechSession]:
        session = self._speak_session
        if session is None:
            return None
        self._speak_session = None
        session.finished = True
        self._grace_timer.cancel()
        return session

    async def _silence(self, session: SpeechSession) -> None:
        logger.info(f"Cancelling speech (generation {session.generation})")
        try:
            await self.engine.cancel_speech()
        except Exception as e:
            logger.warning(f"Speech engine cancel failed: {e}")

    # ------------------------------------------------------------------
    # Speech input
    # ------------------------------------------------------------------

    async def listen(self) -> Optional[SpeechSession]:
        """
        Start a single-shot recognition, silencing any utterance in progress.

        Returns:
            The new listen session, or None if one is already active

        Raises:
            SpeechUnsupported: engine has no recognition
        """
        if not self._capabilities.recognition:
            raise SpeechUnsupported("recognition")

        if self._listen_session is not None:
            logger.warning("Recognition already active - ignoring listen request")
            return None

        # Claim before awaiting anything
        previous_speak = self._detach_speak()
        session = SpeechSession(kind=SessionKind.LISTEN, generation=self._next_generation())
        self._listen_session = session

        if previous_speak is not None:
            await self._silence(previous_speak)

        if self._listen_session is not session:
            logger.info(f"Recognition superseded before it started (generation {session.generation})")
            return session

        logger.info(f"Starting speech recognition (generation {session.generation})")
        try:
            await self.engine.start_recognition(self.voice.locale, session.generation)
        except Exception as e:
            logger.error(f"Failed to start recognition: {e}")
            session.result_delivered = True
            await self._listener.on_listen_error(session, RecognitionErrorKind.OTHER)
            await self._finish_listen(session)

        return session

    async def stop_listen(self) -> bool:
        """
        Stop the active recognition. listen_end still fires, exactly once.

        Returns:
            True if a recognition was stopped, False if none was active
        """
        session = self._detach_listen()
        if session is None:
            return False

        await self._end_listen(session)
        return True

    def _detach_listen(self) -> Optional[SpeechSession]:
        # Cleared first so the engine's own late end event is stale
        session = self._listen_session
        self._listen_session = None
        return session

    async def _end_listen(self, session: SpeechSession) -> None:
        logger.info(f"Stopping speech recognition (generation {session.generation})")
        try:
            await self.engine.stop_recognition()
        except Exception as e:
            logger.warning(f"Error stopping recognition: {e}")

        await self._finish_listen(session)

    async def _finish_listen(self, session: SpeechSession) -> None:
        if session.finished:
            return
        session.finished = True
        if self._listen_session is session:
            self._listen_session = None
        await self._listener.on_listen_end(session)

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    async def handle_event(self, event: SpeechEvent) -> None:
        """
        Route an engine event to the listener if it belongs to the active
        session of its kind.
        """
        if event.event in SPEAK_EVENTS:
            await self._handle_speak_event(event)
        else:
            await self._handle_listen_event(event)

    async def _handle_speak_event(self, event: SpeechEvent) -> None:
        session = self._speak_session
        if session is None or session.generation != event.generation:
            logger.debug(f"Ignoring stale {event.event.value} (generation {event.generation})")
            return

        if event.event == SpeechEventType.SPEAK_START:
            if session.started:
                return
            session.started = True
            self._grace_timer.cancel()
            logger.info(f"Speech started (generation {session.generation})")
            await self._listener.on_speak_start(session)

        elif event.event == SpeechEventType.SPEAK_END:
            logger.info(f"Speech ended (generation {session.generation})")
            await self._finish_speak(session)

        else:
            kind = SynthesisErrorKind.parse(event.error)
            if kind.is_benign:
                logger.debug(f"Speech {kind.value} (generation {session.generation})")
                await self._finish_speak(session)
            else:
                logger.error(f"Speech error: {event.error}")
                await self._finish_speak(session, kind)

    async def _handle_listen_event(self, event: SpeechEvent) -> None:
        session = self._listen_session
        if session is None or session.generation != event.generation:
            logger.debug(f"Ignoring stale {event.event.value} (generation {event.generation})")
            return

        if event.event == SpeechEventType.LISTEN_START:
            if session.started:
                return
            session.started = True
            logger.info("Listening started")
            await self._listener.on_listen_start(session)

        elif event.event == SpeechEventType.RECOGNIZED:
            if session.result_delivered:
                logger.debug("Duplicate recognition result - ignoring")
                return
            session.result_delivered = True
            text = (event.text or "").strip()
            if not text:
                await self._listener.on_listen_error(session, RecognitionErrorKind.NO_SPEECH)
                return
            logger.info(f"Recognized: {text}")
            await self._listener.on_recognized(session, text)

        elif event.event == SpeechEventType.LISTEN_ERROR:
            if session.result_delivered:
                return
            session.result_delivered = True
            kind = RecognitionErrorKind.parse(event.error)
            logger.warning(f"Recognition error: {kind.value}")
            await self._listener.on_listen_error(session, kind)

        else:
            logger.info("Listening ended")
            await self._finish_listen(session)

    async def close(self) -> None:
        """Stop all speech activity and release the engine."""
        await self.cancel_speak()
        await self.stop_listen()
        self._grace_timer.cancel()
        await self.engine.close()

    def __repr__(self) -> str:
        return (
            f"SpeechAdapter(generation={self._generation}, "
            f"speaking={self.is_speaking}, listening={self.is_listening})"
        )
