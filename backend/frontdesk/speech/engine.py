"""
Speech engine interface.

A speech engine is the raw platform capability: it can synthesize text and
run single-shot recognitions, and it reports what happened as SpeechEvents
tagged with the generation it was given. It keeps no session bookkeeping of
its own; SpeechAdapter does that.
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from frontdesk.models import SpeechCapabilities, SpeechEvent, VoiceSettings

logger = logging.getLogger(__name__)

EventSink = Callable[[SpeechEvent], Awaitable[None]]


class SpeechEngine(ABC):
    """Raw speak/listen primitives plus an event channel back to the adapter."""

    def __init__(self) -> None:
        self._sink: Optional[EventSink] = None

    def bind(self, sink: EventSink) -> None:
        """Route this engine's events to sink (called once by the adapter)."""
        self._sink = sink

    async def emit(self, event: SpeechEvent) -> None:
        """Deliver an engine event to the bound adapter."""
        if self._sink is None:
            logger.warning(f"Speech event with no adapter bound: {event.event}")
            return
        await self._sink(event)

    @property
    @abstractmethod
    def capabilities(self) -> SpeechCapabilities:
        """What this engine can do."""

    @abstractmethod
    async def speak(self, text: str, voice: VoiceSettings, generation: int) -> None:
        """Start synthesizing text. Completion is reported through events."""

    @abstractmethod
    async def cancel_speech(self) -> None:
        """Silence any utterance immediately."""

    @abstractmethod
    async def start_recognition(self, locale: str, generation: int) -> None:
        """Begin one single-shot recognition without interim results."""

    @abstractmethod
    async def stop_recognition(self) -> None:
        """Stop the active recognition."""

    async def close(self) -> None:
        """Release engine resources."""


class TextOnlySpeechEngine(SpeechEngine):
    """Engine for clients without speech support; every capability is off."""

    @property
    def capabilities(self) -> SpeechCapabilities:
        return SpeechCapabilities(speech=False, recognition=False)

    async def speak(self, text: str, voice: VoiceSettings, generation: int) -> None:
        raise NotImplementedError("text-only engine cannot speak")

    async def cancel_speech(self) -> None:
        pass

    async def start_recognition(self, locale: str, generation: int) -> None:
        raise NotImplementedError("text-only engine cannot listen")

    async def stop_recognition(self) -> None:
        pass
