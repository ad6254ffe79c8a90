"""
Speech engine backed by the visitor's browser.

The browser runs the Web Speech API (speechSynthesis / SpeechRecognition).
This engine turns adapter calls into command messages on the session's
WebSocket; the browser answers with speech_event messages that the
connection handler feeds back through emit().
"""

import logging
from typing import TYPE_CHECKING

from frontdesk.models import (
    CancelSpeechMessage,
    ListenCommandData,
    ListenCommandMessage,
    SpeakCommandData,
    SpeakCommandMessage,
    SpeechCapabilities,
    StopListenMessage,
    VoiceSettings,
)
from frontdesk.speech.engine import SpeechEngine

if TYPE_CHECKING:
    from frontdesk.websocket import ConnectionManager

logger = logging.getLogger(__name__)


class WebSocketSpeechEngine(SpeechEngine):
    """
    Relays speak/listen commands to one browser session.

    Capabilities are whatever the browser reported in its connect message.
    A command that cannot be delivered raises ConnectionError so the adapter
    reports it like any other engine failure.
    """

    def __init__(
        self,
        session_id: str,
        manager: "ConnectionManager",
        capabilities: SpeechCapabilities,
    ):
        super().__init__()
        self.session_id = session_id
        self.manager = manager
        self._capabilities = capabilities

    @property
    def capabilities(self) -> SpeechCapabilities:
        return self._capabilities

    async def _send(self, message) -> None:
        sent = await self.manager.send_message(self.session_id, message.model_dump(mode="json"))
        if not sent:
            raise ConnectionError(f"Session {self.session_id} is not connected")

    async def speak(self, text: str, voice: VoiceSettings, generation: int) -> None:
        await self._send(
            SpeakCommandMessage(
                data=SpeakCommandData(text=text, generation=generation, voice=voice)
            )
        )

    async def cancel_speech(self) -> None:
        await self._send(CancelSpeechMessage())

    async def start_recognition(self, locale: str, generation: int) -> None:
        await self._send(
            ListenCommandMessage(
                data=ListenCommandData(generation=generation, locale=locale)
            )
        )

    async def stop_recognition(self) -> None:
        await self._send(StopListenMessage())

    async def close(self) -> None:
        logger.debug(f"WebSocketSpeechEngine closed for session {self.session_id}")
