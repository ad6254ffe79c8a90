"""
Pydantic models for conversation data and WebSocket messages.

The browser owns the speech hardware (Web Speech API); the server drives it
with command messages and receives speech events tagged with the session
generation the server handed out.
"""

import time
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def now_ms() -> int:
    """Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


# ============================================================================
# Enums
# ============================================================================

class Role(str, Enum):
    """Who produced a turn."""
    VISITOR = "visitor"
    ASSISTANT = "assistant"

    @property
    def chat_role(self) -> str:
        """Role name understood by chat-completion backends."""
        return "user" if self is Role.VISITOR else "assistant"


class ActivityState(str, Enum):
    """
    What the orchestrator is doing right now.

    Derived from the speak session, the listen session and the
    outstanding-backend flag; never stored on its own.
    """
    IDLE = "IDLE"
    AWAITING_BACKEND = "AWAITING_BACKEND"
    SPEAKING = "SPEAKING"
    LISTENING = "LISTENING"


class SpeechEventType(str, Enum):
    """Events a speech engine reports back."""
    SPEAK_START = "speak_start"
    SPEAK_END = "speak_end"
    SPEAK_ERROR = "speak_error"
    LISTEN_START = "listen_start"
    RECOGNIZED = "recognized"
    LISTEN_ERROR = "listen_error"
    LISTEN_END = "listen_end"


# ============================================================================
# Conversation data
# ============================================================================

class Turn(BaseModel):
    """One utterance in the transcript. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Role
    text: str = Field(..., min_length=1)
    timestamp: int = Field(default_factory=now_ms)


class VoiceSettings(BaseModel):
    """Static speech engine configuration."""
    rate: float = Field(default=0.95, ge=0.1, le=10.0)
    pitch: float = Field(default=1.1, ge=0.0, le=2.0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    locale: str = "en-US"


class SpeechCapabilities(BaseModel):
    """Which speech primitives the engine provides."""
    speech: bool = False
    recognition: bool = False


class SpeechEvent(BaseModel):
    """
    Speech engine event.

    generation echoes the value the adapter passed with the command that
    started the session; events for any other generation are stale.
    """
    event: SpeechEventType
    generation: int = Field(..., ge=0)
    text: Optional[str] = Field(None, description="Recognized text (recognized only)")
    error: Optional[str] = Field(None, description="Engine error code (*_error only)")


class OrchestratorSnapshot(BaseModel):
    """Read-only view of the orchestrator for the UI."""
    activity: ActivityState
    is_speaking: bool
    is_listening: bool
    is_awaiting_backend: bool
    last_error: Optional[str]
    transcript: list[Turn]


# ============================================================================
# Client → Server Messages
# ============================================================================

class ConnectData(BaseModel):
    """Connect data payload."""
    capabilities: SpeechCapabilities = Field(default_factory=SpeechCapabilities)


class ConnectMessage(BaseModel):
    """
    Sent on initial connection.
    Reports which Web Speech capabilities the browser has.
    """
    type: Literal["connect"] = "connect"
    data: ConnectData = Field(default_factory=ConnectData)


class UserTextData(BaseModel):
    text: str


class UserTextMessage(BaseModel):
    """Typed visitor input."""
    type: Literal["user_text"] = "user_text"
    data: UserTextData


class StartListeningMessage(BaseModel):
    """Microphone button pressed (barge-in if the agent is speaking)."""
    type: Literal["start_listening"] = "start_listening"
    data: dict = Field(default_factory=dict)


class StopListeningMessage(BaseModel):
    type: Literal["stop_listening"] = "stop_listening"
    data: dict = Field(default_factory=dict)


class StopSpeakingMessage(BaseModel):
    type: Literal["stop_speaking"] = "stop_speaking"
    data: dict = Field(default_factory=dict)


class SpeechEventMessage(BaseModel):
    """Speech engine event relayed by the browser."""
    type: Literal["speech_event"] = "speech_event"
    data: SpeechEvent


class GetHistoryMessage(BaseModel):
    """
    Request conversation history.
    """
    type: Literal["get_history"] = "get_history"
    data: dict = Field(default_factory=dict)


class DisconnectMessage(BaseModel):
    """
    Sent when user closes connection.
    Clean disconnect.
    """
    type: Literal["disconnect"] = "disconnect"
    data: dict = Field(default_factory=dict)


class PingMessage(BaseModel):
    """
    Heartbeat ping message.
    """
    type: Literal["ping"] = "ping"
    data: dict = Field(default_factory=dict)


class PongMessage(BaseModel):
    """
    Heartbeat pong response.
    """
    type: Literal["pong"] = "pong"
    data: dict = Field(default_factory=dict)


# ============================================================================
# Server → Client Messages
# ============================================================================

class SessionReadyData(BaseModel):
    """Session ready data payload."""
    session_id: str = Field(
        ...,
        description="UUID of created session"
    )
    dialogue_mode: str = Field(
        ...,
        description="Active dialogue strategy"
    )
    timestamp: int = Field(
        default_factory=now_ms,
        description="Unix timestamp in milliseconds"
    )


class SessionReadyMessage(BaseModel):
    """
    Sent on successful connection.
    Confirms session created.
    """
    type: Literal["session_ready"] = "session_ready"
    data: SessionReadyData


class TranscriptTurnMessage(BaseModel):
    """Sent whenever a turn is appended to the transcript."""
    type: Literal["transcript_turn"] = "transcript_turn"
    data: Turn


class HistoryData(BaseModel):
    turns: list[Turn]


class HistoryMessage(BaseModel):
    """Full transcript, in order."""
    type: Literal["history"] = "history"
    data: HistoryData


class StateChangeData(BaseModel):
    """State change data payload."""
    from_state: ActivityState = Field(
        ...,
        description="Previous state"
    )
    to_state: ActivityState = Field(
        ...,
        description="New state"
    )
    timestamp: int = Field(
        default_factory=now_ms,
        description="Unix timestamp in milliseconds"
    )


class StateChangeMessage(BaseModel):
    """
    Sent when the orchestrator activity changes.
    Drives the speaking/listening indicators.
    """
    type: Literal["state_change"] = "state_change"
    data: StateChangeData


class SpeakCommandData(BaseModel):
    text: str = Field(..., min_length=1)
    generation: int = Field(..., ge=0)
    voice: VoiceSettings


class SpeakCommandMessage(BaseModel):
    """Cancel any utterance in progress, then speak this text."""
    type: Literal["speak"] = "speak"
    data: SpeakCommandData


class CancelSpeechMessage(BaseModel):
    """Silence the synthesizer immediately."""
    type: Literal["cancel_speech"] = "cancel_speech"
    data: dict = Field(default_factory=dict)


class ListenCommandData(BaseModel):
    generation: int = Field(..., ge=0)
    locale: str


class ListenCommandMessage(BaseModel):
    """Start one single-shot recognition (no interim results)."""
    type: Literal["listen"] = "listen"
    data: ListenCommandData


class StopListenMessage(BaseModel):
    """Stop the active recognition."""
    type: Literal["stop_listen"] = "stop_listen"
    data: dict = Field(default_factory=dict)


class ErrorData(BaseModel):
    """Error data payload."""
    code: str = Field(
        ...,
        description="Error code"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    recoverable: bool = Field(
        ...,
        description="True if system can recover automatically"
    )
    timestamp: int = Field(
        default_factory=now_ms,
        description="Unix timestamp in milliseconds"
    )


class ErrorMessage(BaseModel):
    """
    Sent when error occurs.
    Notifies frontend of issues.
    """
    type: Literal["error"] = "error"
    data: ErrorData


# ============================================================================
# Union Types for Message Routing
# ============================================================================

# All possible client messages
ClientMessage = Annotated[
    Union[
        ConnectMessage,
        UserTextMessage,
        StartListeningMessage,
        StopListeningMessage,
        StopSpeakingMessage,
        SpeechEventMessage,
        GetHistoryMessage,
        DisconnectMessage,
        PingMessage,
        PongMessage,
    ],
    Field(discriminator="type"),
]

# All possible server messages
ServerMessage = (
    SessionReadyMessage |
    TranscriptTurnMessage |
    HistoryMessage |
    StateChangeMessage |
    SpeakCommandMessage |
    CancelSpeechMessage |
    ListenCommandMessage |
    StopListenMessage |
    ErrorMessage |
    PongMessage
)

client_message_adapter: TypeAdapter = TypeAdapter(ClientMessage)


def parse_client_message(raw: dict):
    """
    Validate a raw client message into its typed model.

    Raises:
        pydantic.ValidationError: unknown type or malformed payload
    """
    return client_message_adapter.validate_python(raw)
