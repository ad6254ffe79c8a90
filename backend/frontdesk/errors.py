"""
Error taxonomy for the front-desk voice agent.

Speech engines report failures as short strings (Web Speech API error codes);
they are normalized into the enums below before reaching the orchestrator.
"""

from enum import Enum
from typing import Optional


class RecognitionErrorKind(str, Enum):
    """Speech recognition failure kinds."""
    NO_SPEECH = "no-speech"
    NOT_ALLOWED = "not-allowed"
    NETWORK = "network"
    ABORTED = "aborted"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RecognitionErrorKind":
        """Map a raw engine error code to a kind, defaulting to OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class SynthesisErrorKind(str, Enum):
    """
    Speech synthesis failure kinds.

    INTERRUPTED and CANCELED happen on every ordinary cancel-and-restart
    and count as a normal end of speech.
    """
    INTERRUPTED = "interrupted"
    CANCELED = "canceled"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SynthesisErrorKind":
        """Map a raw engine error code to a kind, defaulting to OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER

    @property
    def is_benign(self) -> bool:
        return self in (SynthesisErrorKind.INTERRUPTED, SynthesisErrorKind.CANCELED)


class FrontDeskError(Exception):
    """Base class for all front-desk errors."""


class ConfigError(FrontDeskError):
    """Required configuration is missing (e.g. the backend API key)."""


class SpeechUnsupported(FrontDeskError):
    """The speech engine lacks the requested capability."""

    def __init__(self, capability: str):
        self.capability = capability
        super().__init__(f"Speech {capability} not supported")


class BackendError(FrontDeskError):
    """
    Remote dialogue backend failed.

    Attributes:
        cause: Human-readable description of the failure
        status: HTTP status if the backend answered, None for transport errors
        authorization: True when the backend rejected the credential
    """

    def __init__(
        self,
        cause: str,
        status: Optional[int] = None,
        authorization: bool = False,
    ):
        self.cause = cause
        self.status = status
        self.authorization = authorization
        super().__init__(cause)


class InvalidTransition(FrontDeskError):
    """Booking state machine was asked for a transition it does not allow."""


class SlotAlreadyFilled(FrontDeskError):
    """An appointment slot was written twice within one booking session."""
