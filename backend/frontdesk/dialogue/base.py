"""
Dialogue strategy interface.

A strategy decides the assistant's next turn. The orchestrator appends the
visitor turn before asking, so the transcript passed in already ends with it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from frontdesk.errors import ConfigError
from frontdesk.orchestration.transcript import Transcript


@dataclass(frozen=True)
class AssistantReply:
    """Text of the next assistant turn."""
    text: str


class DialogueStrategy(ABC):
    """
    Produces assistant turns.

    next_turn may raise BackendError or ConfigError; the orchestrator turns
    either into a spoken apology.
    """

    #: Name reported to clients ("scripted" or "chat")
    name: str = ""

    #: True when next_turn makes a network round trip
    is_remote: bool = False

    @property
    @abstractmethod
    def greeting(self) -> str:
        """Default opening line."""

    @property
    def config_error(self) -> Optional[ConfigError]:
        """Startup configuration problem, if any."""
        return None

    @abstractmethod
    async def next_turn(self, transcript: Transcript, user_text: str) -> AssistantReply:
        """
        Produce the next assistant turn.

        Args:
            transcript: Conversation so far, ending with the visitor turn
            user_text: The visitor's latest input

        Returns:
            Reply to append and speak
        """

    async def close(self) -> None:
        """Release resources (timers, HTTP sessions)."""
