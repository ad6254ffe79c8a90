"""
Conversation transcript for maintaining turn-based context.

Append-only: turns are never updated, removed or reordered. Used both as the
UI render feed and as the context window for a remote dialogue backend.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from frontdesk.models import Role, Turn


class Transcript:
    """
    Tracks the full turn-based conversation history.

    This buffer is unbounded to preserve all turns.
    """

    def __init__(self) -> None:
        self._turns: List[Turn] = []

    def append(self, turn: Turn) -> None:
        """
        Add a turn to the end of the transcript.

        Args:
            turn: Immutable turn to record
        """
        self._turns.append(turn)

    def add(self, role: Role, text: str) -> Turn:
        """Build a turn stamped now and append it."""
        turn = Turn(role=role, text=text)
        self.append(turn)
        return turn

    def all(self) -> Tuple[Turn, ...]:
        """
        Get every turn in conversation order.

        Returns:
            Read-only snapshot of the transcript
        """
        return tuple(self._turns)

    def last(self) -> Optional[Turn]:
        return self._turns[-1] if self._turns else None

    def as_chat_messages(self) -> List[Dict[str, str]]:
        """
        Get the transcript as chat messages.

        Returns:
            List of chat messages with roles and content
        """
        return [
            {"role": turn.role.chat_role, "content": turn.text}
            for turn in self._turns
        ]

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __repr__(self) -> str:
        return f"Transcript(turns={len(self._turns)})"
