"""
WebSocket connection manager and message routing.
Handles WebSocket lifecycle, session management, and message distribution.
"""

import logging
import time
import uuid
from typing import Dict

from fastapi import WebSocket, WebSocketDisconnect

from frontdesk.models import (
    ActivityState,
    ErrorData,
    ErrorMessage,
    HistoryData,
    HistoryMessage,
    SessionReadyData,
    SessionReadyMessage,
    StateChangeData,
    StateChangeMessage,
    TranscriptTurnMessage,
    Turn,
)

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manages active WebSocket connections and message routing.

    Responsibilities:
    - Track active connections (session_id → websocket)
    - Handle connection lifecycle (connect, disconnect, cleanup)
    - Send messages to specific sessions
    - Heartbeat bookkeeping
    """

    def __init__(self):
        """Initialize connection manager."""
        # Active connections: session_id → WebSocket
        self.active_connections: Dict[str, WebSocket] = {}

        # Session metadata: session_id → metadata dict
        self.session_metadata: Dict[str, dict] = {}

        # Last heartbeat timestamp: session_id → timestamp
        self.last_heartbeat: Dict[str, int] = {}

        logger.info("ConnectionManager initialized")

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept new WebSocket connection and create session.

        Args:
            websocket: WebSocket connection

        Returns:
            session_id: UUID of created session
        """
        await websocket.accept()

        session_id = str(uuid.uuid4())
        self.active_connections[session_id] = websocket
        self.session_metadata[session_id] = {
            "connected_at": int(time.time() * 1000),
            "client_info": websocket.client,
            "total_messages": 0,
        }
        self.last_heartbeat[session_id] = int(time.time() * 1000)

        logger.info(
            f"WebSocket connected: session_id={session_id}, "
            f"client={websocket.client}, "
            f"total_connections={len(self.active_connections)}"
        )

        return session_id

    async def disconnect(self, session_id: str):
        """
        Handle WebSocket disconnection and cleanup.

        Args:
            session_id: Session ID to disconnect
        """
        if session_id not in self.active_connections:
            logger.debug(f"Session already disconnected: {session_id}")
            return

        self.active_connections.pop(session_id, None)
        metadata = self.session_metadata.pop(session_id, {})
        self.last_heartbeat.pop(session_id, None)

        if metadata:
            connected_at = metadata.get("connected_at", 0)
            session_duration = int(time.time() * 1000) - connected_at

            logger.info(
                f"WebSocket disconnected: session_id={session_id}, "
                f"duration_ms={session_duration}, "
                f"total_messages={metadata.get('total_messages', 0)}, "
                f"remaining_connections={len(self.active_connections)}"
            )

    async def send_message(self, session_id: str, message: dict) -> bool:
        """
        Send JSON message to specific session.

        Args:
            session_id: Target session ID
            message: Message dict to send

        Returns:
            True if sent successfully, False otherwise
        """
        if session_id not in self.active_connections:
            logger.warning(f"Attempted to send message to non-existent session: {session_id}")
            return False

        websocket = self.active_connections[session_id]

        try:
            await websocket.send_json(message)

            if session_id in self.session_metadata:
                self.session_metadata[session_id]["total_messages"] += 1

            logger.debug(f"Message sent to session {session_id}: type={message.get('type', 'unknown')}")
            return True

        except WebSocketDisconnect:
            logger.warning(f"WebSocket disconnected while sending to session: {session_id}")
            await self.disconnect(session_id)
            return False
        except Exception as e:
            logger.error(f"Error sending message to session {session_id}: {e}", exc_info=True)
            return False

    async def send_session_ready(self, session_id: str, dialogue_mode: str):
        """
        Send session_ready message to newly connected client.

        Args:
            session_id: Session ID
            dialogue_mode: Active dialogue strategy name
        """
        message = SessionReadyMessage(
            data=SessionReadyData(session_id=session_id, dialogue_mode=dialogue_mode)
        )
        await self.send_message(session_id, message.model_dump(mode="json"))

    async def send_turn(self, session_id: str, turn: Turn):
        """Send a newly appended transcript turn."""
        message = TranscriptTurnMessage(data=turn)
        await self.send_message(session_id, message.model_dump(mode="json"))

    async def send_history(self, session_id: str, turns: list[Turn]):
        """Send the full transcript."""
        message = HistoryMessage(data=HistoryData(turns=turns))
        await self.send_message(session_id, message.model_dump(mode="json"))

    async def send_state_change(
        self,
        session_id: str,
        from_state: ActivityState,
        to_state: ActivityState
    ):
        """
        Send state_change message to client.

        Args:
            session_id: Session ID
            from_state: Previous state
            to_state: New state
        """
        message = StateChangeMessage(
            data=StateChangeData(from_state=from_state, to_state=to_state)
        )
        await self.send_message(session_id, message.model_dump(mode="json"))

    async def send_error(
        self,
        session_id: str,
        code: str,
        message_text: str,
        recoverable: bool = True
    ):
        """
        Send error message to client.

        Args:
            session_id: Session ID
            code: Error code
            message_text: Error message
            recoverable: Whether error is recoverable
        """
        message = ErrorMessage(
            data=ErrorData(code=code, message=message_text, recoverable=recoverable)
        )
        await self.send_message(session_id, message.model_dump(mode="json"))

    def update_heartbeat(self, session_id: str):
        """
        Update last heartbeat timestamp for session.

        Args:
            session_id: Session ID
        """
        if session_id in self.last_heartbeat:
            self.last_heartbeat[session_id] = int(time.time() * 1000)

    def get_session_count(self) -> int:
        """Get count of active sessions."""
        return len(self.active_connections)


# Global connection manager instance
connection_manager = ConnectionManager()
