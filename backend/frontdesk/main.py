"""
FastAPI application: health check and the /ws conversation endpoint.

One WebSocket connection = one visitor conversation with its own
orchestrator, speech adapter, browser speech engine and dialogue strategy.
"""

import json
import logging

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from frontdesk.config import Settings, settings
from frontdesk.dialogue import build_strategy
from frontdesk.models import (
    ActivityState,
    ConnectMessage,
    DisconnectMessage,
    GetHistoryMessage,
    PingMessage,
    PongMessage,
    SpeechCapabilities,
    SpeechEventMessage,
    StartListeningMessage,
    StopListeningMessage,
    StopSpeakingMessage,
    Turn,
    UserTextMessage,
    VoiceSettings,
    parse_client_message,
)
from frontdesk.orchestration.orchestrator import ConversationOrchestrator
from frontdesk.speech.adapter import SpeechAdapter
from frontdesk.speech.websocket_engine import WebSocketSpeechEngine
from frontdesk.websocket import ConnectionManager, connection_manager

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Front Desk Voice Receptionist")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def create_orchestrator(
    session_id: str,
    capabilities: SpeechCapabilities,
    manager: ConnectionManager = connection_manager,
    app_settings: Settings = settings,
) -> ConversationOrchestrator:
    """Wire one conversation to a browser session."""
    engine = WebSocketSpeechEngine(session_id, manager, capabilities)
    adapter = SpeechAdapter(
        engine,
        voice=VoiceSettings(
            rate=app_settings.speech_rate,
            pitch=app_settings.speech_pitch,
            volume=app_settings.speech_volume,
            locale=app_settings.speech_locale,
        ),
        start_grace_ms=app_settings.speak_start_grace_ms,
    )

    async def on_turn(turn: Turn):
        await manager.send_turn(session_id, turn)

    async def on_state_change(from_state: ActivityState, to_state: ActivityState):
        await manager.send_state_change(session_id, from_state, to_state)

    async def on_error(code: str, message: str, recoverable: bool):
        await manager.send_error(session_id, code, message, recoverable)

    return ConversationOrchestrator(
        build_strategy(app_settings),
        adapter,
        greeting=app_settings.greeting_message,
        on_turn=on_turn,
        on_state_change=on_state_change,
        on_error=on_error,
    )


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "dialogue_mode": settings.dialogue_mode,
        "active_sessions": connection_manager.get_session_count(),
        "environment": settings.environment,
    }


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    session_id = await connection_manager.connect(websocket)
    orchestrator = None

    try:
        while True:
            raw = await websocket.receive_text()
            connection_manager.update_heartbeat(session_id)

            try:
                message = parse_client_message(json.loads(raw))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Invalid message from {session_id}: {str(e)[:200]}")
                await connection_manager.send_error(
                    session_id, "invalid_message", "Message could not be parsed", recoverable=True
                )
                continue

            if isinstance(message, PingMessage):
                await connection_manager.send_message(session_id, PongMessage().model_dump())
                continue
            if isinstance(message, PongMessage):
                continue
            if isinstance(message, DisconnectMessage):
                logger.info(f"Client requested disconnect: {session_id}")
                await websocket.close()
                break

            if isinstance(message, ConnectMessage):
                if orchestrator is None:
                    orchestrator = create_orchestrator(session_id, message.data.capabilities)
                    await connection_manager.send_session_ready(session_id, orchestrator.strategy.name)
                    await orchestrator.start()
                continue

            if orchestrator is None:
                await connection_manager.send_error(
                    session_id, "not_connected", "Send a connect message first", recoverable=True
                )
                continue

            if isinstance(message, UserTextMessage):
                orchestrator.submit_user_text(message.data.text)
            elif isinstance(message, StartListeningMessage):
                await orchestrator.start_voice_input()
            elif isinstance(message, StopListeningMessage):
                await orchestrator.stop_voice_input()
            elif isinstance(message, StopSpeakingMessage):
                await orchestrator.stop_speaking()
            elif isinstance(message, SpeechEventMessage):
                await orchestrator.speech.engine.emit(message.data)
            elif isinstance(message, GetHistoryMessage):
                await connection_manager.send_history(session_id, list(orchestrator.transcript))

    except WebSocketDisconnect:
        logger.info(f"WebSocket closed by client: {session_id}")
    finally:
        if orchestrator is not None:
            await orchestrator.close()
        await connection_manager.disconnect(session_id)


def run():
    """Console entry point."""
    uvicorn.run(
        "frontdesk.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.is_development,
    )


if __name__ == "__main__":
    run()
