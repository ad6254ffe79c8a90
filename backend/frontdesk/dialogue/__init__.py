from typing import Optional

from frontdesk.config import Settings
from frontdesk.dialogue.base import AssistantReply, DialogueStrategy
from frontdesk.dialogue.chat import ChatStrategy
from frontdesk.dialogue.scripted import ScriptedStrategy
from frontdesk.llm.openai_client import OpenAIClient


def build_strategy(settings: Settings, client: Optional[OpenAIClient] = None) -> DialogueStrategy:
    """Create the dialogue strategy selected by settings.dialogue_mode."""
    if settings.dialogue_mode == "chat":
        if client is None and settings.openai_api_key:
            client = OpenAIClient.from_settings(settings)
        return ChatStrategy(client)
    return ScriptedStrategy(idle_return_delay_ms=settings.idle_return_delay_ms)


__all__ = [
    "AssistantReply",
    "ChatStrategy",
    "DialogueStrategy",
    "ScriptedStrategy",
    "build_strategy",
]
