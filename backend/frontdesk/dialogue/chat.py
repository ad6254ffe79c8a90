"""
Backend-delegated receptionist.

Keeps no local dialogue state: every turn sends the receptionist system
instruction plus the whole transcript to the chat backend and returns its
reply verbatim.
"""

import logging
from typing import Optional

from frontdesk.dialogue.base import AssistantReply, DialogueStrategy
from frontdesk.errors import BackendError, ConfigError
from frontdesk.llm.openai_client import OpenAIClient
from frontdesk.orchestration.transcript import Transcript

logger = logging.getLogger(__name__)

OFFICE_GREETING = (
    "Hello! Welcome to our office. I'm your AI receptionist. "
    "May I know who you'd like to meet today?"
)

RECEPTIONIST_SYSTEM_PROMPT = """You are a professional and friendly AI receptionist for an office. Your primary job is to:

1. Greet visitors warmly
2. Ask who they would like to meet with
3. Collect necessary appointment details:
   - Name of the person they want to meet
   - Visitor's name
   - Purpose of the visit
   - Preferred date and time
4. Confirm the appointment details
5. Provide next steps or assistance

Guidelines:
- Be concise and conversational (responses will be spoken aloud)
- Keep responses to 2-3 sentences unless more detail is needed
- Be professional but friendly and welcoming
- Ask one question at a time to avoid overwhelming the visitor
- If the visitor seems unsure, offer to help or provide options
- Once you have all details, summarize the appointment and confirm

Remember: You're the first point of contact - make a great impression!"""


class ChatStrategy(DialogueStrategy):
    """
    Receptionist replies generated by OpenAI.

    At most one call is outstanding; once issued it runs to completion or
    times out inside the client.
    """

    name = "chat"
    is_remote = True

    def __init__(
        self,
        client: Optional[OpenAIClient],
        system_prompt: str = RECEPTIONIST_SYSTEM_PROMPT,
    ):
        self.client = client
        self.system_prompt = system_prompt
        self._in_flight = False
        self._config_error: Optional[ConfigError] = None

        if client is None or not client.api_key:
            self._config_error = ConfigError(
                "OpenAI API key not configured. Please set OPENAI_API_KEY in .env file"
            )
            logger.error(str(self._config_error))

    @property
    def greeting(self) -> str:
        return OFFICE_GREETING

    @property
    def config_error(self) -> Optional[ConfigError]:
        return self._config_error

    def build_messages(self, transcript: Transcript) -> list[dict]:
        return [
            {"role": "system", "content": self.system_prompt},
            *transcript.as_chat_messages(),
        ]

    async def next_turn(self, transcript: Transcript, user_text: str) -> AssistantReply:
        if self._config_error is not None:
            raise self._config_error
        if self._in_flight:
            raise BackendError("A reply is already being generated")

        self._in_flight = True
        try:
            reply = await self.client.complete(self.build_messages(transcript))
        finally:
            self._in_flight = False

        return AssistantReply(text=reply)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
