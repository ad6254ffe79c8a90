"""
OpenAI Chat Completions client for backend-delegated dialogue.

Supports:
- One non-streaming completion per visitor turn
- Connection pooling for reduced latency
- Total request timeout; no mid-flight cancellation
"""

import asyncio
import json
import logging
from typing import Optional

import aiohttp

from frontdesk.config import Settings
from frontdesk.errors import BackendError

logger = logging.getLogger(__name__)


class OpenAIClient:
    """
    Manages HTTP calls to OpenAI for receptionist replies.

    Features:
    - Fixed decoding parameters (temperature, max_tokens)
    - Persistent HTTP connection pool
    - Every failure surfaces as BackendError with a readable cause
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1/chat/completions",
        organization_id: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout_s: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.organization_id = organization_id
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s

        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIClient":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            organization_id=settings.openai_organization_id,
            temperature=settings.backend_temperature,
            max_tokens=settings.backend_max_tokens,
            timeout_s=settings.backend_timeout_s,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create persistent aiohttp session with connection pooling."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=10,
                ttl_dns_cache=300,  # Cache DNS for 5 minutes
                keepalive_timeout=120,
            )

            timeout = aiohttp.ClientTimeout(
                total=self.timeout_s,
                connect=5,
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout
            )
            logger.info("Created persistent OpenAI session with connection pooling")

        return self._session

    async def close(self):
        """Close persistent session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("Closed OpenAI persistent session")

    def _headers(self) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.organization_id:
            headers["OpenAI-Organization"] = self.organization_id
        return headers

    async def complete(self, messages: list[dict]) -> str:
        """
        Generate one chat completion.

        Args:
            messages: Full chat message list (system/user/assistant)

        Returns:
            The generated reply, stripped

        Raises:
            BackendError: transport failure, timeout, non-200 status or
                malformed response
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        try:
            session = await self._get_session()

            async with session.post(
                self.base_url,
                headers=self._headers(),
                json=payload
            ) as response:
                body = await response.text()

                if response.status != 200:
                    cause = self._error_cause(response.status, body)
                    logger.error(f"OpenAI API error {response.status}: {cause}")
                    raise BackendError(
                        cause,
                        status=response.status,
                        authorization=response.status in (401, 403),
                    )

        except asyncio.TimeoutError:
            logger.error(f"OpenAI request timed out after {self.timeout_s:.0f}s")
            raise BackendError(f"AI response took too long ({self.timeout_s:.0f}s)") from None
        except aiohttp.ClientError as e:
            logger.error(f"OpenAI network error: {e}")
            raise BackendError(f"OpenAI network error: {e}") from e

        try:
            data = json.loads(body)
            content = data["choices"][0]["message"]["content"]
        except (json.JSONDecodeError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected OpenAI response: {body[:200]}")
            raise BackendError("OpenAI returned an unexpected response") from e

        if not content or not content.strip():
            raise BackendError("OpenAI returned an empty reply")

        logger.info(f"LLM reply: {len(content)} chars")
        return content.strip()

    @staticmethod
    def _error_cause(status: int, body: str) -> str:
        """Pull error.message out of an OpenAI error body."""
        try:
            message = json.loads(body).get("error", {}).get("message")
        except (json.JSONDecodeError, AttributeError):
            message = None
        return message or f"OpenAI API request failed (HTTP {status})"
