"""
Thin async client for Groq's OpenAI-compatible chat completions API.

One instance (and one httpx connection pool) is created for the app's
lifetime and handed to request handlers through a dependency.
"""

import logging
from typing import Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The language model call failed (non-retryable unless subclassed)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LLMServiceUnavailable(LLMError):
    """503 from the provider: expected to go away if we wait a bit."""


class GroqChatClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.groq.com/openai/v1",
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout
        )

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 1024,
    ) -> str:
        """
        Send a chat completion and return the first choice's text, trimmed.

        Raises:
            LLMServiceUnavailable: provider answered 503
            LLMError: anything else went wrong (auth, network, bad payload)
        """
        if not self.api_key:
            raise LLMError("GROQ_API_KEY is not configured")

        try:
            response = await self._client.post(
                "/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": model,
                    "messages": messages,
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                },
            )
        except httpx.HTTPError as e:
            raise LLMError(f"Request to language model failed: {e}") from e

        if response.status_code == 503:
            raise LLMServiceUnavailable("Service unavailable (503)", status_code=503)

        if response.status_code != 200:
            logger.warning(
                f"Groq error: {response.status_code} - {response.text[:200]}"
            )
            raise LLMError(
                f"Language model returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            result = response.json()
            content = result.get("choices", [{}])[0].get("message", {}).get("content")
        except (ValueError, AttributeError, IndexError) as e:
            raise LLMError(f"Malformed response from language model: {e}") from e

        if content is not None and not isinstance(content, str):
            raise LLMError(
                f"Malformed response from language model: content is {type(content).__name__}"
            )

        return (content or "").strip()

    async def aclose(self):
        await self._client.aclose()
