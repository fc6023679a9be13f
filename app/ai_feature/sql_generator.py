import logging
import re
from typing import Optional

from app.ai_feature.errors import GenerationError, ServiceUnavailableError
from app.ai_feature.llm_client import GroqChatClient, LLMError, LLMServiceUnavailable
from app.ai_feature.prompts import (
    SQL_PROMPT_VERSION,
    SQL_USER_TEMPLATE,
    build_sql_system_prompt,
)
from app.ai_feature.retry import RetryPolicy

logger = logging.getLogger(__name__)

_FENCE_START = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_END = re.compile(r"\s*```\s*$")


def strip_code_fences(text: str) -> str:
    """
    The prompt forbids markdown, the model sometimes sends it anyway.

    "```sql\\nSELECT 1\\n```" → "SELECT 1"
    """
    text = _FENCE_START.sub("", text or "")
    text = _FENCE_END.sub("", text)
    return text.strip()


class SQLGenerator:
    """Question in, one candidate SQL string out."""

    def __init__(
        self,
        llm: GroqChatClient,
        model: str,
        retry_policy: Optional[RetryPolicy] = None,
        timezone: str = "America/Los_Angeles",
    ):
        self.llm = llm
        self.model = model
        # Only 503s are worth waiting for; linear backoff between attempts
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=3,
            delay_seconds=2.0,
            linear=True,
            retry_on=(LLMServiceUnavailable,),
        )
        self.system_prompt = build_sql_system_prompt(timezone)

    async def generate(self, question: str) -> str:
        """
        Ask the model for SQL answering `question`.

        Raises:
            ServiceUnavailableError: still 503 after the last attempt
            GenerationError: any other model failure, or an empty answer
        """
        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": SQL_USER_TEMPLATE.format(question=question)},
        ]

        async def call_model() -> str:
            return await self.llm.complete(
                messages, model=self.model, temperature=0, max_tokens=1024
            )

        logger.info(f"Generating SQL (prompt {SQL_PROMPT_VERSION}, model {self.model})")
        try:
            raw = await self.retry_policy.run(call_model)
        except LLMServiceUnavailable as e:
            logger.error(f"SQL generation gave up after retries: {e}")
            raise ServiceUnavailableError() from e
        except LLMError as e:
            logger.error(f"Error generating SQL: {e}")
            raise GenerationError(f"Failed to generate SQL from GROQ API: {e}") from e

        sql = strip_code_fences(raw)
        if not sql:
            raise GenerationError("The language model returned an empty query")

        return sql
