import json
import logging
from typing import Any, Dict, List, Optional

from app.ai_feature.llm_client import GroqChatClient, LLMError
from app.ai_feature.prompts import SUMMARY_SYSTEM_PROMPT, SUMMARY_USER_TEMPLATE
from app.ai_feature.retry import RetryPolicy

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "The query ran successfully, but returned no results."


def fallback_summary(row_count: int) -> str:
    return f"The query returned {row_count} row(s), but a summary could not be generated."


class ResultSummarizer:
    """
    Turns a result set into one or two sentences of prose.

    Never raises for model trouble: after the last retry it falls back to a
    row-count message so the user still gets their table.
    """

    def __init__(
        self,
        llm: GroqChatClient,
        model: str,
        retry_policy: Optional[RetryPolicy] = None,
        sample_rows: int = 50,
    ):
        self.llm = llm
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=2, delay_seconds=1.0, retry_on=(LLMError,)
        )
        self.sample_rows = sample_rows

    def build_prompt(self, question: str, sql: str, rows: List[Dict[str, Any]]) -> str:
        sample = rows[: self.sample_rows]
        sample_note = (
            f", showing the first {len(sample)}" if len(sample) < len(rows) else ""
        )
        return SUMMARY_USER_TEMPLATE.format(
            question=question,
            sql=sql,
            row_count=len(rows),
            sample_note=sample_note,
            rows_json=json.dumps(sample, indent=2, default=str),
        )

    async def summarize(self, question: str, sql: str, rows: List[Dict[str, Any]]) -> str:
        if not rows:
            return NO_RESULTS_MESSAGE

        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": self.build_prompt(question, sql, rows)},
        ]

        async def call_model() -> str:
            summary = await self.llm.complete(
                messages, model=self.model, temperature=0.2, max_tokens=256
            )
            if not summary:
                raise LLMError("Language model returned an empty summary")
            return summary

        try:
            return await self.retry_policy.run(call_model)
        except Exception as e:
            # never fatal: the rows are already in hand
            logger.warning(f"Summary generation failed, using fallback: {e!r}")
            return fallback_summary(len(rows))
