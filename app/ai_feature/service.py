"""Orchestration layer for natural-language questions.

Flow (one request, strictly in order):
1. Generate SQL from the question (language model)
2. Validate the SQL's shape
3. Execute it read-only against v_sessions
4. Summarize the rows (language model, never fatal)

Any failing stage ends the request with a categorized QueryPipelineError.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from app.ai_feature.errors import (
    InternalPipelineError,
    InvalidInputError,
    QueryPipelineError,
)
from app.ai_feature.executor import QueryExecutor
from app.ai_feature.sql_generator import SQLGenerator
from app.ai_feature.sql_validator import validate_sql
from app.ai_feature.summarizer import ResultSummarizer

logger = logging.getLogger(__name__)


class QueryStage(Enum):
    RECEIVED = "received"
    GENERATING = "generating"
    VALIDATING = "validating"
    EXECUTING = "executing"
    SUMMARIZING = "summarizing"
    RESPONDED = "responded"
    FAILED = "failed"


@dataclass
class QueryResult:
    data: List[Dict[str, Any]]
    summary: str
    sql: str


class QueryService:
    def __init__(
        self,
        generator: SQLGenerator,
        executor: QueryExecutor,
        summarizer: ResultSummarizer,
    ):
        self.generator = generator
        self.executor = executor
        self.summarizer = summarizer
        self.stage = QueryStage.RECEIVED

    def _enter(self, stage: QueryStage):
        logger.debug(f"{self.stage.value} -> {stage.value}")
        self.stage = stage

    async def answer(self, question: Optional[str]) -> QueryResult:
        """
        Run the whole pipeline for one question.

        Raises:
            QueryPipelineError (or a subclass) naming the failure category
        """
        if not question or not question.strip():
            self._enter(QueryStage.FAILED)
            raise InvalidInputError()

        logger.info(f'Received query: "{question}"')

        try:
            self._enter(QueryStage.GENERATING)
            sql = await self.generator.generate(question)
            logger.info(f"Generated SQL: {sql}")

            self._enter(QueryStage.VALIDATING)
            validate_sql(sql)
            logger.info("SQL validation passed")

            self._enter(QueryStage.EXECUTING)
            data = await self.executor.execute(sql)
            logger.info(f"Query executed successfully. Fetched {len(data)} rows.")

            self._enter(QueryStage.SUMMARIZING)
            summary = await self.summarizer.summarize(question, sql, data)
            logger.info(f"Summary generated: {summary[:100]}...")

        except QueryPipelineError as e:
            logger.error(f"{e.category.value} while {self.stage.value}: {e.details}")
            self._enter(QueryStage.FAILED)
            raise
        except Exception as e:
            logger.exception(f"Unexpected error while {self.stage.value}")
            self._enter(QueryStage.FAILED)
            raise InternalPipelineError(str(e)) from e

        self._enter(QueryStage.RESPONDED)
        return QueryResult(data=data, summary=summary, sql=sql)
