from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.ai_feature.executor import QueryExecutor
from app.ai_feature.llm_client import GroqChatClient, LLMError, LLMServiceUnavailable
from app.ai_feature.retry import RetryPolicy
from app.ai_feature.service import QueryService
from app.ai_feature.sql_generator import SQLGenerator
from app.ai_feature.summarizer import ResultSummarizer
from app.core.config import settings
from app.core.database import get_session_factory

session_factory_dep = Annotated[
    async_sessionmaker[AsyncSession], Depends(get_session_factory)
]


# The client is created once in the app lifespan and shared by all requests
def get_llm_client(request: Request) -> GroqChatClient:
    return request.app.state.llm_client


llm_dep = Annotated[GroqChatClient, Depends(get_llm_client)]


def get_executor(session_factory: session_factory_dep) -> QueryExecutor:
    return QueryExecutor(session_factory)


executor_dep = Annotated[QueryExecutor, Depends(get_executor)]


# Fresh service per request: nothing request-scoped is shared
def get_query_service(llm: llm_dep, executor: executor_dep) -> QueryService:
    generator = SQLGenerator(
        llm,
        model=settings.GROQ_SQL_MODEL,
        retry_policy=RetryPolicy(
            max_attempts=settings.SQL_MAX_ATTEMPTS,
            delay_seconds=settings.SQL_RETRY_DELAY_SECONDS,
            linear=True,
            retry_on=(LLMServiceUnavailable,),
        ),
        timezone=settings.SESSION_TIMEZONE,
    )
    summarizer = ResultSummarizer(
        llm,
        model=settings.GROQ_SUMMARY_MODEL,
        retry_policy=RetryPolicy(
            max_attempts=settings.SUMMARY_MAX_ATTEMPTS,
            delay_seconds=settings.SUMMARY_RETRY_DELAY_SECONDS,
            retry_on=(LLMError,),
        ),
        sample_rows=settings.SUMMARY_SAMPLE_ROWS,
    )
    return QueryService(generator, executor, summarizer)
