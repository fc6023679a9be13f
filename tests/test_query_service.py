import pytest

from app.ai_feature.errors import (
    DatabaseExecutionError,
    ErrorCategory,
    InternalPipelineError,
    InvalidInputError,
    InvalidSQLError,
    ServiceUnavailableError,
)
from app.ai_feature.llm_client import LLMError, LLMServiceUnavailable
from app.ai_feature.retry import RetryPolicy
from app.ai_feature.service import QueryService, QueryStage
from app.ai_feature.sql_generator import SQLGenerator
from app.ai_feature.summarizer import NO_RESULTS_MESSAGE, ResultSummarizer

CONSISTENCY_SQL = (
    "SELECT instructor, ROUND(STDDEV(average), 2) AS rating_stddev, COUNT(*) AS sessions "
    "FROM v_sessions WHERE pst_year = 2025 AND pst_quarter = 2 "
    "GROUP BY instructor HAVING COUNT(*) >= 3 ORDER BY rating_stddev ASC LIMIT 1"
)


class FakeExecutor:
    """Records the SQL it was asked to run and returns canned rows (or raises)."""

    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.executed = []

    async def execute(self, sql, params=None):
        self.executed.append(sql)
        if self.error is not None:
            raise self.error
        return self.rows


def make_service(fake_groq, executor, sleep):
    llm = fake_groq.client()
    generator = SQLGenerator(
        llm,
        model="sql-model",
        retry_policy=RetryPolicy(
            max_attempts=3, delay_seconds=2.0, linear=True,
            retry_on=(LLMServiceUnavailable,), sleep=sleep,
        ),
    )
    summarizer = ResultSummarizer(
        llm,
        model="summary-model",
        retry_policy=RetryPolicy(
            max_attempts=2, delay_seconds=1.0, retry_on=(LLMError,), sleep=sleep
        ),
    )
    return QueryService(generator, executor, summarizer)


@pytest.mark.asyncio
async def test_most_consistent_instructor_end_to_end(fake_groq, no_wait):
    fake_groq.queue(f"```sql\n{CONSISTENCY_SQL}\n```")
    fake_groq.queue("Grace Hopper was the most consistent instructor in Q2 2025 (std dev 0.05).")
    executor = FakeExecutor(
        rows=[{"instructor": "Grace Hopper", "rating_stddev": 0.05, "sessions": 3}]
    )
    service = make_service(fake_groq, executor, no_wait)

    result = await service.answer("Who is the most consistent instructor in Q2 2025?")

    assert "STDDEV" in result.sql
    assert "pst_year = 2025 AND pst_quarter = 2" in result.sql
    assert executor.executed == [result.sql]
    assert result.data == [{"instructor": "Grace Hopper", "rating_stddev": 0.05, "sessions": 3}]
    assert "Grace Hopper" in result.summary
    assert service.stage == QueryStage.RESPONDED

    # the summary prompt sees the question, the SQL and the rows
    summary_prompt = fake_groq.requests[1]["messages"][1]["content"]
    assert "Who is the most consistent instructor in Q2 2025?" in summary_prompt
    assert CONSISTENCY_SQL in summary_prompt


@pytest.mark.asyncio
async def test_empty_result_skips_the_summary_call(fake_groq, no_wait):
    fake_groq.queue("SELECT instructor FROM v_sessions WHERE pst_year = 1999")
    service = make_service(fake_groq, FakeExecutor(rows=[]), no_wait)

    result = await service.answer("Who taught in 1999?")

    assert result.data == []
    assert result.summary == NO_RESULTS_MESSAGE
    assert len(fake_groq.requests) == 1


@pytest.mark.parametrize("question", [None, "", "   \n"])
@pytest.mark.asyncio
async def test_blank_question_is_invalid_input(fake_groq, no_wait, question):
    executor = FakeExecutor()
    service = make_service(fake_groq, executor, no_wait)

    with pytest.raises(InvalidInputError) as exc_info:
        await service.answer(question)

    assert exc_info.value.category == ErrorCategory.INVALID_INPUT
    assert exc_info.value.status_code == 400
    assert fake_groq.requests == []
    assert executor.executed == []


@pytest.mark.asyncio
async def test_invalid_sql_is_never_executed(fake_groq, no_wait):
    fake_groq.queue("DELETE FROM fact_session")
    executor = FakeExecutor()
    service = make_service(fake_groq, executor, no_wait)

    with pytest.raises(InvalidSQLError) as exc_info:
        await service.answer("Remove everything")

    assert exc_info.value.details == "SQL: DELETE FROM fact_session"
    assert executor.executed == []
    assert service.stage == QueryStage.FAILED


@pytest.mark.asyncio
async def test_persistent_503_is_service_unavailable(fake_groq, no_wait):
    for _ in range(3):
        fake_groq.queue(status=503)
    service = make_service(fake_groq, FakeExecutor(), no_wait)

    with pytest.raises(ServiceUnavailableError) as exc_info:
        await service.answer("Who is best?")

    assert exc_info.value.to_payload()["suggestion"] == "Check https://groqstatus.com/ for status"


@pytest.mark.asyncio
async def test_database_errors_pass_through(fake_groq, no_wait):
    fake_groq.queue("SELECT nope FROM v_sessions")
    executor = FakeExecutor(error=DatabaseExecutionError('column "nope" does not exist'))
    service = make_service(fake_groq, executor, no_wait)

    with pytest.raises(DatabaseExecutionError) as exc_info:
        await service.answer("Show me nope")

    assert exc_info.value.category == ErrorCategory.EXECUTION_FAILURE
    assert "nope" in exc_info.value.details


@pytest.mark.asyncio
async def test_unexpected_errors_become_internal(fake_groq, no_wait):
    fake_groq.queue("SELECT 1 FROM v_sessions")
    service = make_service(fake_groq, FakeExecutor(error=KeyError("boom")), no_wait)

    with pytest.raises(InternalPipelineError) as exc_info:
        await service.answer("Anything")

    assert exc_info.value.category == ErrorCategory.INTERNAL
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_summary_failure_still_returns_data(fake_groq, no_wait):
    fake_groq.queue("SELECT instructor FROM v_sessions").queue(status=500).queue(status=500)
    service = make_service(fake_groq, FakeExecutor(rows=[{"instructor": "Alan Turing"}]), no_wait)

    result = await service.answer("Who taught?")

    assert result.data == [{"instructor": "Alan Turing"}]
    assert result.summary == "The query returned 1 row(s), but a summary could not be generated."
