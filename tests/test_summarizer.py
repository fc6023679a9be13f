import json

import pytest

from app.ai_feature.llm_client import LLMError
from app.ai_feature.retry import RetryPolicy
from app.ai_feature.summarizer import NO_RESULTS_MESSAGE, ResultSummarizer

SQL = "SELECT instructor, average FROM v_sessions"


def make_summarizer(fake_groq, sleep, sample_rows=50):
    policy = RetryPolicy(
        max_attempts=2, delay_seconds=1.0, retry_on=(LLMError,), sleep=sleep
    )
    return ResultSummarizer(
        fake_groq.client(), model="summary-model", retry_policy=policy, sample_rows=sample_rows
    )


@pytest.mark.asyncio
async def test_empty_rows_short_circuit(fake_groq, no_wait):
    """No rows → fixed message, the model is never called"""
    summarizer = make_summarizer(fake_groq, no_wait)

    summary = await summarizer.summarize("Who is best?", SQL, [])

    assert summary == NO_RESULTS_MESSAGE
    assert fake_groq.requests == []


@pytest.mark.asyncio
async def test_summary_from_model(fake_groq, no_wait):
    fake_groq.queue("Grace Hopper had the highest rating at 4.65.")
    summarizer = make_summarizer(fake_groq, no_wait)

    summary = await summarizer.summarize(
        "Who is best?", SQL, [{"instructor": "Grace Hopper", "average": 4.65}]
    )

    assert summary == "Grace Hopper had the highest rating at 4.65."
    request = fake_groq.requests[0]
    assert request["model"] == "summary-model"
    prompt = request["messages"][1]["content"]
    assert '"Who is best?"' in prompt
    assert SQL in prompt
    assert "Grace Hopper" in prompt


@pytest.mark.asyncio
async def test_prompt_only_carries_a_sample(fake_groq, no_wait):
    fake_groq.queue("Lots of sessions.")
    summarizer = make_summarizer(fake_groq, no_wait, sample_rows=3)
    rows = [{"n": i} for i in range(10)]

    await summarizer.summarize("How many?", SQL, rows)

    prompt = fake_groq.requests[0]["messages"][1]["content"]
    rows_json = prompt.split("```json\n")[1].split("\n```")[0]
    assert json.loads(rows_json) == [{"n": 0}, {"n": 1}, {"n": 2}]
    assert "returned 10 row(s), showing the first 3" in prompt


@pytest.mark.asyncio
async def test_retries_then_succeeds(fake_groq, no_wait):
    fake_groq.queue(status=503).queue("Recovered summary.")
    summarizer = make_summarizer(fake_groq, no_wait)

    assert await summarizer.summarize("q", SQL, [{"a": 1}]) == "Recovered summary."
    assert no_wait.delays == [1.0]


@pytest.mark.asyncio
async def test_falls_back_instead_of_failing(fake_groq, no_wait):
    """Summarization trouble never fails the request"""
    fake_groq.queue(status=500).queue(status=500)
    summarizer = make_summarizer(fake_groq, no_wait)

    summary = await summarizer.summarize("q", SQL, [{"a": 1}, {"a": 2}])

    assert summary == "The query returned 2 row(s), but a summary could not be generated."
    assert len(fake_groq.requests) == 2


@pytest.mark.asyncio
async def test_empty_model_answer_falls_back(fake_groq, no_wait):
    fake_groq.queue("").queue("   ")
    summarizer = make_summarizer(fake_groq, no_wait)

    summary = await summarizer.summarize("q", SQL, [{"a": 1}])

    assert summary.startswith("The query returned 1 row(s)")


@pytest.mark.asyncio
async def test_non_json_values_are_stringified(fake_groq, no_wait):
    from datetime import date
    from decimal import Decimal

    fake_groq.queue("ok")
    summarizer = make_summarizer(fake_groq, no_wait)

    await summarizer.summarize("q", SQL, [{"pst_date": date(2025, 4, 3), "avg": Decimal("4.65")}])

    prompt = fake_groq.requests[0]["messages"][1]["content"]
    assert "2025-04-03" in prompt
    assert "4.65" in prompt


@pytest.mark.asyncio
async def test_non_text_model_answer_falls_back(fake_groq, no_wait):
    fake_groq.queue(["not", "text"]).queue({"text": "still not"})
    summarizer = make_summarizer(fake_groq, no_wait)

    summary = await summarizer.summarize("q", SQL, [{"a": 1}])

    assert summary == "The query returned 1 row(s), but a summary could not be generated."
    assert len(fake_groq.requests) == 2


@pytest.mark.asyncio
async def test_closed_client_falls_back(fake_groq, no_wait):
    """Errors outside the model call itself still only degrade the summary"""
    llm = fake_groq.client()
    await llm.aclose()
    summarizer = ResultSummarizer(
        llm,
        model="summary-model",
        retry_policy=RetryPolicy(max_attempts=2, retry_on=(LLMError,), sleep=no_wait),
    )

    summary = await summarizer.summarize("q", SQL, [{"a": 1}, {"a": 2}, {"a": 3}])

    assert summary == "The query returned 3 row(s), but a summary could not be generated."
    assert fake_groq.requests == []
