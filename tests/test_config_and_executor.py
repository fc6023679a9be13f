import pytest

from app.ai_feature.errors import DatabaseExecutionError
from app.ai_feature.executor import QueryExecutor
from app.core.config import Settings


@pytest.mark.parametrize(
    "raw, expected",
    [
        (
            "postgres://u:p@db.example.com/ratings?sslmode=require",
            "postgresql+asyncpg://u:p@db.example.com/ratings",
        ),
        (
            "postgresql://u:p@db.example.com:5432/ratings?sslmode=require&channel_binding=require&application_name=qa",
            "postgresql+asyncpg://u:p@db.example.com:5432/ratings?application_name=qa",
        ),
        (
            "postgresql+asyncpg://u:p@localhost/ratings",
            "postgresql+asyncpg://u:p@localhost/ratings",
        ),
        ("sqlite+aiosqlite:///./ratings.db", "sqlite+aiosqlite:///./ratings.db"),
    ],
)
def test_database_url_rewritten_for_asyncpg(raw, expected):
    assert Settings(DATABASE_URL=raw).DATABASE_URL == expected


@pytest.mark.asyncio
async def test_executor_returns_plain_dicts(seeded_factory):
    executor = QueryExecutor(seeded_factory)

    rows = await executor.execute(
        "SELECT topic_code, instructor FROM v_sessions WHERE topic_code = :code",
        {"code": "BE-101"},
    )

    assert rows == [{"topic_code": "BE-101", "instructor": "Grace Hopper"}]


@pytest.mark.asyncio
async def test_executor_wraps_database_errors(seeded_factory):
    executor = QueryExecutor(seeded_factory)

    with pytest.raises(DatabaseExecutionError) as exc_info:
        await executor.execute("SELECT * FROM missing_table")

    assert "missing_table" in exc_info.value.details


@pytest.mark.asyncio
async def test_executor_keeps_working_after_a_failure(seeded_factory):
    """A failed query hands its connection back; the next one still runs"""
    executor = QueryExecutor(seeded_factory)

    with pytest.raises(DatabaseExecutionError):
        await executor.execute("SELEC nonsense")

    rows = await executor.execute("SELECT COUNT(*) AS n FROM v_sessions")
    assert rows == [{"n": 6}]
