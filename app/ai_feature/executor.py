import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.ai_feature.errors import DatabaseExecutionError

logger = logging.getLogger(__name__)


class QueryExecutor:
    """
    Runs read-only SQL and returns rows as plain dicts.

    Every call checks a connection out of the pool and gives it back when
    the session closes, whatever happened in between.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def execute(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute `sql` with optional bind parameters (":name" placeholders).

        Raises:
            DatabaseExecutionError: anything the driver, pool or server raised
        """
        try:
            async with self.session_factory() as session:
                if session.get_bind().dialect.name == "postgresql":
                    await session.execute(text("SET TRANSACTION READ ONLY"))
                result = await session.execute(text(sql), dict(params or {}))
                rows = [dict(row) for row in result.mappings().all()]
                # nothing to commit: the session rolls back on close
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Database query failed: {e}")
            raise DatabaseExecutionError(str(e)) from e

        return rows
