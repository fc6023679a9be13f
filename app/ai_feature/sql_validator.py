"""
Cheap shape check on generated SQL before it goes anywhere near the database.

This is NOT a parser or a security boundary: it does not whitelist tables
or columns and won't spot a data-modifying expression. It only catches output
that obviously isn't a query (prose, empty strings, DDL/DML statements).
"""

import logging
import re

from app.ai_feature.errors import InvalidSQLError

logger = logging.getLogger(__name__)

_STARTS_LIKE_QUERY = re.compile(r"^\s*(WITH|SELECT)\s+", re.IGNORECASE)
_HAS_FROM = re.compile(r"\bFROM\s+", re.IGNORECASE)
_HAS_SELECT = re.compile(r"\bSELECT\s+", re.IGNORECASE)


def is_valid_sql_query(sql_query) -> bool:
    if not sql_query or not isinstance(sql_query, str):
        logger.debug("SQL validation failed: empty or non-string")
        return False

    trimmed = sql_query.strip()
    if not trimmed:
        logger.debug("SQL validation failed: empty after trim")
        return False

    logger.debug(f"Validating SQL: {trimmed[:100]}...")

    if not _STARTS_LIKE_QUERY.match(trimmed):
        logger.debug("SQL validation failed: doesn't start with WITH or SELECT")
        return False

    return bool(_HAS_FROM.search(trimmed) or _HAS_SELECT.search(trimmed))


def validate_sql(sql_query: str) -> str:
    """Return the query unchanged, or raise InvalidSQLError carrying it."""
    if not is_valid_sql_query(sql_query):
        raise InvalidSQLError(sql_query if isinstance(sql_query, str) else repr(sql_query))
    return sql_query
