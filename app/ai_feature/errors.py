"""Failure categories of the question → SQL → answer pipeline.

Each error knows the HTTP status and the body the API returns for it,
so the endpoint only has to render `to_payload()`.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    INVALID_INPUT = "invalid_input"
    GENERATION_FAILURE = "generation_failure"
    SERVICE_UNAVAILABLE = "service_unavailable"
    VALIDATION_FAILURE = "validation_failure"
    EXECUTION_FAILURE = "execution_failure"
    INTERNAL = "internal"


class QueryPipelineError(Exception):
    category = ErrorCategory.INTERNAL
    status_code = 500
    error = "Internal server error"
    suggestion: Optional[str] = "Please try again"

    def __init__(self, details: Optional[str] = None):
        super().__init__(details or self.error)
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        if self.suggestion is not None:
            payload["suggestion"] = self.suggestion
        return payload


class InvalidInputError(QueryPipelineError):
    category = ErrorCategory.INVALID_INPUT
    status_code = 400
    error = "Query is required."
    suggestion = None


class GenerationError(QueryPipelineError):
    category = ErrorCategory.GENERATION_FAILURE
    error = "Failed to generate SQL"
    suggestion = "Please try again"


class ServiceUnavailableError(GenerationError):
    """The language model kept answering 503 until we ran out of attempts."""

    category = ErrorCategory.SERVICE_UNAVAILABLE
    status_code = 503
    error = "AI service temporarily unavailable"
    suggestion = "Check https://groqstatus.com/ for status"

    def __init__(self, details: Optional[str] = None):
        super().__init__(
            details or "The language model service is down. Try again in a few minutes."
        )


class InvalidSQLError(QueryPipelineError):
    category = ErrorCategory.VALIDATION_FAILURE
    error = "Generated SQL query is invalid"
    suggestion = "Try rephrasing your question"

    def __init__(self, sql: str):
        super().__init__(f"SQL: {sql}")
        self.sql = sql


class DatabaseExecutionError(QueryPipelineError):
    category = ErrorCategory.EXECUTION_FAILURE
    error = "Database query failed"
    suggestion = "The SQL might have syntax errors"

    def __init__(self, message: str):
        super().__init__(f"Database execution error: {message}")


class InternalPipelineError(QueryPipelineError):
    category = ErrorCategory.INTERNAL
