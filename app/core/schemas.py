from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field


# =========================
# QUERY
# =========================
class QueryRequest(BaseModel):
    # Optional so a missing question is our 400, not FastAPI's 422
    query: Optional[str] = None


class QueryResponse(BaseModel):
    data: List[Dict[str, Any]]
    summary: str
    sql: str = Field(description="Executed SQL, returned for transparency")


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
    suggestion: Optional[str] = None


# =========================
# LOOKUPS
# =========================
class InstructorName(BaseModel):
    instructor_name: str


class DomainName(BaseModel):
    domain_name: str


class ClassName(BaseModel):
    class_name: str


# =========================
# ETL
# =========================
class LoadReport(BaseModel):
    """
    Outcome counts of one spreadsheet load.
    """
    total: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0  # missing type/domain/class/instructor
    bad_date: int = 0  # session date could not be parsed
    failed: int = 0  # database rejected the record
    status: str = "pending"
    duration_seconds: Optional[float] = None
