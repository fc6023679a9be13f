from typing import Dict, Any, List, Optional
from datetime import datetime
from enum import Enum
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core import schemas
from app.core.etl import ingest, transform, load


# -----------------------------------------------------------------------------
# PIPELINE MODULE - Orchestration
# Purpose: run ingest -> transform -> load over one spreadsheet, one record at a time,
# count every outcome and keep a step log of the run
# -----------------------------------------------------------------------------


class PipelineStatus(Enum):
    """Pipeline execution status."""

    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


class PipelineStep(Enum):
    """Individual pipeline steps."""

    INGEST = "ingest"
    TRANSFORM = "transform"
    LOAD = "load"


logger = logging.getLogger(__name__)


class PipelineLogger:
    """Custom logger for ETL pipeline operations."""

    def __init__(self, source: str):
        """
        Initialize a pipeline logger scoped to one source file.

        Args:
            source: File being loaded.

        Example:
            logger = PipelineLogger("data/sessions.xlsx")
        """
        self.source = source
        self.start_time = datetime.now()
        self.counts = {"info": 0, "warning": 0, "error": 0}

    def log(self, step: PipelineStep, message: str, level: str = "info"):
        """Count a step message by level and echo it to the module logger."""
        self.counts[level] = self.counts.get(level, 0) + 1

        if level == "error":
            logger.error(f"[{self.source}] {step.value}: {message}")
        elif level == "warning":
            logger.warning(f"[{self.source}] {step.value}: {message}")
        else:
            logger.info(f"[{self.source}] {step.value}: {message}")

    def get_summary(self) -> Dict[str, Any]:
        """Compact overview of the run."""
        end_time = datetime.now()

        return {
            "source": self.source,
            "start_time": self.start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "duration_seconds": (end_time - self.start_time).total_seconds(),
            "total_logs": sum(self.counts.values()),
            "warnings": self.counts["warning"],
            "errors": self.counts["error"],
        }


async def load_session_rows(
    rows: List[Dict[str, Any]],
    session_factory: async_sessionmaker[AsyncSession],
    pipeline_logger: PipelineLogger,
    aliases: Optional[Dict[str, List[str]]] = None,
) -> schemas.LoadReport:
    """
    Transform and load raw spreadsheet rows, strictly in order.

    Every record gets its own transaction: a bad record is counted and
    rolled back on its own, it never aborts the batch.

    Args:
        rows: Raw row dicts from ingest.read_session_rows
        session_factory: Where to open database sessions
        pipeline_logger: Step log of this run
        aliases: Header alias table (defaults to ingest.COLUMN_ALIASES)

    Returns:
        Counts of inserted/updated/skipped/bad_date/failed records
    """
    aliases = aliases or ingest.COLUMN_ALIASES
    report = schemas.LoadReport(total=len(rows))

    async with session_factory() as db:
        for idx, row in enumerate(rows, start=1):
            record = transform.clean_session_row(row, aliases)

            if record.missing_required():
                report.skipped += 1
                pipeline_logger.log(
                    PipelineStep.TRANSFORM,
                    f"Row {idx}: missing type/domain/class/instructor, skipped",
                    "warning",
                )
                continue

            if record.session_date is None:
                report.bad_date += 1
                pipeline_logger.log(
                    PipelineStep.TRANSFORM,
                    f"Row {idx}: could not parse session date, skipped",
                    "warning",
                )
                continue

            try:
                inserted = await load.upsert_session_fact(db, record)
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                report.failed += 1
                pipeline_logger.log(
                    PipelineStep.LOAD, f"Row {idx}: database error: {e}", "error"
                )
                continue

            if inserted:
                report.inserted += 1
            else:
                report.updated += 1

    return report


async def run_session_etl(
    file_path: str,
    session_factory: async_sessionmaker[AsyncSession],
    sheet_name: Optional[str] = None,
) -> schemas.LoadReport:
    """
    Run the complete ETL for one spreadsheet: ingest -> transform -> load.

    Raises:
        FileNotFoundError / ValueError: the file or sheet can't be read.
            Those are fatal for the run; per-record problems are not.
    """
    pipeline_logger = PipelineLogger(file_path)
    pipeline_logger.log(PipelineStep.INGEST, "Reading spreadsheet...")

    try:
        rows = ingest.read_session_rows(file_path, sheet_name)
    except (OSError, ValueError) as e:
        pipeline_logger.log(PipelineStep.INGEST, f"Ingestion failed: {e}", "error")
        raise

    pipeline_logger.log(PipelineStep.INGEST, f"{len(rows)} rows read")

    report = await load_session_rows(rows, session_factory, pipeline_logger)
    report.status = (
        PipelineStatus.COMPLETED_WITH_ERRORS.value
        if report.failed
        else PipelineStatus.COMPLETED.value
    )
    report.duration_seconds = pipeline_logger.get_summary()["duration_seconds"]

    pipeline_logger.log(
        PipelineStep.LOAD,
        f"ETL complete: inserted={report.inserted} updated={report.updated} "
        f"skipped={report.skipped} bad_date={report.bad_date} failed={report.failed}",
    )
    return report
