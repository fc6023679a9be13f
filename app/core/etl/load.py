from typing import Optional, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models
from app.core.config import settings
from app.core.etl.transform import SessionRecord, derive_calendar


# -----------------------------------------------------------------------------
# LOAD MODULE
# Purpose: write normalized session records into the star schema.
# Dimensions are get-or-create by name, facts are upserted on the natural key:
# re-loading a sheet updates metrics in place and never adds rows.
# -----------------------------------------------------------------------------


async def upsert_dimension(db: AsyncSession, model: Type[models.Base], name: str) -> int:
    """
    Return the surrogate id for a dimension name, creating the row on first sight.

    Args:
        db: Async database session.
        model: One of the dimension models (Instructor, SessionClass, ...).
        name: Human-readable name, unique per dimension.

    Returns:
        The dimension's surrogate id.

    Example:
        instructor_id = await upsert_dimension(db, models.Instructor, "Ada Lovelace")
    """
    result = await db.execute(select(model.id).where(model.name == name))
    existing_id = result.scalar_one_or_none()
    if existing_id is not None:
        return existing_id

    row = model(name=name)
    db.add(row)
    await db.flush()  # assigns the id
    return row.id


async def find_session_fact(
    db: AsyncSession,
    topic_code: Optional[str],
    dimension_ids: dict,
    pst_date,
) -> Optional[models.SessionFact]:
    """
    Look up a fact row by its natural key.
    A missing topic code matches rows whose topic code IS NULL.
    """
    fact = models.SessionFact
    topic_clause = (
        fact.topic_code.is_(None) if topic_code is None else fact.topic_code == topic_code
    )
    query = select(fact).where(
        topic_clause,
        fact.type_id == dimension_ids["type"],
        fact.domain_id == dimension_ids["domain"],
        fact.class_id == dimension_ids["class"],
        fact.instructor_id == dimension_ids["instructor"],
        fact.pst_date == pst_date,
    )
    result = await db.execute(query)
    return result.scalars().first()


async def upsert_session_fact(db: AsyncSession, record: SessionRecord) -> bool:
    """
    Write one session record: dimensions first, then the fact row.

    On a natural-key hit only the metric columns are overwritten; the
    dimension references and calendar fields are part of the identity.
    Caller owns the transaction (commit/rollback).

    Returns:
        True if a new fact row was inserted, False if an existing one was updated.
    """
    if record.session_date is None:
        raise ValueError("session record has no normalized date")

    dimension_ids = {
        "type": await upsert_dimension(db, models.SessionType, record.session_type),
        "domain": await upsert_dimension(db, models.Domain, record.domain),
        "class": await upsert_dimension(db, models.SessionClass, record.class_name),
        "instructor": await upsert_dimension(db, models.Instructor, record.instructor),
    }

    calendar = derive_calendar(
        record.session_date,
        tz_name=settings.SESSION_TIMEZONE,
        local_hour=settings.SESSION_LOCAL_HOUR,
    )
    topic_code = record.topic_code or None

    metrics = {
        "average": record.average,
        "responses": record.responses,
        "students_attended": record.students_attended,
        "rated_pct": record.rated_pct,
    }

    existing = await find_session_fact(db, topic_code, dimension_ids, calendar.pst_date)
    if existing is not None:
        for key, value in metrics.items():
            setattr(existing, key, value)
        await db.flush()
        return False

    db.add(
        models.SessionFact(
            topic_code=topic_code,
            type_id=dimension_ids["type"],
            domain_id=dimension_ids["domain"],
            class_id=dimension_ids["class"],
            instructor_id=dimension_ids["instructor"],
            session_ts_utc=calendar.session_ts_utc,
            pst_date=calendar.pst_date,
            pst_year=calendar.pst_year,
            pst_month=calendar.pst_month,
            pst_quarter=calendar.pst_quarter,
            pst_month_start=calendar.pst_month_start,
            **metrics,
        )
    )
    await db.flush()
    return True
