import uuid

from sqlalchemy import (
    DDL,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    TIMESTAMP,
    Text,
    UniqueConstraint,
    Uuid,
    CheckConstraint,
    event,
)
from app.core.database import Base


# =========================
# Dimensions
# =========================
# Every dimension exposes the same `id` / `name` attributes so the ETL can
# upsert them generically; the column names stay table-specific.
class Instructor(Base):
    __tablename__ = "dim_instructor"

    id = Column("instructor_id", Integer, primary_key=True, autoincrement=True)
    name = Column("instructor_name", Text, nullable=False, unique=True)


class SessionClass(Base):
    __tablename__ = "dim_class"

    id = Column("class_id", Integer, primary_key=True, autoincrement=True)
    name = Column("class_name", Text, nullable=False, unique=True)


class Domain(Base):
    __tablename__ = "dim_domain"

    id = Column("domain_id", Integer, primary_key=True, autoincrement=True)
    name = Column("domain_name", Text, nullable=False, unique=True)


class SessionType(Base):
    __tablename__ = "dim_type"

    id = Column("type_id", Integer, primary_key=True, autoincrement=True)
    name = Column("type_name", Text, nullable=False, unique=True)


# =========================
# Fact
# =========================
class SessionFact(Base):
    """
    One row per conducted session, on the local (PST) calendar.

    session_ts_utc is the UTC instant of a canonical local wall-clock hour
    on pst_date; the pst_* columns are all derived from pst_date.
    """

    __tablename__ = "fact_session"
    __table_args__ = (
        # natural key prevents duplicates across re-loads
        UniqueConstraint(
            "topic_code",
            "type_id",
            "domain_id",
            "class_id",
            "instructor_id",
            "pst_date",
            name="uq_fact_session_natural_key",
        ),
        CheckConstraint("pst_month BETWEEN 1 AND 12", name="ck_fact_session_month"),
        CheckConstraint("pst_quarter BETWEEN 1 AND 4", name="ck_fact_session_quarter"),
        Index("idx_fact_session_time", "pst_year", "pst_quarter", "pst_month", "pst_date"),
    )

    session_id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    topic_code = Column(Text, nullable=True)  # free text

    type_id = Column(
        Integer, ForeignKey("dim_type.type_id"), nullable=False, index=True
    )
    domain_id = Column(
        Integer, ForeignKey("dim_domain.domain_id"), nullable=False, index=True
    )
    class_id = Column(
        Integer, ForeignKey("dim_class.class_id"), nullable=False, index=True
    )
    instructor_id = Column(
        Integer, ForeignKey("dim_instructor.instructor_id"), nullable=False, index=True
    )

    session_ts_utc = Column(TIMESTAMP(timezone=True), nullable=False)
    pst_date = Column(Date, nullable=False)
    pst_year = Column(Integer, nullable=False)
    pst_month = Column(Integer, nullable=False)
    pst_quarter = Column(Integer, nullable=False)
    pst_month_start = Column(Date, nullable=False)

    # metrics
    average = Column(Numeric(asdecimal=False))  # e.g. 4.75
    responses = Column(Integer)  # students who rated
    students_attended = Column(Integer)
    rated_pct = Column(Numeric(asdecimal=False))  # 0..100 (percentage points)


# =========================
# Analysis view (the only thing the query layer reads)
# =========================
SESSIONS_VIEW_NAME = "v_sessions"

SESSIONS_VIEW_SELECT = """
SELECT
  fs.session_id,
  fs.topic_code,
  dt.type_name       AS type,
  dd.domain_name     AS domain,
  dc.class_name      AS class,
  di.instructor_name AS instructor,
  fs.session_ts_utc,
  fs.pst_date, fs.pst_year, fs.pst_month, fs.pst_quarter, fs.pst_month_start,
  fs.average, fs.responses, fs.students_attended, fs.rated_pct
FROM fact_session fs
JOIN dim_type       dt ON dt.type_id       = fs.type_id
JOIN dim_domain     dd ON dd.domain_id     = fs.domain_id
JOIN dim_class      dc ON dc.class_id      = fs.class_id
JOIN dim_instructor di ON di.instructor_id = fs.instructor_id
"""

# Postgres has no CREATE VIEW IF NOT EXISTS, SQLite has no CREATE OR REPLACE VIEW
event.listen(
    Base.metadata,
    "after_create",
    DDL(
        f"CREATE OR REPLACE VIEW {SESSIONS_VIEW_NAME} AS {SESSIONS_VIEW_SELECT}"
    ).execute_if(dialect="postgresql"),
)
event.listen(
    Base.metadata,
    "after_create",
    DDL(
        f"CREATE VIEW IF NOT EXISTS {SESSIONS_VIEW_NAME} AS {SESSIONS_VIEW_SELECT}"
    ).execute_if(dialect="sqlite"),
)
event.listen(
    Base.metadata,
    "before_drop",
    DDL(f"DROP VIEW IF EXISTS {SESSIONS_VIEW_NAME}"),
)
