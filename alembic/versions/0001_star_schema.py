"""star schema for session ratings

Revision ID: 0001_star_schema
Revises:
Create Date: 2025-09-01 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from app.core.models import SESSIONS_VIEW_NAME, SESSIONS_VIEW_SELECT


# revision identifiers, used by Alembic.
revision: str = "0001_star_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DIMENSIONS = (
    ("dim_instructor", "instructor"),
    ("dim_class", "class"),
    ("dim_domain", "domain"),
    ("dim_type", "type"),
)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")  # gen_random_uuid() before PG13

    for table, prefix in DIMENSIONS:
        op.create_table(
            table,
            sa.Column(f"{prefix}_id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column(f"{prefix}_name", sa.Text, nullable=False, unique=True),
        )

    op.create_table(
        "fact_session",
        sa.Column(
            "session_id",
            sa.Uuid,
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("topic_code", sa.Text, nullable=True),
        sa.Column("type_id", sa.Integer, sa.ForeignKey("dim_type.type_id"), nullable=False),
        sa.Column("domain_id", sa.Integer, sa.ForeignKey("dim_domain.domain_id"), nullable=False),
        sa.Column("class_id", sa.Integer, sa.ForeignKey("dim_class.class_id"), nullable=False),
        sa.Column(
            "instructor_id",
            sa.Integer,
            sa.ForeignKey("dim_instructor.instructor_id"),
            nullable=False,
        ),
        sa.Column("session_ts_utc", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("pst_date", sa.Date, nullable=False),
        sa.Column("pst_year", sa.Integer, nullable=False),
        sa.Column("pst_month", sa.Integer, nullable=False),
        sa.Column("pst_quarter", sa.Integer, nullable=False),
        sa.Column("pst_month_start", sa.Date, nullable=False),
        sa.Column("average", sa.Numeric),
        sa.Column("responses", sa.Integer),
        sa.Column("students_attended", sa.Integer),
        sa.Column("rated_pct", sa.Numeric),
        sa.UniqueConstraint(
            "topic_code",
            "type_id",
            "domain_id",
            "class_id",
            "instructor_id",
            "pst_date",
            name="uq_fact_session_natural_key",
        ),
        sa.CheckConstraint("pst_month BETWEEN 1 AND 12", name="ck_fact_session_month"),
        sa.CheckConstraint("pst_quarter BETWEEN 1 AND 4", name="ck_fact_session_quarter"),
    )

    op.create_index(
        "idx_fact_session_time",
        "fact_session",
        ["pst_year", "pst_quarter", "pst_month", "pst_date"],
    )
    for column in ("type_id", "domain_id", "class_id", "instructor_id"):
        op.create_index(f"ix_fact_session_{column}", "fact_session", [column])

    op.execute(f"CREATE OR REPLACE VIEW {SESSIONS_VIEW_NAME} AS {SESSIONS_VIEW_SELECT}")


def downgrade() -> None:
    op.execute(f"DROP VIEW IF EXISTS {SESSIONS_VIEW_NAME}")
    op.drop_table("fact_session")
    for table, _ in DIMENSIONS:
        op.drop_table(table)
