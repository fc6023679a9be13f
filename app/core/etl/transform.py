# app/core/etl/transform.py
"""
TRANSFORM MODULE - Normalize messy spreadsheet cells into session records

Purpose:
    1. Turn any date-looking cell into a canonical "YYYY-MM-DD" local date
    2. Parse numbers ("1,250") and percentages (0.25, "25%", 90)
    3. Back-fill missing metrics from the ones that are present
    4. Derive the calendar columns the fact table stores (year/month/quarter)

Data Flow:
    raw row (from ingest.py) → clean_session_row() → SessionRecord
                                                        ↓
                                 normalize_session_date() + derive_calendar()
                                                        ↓
                                               load.py upserts it

Known accuracy risk:
    "03/04/2025" is read day-first (3 April). Spreadsheets do not tell us
    their locale, so truly ambiguous dates follow the fixed format order.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import pandas as pd

from app.core.etl.ingest import pick_value


# Excel's day zero (accounts for the fake 1900-02-29)
SPREADSHEET_EPOCH = date(1899, 12, 30)

# Tried in order, first match wins
DATE_FORMATS = [
    "%B %d, %Y",  # January 4, 2025
    "%b %d, %Y",  # Jan 4, 2025
    "%Y-%m-%d",  # 2025-01-04 (ISO)
    "%d/%m/%Y",  # 4/1/2025, 04/01/2025 (day first)
    "%m/%d/%Y",  # 1/24/2025 (month first)
]

REQUIRED_FIELDS = ("type", "domain", "class", "instructor")

# "45661" or "45661.0" from a text-only export
SERIAL_PATTERN = re.compile(r"^\d+(\.\d+)?$")


# ============================================================================
# STEP 1: CLEAN AND STANDARDIZE VALUES
# ============================================================================


def clean_text(value: Any) -> str:
    """Stringify a cell and trim it; empty/NaN cells become ""."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a numeric cell.

    Examples:
        42 → 42.0
        "1,250" → 1250.0
        "" / "n/a" / NaN → None
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    text = clean_text(value).replace(",", "")
    if not text:
        return None

    try:
        number = float(text)
    except ValueError:
        return None

    return number if math.isfinite(number) else None


def parse_percentage(value: Any) -> Optional[float]:
    """
    Parse a rated-percentage cell into 0..100 percentage points.

    Spreadsheets store "25%" as 0.25, people type 25 or "25%".
    Anything <= 1 is treated as a fraction.

    Examples:
        0.25 → 25.0
        "25%" → 25.0
        90 → 90.0
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("%"):
            text = text[:-1]
        number = parse_number(text)
    else:
        number = parse_number(value)

    if number is None:
        return None

    return number * 100 if number <= 1 else number


def _to_count(value: Optional[float]) -> Optional[int]:
    # INT columns reject 20.0 on asyncpg; halves round up (2.5 → 3)
    return None if value is None else math.floor(value + 0.5)


# ============================================================================
# STEP 2: CLEAN AND STANDARDIZE DATES
# ============================================================================


def serial_to_date(serial: float) -> Optional[date]:
    """
    Convert a spreadsheet serial day count to a calendar date.

    Example:
        45661 → date(2025, 1, 4)
    """
    if not math.isfinite(serial) or serial < 1:
        return None
    try:
        return SPREADSHEET_EPOCH + timedelta(days=int(serial))
    except OverflowError:
        return None


def normalize_session_date(raw: Any) -> Optional[str]:
    """
    Normalize a session date cell to "YYYY-MM-DD".

    Handles (in this order):
        - datetime/date/Timestamp objects (taken as UTC midnight)
        - spreadsheet serial numbers (45661, also as text "45661")
        - "January 4, 2025", "Jan 4, 2025", "2025-01-04",
          "4/1/2025" (day first), "1/24/2025" (month first)
        - anything pandas can make sense of, as a last resort

    Returns:
        ISO date string, or None if nothing matched
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        if pd.isna(raw):
            return None
        if raw.tzinfo is not None:
            raw = raw.astimezone(timezone.utc)
        return raw.strftime("%Y-%m-%d")

    if isinstance(raw, date):
        return raw.isoformat()

    if isinstance(raw, (int, float)):
        parsed = serial_to_date(float(raw))
        return parsed.isoformat() if parsed else None

    text = clean_text(raw)
    if not text:
        return None

    if SERIAL_PATTERN.match(text):
        parsed = serial_to_date(float(text))
        return parsed.isoformat() if parsed else None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue

    fallback = pd.to_datetime(text, errors="coerce")
    if pd.isna(fallback):
        return None
    if fallback.tzinfo is not None:
        fallback = fallback.tz_convert("UTC")
    return fallback.strftime("%Y-%m-%d")


def quarter_of(month: int) -> int:
    """1-3 → Q1, 4-6 → Q2, 7-9 → Q3, 10-12 → Q4."""
    return (month - 1) // 3 + 1


@dataclass(frozen=True)
class SessionCalendar:
    """Calendar columns of a fact row, all derived from one local date."""

    session_ts_utc: datetime
    pst_date: date
    pst_year: int
    pst_month: int
    pst_quarter: int
    pst_month_start: date


def derive_calendar(
    iso_date: str, tz_name: str = "America/Los_Angeles", local_hour: int = 9
) -> SessionCalendar:
    """
    Build the calendar columns for a normalized session date.

    The stored instant is `local_hour`:00 on that day in `tz_name`,
    converted to UTC (DST aware).
    """
    local_date = date.fromisoformat(iso_date)
    local_start = datetime.combine(local_date, time(hour=local_hour), ZoneInfo(tz_name))

    return SessionCalendar(
        session_ts_utc=local_start.astimezone(timezone.utc),
        pst_date=local_date,
        pst_year=local_date.year,
        pst_month=local_date.month,
        pst_quarter=quarter_of(local_date.month),
        pst_month_start=local_date.replace(day=1),
    )


# ============================================================================
# STEP 3: BUILD A SESSION RECORD
# ============================================================================


@dataclass
class SessionRecord:
    topic_code: str
    session_type: str
    domain: str
    class_name: str
    instructor: str
    session_date: Optional[str]
    average: Optional[float] = None
    responses: Optional[int] = None
    students_attended: Optional[int] = None
    rated_pct: Optional[float] = None

    def missing_required(self) -> bool:
        return not (
            self.session_type and self.domain and self.class_name and self.instructor
        )


def backfill_metrics(
    responses: Optional[float],
    attended: Optional[float],
    rated_pct: Optional[float],
) -> tuple:
    """
    Fill in whichever of responses / rated_pct can be derived from the others.

    Examples:
        (None, 40, 50) → (20, 40, 50)
        (10, 40, None) → (10, 40, 25.0)
        (10, 0, None) → (10, 0, None)  # no division by zero
    """
    if rated_pct is None and responses is not None and attended is not None:
        if attended > 0:
            rated_pct = responses / attended * 100

    if responses is None and attended is not None and rated_pct is not None:
        responses = attended * (rated_pct / 100)

    return _to_count(responses), _to_count(attended), rated_pct


def clean_session_row(
    row: Dict[str, Any], aliases: Dict[str, list]
) -> SessionRecord:
    """
    Main function: raw spreadsheet row → SessionRecord.

    Dimension names are trimmed text, metrics are parsed and back-filled,
    the date is normalized (None if it could not be parsed).
    """
    responses, attended, rated_pct = backfill_metrics(
        parse_number(pick_value(row, aliases["responses"])),
        parse_number(pick_value(row, aliases["attended"])),
        parse_percentage(pick_value(row, aliases["rated_pct"])),
    )

    return SessionRecord(
        topic_code=clean_text(pick_value(row, aliases["topic"])),
        session_type=clean_text(pick_value(row, aliases["type"])),
        domain=clean_text(pick_value(row, aliases["domain"])),
        class_name=clean_text(pick_value(row, aliases["class"])),
        instructor=clean_text(pick_value(row, aliases["instructor"])),
        session_date=normalize_session_date(pick_value(row, aliases["session_date"])),
        average=parse_number(pick_value(row, aliases["average"])),
        responses=responses,
        students_attended=attended,
        rated_pct=rated_pct,
    )
