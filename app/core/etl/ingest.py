# app/core/etl/ingest.py
"""
INGEST MODULE - Get raw session rows out of a spreadsheet

Purpose:
    1. Read .xlsx/.xls (or .csv) exports of session ratings
    2. Hand back plain row dicts (header → cell), no cleaning yet
    3. Resolve logical fields through a header alias table,
       because every export names its columns a little differently

Data Flow:
    file → read_session_rows() → [{header: cell}, ...] → transform.py
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)


# Logical field → accepted header names, in priority order.
# Matching ignores case and repeated whitespace.
COLUMN_ALIASES: Dict[str, List[str]] = {
    "topic": ["Topic Code", "Topic", "Type Code"],
    "type": ["Type", "Session Type"],
    "domain": ["Domain"],
    "class": ["Class"],
    "instructor": ["Instructor", "Instructor Name"],
    "session_date": ["Session Date", "Date"],
    "average": ["Average", "Overall Average", "Overall Avg", "Avg", "Rating"],
    "responses": ["No of Student Responses", "No of", "Responses", "# Responses"],
    "attended": ["No of Students Attended", "Attended", "# Attended", "No of Students"],
    "rated_pct": ["% Rated", "Rated %", "Percent Rated"],
}


# ============================================================================
# STEP 1: MATCH HEADERS
# ============================================================================


def normalize_header(header: Any) -> str:
    """
    "  No of   Students Attended " → "no of students attended"
    """
    return re.sub(r"\s+", " ", str(header)).strip().lower()


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return bool(pd.isna(value))


def pick_value(row: Dict[str, Any], aliases: List[str]) -> Any:
    """
    Return the first non-empty cell whose header matches one of the aliases.

    Aliases are tried in order, so a blank "Topic Code" column still lets
    a filled "Topic" column win.

    Example:
        pick_value({"session date ": "Jan 4, 2025"}, ["Session Date", "Date"])
        → "Jan 4, 2025"
    """
    headers = {normalize_header(key): key for key in row}

    for alias in aliases:
        real_key = headers.get(normalize_header(alias))
        if real_key is not None and not _is_blank(row[real_key]):
            return row[real_key]

    return None


# ============================================================================
# STEP 2: READ THE FILE
# ============================================================================


def read_session_rows(
    file_path: str, sheet_name: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Read every data row of a spreadsheet.

    Args:
        file_path: Path to .xlsx/.xls/.csv export
        sheet_name: Sheet to read (first sheet when omitted, ignored for CSV)

    Returns:
        List of dicts, one per row, blank cells as None

    Raises:
        FileNotFoundError: file does not exist
        ValueError: sheet does not exist or file type is unsupported
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"file not found: {file_path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
        used_sheet = path.name
    elif suffix in (".xlsx", ".xlsm", ".xls"):
        with pd.ExcelFile(path) as workbook:
            used_sheet = sheet_name or workbook.sheet_names[0]
            if used_sheet not in workbook.sheet_names:
                raise ValueError(f'sheet "{used_sheet}" not found in {path.name}')
            # Keep cells as-is: dates stay datetimes, serials stay numbers
            frame = workbook.parse(used_sheet, dtype=object)
    else:
        raise ValueError(f"unsupported file type: {suffix or path.name}")

    frame = frame.astype(object).where(pd.notna(frame), None)

    # Filter out empty rows
    rows = [
        row
        for row in frame.to_dict(orient="records")
        if any(not _is_blank(value) for value in row.values())
    ]

    logger.info(f'Read {len(rows)} rows from "{used_sheet}"')
    return rows
