"""
Load a session-ratings spreadsheet into the star schema.

Usage:
    python -m app.core.etl --file data/sessions.xlsx [--sheet "Sheet1"]

Needs DATABASE_URL (environment or .env). Exits non-zero when the
configuration is missing or the file/sheet can't be read.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)s  %(message)s")
log = logging.getLogger("app.core.etl")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sessions-etl",
        description="Spreadsheet → Postgres loader for session ratings (PST calendar).",
    )
    parser.add_argument(
        "--file",
        default="data/sessions.xlsx",
        help="Path to the .xlsx/.xls/.csv export (default: %(default)s)",
    )
    parser.add_argument(
        "--sheet",
        default=None,
        help="Sheet name to read (default: first sheet)",
    )
    return parser


async def _run(file_path: str, sheet_name: Optional[str]) -> int:
    # Imported here so a missing DATABASE_URL is reported, not a traceback
    try:
        from app.core.database import AsyncSessionLocal, engine
    except ValidationError as e:
        log.error(f"ETL configuration error, set DATABASE_URL in .env: {e}")
        return 1

    from app.core.etl.pipeline import run_session_etl

    try:
        report = await run_session_etl(file_path, AsyncSessionLocal, sheet_name)
    except (OSError, ValueError) as e:
        log.error(f"ETL failed: {e}")
        return 1
    finally:
        await engine.dispose()

    log.info(f"ETL complete from {file_path}")
    log.info(f"   inserted: {report.inserted}")
    log.info(f"   updated : {report.updated}")
    log.info(f"   skipped : {report.skipped} (missing required fields)")
    log.info(f"   badDate : {report.bad_date} (couldn't parse Session Date)")
    log.info(f"   failed  : {report.failed} (database errors)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(_run(args.file, args.sheet))


if __name__ == "__main__":
    sys.exit(main())
