"""
Enroll students from an .xlsx workbook (first sheet) or a CSV file with the columns
student_number, name, surname, id_number.
Run with: python -m scripts.enroll_students students.xlsx
"""

import argparse
import asyncio
from clinic.database import engine, async_session
from clinic.exceptions import ClinicError
from clinic.services.enrollment_service import enrollment_service, read_upload


async def enroll(path: str, encoding: str = "utf-8"):
    try:
        with open(path, "rb") as f:
            columns, rows = read_upload(path, f.read(), encoding=encoding)
        print(f"Read {len(rows)} rows from {path}")
        async with async_session() as db:
            report = await enrollment_service.enroll(rows, db, columns=columns)
    except ClinicError as e:
        print(f"Error: {e.reason}")
        return
    finally:
        await engine.dispose()

    print(f"Added {report.success_count} students.")
    if report.error_count:
        print(f"Failed to add {report.error_count} rows with missing fields.")
    if report.skipped_count:
        print(f"Skipped {report.skipped_count} students already enrolled.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Bulk-enroll students from an Excel or CSV file")
    parser.add_argument("path", help=".xlsx workbook or CSV file with a header row")
    parser.add_argument("--encoding", default="utf-8", help="CSV encoding (default utf-8)")
    args = parser.parse_args()

    asyncio.run(enroll(args.path, encoding=args.encoding))
