import csv
import io
import logging
import zipfile
from typing import Iterable, Mapping, Optional, Sequence
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from clinic.auth import hash_password
from clinic.config import get_settings
from clinic.database import transaction
from clinic.exceptions import ConflictError, ValidationError
from clinic.models.user import User
from clinic.models.profile import Profile
from clinic.schemas.enrollment import EnrollmentReport
from clinic.services.account_service import student_email

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["student_number", "name", "surname", "id_number"]


def _field(row: Mapping, key: str) -> str:
    value = row.get(key)
    return "" if value is None else str(value).strip()


def read_rows(text: str) -> tuple[list[str], list[dict]]:
    """Parse CSV text with a header line into (columns, rows)."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    columns = [(c or "").strip() for c in (reader.fieldnames or [])]
    rows = [{(k or "").strip(): v for k, v in row.items()} for row in reader]
    return columns, rows


def _cell(value):
    # whole numbers typed into a spreadsheet come back as floats
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value


def read_workbook(data: bytes) -> tuple[list[str], list[dict]]:
    """Read the first sheet of an .xlsx workbook: header row, then one dict per data row."""
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError):
        raise ValidationError("Could not read the Excel file")
    try:
        lines = workbook.worksheets[0].iter_rows(values_only=True)
        header = next(lines, None) or ()
        columns = ["" if c is None else str(c).strip() for c in header]
        rows = []
        for line in lines:
            if all(v is None or str(v).strip() == "" for v in line):
                continue
            rows.append({key: _cell(value) for key, value in zip(columns, line) if key})
    finally:
        workbook.close()
    return [c for c in columns if c], rows


def read_upload(filename: Optional[str], content: bytes, encoding: str = "utf-8") -> tuple[list[str], list[dict]]:
    """Pick the reader for an uploaded roster: .xlsx workbooks, anything else as CSV text."""
    if (filename or "").lower().endswith(".xlsx") or zipfile.is_zipfile(io.BytesIO(content)):
        return read_workbook(content)
    try:
        text = content.decode(encoding)
    except UnicodeDecodeError:
        raise ValidationError("Upload must be an .xlsx workbook or a UTF-8 CSV file")
    return read_rows(text)


class EnrollmentService:
    async def _exists(self, student_number: str, email: str, db: AsyncSession) -> bool:
        found = await db.scalar(
            select(User.id).where(or_(User.student_number == student_number, User.email == email)).limit(1)
        )
        return found is not None

    def _new_student(self, student_number, name, surname, id_number, password_digest) -> User:
        user = User(
            role="student",
            student_number=student_number,
            email=student_email(student_number),
            password=password_digest,
            name=name,
            surname=surname,
            password_changed=False,
        )
        user.profile = Profile(id_number=id_number, profile_complete=False)
        return user

    async def enroll(
        self,
        rows: Sequence[Mapping],
        db: AsyncSession,
        columns: Optional[Iterable[str]] = None,
    ) -> EnrollmentReport:
        """
        Create student accounts from tabular rows in one transaction.

        A row with a blank required field counts as an error and is skipped.
        A row whose student number (or derived email) already exists, in storage
        or earlier in the batch, is skipped without counting as success or error.
        """
        if columns is None:
            columns = list(rows[0].keys()) if rows else []
        columns = set(columns)
        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise ValidationError(f"Missing required columns: {', '.join(missing)}", {"missing": missing})

        report = EnrollmentReport()
        # one digest for the whole batch; every new account shares the onboarding password
        password_digest = hash_password(get_settings().default_student_password)

        async with transaction(db):
            for row in rows:
                values = {key: _field(row, key) for key in REQUIRED_COLUMNS}
                if not all(values.values()):
                    report.error_count += 1
                    continue

                email = student_email(values["student_number"])
                if await self._exists(values["student_number"], email, db):
                    report.skipped_count += 1
                    continue

                db.add(self._new_student(
                    values["student_number"], values["name"], values["surname"],
                    values["id_number"], password_digest,
                ))
                await db.flush()
                report.success_count += 1

        logger.info(
            "Enrollment finished: %s added, %s failed, %s skipped",
            report.success_count, report.error_count, report.skipped_count,
        )
        return report

    async def add_student(
        self, student_number: str, name: str, surname: str, id_number: str, db: AsyncSession
    ) -> User:
        """Single student from the admin form. Duplicates are an error here, not a skip."""
        values = {
            "student_number": (student_number or "").strip(),
            "name": (name or "").strip(),
            "surname": (surname or "").strip(),
            "id_number": (id_number or "").strip(),
        }
        labels = {"student_number": "Student number", "name": "Name", "surname": "Surname", "id_number": "ID number"}
        for key, value in values.items():
            if not value:
                raise ValidationError(f"{labels[key]} is required")

        password_digest = hash_password(get_settings().default_student_password)
        async with transaction(db):
            if await self._exists(values["student_number"], student_email(values["student_number"]), db):
                raise ConflictError("Student already exists")
            user = self._new_student(
                values["student_number"], values["name"], values["surname"],
                values["id_number"], password_digest,
            )
            db.add(user)
            await db.flush()

        logger.info("Student %s added", values["student_number"])
        return user


enrollment_service = EnrollmentService()
