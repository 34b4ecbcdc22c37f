import logging
import math
from datetime import date, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from clinic.database import transaction
from clinic.exceptions import NotFoundError, ValidationError
from clinic.models.user import User
from clinic.models.visit import Visit
from clinic.models.prescription import Prescription
from clinic.time_utils import parse_date

logger = logging.getLogger(__name__)


def prescription_window(visit_date: date, duration: Optional[int], today: date) -> tuple[bool, Optional[int]]:
    """
    Return (active, days_left) for a prescription issued on visit_date.

    Active while visit_date + duration days is today or later. Without a
    duration there is no window, so it is never active.
    """
    if duration is None:
        return False, None
    remaining = (visit_date + timedelta(days=duration)) - today
    days_left = math.ceil(remaining.total_seconds() / 86400)
    return days_left >= 0, days_left


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_duration(value) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError("Duration must be a positive number of days")
    try:
        days = int(str(value).strip())
    except ValueError:
        raise ValidationError("Duration must be a positive number of days")
    if days < 1:
        raise ValidationError("Duration must be a positive number of days")
    return days


class RecordsService:
    def validate_prescription(self, prescription: Optional[dict]) -> Optional[dict]:
        """Normalize the optional prescription part of a visit. None means no prescription."""
        prescription = prescription or {}
        medication = _clean(prescription.get("medication"))
        dosage = _clean(prescription.get("dosage"))
        if medication and not dosage:
            raise ValidationError("Dosage is required if medication is provided")
        if dosage and not medication:
            raise ValidationError("Medication is required if dosage is provided")
        duration = _parse_duration(prescription.get("duration"))
        if not medication:
            return None
        return {
            "medication": medication,
            "dosage": dosage,
            "instructions": _clean(prescription.get("instructions")),
            "duration": duration,
        }

    async def _add_prescription(self, visit: Visit, prescription: dict, db: AsyncSession) -> Prescription:
        item = Prescription(visit_id=visit.id, **prescription)
        db.add(item)
        await db.flush()
        return item

    async def record_visit(
        self,
        student_id: int,
        clinician_id: Optional[int],
        visit_date,
        diagnosis: str,
        notes: Optional[str],
        prescription: Optional[dict],
        db: AsyncSession,
    ) -> int:
        """Write a visit and its optional prescription as one unit. Returns the visit id."""
        parsed_date = parse_date(visit_date)
        if parsed_date is None:
            raise ValidationError("Invalid date")
        diagnosis = (diagnosis or "").strip()
        if not diagnosis:
            raise ValidationError("Diagnosis is required")
        prescription = self.validate_prescription(prescription)

        async with transaction(db):
            student = await db.scalar(select(User.id).where(User.id == student_id, User.role == "student"))
            if student is None:
                raise NotFoundError("Invalid student ID")

            visit = Visit(
                student_id=student_id,
                clinician_id=clinician_id,
                date=parsed_date,
                diagnosis=diagnosis,
                notes=_clean(notes),
            )
            db.add(visit)
            await db.flush()
            if prescription:
                await self._add_prescription(visit, prescription, db)

        logger.info(
            "Visit %s recorded for student %s%s",
            visit.id, student_id, " with prescription" if prescription else "",
        )
        return visit.id


records_service = RecordsService()
