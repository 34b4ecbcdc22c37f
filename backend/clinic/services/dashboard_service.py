from datetime import date, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import aliased, selectinload
from clinic.exceptions import NotFoundError
from clinic.models.user import User
from clinic.models.profile import Profile
from clinic.models.appointment import Appointment
from clinic.models.visit import Visit
from clinic.models.prescription import Prescription
from clinic.schemas.appointment import AppointmentResponse
from clinic.schemas.enrollment import StudentResponse
from clinic.schemas.profile import ProfileResponse
from clinic.schemas.visit import PrescriptionResponse, VisitResponse
from clinic.services.records_service import prescription_window


def _prescription(p: Prescription, visit_date: date, today: date) -> PrescriptionResponse:
    response = PrescriptionResponse.model_validate(p)
    response.visit_date = visit_date
    if p.duration is not None:
        active, days_left = prescription_window(visit_date, p.duration, today)
        response.status = "Active" if active else "Expired"
        response.days_left = days_left
    return response


def _visit(v: Visit, today: date, clinician: User = None) -> VisitResponse:
    response = VisitResponse(
        id=v.id,
        student_id=v.student_id,
        clinician_id=v.clinician_id,
        date=v.date,
        diagnosis=v.diagnosis,
        notes=v.notes,
        prescriptions=[_prescription(p, v.date, today) for p in v.prescriptions],
    )
    if clinician is not None:
        response.clinician_name = clinician.name
        response.clinician_surname = clinician.surname
    return response


class DashboardService:
    """Read-only queries behind the student and staff dashboards."""

    async def upcoming_appointments(self, student_id: int, today: date, db: AsyncSession) -> list[AppointmentResponse]:
        result = await db.execute(
            select(Appointment)
            .where(
                Appointment.student_id == student_id,
                Appointment.status.in_(["pending", "confirmed"]),
                Appointment.date >= today,
            )
            .order_by(Appointment.date.asc(), Appointment.time.asc())
        )
        tomorrow = today + timedelta(days=1)
        responses = []
        for a in result.scalars().all():
            response = AppointmentResponse.model_validate(a)
            response.is_tomorrow = a.date == tomorrow
            responses.append(response)
        return responses

    async def recent_visits(self, student_id: int, today: date, db: AsyncSession, limit: int = 2) -> list[VisitResponse]:
        result = await db.execute(
            select(Visit)
            .where(Visit.student_id == student_id)
            .options(selectinload(Visit.prescriptions))
            .execution_options(populate_existing=True)
            .order_by(Visit.date.desc(), Visit.id.desc())
            .limit(limit)
        )
        return [_visit(v, today) for v in result.scalars().all()]

    async def active_prescriptions(self, student_id: int, today: date, db: AsyncSession) -> list[PrescriptionResponse]:
        # Windows are worked out here on every read, never stored
        result = await db.execute(
            select(Prescription, Visit.date)
            .join(Visit, Prescription.visit_id == Visit.id)
            .where(Visit.student_id == student_id, Prescription.duration.is_not(None))
            .order_by(Visit.date.desc(), Prescription.id)
        )
        active = []
        for prescription, visit_date in result.all():
            response = _prescription(prescription, visit_date, today)
            if response.status == "Active":
                active.append(response)
        return active

    async def visit_history(self, student_id: int, today: date, db: AsyncSession) -> list[VisitResponse]:
        clinician = aliased(User)
        result = await db.execute(
            select(Visit, clinician)
            .outerjoin(clinician, Visit.clinician_id == clinician.id)
            .where(Visit.student_id == student_id)
            .options(selectinload(Visit.prescriptions))
            .execution_options(populate_existing=True)
            .order_by(Visit.date.desc(), Visit.id.desc())
        )
        return [_visit(v, today, c) for v, c in result.all()]

    async def _appointments_with_students(self, db: AsyncSession, status: str = None) -> list[AppointmentResponse]:
        query = select(Appointment, User.name, User.surname).join(User, Appointment.student_id == User.id)
        if status:
            query = query.where(Appointment.status == status)
        query = query.order_by(Appointment.date.asc(), Appointment.time.asc())
        result = await db.execute(query)
        responses = []
        for a, name, surname in result.all():
            response = AppointmentResponse.model_validate(a)
            response.student_name = name
            response.student_surname = surname
            responses.append(response)
        return responses

    async def pending_appointments(self, db: AsyncSession) -> list[AppointmentResponse]:
        return await self._appointments_with_students(db, status="pending")

    async def all_appointments(self, db: AsyncSession) -> list[AppointmentResponse]:
        return await self._appointments_with_students(db)

    async def list_students(self, db: AsyncSession) -> list[StudentResponse]:
        result = await db.execute(select(User).where(User.role == "student").order_by(User.student_number))
        return [StudentResponse.model_validate(u) for u in result.scalars().all()]

    async def student_profile(self, student_id: int, db: AsyncSession) -> dict:
        result = await db.execute(
            select(User, Profile)
            .outerjoin(Profile, Profile.user_id == User.id)
            .where(User.id == student_id, User.role == "student")
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Student not found")
        user, profile = row
        return {
            "student": StudentResponse.model_validate(user),
            "profile": ProfileResponse.model_validate(profile) if profile else None,
        }


dashboard_service = DashboardService()
