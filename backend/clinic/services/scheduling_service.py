import asyncio
import logging
import weakref
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from clinic.config import get_settings
from clinic.database import transaction
from clinic.exceptions import ConflictError, NotFoundError, ValidationError
from clinic.models.appointment import Appointment, APPOINTMENT_STATUSES
from clinic.time_utils import parse_date, parse_time, format_time

logger = logging.getLogger(__name__)

SLOT_TAKEN = "Time slot already booked"


class SchedulingService:
    """
    Appointment booking against a single clinic calendar.

    A slot is a (date, time) pair and holds at most one appointment that is not
    cancelled. Bookings for the same slot are serialized in-process by a per-slot
    lock; the partial unique index on appointments backs that up across processes.
    """

    def __init__(self):
        self._slot_locks = weakref.WeakValueDictionary()

    def _lock_for(self, slot: tuple) -> asyncio.Lock:
        lock = self._slot_locks.get(slot)
        if lock is None:
            lock = asyncio.Lock()
            self._slot_locks[slot] = lock
        return lock

    def validate_request(self, booking_date, booking_time, reason) -> tuple[date, str, str]:
        """Check a booking request in order; the first violation wins."""
        settings = get_settings()

        parsed_date = parse_date(booking_date)
        if parsed_date is None:
            raise ValidationError("Invalid date")

        parsed_time = parse_time(booking_time)
        if parsed_time is None:
            raise ValidationError("Invalid time format")
        slot_time = format_time(*parsed_time)
        opening = format_time(*parse_time(settings.opening_time))
        closing = format_time(*parse_time(settings.closing_time))
        # zero-padded HH:MM compares correctly as text
        if not opening <= slot_time <= closing:
            raise ValidationError(f"Time must be between {opening} and {closing}")

        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Reason is required")

        if parsed_date.weekday() >= 5:
            raise ValidationError("Appointments are only available Monday to Friday")

        return parsed_date, slot_time, reason

    async def _slot_taken(self, slot_date: date, slot_time: str, db: AsyncSession, exclude_id: int = None) -> bool:
        query = select(func.count(Appointment.id)).where(
            Appointment.date == slot_date,
            Appointment.time == slot_time,
            Appointment.status != "cancelled",
        )
        if exclude_id is not None:
            query = query.where(Appointment.id != exclude_id)
        return (await db.scalar(query) or 0) > 0

    async def book(self, student_id: int, booking_date, booking_time, reason, db: AsyncSession) -> Appointment:
        slot_date, slot_time, reason = self.validate_request(booking_date, booking_time, reason)

        async with self._lock_for((slot_date, slot_time)):
            async with transaction(db):
                if await self._slot_taken(slot_date, slot_time, db):
                    raise ConflictError(SLOT_TAKEN)

                appointment = Appointment(
                    student_id=student_id,
                    date=slot_date,
                    time=slot_time,
                    reason=reason,
                    status="pending",
                )
                db.add(appointment)
                try:
                    await db.flush()
                except IntegrityError as e:
                    raise ConflictError(SLOT_TAKEN) from e

        logger.info("Booked %s %s for student %s", slot_date, slot_time, student_id)
        return appointment

    async def cancel(self, appointment_id: int, student_id: int, db: AsyncSession) -> Appointment:
        """Student cancellation: own appointment, still pending or confirmed."""
        async with transaction(db):
            appointment = await db.scalar(
                select(Appointment).where(
                    Appointment.id == appointment_id,
                    Appointment.student_id == student_id,
                    Appointment.status.in_(["pending", "confirmed"]),
                )
            )
            if appointment is None:
                raise NotFoundError("Appointment not found or cannot be cancelled")
            appointment.status = "cancelled"

        logger.info("Appointment %s cancelled by student %s", appointment_id, student_id)
        return appointment

    async def set_status(self, appointment_id: int, status: str, db: AsyncSession) -> Appointment:
        """Staff triage. Any status is accepted; ownership is not checked."""
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError("Invalid status")

        async with transaction(db):
            appointment = await db.scalar(select(Appointment).where(Appointment.id == appointment_id))
            if appointment is None:
                raise NotFoundError("Appointment not found")

            if appointment.status == "cancelled" and status != "cancelled":
                # bringing it back must not double-book the slot
                if await self._slot_taken(appointment.date, appointment.time, db, exclude_id=appointment.id):
                    raise ConflictError(SLOT_TAKEN)

            appointment.status = status
            try:
                await db.flush()
            except IntegrityError as e:
                raise ConflictError(SLOT_TAKEN) from e

        logger.info("Appointment %s set to %s", appointment_id, status)
        return appointment


scheduling_service = SchedulingService()
