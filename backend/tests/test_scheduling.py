import asyncio

import pytest
from sqlalchemy import select, func
from clinic.exceptions import ConflictError, NotFoundError, ValidationError
from clinic.models import Appointment
from clinic.services.scheduling_service import scheduling_service
from conftest import FRIDAY, MONDAY, SATURDAY, SUNDAY, TUESDAY


async def _count(db):
    return await db.scalar(select(func.count(Appointment.id)))


async def test_book_creates_pending_appointment(db, make_student):
    student = await make_student()

    appointment = await scheduling_service.book(student.id, MONDAY.isoformat(), "08:00", "checkup", db)

    assert appointment.id is not None
    assert appointment.status == "pending"
    assert appointment.date == MONDAY
    assert appointment.time == "08:00"


async def test_second_booking_for_same_slot_conflicts(db, make_student):
    first = await make_student(student_number="220001")
    second = await make_student(student_number="220002")
    await scheduling_service.book(first.id, MONDAY, "08:00", "checkup", db)

    with pytest.raises(ConflictError, match="Time slot already booked"):
        await scheduling_service.book(second.id, MONDAY, "08:00", "flu", db)
    assert await _count(db) == 1


@pytest.mark.parametrize("slot", ["08:00", "12:30", "17:00", "8:15"])
async def test_business_hours_accepted(db, make_student, slot):
    student = await make_student()

    appointment = await scheduling_service.book(student.id, FRIDAY, slot, "checkup", db)

    assert "08:00" <= appointment.time <= "17:00"


@pytest.mark.parametrize("slot", ["07:59", "17:01", "18:00", "00:00"])
async def test_outside_business_hours_rejected(db, make_student, slot):
    student = await make_student()

    with pytest.raises(ValidationError, match="between 08:00 and 17:00"):
        await scheduling_service.book(student.id, MONDAY, slot, "checkup", db)
    assert await _count(db) == 0


@pytest.mark.parametrize("slot", ["24:00", "9am", "", "12:7", "12:60"])
async def test_malformed_time_rejected(db, make_student, slot):
    student = await make_student()

    with pytest.raises(ValidationError, match="Invalid time format"):
        await scheduling_service.book(student.id, MONDAY, slot, "checkup", db)


@pytest.mark.parametrize("day", [SATURDAY, SUNDAY])
async def test_weekends_rejected(db, make_student, day):
    student = await make_student()

    with pytest.raises(ValidationError, match="Monday to Friday"):
        await scheduling_service.book(student.id, day.isoformat(), "10:00", "checkup", db)
    assert await _count(db) == 0


async def test_validation_order_reports_first_violation(db, make_student):
    student = await make_student()

    with pytest.raises(ValidationError, match="Invalid date"):
        await scheduling_service.book(student.id, "2030-02-30", "17:01", "", db)
    with pytest.raises(ValidationError, match="Invalid time format"):
        await scheduling_service.book(student.id, SATURDAY, "noon", "", db)
    with pytest.raises(ValidationError, match="Reason is required"):
        await scheduling_service.book(student.id, SATURDAY, "10:00", "   ", db)


async def test_cancelled_slot_can_be_booked_again(db, make_student):
    first = await make_student(student_number="220001")
    second = await make_student(student_number="220002")
    appointment = await scheduling_service.book(first.id, TUESDAY, "10:00", "checkup", db)
    await scheduling_service.cancel(appointment.id, first.id, db)

    rebooked = await scheduling_service.book(second.id, TUESDAY, "10:00", "flu", db)

    assert rebooked.status == "pending"
    assert await _count(db) == 2


async def test_concurrent_bookings_for_one_slot(session_factory, make_student):
    first = await make_student(student_number="220001")
    second = await make_student(student_number="220002")

    async def attempt(student_id):
        async with session_factory() as session:
            return await scheduling_service.book(student_id, MONDAY, "09:00", "checkup", session)

    results = await asyncio.gather(attempt(first.id), attempt(second.id), return_exceptions=True)

    booked = [r for r in results if isinstance(r, Appointment)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(booked) == 1
    assert len(conflicts) == 1
    async with session_factory() as session:
        live = await session.scalar(
            select(func.count(Appointment.id)).where(Appointment.status != "cancelled")
        )
    assert live == 1


async def test_student_cancels_own_appointment_once(db, make_student):
    student = await make_student()
    appointment = await scheduling_service.book(student.id, MONDAY, "11:00", "checkup", db)

    cancelled = await scheduling_service.cancel(appointment.id, student.id, db)
    assert cancelled.status == "cancelled"

    with pytest.raises(NotFoundError):
        await scheduling_service.cancel(appointment.id, student.id, db)
    # the row is kept for history
    assert await _count(db) == 1


async def test_student_cannot_cancel_someone_elses_appointment(db, make_student):
    owner = await make_student(student_number="220001")
    other = await make_student(student_number="220002")
    appointment = await scheduling_service.book(owner.id, MONDAY, "11:00", "checkup", db)

    with pytest.raises(NotFoundError):
        await scheduling_service.cancel(appointment.id, other.id, db)
    await db.refresh(appointment)
    assert appointment.status == "pending"


async def test_confirmed_appointment_can_be_cancelled_by_student(db, make_student):
    student = await make_student()
    appointment = await scheduling_service.book(student.id, MONDAY, "11:00", "checkup", db)
    await scheduling_service.set_status(appointment.id, "confirmed", db)

    cancelled = await scheduling_service.cancel(appointment.id, student.id, db)

    assert cancelled.status == "cancelled"


async def test_set_status_accepts_every_status(db, make_student):
    student = await make_student()
    appointment = await scheduling_service.book(student.id, MONDAY, "13:00", "checkup", db)

    for status in ["confirmed", "cancelled", "pending"]:
        updated = await scheduling_service.set_status(appointment.id, status, db)
        assert updated.status == status


async def test_set_status_rejects_unknown_values_and_ids(db, make_student):
    student = await make_student()
    appointment = await scheduling_service.book(student.id, MONDAY, "13:00", "checkup", db)

    with pytest.raises(ValidationError, match="Invalid status"):
        await scheduling_service.set_status(appointment.id, "done", db)
    with pytest.raises(NotFoundError):
        await scheduling_service.set_status(9999, "confirmed", db)


async def test_reviving_cancelled_appointment_into_taken_slot_conflicts(db, make_student):
    first = await make_student(student_number="220001")
    second = await make_student(student_number="220002")
    old = await scheduling_service.book(first.id, MONDAY, "14:00", "checkup", db)
    await scheduling_service.set_status(old.id, "cancelled", db)
    await scheduling_service.book(second.id, MONDAY, "14:00", "flu", db)

    with pytest.raises(ConflictError):
        await scheduling_service.set_status(old.id, "confirmed", db)
    await db.refresh(old)
    assert old.status == "cancelled"


async def test_booking_over_http(client, make_student, headers_for):
    student = await make_student()

    created = await client.post(
        "/api/student/appointments",
        json={"date": MONDAY.isoformat(), "time": "08:00", "reason": "checkup"},
        headers=headers_for(student),
    )
    clash = await client.post(
        "/api/student/appointments",
        json={"date": MONDAY.isoformat(), "time": "08:00", "reason": "again"},
        headers=headers_for(student),
    )
    weekend = await client.post(
        "/api/student/appointments",
        json={"date": SATURDAY.isoformat(), "time": "08:00", "reason": "checkup"},
        headers=headers_for(student),
    )

    assert created.status_code == 201
    assert created.json()["appointment"]["status"] == "pending"
    assert created.json()["messages"] == [{"category": "success", "text": "Appointment booked successfully"}]
    assert clash.status_code == 409
    assert weekend.status_code == 400
    assert weekend.json()["error"] == "Appointments are only available Monday to Friday"
