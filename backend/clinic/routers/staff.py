from fastapi import APIRouter, Depends, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession
from clinic.auth import RequestContext
from clinic.database import get_db
from clinic.exceptions import ValidationError
from clinic.gate import staff_access
from clinic.schemas.appointment import AppointmentResponse, AppointmentStatusUpdate
from clinic.schemas.enrollment import StudentCreate, StudentResponse
from clinic.schemas.visit import VisitRequest
from clinic.services.dashboard_service import dashboard_service
from clinic.services.enrollment_service import enrollment_service, read_upload
from clinic.services.records_service import records_service
from clinic.services.scheduling_service import scheduling_service

router = APIRouter()


@router.get("/dashboard")
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(staff_access),
):
    return {
        "appointments": await dashboard_service.pending_appointments(db),
        "messages": context.drain(),
    }


@router.get("/appointments")
async def list_appointments(
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(staff_access),
):
    return {
        "appointments": await dashboard_service.all_appointments(db),
        "messages": context.drain(),
    }


@router.post("/appointments/{appointment_id}/status")
async def update_appointment_status(
    appointment_id: int,
    body: AppointmentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(staff_access),
):
    appointment = await scheduling_service.set_status(appointment_id, body.status, db)
    context.flash("success", "Appointment status updated successfully")
    return {
        "appointment": AppointmentResponse.model_validate(appointment),
        "messages": context.drain(),
    }


@router.get("/students")
async def list_students(
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(staff_access),
):
    return {
        "students": await dashboard_service.list_students(db),
        "messages": context.drain(),
    }


@router.get("/students/{student_id}/profile")
async def view_student_profile(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(staff_access),
):
    result = await dashboard_service.student_profile(student_id, db)
    return {**result, "messages": context.drain()}


@router.post("/students/{student_id}/visits", status_code=201)
async def add_visit(
    student_id: int,
    body: VisitRequest,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(staff_access),
):
    prescription = {
        "medication": body.medication,
        "dosage": body.dosage,
        "instructions": body.instructions,
        "duration": body.duration,
    }
    visit_id = await records_service.record_visit(
        student_id, context.account_id, body.date, body.diagnosis, body.notes, prescription, db
    )
    context.flash("success", "Visit and prescription added successfully")
    return {"visit_id": visit_id, "messages": context.drain()}


@router.post("/students", status_code=201)
async def add_student(
    body: StudentCreate,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(staff_access),
):
    user = await enrollment_service.add_student(body.student_number, body.name, body.surname, body.id_number, db)
    context.flash("success", "Student added successfully")
    return {"student": StudentResponse.model_validate(user), "messages": context.drain()}


@router.post("/students/upload")
async def upload_students(
    file: UploadFile = File(None),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(staff_access),
):
    if file is None:
        raise ValidationError("No file uploaded")
    columns, rows = read_upload(file.filename, await file.read())
    report = await enrollment_service.enroll(rows, db, columns=columns)
    if report.success_count:
        context.flash("success", f"Successfully added {report.success_count} students")
    if report.error_count:
        context.flash("error", f"Failed to add {report.error_count} students")
    if report.skipped_count:
        context.flash("info", f"Skipped {report.skipped_count} students already enrolled")
    return {"report": report, "messages": context.drain()}
