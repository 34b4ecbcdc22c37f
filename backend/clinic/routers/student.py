from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from clinic.auth import RequestContext
from clinic.database import get_db
from clinic.gate import STUDENT_DASHBOARD_PATH, PROFILE_PATH, student_access, student_password_access, student_profile_access
from clinic.schemas.appointment import AppointmentRequest, AppointmentResponse
from clinic.schemas.auth import ChangePasswordRequest
from clinic.schemas.profile import ProfileForm, ProfileResponse
from clinic.services.account_service import account_service
from clinic.services.credential_service import credential_service
from clinic.services.dashboard_service import dashboard_service
from clinic.services.scheduling_service import scheduling_service
from clinic.time_utils import clinic_today

router = APIRouter()


@router.get("/dashboard")
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(student_access),
):
    today = clinic_today()
    student_id = context.account_id
    return {
        "appointments": await dashboard_service.upcoming_appointments(student_id, today, db),
        "visits": await dashboard_service.recent_visits(student_id, today, db),
        "prescriptions": await dashboard_service.active_prescriptions(student_id, today, db),
        "messages": context.drain(),
    }


@router.post("/appointments", status_code=201)
async def book_appointment(
    body: AppointmentRequest,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(student_access),
):
    appointment = await scheduling_service.book(context.account_id, body.date, body.time, body.reason, db)
    context.flash("success", "Appointment booked successfully")
    return {
        "appointment": AppointmentResponse.model_validate(appointment),
        "redirect_to": STUDENT_DASHBOARD_PATH,
        "messages": context.drain(),
    }


@router.post("/appointments/{appointment_id}/cancel")
async def cancel_appointment(
    appointment_id: int,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(student_access),
):
    appointment = await scheduling_service.cancel(appointment_id, context.account_id, db)
    context.flash("success", "Appointment cancelled successfully")
    return {
        "appointment": AppointmentResponse.model_validate(appointment),
        "redirect_to": STUDENT_DASHBOARD_PATH,
        "messages": context.drain(),
    }


@router.get("/history")
async def get_history(
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(student_access),
):
    visits = await dashboard_service.visit_history(context.account_id, clinic_today(), db)
    return {"visits": visits, "messages": context.drain()}


@router.get("/profile")
async def get_profile(
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(student_profile_access),
):
    profile = await account_service.get_profile(context.account_id, db)
    return {
        "profile": ProfileResponse.model_validate(profile) if profile else None,
        "messages": context.drain(),
    }


@router.post("/profile")
async def submit_profile(
    body: ProfileForm,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(student_profile_access),
):
    profile = await account_service.complete_profile(context.account_id, body.model_dump(), db)
    context.flash("success", "Profile updated successfully")
    return {
        "profile": ProfileResponse.model_validate(profile),
        "redirect_to": STUDENT_DASHBOARD_PATH,
        "messages": context.drain(),
    }


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(student_password_access),
):
    await credential_service.change_password(context.account_id, body.new_password, body.confirm_password, db)
    context.flash("success", "Password updated successfully")
    return {"redirect_to": PROFILE_PATH, "messages": context.drain()}
