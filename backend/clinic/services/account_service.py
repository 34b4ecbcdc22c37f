import logging
import re
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from clinic.config import get_settings
from clinic.database import transaction
from clinic.exceptions import NotFoundError, ValidationError
from clinic.models.user import User
from clinic.models.profile import Profile, GENDERS, MARITAL_STATUSES
from clinic.time_utils import parse_date

logger = logging.getLogger(__name__)

_PHONE_PATTERN = re.compile(r"^\+?\d{10,15}$")


def student_email(student_number: str) -> str:
    return f"{student_number}@{get_settings().student_email_domain}"


def _is_mobile_number(value: str) -> bool:
    return bool(_PHONE_PATTERN.match(re.sub(r"[\s\-()]", "", value)))


class AccountService:
    async def get_profile(self, student_id: int, db: AsyncSession) -> Optional[Profile]:
        return await db.scalar(select(Profile).where(Profile.user_id == student_id))

    async def complete_profile(self, student_id: int, form: dict, db: AsyncSession) -> Profile:
        """
        Replace the student's profile with the submitted form and mark it complete.

        The profile email is always the institutional address derived from the
        student number, whatever the form says.
        """
        id_number = (form.get("id_number") or "").strip()
        citizenship = (form.get("citizenship") or "").strip()
        cellphone = (form.get("cellphone_number") or "").strip()
        date_of_birth = parse_date(form.get("date_of_birth"))

        if not id_number:
            raise ValidationError("ID number is required")
        if date_of_birth is None:
            raise ValidationError("Invalid date of birth")
        if not citizenship:
            raise ValidationError("Citizenship is required")
        if form.get("gender") not in GENDERS:
            raise ValidationError("Invalid gender")
        if form.get("marital_status") not in MARITAL_STATUSES:
            raise ValidationError("Invalid marital status")
        if not _is_mobile_number(cellphone):
            raise ValidationError("Invalid cellphone number")

        async with transaction(db):
            user = await db.scalar(select(User).where(User.id == student_id, User.role == "student"))
            if user is None:
                raise NotFoundError("Student not found")

            profile = await self.get_profile(student_id, db)
            if profile is None:
                profile = Profile(user_id=student_id)
                db.add(profile)
            profile.id_number = id_number
            profile.date_of_birth = date_of_birth
            profile.citizenship = citizenship
            profile.disability = (form.get("disability") or "").strip() or None
            profile.gender = form["gender"]
            profile.marital_status = form["marital_status"]
            profile.cellphone_number = cellphone
            profile.email = student_email(user.student_number)
            profile.profile_complete = True

        logger.info("Profile completed for student %s", student_id)
        return profile


account_service = AccountService()
