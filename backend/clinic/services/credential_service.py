import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from clinic.auth import hash_password, verify_password
from clinic.config import get_settings
from clinic.database import transaction
from clinic.exceptions import InvalidCredentials, NotFoundError, ValidationError
from clinic.models.user import User

logger = logging.getLogger(__name__)


class CredentialService:
    def __init__(self):
        self._dummy_digest = None

    def _timing_digest(self) -> str:
        # Checked against when the account does not exist, so both failure
        # paths cost one bcrypt verification.
        if self._dummy_digest is None:
            self._dummy_digest = hash_password("not-a-real-password")
        return self._dummy_digest

    async def authenticate(self, identifier: str, password: str, db: AsyncSession) -> User:
        identifier = (identifier or "").strip()
        if not identifier:
            raise ValidationError("Student number or email is required")
        if not password:
            raise ValidationError("Password is required")

        result = await db.execute(
            select(User)
            .where(or_(User.student_number == identifier, User.email == identifier))
            .order_by(User.id)
            .limit(1)
        )
        user = result.scalar_one_or_none()

        if user is None:
            verify_password(password, self._timing_digest())
            raise InvalidCredentials()
        if not verify_password(password, user.password):
            raise InvalidCredentials()
        return user

    async def change_password(
        self, account_id: int, new_password: str, confirm_password: str, db: AsyncSession
    ) -> None:
        settings = get_settings()
        new_password = (new_password or "").strip()
        confirm_password = (confirm_password or "").strip()
        if len(new_password) < settings.min_password_length:
            raise ValidationError(f"Password must be at least {settings.min_password_length} characters")
        if new_password != confirm_password:
            raise ValidationError("Passwords do not match")
        if new_password == settings.default_student_password:
            raise ValidationError("Cannot use default password")

        digest = hash_password(new_password)
        async with transaction(db):
            user = await db.scalar(select(User).where(User.id == account_id))
            if user is None:
                raise NotFoundError("Account not found")
            user.password = digest
            user.password_changed = True
        logger.info("Password changed for account %s", account_id)

    async def seed_staff_account(self, db: AsyncSession) -> None:
        """Create the clinic admin staff account if it doesn't exist. Idempotent."""
        settings = get_settings()
        async with transaction(db):
            existing = await db.scalar(select(User).where(User.email == settings.admin_email))
            if existing:
                return
            db.add(User(
                role="staff",
                email=settings.admin_email,
                password=hash_password(settings.admin_password),
                name=settings.admin_name,
                surname=settings.admin_surname,
                password_changed=True,
            ))
        logger.info("Seeded staff account %s", settings.admin_email)


credential_service = CredentialService()
