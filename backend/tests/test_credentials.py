import pytest
from sqlalchemy import select, func
from clinic.auth import verify_password
from clinic.exceptions import InvalidCredentials, NotFoundError, ValidationError
from clinic.models import User
from clinic.services.credential_service import credential_service
from conftest import DEFAULT_PASSWORD


async def test_authenticate_by_student_number_and_email(db, make_student):
    student = await make_student(student_number="220001")

    by_number = await credential_service.authenticate("220001", DEFAULT_PASSWORD, db)
    by_email = await credential_service.authenticate("220001@ump.ac.za", DEFAULT_PASSWORD, db)

    assert by_number.id == student.id
    assert by_email.id == student.id


async def test_unknown_account_and_wrong_password_look_the_same(db, make_student):
    await make_student(student_number="220001")

    with pytest.raises(InvalidCredentials) as wrong_password:
        await credential_service.authenticate("220001", "not-the-password", db)
    with pytest.raises(InvalidCredentials) as unknown:
        await credential_service.authenticate("999999", DEFAULT_PASSWORD, db)

    assert wrong_password.value.reason == unknown.value.reason == "Invalid credentials"


async def test_identifier_match_is_case_sensitive(db, make_staff):
    await make_staff(email="nurse@ump.ac.za", password="admin123")

    with pytest.raises(InvalidCredentials):
        await credential_service.authenticate("NURSE@ump.ac.za", "admin123", db)


async def test_blank_login_fields_are_validation_errors(db):
    with pytest.raises(ValidationError, match="Student number or email is required"):
        await credential_service.authenticate("   ", "x", db)
    with pytest.raises(ValidationError, match="Password is required"):
        await credential_service.authenticate("220001", "", db)


async def test_change_password_rejects_default_password(db, make_student):
    student = await make_student(password_changed=False)

    with pytest.raises(ValidationError, match="Cannot use default password"):
        await credential_service.change_password(student.id, DEFAULT_PASSWORD, DEFAULT_PASSWORD, db)

    await db.refresh(student)
    assert student.password_changed is False


@pytest.mark.parametrize(
    "new_password, confirm, message",
    [
        ("short1", "short1", "at least 8 characters"),
        ("long-enough-1", "long-enough-2", "Passwords do not match"),
        ("Ump@2025 ", "Ump@2025 ", "Cannot use default password"),
        ("  Ump@2025", "Ump@2025", "Cannot use default password"),
        ("        ", "        ", "at least 8 characters"),
    ],
)
async def test_change_password_rules(db, make_student, new_password, confirm, message):
    student = await make_student(password_changed=False)

    with pytest.raises(ValidationError, match=message):
        await credential_service.change_password(student.id, new_password, confirm, db)


async def test_change_password_rehashes_and_sets_flag(db, make_student):
    student = await make_student(password_changed=False)

    await credential_service.change_password(student.id, "Better#Pass1", "Better#Pass1", db)

    stored = await db.scalar(select(User).where(User.id == student.id))
    assert stored.password_changed is True
    assert verify_password("Better#Pass1", stored.password)
    assert not verify_password(DEFAULT_PASSWORD, stored.password)
    # the old password no longer opens the account
    with pytest.raises(InvalidCredentials):
        await credential_service.authenticate("220001", DEFAULT_PASSWORD, db)


async def test_change_password_for_missing_account(db):
    with pytest.raises(NotFoundError):
        await credential_service.change_password(404, "Better#Pass1", "Better#Pass1", db)


async def test_seed_staff_account_is_idempotent(db):
    await credential_service.seed_staff_account(db)
    await credential_service.seed_staff_account(db)

    count = await db.scalar(select(func.count(User.id)).where(User.email == "admin@ump.ac.za"))
    admin = await credential_service.authenticate("admin@ump.ac.za", "admin123", db)
    assert count == 1
    assert admin.role == "staff"
    assert admin.password_changed is True


async def test_change_password_ignores_surrounding_whitespace(db, make_student):
    student = await make_student(password_changed=False)

    await credential_service.change_password(student.id, "  Better#Pass1 ", "Better#Pass1", db)

    stored = await db.scalar(select(User).where(User.id == student.id))
    assert verify_password("Better#Pass1", stored.password)
