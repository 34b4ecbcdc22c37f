import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient

import clinic.models  # noqa: F401
from clinic.auth import create_token, hash_password
from clinic.database import Base, get_db, make_engine, make_sessionmaker
from clinic.main import app
from clinic.models import Profile, User

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
SATURDAY = date(2030, 1, 5)
SUNDAY = date(2030, 1, 6)
FRIDAY = date(2030, 1, 11)

DEFAULT_PASSWORD = "Ump@2025"


@pytest.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'clinic.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_student(db):
    async def _make(
        student_number="220001",
        password=DEFAULT_PASSWORD,
        password_changed=True,
        profile_complete=True,
        name="Thandi",
        surname="Nkosi",
    ):
        user = User(
            role="student",
            student_number=student_number,
            email=f"{student_number}@ump.ac.za",
            password=hash_password(password),
            name=name,
            surname=surname,
            password_changed=password_changed,
        )
        db.add(user)
        await db.flush()
        db.add(Profile(user_id=user.id, id_number="0001015800080", profile_complete=profile_complete))
        await db.commit()
        return user

    return _make


@pytest.fixture
def make_staff(db):
    async def _make(email="nurse@ump.ac.za", password="admin123", name="Sipho", surname="Dlamini"):
        user = User(
            role="staff",
            email=email,
            password=hash_password(password),
            name=name,
            surname=surname,
            password_changed=True,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_token(user)}"}


@pytest.fixture
def headers_for():
    return auth_headers
