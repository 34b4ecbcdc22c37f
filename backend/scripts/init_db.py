"""
Initialize the database: create all tables and seed the admin staff account.
Run with: python -m scripts.init_db
"""

import asyncio
from clinic.database import engine, Base, async_session
from clinic.models import User, Profile, Appointment, Visit, Prescription  # noqa: F401
from clinic.services.credential_service import credential_service


async def init():
    print("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("All tables created successfully.")
    async with async_session() as session:
        await credential_service.seed_staff_account(session)
    print("Staff account ready.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init())
