import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from clinic.config import get_settings
from clinic.database import engine, Base, async_session
from clinic.exceptions import ClinicError, GateRedirect
from clinic.routers import auth as auth_router
from clinic.routers import staff, student
import clinic.models  # noqa: F401  registers tables on Base.metadata

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_staff_account():
    from clinic.services.credential_service import credential_service

    async with async_session() as session:
        await credential_service.seed_staff_account(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables then seed the admin staff account
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_staff_account()
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="Campus Clinic",
    description="Appointments, medical records and student onboarding for the campus clinic",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Middleware to add no-cache headers so medical data never sits in a browser cache."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Expires"] = "0"
        response.headers["Pragma"] = "no-cache"
        return response


app.add_middleware(NoCacheMiddleware)


@app.exception_handler(GateRedirect)
async def gate_redirect_handler(request: Request, exc: GateRedirect):
    return JSONResponse(
        status_code=303,
        headers={"Location": exc.location},
        content={"redirect_to": exc.location, "messages": exc.messages},
    )


@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.reason, "messages": [{"category": "error", "text": exc.reason}]},
    )


app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
app.include_router(student.router, prefix="/api/student", tags=["Student"])
app.include_router(staff.router, prefix="/api/staff", tags=["Staff"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "campus-clinic"}
