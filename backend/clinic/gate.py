"""
Account lifecycle gate.

Every protected request passes through one AccessGate. Students walk a fixed
onboarding chain before they reach anything else:

    PASSWORD_PENDING -> PROFILE_PENDING -> ACTIVE

A student who has not changed the onboarding password is sent to the
change-password form whatever they asked for; after that, to the profile form
until it is complete. Staff only need the staff role. The gate raises
GateRedirect, so the endpoint behind it never runs while an obligation is
outstanding.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from clinic.auth import RequestContext, get_request_context
from clinic.database import get_db
from clinic.exceptions import GateRedirect
from clinic.models.user import User
from clinic.models.profile import Profile

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"
CHANGE_PASSWORD_PATH = "/api/student/change-password"
PROFILE_PATH = "/api/student/profile"
STUDENT_DASHBOARD_PATH = "/api/student/dashboard"
STAFF_DASHBOARD_PATH = "/api/staff/dashboard"


class LifecycleState(IntEnum):
    ANONYMOUS = 0
    PASSWORD_PENDING = 1
    PROFILE_PENDING = 2
    ACTIVE = 3


_PENDING_PATHS = {
    LifecycleState.PASSWORD_PENDING: CHANGE_PASSWORD_PATH,
    LifecycleState.PROFILE_PENDING: PROFILE_PATH,
}


@dataclass
class GateDecision:
    allowed: bool
    redirect_to: Optional[str] = None
    message: Optional[str] = None


def lifecycle_state(user: Optional[User], profile: Optional[Profile]) -> LifecycleState:
    if user is None:
        return LifecycleState.ANONYMOUS
    if not user.is_student:
        return LifecycleState.ACTIVE
    if not user.password_changed:
        return LifecycleState.PASSWORD_PENDING
    if profile is None or not profile.profile_complete:
        return LifecycleState.PROFILE_PENDING
    return LifecycleState.ACTIVE


def evaluate(
    user: Optional[User],
    profile: Optional[Profile],
    role: str,
    minimum: LifecycleState = LifecycleState.ACTIVE,
) -> GateDecision:
    """Decide whether a request for `role` may proceed, or where it goes instead."""
    if user is None:
        return GateDecision(allowed=False, redirect_to=LOGIN_PATH)
    if user.role != role:
        return GateDecision(
            allowed=False,
            redirect_to=LOGIN_PATH,
            message=f"{role.title()} access required",
        )
    state = lifecycle_state(user, profile)
    if state < minimum:
        return GateDecision(allowed=False, redirect_to=_PENDING_PATHS[state])
    return GateDecision(allowed=True)


def landing_path(user: User, profile: Optional[Profile]) -> str:
    """Where a freshly authenticated account should go first."""
    if user.is_staff:
        return STAFF_DASHBOARD_PATH
    state = lifecycle_state(user, profile)
    return _PENDING_PATHS.get(state, STUDENT_DASHBOARD_PATH)


async def load_account(account_id: int, db: AsyncSession) -> tuple[Optional[User], Optional[Profile]]:
    """Fresh read of the account row and its profile (if any)."""
    user = await db.scalar(select(User).where(User.id == account_id))
    if user is None:
        return None, None
    profile = await db.scalar(select(Profile).where(Profile.user_id == user.id))
    return user, profile


class AccessGate:
    """FastAPI dependency guarding one class of endpoints."""

    def __init__(self, role: str, minimum: LifecycleState = LifecycleState.ACTIVE):
        self.role = role
        self.minimum = minimum

    async def __call__(
        self,
        context: RequestContext = Depends(get_request_context),
        db: AsyncSession = Depends(get_db),
    ) -> RequestContext:
        if context.is_anonymous:
            # nothing to carry over for an unknown caller
            raise GateRedirect(LOGIN_PATH)

        user, profile = await load_account(context.account_id, db)
        decision = evaluate(user, profile, self.role, self.minimum)
        if not decision.allowed:
            logger.debug("Gate redirect for account %s to %s", context.account_id, decision.redirect_to)
            if decision.message:
                context.flash("error", decision.message)
            raise GateRedirect(decision.redirect_to, context.drain())

        # the token's role may be stale; trust storage
        context.role = user.role
        return context


student_access = AccessGate("student")
student_profile_access = AccessGate("student", LifecycleState.PROFILE_PENDING)
student_password_access = AccessGate("student", LifecycleState.PASSWORD_PENDING)
staff_access = AccessGate("staff")
