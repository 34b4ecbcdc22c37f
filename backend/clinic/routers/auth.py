from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from clinic.auth import RequestContext, create_token, get_request_context
from clinic.database import get_db
from clinic.gate import landing_path, load_account
from clinic.schemas.auth import LoginRequest, TokenResponse
from clinic.services.credential_service import credential_service

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """
    Exchange a student number or email plus password for a session token.
    `redirect_to` tells the client where the account has to go first.
    """
    user = await credential_service.authenticate(body.identifier, body.password, db)
    _, profile = await load_account(user.id, db)
    return TokenResponse(
        access_token=create_token(user),
        role=user.role,
        redirect_to=landing_path(user, profile),
        messages=context.drain(),
    )


@router.post("/logout")
async def logout(context: RequestContext = Depends(get_request_context)):
    # Tokens are stateless; the client drops its copy
    context.flash("success", "Logged out successfully")
    return {"redirect_to": "/", "messages": context.drain()}
