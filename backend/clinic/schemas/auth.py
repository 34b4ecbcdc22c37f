from pydantic import BaseModel


class LoginRequest(BaseModel):
    identifier: str = ""
    password: str = ""


class ChangePasswordRequest(BaseModel):
    new_password: str = ""
    confirm_password: str = ""


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    redirect_to: str
    messages: list[dict] = []
