from pydantic import BaseModel
from datetime import date
from typing import Optional


class ProfileForm(BaseModel):
    # Kept as loose strings; the account service does the validation
    id_number: str = ""
    date_of_birth: str = ""
    citizenship: str = ""
    disability: Optional[str] = None
    gender: str = ""
    marital_status: str = ""
    cellphone_number: str = ""


class ProfileResponse(BaseModel):
    user_id: int
    id_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    citizenship: Optional[str] = None
    disability: Optional[str] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    cellphone_number: Optional[str] = None
    email: Optional[str] = None
    profile_complete: bool = False

    class Config:
        from_attributes = True
