from pydantic import BaseModel
from datetime import date
from typing import Optional


class AppointmentRequest(BaseModel):
    date: str = ""
    time: str = ""
    reason: str = ""


class AppointmentStatusUpdate(BaseModel):
    status: str = ""


class AppointmentResponse(BaseModel):
    id: int
    student_id: int
    date: date
    time: str
    reason: str
    status: str
    is_tomorrow: Optional[bool] = None
    student_name: Optional[str] = None
    student_surname: Optional[str] = None

    class Config:
        from_attributes = True
