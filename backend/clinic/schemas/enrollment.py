from typing import Optional
from pydantic import BaseModel


class EnrollmentReport(BaseModel):
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0


class StudentCreate(BaseModel):
    student_number: str = ""
    name: str = ""
    surname: str = ""
    id_number: str = ""


class StudentResponse(BaseModel):
    id: int
    student_number: str
    email: str
    name: Optional[str] = None
    surname: Optional[str] = None
    password_changed: bool

    class Config:
        from_attributes = True
