from pydantic import BaseModel
from datetime import date
from typing import Optional, Union


class VisitRequest(BaseModel):
    date: str = ""
    diagnosis: str = ""
    notes: Optional[str] = None
    medication: Optional[str] = None
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    duration: Optional[Union[int, str]] = None


class PrescriptionResponse(BaseModel):
    id: int
    visit_id: int
    medication: str
    dosage: str
    instructions: Optional[str] = None
    duration: Optional[int] = None
    visit_date: Optional[date] = None
    status: Optional[str] = None  # "Active" | "Expired"
    days_left: Optional[int] = None

    class Config:
        from_attributes = True


class VisitResponse(BaseModel):
    id: int
    student_id: int
    clinician_id: Optional[int] = None
    clinician_name: Optional[str] = None
    clinician_surname: Optional[str] = None
    date: date
    diagnosis: str
    notes: Optional[str] = None
    prescriptions: list[PrescriptionResponse] = []

    class Config:
        from_attributes = True
