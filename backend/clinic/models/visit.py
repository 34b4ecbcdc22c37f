from sqlalchemy import Column, Integer, Text, Date, ForeignKey
from sqlalchemy.orm import relationship
from clinic.database import Base


class Visit(Base):
    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    clinician_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False)
    diagnosis = Column(Text, nullable=False)
    notes = Column(Text)

    student = relationship("User", foreign_keys=[student_id])
    clinician = relationship("User", foreign_keys=[clinician_id])
    prescriptions = relationship(
        "Prescription", back_populates="visit", order_by="Prescription.id", passive_deletes=True
    )
