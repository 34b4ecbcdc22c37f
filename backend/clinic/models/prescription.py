from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from clinic.database import Base


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    visit_id = Column(Integer, ForeignKey("visits.id", ondelete="CASCADE"), nullable=False, index=True)
    medication = Column(String(200), nullable=False)
    dosage = Column(String(200), nullable=False)
    instructions = Column(Text)
    duration = Column(Integer)  # days

    visit = relationship("Visit", back_populates="prescriptions")
