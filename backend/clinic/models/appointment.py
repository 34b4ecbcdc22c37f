from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, CheckConstraint, Index, text
from sqlalchemy.orm import relationship
from clinic.database import Base

APPOINTMENT_STATUSES = ("pending", "confirmed", "cancelled")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name="ck_appointments_status"),
        # One live booking per slot; cancelled rows stay for history
        Index(
            "uq_appointments_live_slot",
            "date",
            "time",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # "HH:MM"
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending")

    student = relationship("User")

    def __repr__(self):
        return f"<Appointment {self.date} {self.time} ({self.status})>"
