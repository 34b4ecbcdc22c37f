from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint
from sqlalchemy.orm import relationship
from clinic.database import Base

ROLES = ("student", "staff")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('student', 'staff')", name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, index=True)
    role = Column(String(20), nullable=False)  # "student" | "staff"
    student_number = Column(String(50), unique=True, index=True)  # NULL for staff
    email = Column(String(200), unique=True, nullable=False, index=True)
    password = Column(String(200), nullable=False)  # bcrypt digest
    name = Column(String(100))
    surname = Column(String(100))
    password_changed = Column(Boolean, nullable=False, default=False)

    profile = relationship(
        "Profile", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def is_student(self) -> bool:
        return self.role == "student"

    @property
    def is_staff(self) -> bool:
        return self.role == "staff"

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
