from sqlalchemy import Column, Integer, String, Boolean, Date, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from clinic.database import Base

GENDERS = ("Male", "Female", "Other")
MARITAL_STATUSES = ("Single", "Married", "Other")


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("gender IN ('Male', 'Female', 'Other')", name="ck_profiles_gender"),
        CheckConstraint("marital_status IN ('Single', 'Married', 'Other')", name="ck_profiles_marital_status"),
    )

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    id_number = Column(String(50))
    date_of_birth = Column(Date)
    citizenship = Column(String(100))
    disability = Column(String(200))
    gender = Column(String(10))
    marital_status = Column(String(10))
    cellphone_number = Column(String(20))
    email = Column(String(200))
    profile_complete = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="profile")
