from clinic.models.user import User
from clinic.models.profile import Profile
from clinic.models.appointment import Appointment
from clinic.models.visit import Visit
from clinic.models.prescription import Prescription

__all__ = ["User", "Profile", "Appointment", "Visit", "Prescription"]
