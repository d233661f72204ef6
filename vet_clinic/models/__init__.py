from .user import User, UserRole
from .veterinarian import Veterinarian
from .owner import Owner
from .pet import Pet, PetType
from .medical_record import MedicalRecord
from .appointment import Appointment, AppointmentStatus
from .audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Veterinarian",
    "Owner",
    "Pet",
    "PetType",
    "MedicalRecord",
    "Appointment",
    "AppointmentStatus",
    "AuditLog",
]
