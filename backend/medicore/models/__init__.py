from medicore.models.base import Base
from medicore.models.user import Role, User
from medicore.models.audit_log import AuditLog
from medicore.models.patient import Gender, Patient, PatientStatus
from medicore.models.appointment import Appointment, AppointmentStatus
from medicore.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from medicore.models.medical_record import MedicalRecord, Prescription

__all__ = [
    "Base",
    "Role",
    "User",
    "AuditLog",
    "Gender",
    "Patient",
    "PatientStatus",
    "Appointment",
    "AppointmentStatus",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "MedicalRecord",
    "Prescription",
]
