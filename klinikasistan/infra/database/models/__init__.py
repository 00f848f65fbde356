"""
klinikasistan.infra.database.models – SQLAlchemy 2.0 ORM models.

Importing this package registers every table on Base.metadata.
"""
from klinikasistan.infra.database.models.appointment import Appointment
from klinikasistan.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from klinikasistan.infra.database.models.clinic import Clinic, ClinicSchedule, Employee
from klinikasistan.infra.database.models.finance import Expense, Treatment
from klinikasistan.infra.database.models.inventory import Product, StockMovement
from klinikasistan.infra.database.models.patient import Patient, PatientPreference
from klinikasistan.infra.database.models.reminder import Reminder, ReminderLog

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "Clinic",
    "ClinicSchedule",
    "Employee",
    "Patient",
    "PatientPreference",
    "Appointment",
    "Treatment",
    "Expense",
    "Reminder",
    "ReminderLog",
    "Product",
    "StockMovement",
]
