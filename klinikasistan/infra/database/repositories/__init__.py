"""Repositories for the clinic database."""
from klinikasistan.infra.database.repositories.appointment import AppointmentRepository
from klinikasistan.infra.database.repositories.base import BaseRepository
from klinikasistan.infra.database.repositories.clinic import (
    ClinicRepository,
    EmployeeRepository,
    ScheduleRepository,
)
from klinikasistan.infra.database.repositories.finance import ExpenseRepository, TreatmentRepository
from klinikasistan.infra.database.repositories.inventory import (
    ProductRepository,
    StockMovementRepository,
)
from klinikasistan.infra.database.repositories.patient import PatientRepository
from klinikasistan.infra.database.repositories.reminder import (
    ReminderLogRepository,
    ReminderRepository,
)

__all__ = [
    "BaseRepository",
    "ClinicRepository",
    "ScheduleRepository",
    "EmployeeRepository",
    "PatientRepository",
    "AppointmentRepository",
    "TreatmentRepository",
    "ExpenseRepository",
    "ReminderRepository",
    "ReminderLogRepository",
    "ProductRepository",
    "StockMovementRepository",
]
