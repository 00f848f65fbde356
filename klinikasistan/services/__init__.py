"""Service layer: patients, booking, finance, stock and reminders."""
from klinikasistan.services.appointment_service import AppointmentService
from klinikasistan.services.availability_service import AvailabilityService, Slot, compute_slots
from klinikasistan.services.batch import BatchReport, BatchRunner
from klinikasistan.services.finance_service import FinanceService
from klinikasistan.services.patient_service import PatientService
from klinikasistan.services.reminder_rule_service import ReminderRuleService
from klinikasistan.services.reminder_service import DuePatient, ReminderService, find_due_patients
from klinikasistan.services.schedule_service import DEFAULT_WEEK, ScheduleService
from klinikasistan.services.stock_service import StockService

__all__ = [
    "AppointmentService",
    "AvailabilityService",
    "Slot",
    "compute_slots",
    "BatchReport",
    "BatchRunner",
    "FinanceService",
    "PatientService",
    "DuePatient",
    "ReminderService",
    "find_due_patients",
    "ReminderRuleService",
    "DEFAULT_WEEK",
    "ScheduleService",
    "StockService",
]
