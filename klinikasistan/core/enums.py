"""Closed value sets shared by the ORM models, the message contract and reports."""
from __future__ import annotations

from enum import Enum


class TreatmentType(str, Enum):
    BOTOX = "BOTOX"
    DOLGU = "DOLGU"
    DIS_TEDAVI = "DIS_TEDAVI"
    GENEL = "GENEL"

    @property
    def label(self) -> str:
        return _TREATMENT_LABELS[self]


_TREATMENT_LABELS = {
    TreatmentType.BOTOX: "Botoks",
    TreatmentType.DOLGU: "Dolgu",
    TreatmentType.DIS_TEDAVI: "Dis Tedavi",
    TreatmentType.GENEL: "Genel",
}


class ExpenseCategory(str, Enum):
    MALZEME = "MALZEME"
    KIRA = "KIRA"
    FATURA = "FATURA"
    MAAS = "MAAS"
    DIGER = "DIGER"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class StockMovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class ReminderChannel(str, Enum):
    WHATSAPP = "WHATSAPP"
    TELEGRAM = "TELEGRAM"
    SMS = "SMS"


class ReminderStatus(str, Enum):
    SENT = "SENT"
    FAILED = "FAILED"


class PreferenceType(str, Enum):
    """Patient marketing tags used to personalise reminder messages."""

    INDIRIM_SEVER = "INDIRIM_SEVER"
    HEDIYE_SEVER = "HEDIYE_SEVER"
    ARKADASIYLA_GELIR = "ARKADASIYLA_GELIR"
    SADIK_MUSTERI = "SADIK_MUSTERI"
    FIYAT_HASSAS = "FIYAT_HASSAS"

    @property
    def label(self) -> str:
        return _PREFERENCE_LABELS[self]

    @property
    def hint(self) -> str:
        """Instruction line added to the reminder prompt for this tag."""
        return _PREFERENCE_HINTS[self]


_PREFERENCE_LABELS = {
    PreferenceType.INDIRIM_SEVER: "Indirim sever",
    PreferenceType.HEDIYE_SEVER: "Hediye sever",
    PreferenceType.ARKADASIYLA_GELIR: "Arkadasiyla gelir",
    PreferenceType.SADIK_MUSTERI: "Sadik musteri",
    PreferenceType.FIYAT_HASSAS: "Fiyat hassas",
}

_PREFERENCE_HINTS = {
    PreferenceType.INDIRIM_SEVER: "Indirim firsati oldugundan bahset",
    PreferenceType.HEDIYE_SEVER: "Kucuk bir surpriz hediye olacagindan bahset",
    PreferenceType.ARKADASIYLA_GELIR: "Arkadasiyla birlikte gelirse ozel fiyat olacagindan bahset",
    PreferenceType.SADIK_MUSTERI: "Sadik musterilere ozel avantajlardan bahset",
    PreferenceType.FIYAT_HASSAS: "Uygun fiyat seceneklerinden bahset",
}
