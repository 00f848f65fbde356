"""Tests for PatientService name matching and find-or-create."""
from __future__ import annotations

import asyncio
import unittest
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

from klinikasistan.core.exceptions import ValidationError
from klinikasistan.services.patient_service import PatientService

CLINIC = uuid.uuid4()


def _run(coro):
    return asyncio.run(coro)


class FakePatientRepo:
    """Case-insensitive substring match, earliest created first."""

    def __init__(self, names=()):
        self.rows = []
        for name in names:
            self.rows.append(SimpleNamespace(id=uuid.uuid4(), clinic_id=CLINIC, name=name, phone=None))

    async def first_name_match(self, clinic_id, fragment):
        for row in self.rows:
            if row.clinic_id == clinic_id and fragment.lower() in row.name.lower():
                return row
        return None

    async def create(self, data):
        row = SimpleNamespace(id=uuid.uuid4(), **data)
        self.rows.append(row)
        return row


def _service(repo):
    svc = PatientService(MagicMock())
    svc._repo = repo
    return svc


class TestFindOrCreate(unittest.TestCase):
    def test_second_call_returns_same_patient(self):
        repo = FakePatientRepo()
        svc = _service(repo)
        first, created = _run(svc.find_or_create("Ayşe  Erdoğan ", CLINIC))
        again, created_again = _run(svc.find_or_create("Ayşe Erdoğan", CLINIC))
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertIs(first, again)
        self.assertEqual(first.name, "Ayşe Erdoğan")
        self.assertEqual(len(repo.rows), 1)

    def test_first_name_fallback(self):
        repo = FakePatientRepo(["Mehmet Yılmaz"])
        patient, created = _run(_service(repo).find_or_create("Mehmet Bey", CLINIC))
        self.assertFalse(created)
        self.assertEqual(patient.name, "Mehmet Yılmaz")

    def test_earliest_match_wins(self):
        repo = FakePatientRepo(["Ayşe Kaya", "Ayşe Demir"])
        patient, _ = _run(_service(repo).find_or_create("Ayşe", CLINIC))
        self.assertEqual(patient.name, "Ayşe Kaya")

    def test_single_letter_first_name_does_not_match(self):
        repo = FakePatientRepo(["Ali Veli"])
        patient, created = _run(_service(repo).find_or_create("A Kaya", CLINIC))
        self.assertTrue(created)
        self.assertEqual(patient.name, "A Kaya")

    def test_other_clinic_is_invisible(self):
        repo = FakePatientRepo(["Ayşe Erdoğan"])
        repo.rows[0].clinic_id = uuid.uuid4()
        _, created = _run(_service(repo).find_or_create("Ayşe Erdoğan", CLINIC))
        self.assertTrue(created)

    def test_blank_name_rejected(self):
        with self.assertRaises(ValidationError):
            _run(_service(FakePatientRepo()).find_or_create("   ", CLINIC))
