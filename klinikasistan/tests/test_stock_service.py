"""Tests for StockService movements and the non-negative stock guarantee."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from klinikasistan.core.enums import StockMovementType
from klinikasistan.core.exceptions import ConflictError, NotFoundError, ValidationError
from klinikasistan.services.stock_service import StockService

CLINIC = uuid.uuid4()
TODAY = _dt.date(2026, 10, 16)


def _run(coro):
    return asyncio.run(coro)


class FakeProducts:
    def __init__(self, stock):
        self.product = SimpleNamespace(id=uuid.uuid4(), clinic_id=CLINIC, name="Botoks", unit="adet", current_stock=stock)

    async def get_for_clinic(self, id, clinic_id):
        if id == self.product.id and clinic_id == self.product.clinic_id:
            return self.product
        return None

    async def apply_stock_delta(self, product_id, delta):
        # Mirrors UPDATE ... WHERE current_stock + delta >= 0 RETURNING current_stock
        if self.product.current_stock + delta < 0:
            return None
        self.product.current_stock += delta
        return self.product.current_stock


def _service(stock):
    svc = StockService(MagicMock())
    svc._products = FakeProducts(stock)
    svc._movements = MagicMock()
    svc._movements.create = AsyncMock(side_effect=lambda data: SimpleNamespace(id=uuid.uuid4(), **data))
    return svc


def _move(svc, type, quantity, **kw):
    return svc.record_movement(
        clinic_id=CLINIC, product_id=svc._products.product.id, type=type, quantity=quantity, date=TODAY, **kw
    )


class TestRecordMovement(unittest.TestCase):
    def test_in_then_out(self):
        svc = _service(5)
        movement, stock = _run(_move(svc, StockMovementType.IN, 10, unit_price=15000))
        self.assertEqual(stock, 15)
        self.assertEqual(movement.total_price, 150000)
        _, stock = _run(_move(svc, StockMovementType.OUT, 15))
        self.assertEqual(stock, 0)

    def test_out_beyond_stock_writes_nothing(self):
        svc = _service(3)
        with self.assertRaises(ConflictError) as ctx:
            _run(_move(svc, StockMovementType.OUT, 4))
        self.assertEqual(ctx.exception.message, "Yetersiz stok")
        self.assertEqual(svc._products.product.current_stock, 3)
        svc._movements.create.assert_not_awaited()

    def test_invalid_quantity_and_price(self):
        svc = _service(3)
        with self.assertRaises(ValidationError):
            _run(_move(svc, StockMovementType.IN, 0))
        with self.assertRaises(ValidationError):
            _run(_move(svc, StockMovementType.IN, 1, unit_price=-1))

    def test_product_from_other_clinic(self):
        svc = _service(3)
        with self.assertRaises(NotFoundError):
            _run(svc.record_movement(
                clinic_id=uuid.uuid4(), product_id=svc._products.product.id,
                type=StockMovementType.IN, quantity=1, date=TODAY,
            ))


class TestFindProduct(unittest.TestCase):
    def test_blank_name(self):
        svc = StockService(MagicMock())
        svc._products = MagicMock()
        svc._products.first_name_match = AsyncMock()
        self.assertIsNone(_run(svc.find_product(CLINIC, "  ")))
        svc._products.first_name_match.assert_not_awaited()


class TestProducts(unittest.TestCase):
    def _service(self):
        svc = _service(4)
        svc._products.create = AsyncMock(side_effect=lambda data: SimpleNamespace(id=uuid.uuid4(), **data))
        svc._products.update = AsyncMock(side_effect=lambda id, data: SimpleNamespace(id=id, **data))
        return svc

    def test_create_normalises_name_and_unit(self):
        svc = self._service()
        product = _run(svc.create_product(CLINIC, name="  Hyalüronik   asit ", unit=" ", current_stock=12, min_stock=3))
        self.assertEqual(product.name, "Hyalüronik asit")
        self.assertEqual(product.unit, "adet")
        self.assertEqual(product.current_stock, 12)
        self.assertEqual(product.clinic_id, CLINIC)

    def test_create_rejects_blank_name_and_negative_values(self):
        svc = self._service()
        with self.assertRaises(ValidationError):
            _run(svc.create_product(CLINIC, name="   "))
        with self.assertRaises(ValidationError):
            _run(svc.create_product(CLINIC, name="Botoks", sale_price=-1))
        svc._products.create.assert_not_awaited()

    def test_update_keeps_stock_out_of_reach(self):
        svc = self._service()
        product_id = svc._products.product.id
        with self.assertRaises(ValidationError):
            _run(svc.update_product(product_id, CLINIC, {"current_stock": 50}))
        updated = _run(svc.update_product(product_id, CLINIC, {"min_stock": 2}))
        self.assertEqual(updated.min_stock, 2)
        svc._products.update.assert_awaited_once_with(product_id, {"min_stock": 2})

    def test_update_other_clinic_is_not_found(self):
        svc = self._service()
        with self.assertRaises(NotFoundError):
            _run(svc.update_product(svc._products.product.id, uuid.uuid4(), {"min_stock": 2}))
