"""StockService: stock movements that keep Product.current_stock consistent."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.enums import StockMovementType
from klinikasistan.core.exceptions import ConflictError, NotFoundError, ValidationError
from klinikasistan.infra.database.models.inventory import Product, StockMovement
from klinikasistan.infra.database.repositories.inventory import (
    ProductRepository,
    StockMovementRepository,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_STOCK = "Yetersiz stok"


class StockService:
    def __init__(self, session: AsyncSession) -> None:
        self._products = ProductRepository(session)
        self._movements = StockMovementRepository(session)

    async def find_product(self, clinic_id: UUID, name: str) -> Optional[Product]:
        fragment = " ".join(name.split())
        if not fragment:
            return None
        return await self._products.first_name_match(clinic_id, fragment)

    async def record_movement(
        self,
        *,
        clinic_id: UUID,
        product_id: UUID,
        type: StockMovementType,
        quantity: int,
        date: _dt.date,
        unit_price: int = 0,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Tuple[StockMovement, int]:
        """Apply a movement and return ``(movement, new_stock)``.

        The stock update is a single conditional UPDATE, so concurrent OUT
        movements cannot take stock below zero. It runs in the caller's
        transaction together with the movement insert; when stock is short
        nothing is written.
        """
        if quantity < 1:
            raise ValidationError("Miktar en az 1 olmalı", details={"quantity": quantity})
        if unit_price < 0:
            raise ValidationError("Birim fiyat negatif olamaz", details={"unit_price": unit_price})
        product = await self._products.get_for_clinic(product_id, clinic_id)
        if product is None:
            raise NotFoundError("Ürün bulunamadı", details={"product_id": str(product_id)})

        delta = -quantity if type == StockMovementType.OUT else quantity
        new_stock = await self._products.apply_stock_delta(product.id, delta)
        if new_stock is None:
            raise ConflictError(
                INSUFFICIENT_STOCK,
                details={"product": product.name, "current_stock": product.current_stock, "requested": quantity},
            )
        movement = await self._movements.create({
            "clinic_id": clinic_id,
            "product_id": product.id,
            "type": type,
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": quantity * unit_price,
            "description": description or None,
            "reference": reference or None,
            "date": date,
        })
        logger.info(
            "StockService: %s %d x %s -> stock %d", type.value, quantity, product.name, new_stock,
            extra={"clinic_id": str(clinic_id)},
        )
        return movement, new_stock

    async def low_stock(self, clinic_id: UUID) -> List[Product]:
        return await self._products.list_low_stock(clinic_id)

    async def list_products(self, clinic_id: UUID) -> List[Product]:
        return await self._products.list_for_clinic(clinic_id)

    async def create_product(
        self,
        clinic_id: UUID,
        *,
        name: str,
        unit: str = "adet",
        current_stock: int = 0,
        min_stock: int = 0,
        purchase_price: int = 0,
        sale_price: int = 0,
    ) -> Product:
        """New product with its opening stock; later changes go through movements."""
        values = _product_values({
            "name": name,
            "unit": unit,
            "current_stock": current_stock,
            "min_stock": min_stock,
            "purchase_price": purchase_price,
            "sale_price": sale_price,
        })
        product = await self._products.create({"clinic_id": clinic_id, **values})
        logger.info(
            "StockService: product %s created with stock %d", product.name, product.current_stock,
            extra={"clinic_id": str(clinic_id)},
        )
        return product

    async def update_product(self, product_id: UUID, clinic_id: UUID, changes: Dict[str, Any]) -> Product:
        """Partial update of the catalogue fields; current_stock is not editable here."""
        if "current_stock" in changes:
            raise ValidationError(
                "Stok miktarı yalnızca stok hareketiyle değişir", details={"product_id": str(product_id)}
            )
        product = await self._products.get_for_clinic(product_id, clinic_id)
        if product is None:
            raise NotFoundError("Ürün bulunamadı", details={"product_id": str(product_id)})
        values = _product_values(changes)
        if not values:
            return product
        return await self._products.update(product.id, values)


def _product_values(data: Dict[str, Any]) -> Dict[str, Any]:
    values = dict(data)
    if "name" in values:
        values["name"] = " ".join((values["name"] or "").split())
        if not values["name"]:
            raise ValidationError("Ürün adı boş olamaz")
    if "unit" in values:
        values["unit"] = (values["unit"] or "").strip() or "adet"
    for column in ("current_stock", "min_stock", "purchase_price", "sale_price"):
        if column in values and values[column] < 0:
            raise ValidationError("Değer negatif olamaz", details={column: values[column]})
    return values
