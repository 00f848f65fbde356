"""Product and stock movement repositories."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import update

from klinikasistan.infra.database.models.inventory import Product, StockMovement
from klinikasistan.infra.database.repositories.base import BaseRepository, contains_pattern


class ProductRepository(BaseRepository[Product]):
    model = Product

    async def first_name_match(self, clinic_id: UUID, fragment: str) -> Optional[Product]:
        stmt = (
            self.scoped(clinic_id)
            .where(Product.name.ilike(contains_pattern(fragment), escape="\\"))
            .order_by(Product.created_at.asc(), Product.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def apply_stock_delta(self, product_id: UUID, delta: int) -> Optional[int]:
        """Atomically add ``delta`` to current_stock.

        Returns the new stock, or None when the update would make it negative
        (the row is left unchanged).
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.current_stock + delta >= 0)
            .values(current_stock=Product.current_stock + delta)
            .returning(Product.current_stock)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_clinic(self, clinic_id: UUID) -> List[Product]:
        result = await self.session.execute(self.scoped(clinic_id).order_by(Product.name.asc()))
        return list(result.scalars().all())

    async def list_low_stock(self, clinic_id: UUID) -> List[Product]:
        stmt = (
            self.scoped(clinic_id)
            .where(Product.current_stock <= Product.min_stock)
            .order_by(Product.current_stock.asc(), Product.name.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class StockMovementRepository(BaseRepository[StockMovement]):
    model = StockMovement
