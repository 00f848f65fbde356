"""Product and stock movement ORM models."""
from __future__ import annotations

import datetime as _dt
import uuid
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from klinikasistan.core.enums import StockMovementType
from klinikasistan.infra.database.models.base import Base, TimestampMixin, _uuid_pk, enum_column


class Product(Base, TimestampMixin):
    """Stocked item; current_stock only changes together with a StockMovement row."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_products_stock_nonnegative"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="adet")
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    purchase_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    sale_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class StockMovement(Base, TimestampMixin):
    """IN and ADJUSTMENT add ``quantity`` to the product stock, OUT subtracts it."""

    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_product_date", "product_id", "date"),
        CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[StockMovementType] = mapped_column(enum_column(StockMovementType), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
