"""Pydantic v2 schemas for reminders and stock."""
from __future__ import annotations

import datetime as _dt
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from klinikasistan.core.enums import StockMovementType


class DueReminderSchema(BaseModel):
    patient_id: UUID
    patient_name: str
    phone: Optional[str] = None
    treatment_category: str
    last_treatment_date: _dt.date
    interval_days: int
    days_since: int
    reminder_id: Optional[UUID] = None


class DueRemindersResponse(BaseModel):
    clinic_id: UUID
    count: int
    items: List[DueReminderSchema] = []


class SendRemindersResponse(BaseModel):
    sent: int
    failed: int
    details: List[Dict[str, Any]] = []


class StockMovementCreate(BaseModel):
    clinic_id: UUID
    product_id: UUID
    type: StockMovementType
    quantity: int = Field(..., ge=1)
    unit_price: int = Field(0, ge=0)
    description: Optional[str] = Field(None, max_length=1000)
    reference: Optional[str] = Field(None, max_length=128)
    date: Optional[_dt.date] = None


class StockMovementResponse(BaseModel):
    id: UUID
    product_id: UUID
    type: StockMovementType
    quantity: int
    total_price: int
    current_stock: int


class ProductSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    unit: str
    current_stock: int
    min_stock: int


class ProductCreate(BaseModel):
    clinic_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    unit: str = Field("adet", max_length=32)
    current_stock: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)
    purchase_price: int = Field(0, ge=0)
    sale_price: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    clinic_id: UUID
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    unit: Optional[str] = Field(None, max_length=32)
    min_stock: Optional[int] = Field(None, ge=0)
    purchase_price: Optional[int] = Field(None, ge=0)
    sale_price: Optional[int] = Field(None, ge=0)


class ProductDetailSchema(ProductSchema):
    purchase_price: int
    sale_price: int
