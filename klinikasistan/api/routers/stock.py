"""Stock API: product catalogue, movements and low-stock listing."""
from __future__ import annotations

import datetime as _dt
import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.api.dependencies import get_now, get_session
from klinikasistan.api.schemas.operations import (
    ProductCreate,
    ProductDetailSchema,
    ProductSchema,
    ProductUpdate,
    StockMovementCreate,
    StockMovementResponse,
)
from klinikasistan.orchestrator.dates import local_date
from klinikasistan.services.stock_service import StockService

router = APIRouter(tags=["stock"])


@router.post("/stock-movements", response_model=StockMovementResponse, status_code=201)
async def create_stock_movement(
    body: StockMovementCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    now: _dt.datetime = Depends(get_now),
):
    """409 when an OUT movement exceeds the current stock."""
    day = body.date or local_date(now, request.app.state.clinic_config.tzinfo)
    movement, new_stock = await StockService(session).record_movement(
        clinic_id=body.clinic_id,
        product_id=body.product_id,
        type=body.type,
        quantity=body.quantity,
        unit_price=body.unit_price,
        description=body.description,
        reference=body.reference,
        date=day,
    )
    return StockMovementResponse(
        id=movement.id,
        product_id=movement.product_id,
        type=movement.type,
        quantity=movement.quantity,
        total_price=movement.total_price,
        current_stock=new_stock,
    )


@router.get("/products/low-stock", response_model=List[ProductSchema])
async def low_stock(clinic_id: uuid.UUID = Query(...), session: AsyncSession = Depends(get_session)):
    products = await StockService(session).low_stock(clinic_id)
    return [ProductSchema.model_validate(p) for p in products]


@router.get("/products", response_model=List[ProductDetailSchema])
async def list_products(clinic_id: uuid.UUID = Query(...), session: AsyncSession = Depends(get_session)):
    products = await StockService(session).list_products(clinic_id)
    return [ProductDetailSchema.model_validate(p) for p in products]


@router.post("/products", response_model=ProductDetailSchema, status_code=201)
async def create_product(body: ProductCreate, session: AsyncSession = Depends(get_session)):
    product = await StockService(session).create_product(
        body.clinic_id, **body.model_dump(exclude={"clinic_id"})
    )
    return ProductDetailSchema.model_validate(product)


@router.patch("/products/{product_id}", response_model=ProductDetailSchema)
async def update_product(
    product_id: uuid.UUID, body: ProductUpdate, session: AsyncSession = Depends(get_session)
):
    changes = body.model_dump(exclude_unset=True, exclude_none=True, exclude={"clinic_id"})
    product = await StockService(session).update_product(product_id, body.clinic_id, changes)
    return ProductDetailSchema.model_validate(product)
