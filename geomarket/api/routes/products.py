"""
Product endpoints
=================

POST   /api/v1/products              -- add a product to a store
GET    /api/v1/products/{product_id} -- product detail
PUT    /api/v1/products/{product_id} -- edit price, discount, text
DELETE /api/v1/products/{product_id} -- remove a product
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from geomarket.api.dependencies import get_db
from geomarket.api.middleware import limiter
from geomarket.api.schemas import (
    ProductCreateRequest,
    ProductResponse,
    ProductUpdateRequest,
)
from geomarket.config import settings
from geomarket.infrastructure.repositories import ProductRepository, StoreRepository

router = APIRouter(prefix="/products", tags=["products"])


@router.post(
    "",
    status_code=201,
    response_model=ProductResponse,
    summary="Create a product",
)
@limiter.limit(settings.rate_limit)
async def create_product(
    request: Request,
    body: ProductCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    if not await StoreRepository(db).get_by_id(body.store_id):
        raise HTTPException(status_code=404, detail="Store not found")

    repo = ProductRepository(db)
    row = await repo.create(
        store_id=body.store_id,
        name=body.name,
        price=body.price,
        discount=body.discount,
        description=body.description,
        image=body.image,
    )
    return ProductResponse.from_entity(repo.to_entity(row))


@router.get("/{product_id}", response_model=ProductResponse, summary="Get a product")
@limiter.limit(settings.rate_limit)
async def get_product(
    request: Request,
    product_id: int,
    db: AsyncSession = Depends(get_db),
):
    repo = ProductRepository(db)
    row = await repo.get_by_id(product_id)
    if not row:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductResponse.from_entity(repo.to_entity(row))


@router.put("/{product_id}", response_model=ProductResponse, summary="Edit a product")
@limiter.limit(settings.rate_limit)
async def update_product(
    request: Request,
    product_id: int,
    body: ProductUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    repo = ProductRepository(db)
    row = await repo.get_by_id(product_id)
    if not row:
        raise HTTPException(status_code=404, detail="Product not found")

    for field, value in body.model_dump(exclude_none=True).items():
        setattr(row, field, value)
    await db.flush()
    return ProductResponse.from_entity(repo.to_entity(row))


@router.delete("/{product_id}", status_code=204, summary="Delete a product")
@limiter.limit(settings.rate_limit)
async def delete_product(
    request: Request,
    product_id: int,
    db: AsyncSession = Depends(get_db),
):
    repo = ProductRepository(db)
    row = await repo.get_by_id(product_id)
    if not row:
        raise HTTPException(status_code=404, detail="Product not found")
    await repo.delete(row)
    return Response(status_code=204)
