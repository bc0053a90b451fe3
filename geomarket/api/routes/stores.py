"""
Store endpoints
===============

POST   /api/v1/stores                     -- create a store (starts ``pending``)
GET    /api/v1/stores                     -- list stores, or a radius query
GET    /api/v1/stores/{store_id}          -- store detail
PUT    /api/v1/stores/{store_id}          -- edit name, description, location
DELETE /api/v1/stores/{store_id}          -- remove a store and its products
GET    /api/v1/stores/{store_id}/products -- products of a store
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from geomarket.api.dependencies import geocoder_dependency, get_db
from geomarket.api.locating import resolve_point
from geomarket.api.middleware import limiter
from geomarket.api.schemas import (
    ProductResponse,
    StoreCreateRequest,
    StoreResponse,
    StoreUpdateRequest,
)
from geomarket.config import settings
from geomarket.domain.codec import GeoPoint
from geomarket.domain.enums import StoreStatus, UserType
from geomarket.domain.radius import RadiusQuery, run_query, sort_by_distance
from geomarket.infrastructure.geocoding import NominatimGeocoder
from geomarket.infrastructure.repositories import (
    ProductRepository,
    StoreRepository,
    UserRepository,
)

router = APIRouter(prefix="/stores", tags=["stores"])


@router.post(
    "",
    status_code=201,
    response_model=StoreResponse,
    summary="Create a store",
    description="New stores are ``pending`` until an admin approves them.",
)
@limiter.limit(settings.rate_limit)
async def create_store(
    request: Request,
    body: StoreCreateRequest,
    db: AsyncSession = Depends(get_db),
    geocoder: NominatimGeocoder = Depends(geocoder_dependency),
):
    owner = await UserRepository(db).get_by_id(body.owner_id)
    if not owner:
        raise HTTPException(status_code=404, detail="Owner not found")
    if UserType(owner.type) == UserType.CLIENT:
        raise HTTPException(status_code=403, detail="Clients cannot own stores")

    point = await resolve_point(body, geocoder, required=True)
    repo = StoreRepository(db)
    row = await repo.create(
        owner_id=body.owner_id,
        name=body.name,
        address=body.address or await geocoder.reverse(point),
        description=body.description,
        point=point,
    )
    return StoreResponse.from_entity(repo.to_entity(row))


@router.get(
    "",
    response_model=list[StoreResponse],
    summary="List stores or run a radius query",
    description=(
        "With ``lat`` and ``lng`` only accepted stores within ``radius_km`` "
        "are returned, nearest first, each with its ``distance_km``.  "
        "Without them every store is listed, optionally filtered by status."
    ),
)
@limiter.limit(settings.rate_limit)
async def list_stores(
    request: Request,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: float = Query(settings.default_radius_km, ge=0, le=settings.max_radius_km),
    status: Optional[StoreStatus] = None,
    owner_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=422, detail="lat and lng must be given together")

    repo = StoreRepository(db)
    if owner_id is not None:
        rows = await repo.list_by_owner(owner_id)
        if status is not None:
            rows = [r for r in rows if StoreStatus(r.status) == status]
    else:
        rows = await repo.list_all(status=status)
    stores = [repo.to_entity(r) for r in rows]

    if lat is None:
        return [StoreResponse.from_entity(s) for s in stores]

    query = RadiusQuery(origin=GeoPoint(lat=lat, lng=lng), radius_km=radius_km)
    matches = sort_by_distance(run_query(query, [s for s in stores if s.is_visible]))
    return [StoreResponse.from_entity(m.entity, m.distance_km) for m in matches]


async def _get_store_or_404(repo: StoreRepository, store_id: int):
    row = await repo.get_by_id(store_id)
    if not row:
        raise HTTPException(status_code=404, detail="Store not found")
    return row


@router.get("/{store_id}", response_model=StoreResponse, summary="Get a store")
@limiter.limit(settings.rate_limit)
async def get_store(
    request: Request,
    store_id: int,
    db: AsyncSession = Depends(get_db),
):
    repo = StoreRepository(db)
    return StoreResponse.from_entity(repo.to_entity(await _get_store_or_404(repo, store_id)))


@router.put("/{store_id}", response_model=StoreResponse, summary="Edit a store")
@limiter.limit(settings.rate_limit)
async def update_store(
    request: Request,
    store_id: int,
    body: StoreUpdateRequest,
    db: AsyncSession = Depends(get_db),
    geocoder: NominatimGeocoder = Depends(geocoder_dependency),
):
    repo = StoreRepository(db)
    row = await _get_store_or_404(repo, store_id)

    if body.name is not None:
        row.name = body.name
    if body.description is not None:
        row.description = body.description
    if body.address is not None:
        row.address = body.address
    if body.has_location:
        repo.set_location(row, await resolve_point(body, geocoder))

    await db.flush()
    return StoreResponse.from_entity(repo.to_entity(row))


@router.delete("/{store_id}", status_code=204, summary="Delete a store")
@limiter.limit(settings.rate_limit)
async def delete_store(
    request: Request,
    store_id: int,
    db: AsyncSession = Depends(get_db),
):
    repo = StoreRepository(db)
    row = await _get_store_or_404(repo, store_id)

    product_repo = ProductRepository(db)
    for product in await product_repo.list_by_store(store_id):
        await product_repo.delete(product)
    await repo.delete(row)
    return Response(status_code=204)


@router.get(
    "/{store_id}/products",
    response_model=list[ProductResponse],
    summary="List the products of a store",
)
@limiter.limit(settings.rate_limit)
async def list_store_products(
    request: Request,
    store_id: int,
    db: AsyncSession = Depends(get_db),
):
    await _get_store_or_404(StoreRepository(db), store_id)
    product_repo = ProductRepository(db)
    return [
        ProductResponse.from_entity(product_repo.to_entity(p))
        for p in await product_repo.list_by_store(store_id)
    ]
