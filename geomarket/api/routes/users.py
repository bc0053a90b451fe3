"""
User endpoints
==============

POST /api/v1/users               -- register a client, owner or admin
GET  /api/v1/users               -- list users (optional ``type`` filter)
GET  /api/v1/users/{user_id}     -- profile
PUT  /api/v1/users/{user_id}     -- edit profile (name, email, home location, radius)
GET  /api/v1/users/{user_id}/stores -- accepted stores near the user
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from geomarket.api.dependencies import geocoder_dependency, get_db
from geomarket.api.locating import resolve_point
from geomarket.api.middleware import limiter
from geomarket.api.schemas import (
    NearbyStoresResponse,
    StoreResponse,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from geomarket.config import settings
from geomarket.domain.enums import StoreStatus, UserType
from geomarket.domain.radius import sort_by_distance, within_radius
from geomarket.infrastructure.geocoding import NominatimGeocoder
from geomarket.infrastructure.repositories import StoreRepository, UserRepository

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    status_code=201,
    response_model=UserResponse,
    summary="Register a user",
    responses={409: {"description": "Email already registered."}},
)
@limiter.limit(settings.rate_limit)
async def create_user(
    request: Request,
    body: UserCreateRequest,
    db: AsyncSession = Depends(get_db),
    geocoder: NominatimGeocoder = Depends(geocoder_dependency),
):
    repo = UserRepository(db)
    if await repo.get_by_email(body.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    point = await resolve_point(body, geocoder, required=True)
    row = await repo.create(
        name=body.name,
        email=body.email,
        type=body.type,
        address=body.address or await geocoder.reverse(point),
        point=point,
        radius_km=(
            body.radius_km if body.radius_km is not None else settings.default_radius_km
        ),
    )
    return UserResponse.from_entity(repo.to_entity(row))


@router.get("", response_model=list[UserResponse], summary="List users")
@limiter.limit(settings.rate_limit)
async def list_users(
    request: Request,
    type: Optional[UserType] = None,
    db: AsyncSession = Depends(get_db),
):
    repo = UserRepository(db)
    return [UserResponse.from_entity(repo.to_entity(u)) for u in await repo.list_all(type)]


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user profile")
@limiter.limit(settings.rate_limit)
async def get_user(
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    repo = UserRepository(db)
    row = await repo.get_by_id(user_id)
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.from_entity(repo.to_entity(row))


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Edit a user profile",
    responses={409: {"description": "Email already registered."}},
)
@limiter.limit(settings.rate_limit)
async def update_user(
    request: Request,
    user_id: int,
    body: UserUpdateRequest,
    db: AsyncSession = Depends(get_db),
    geocoder: NominatimGeocoder = Depends(geocoder_dependency),
):
    repo = UserRepository(db)
    row = await repo.get_by_id(user_id)
    if not row:
        raise HTTPException(status_code=404, detail="User not found")

    if body.email is not None and body.email != row.email:
        if await repo.get_by_email(body.email):
            raise HTTPException(status_code=409, detail="Email already registered")
        row.email = body.email
    if body.name is not None:
        row.name = body.name
    if body.radius_km is not None:
        row.radius_km = body.radius_km
    if body.address is not None:
        row.address = body.address
    if body.has_location:
        repo.set_location(row, await resolve_point(body, geocoder))

    await db.flush()
    return UserResponse.from_entity(repo.to_entity(row))


@router.get(
    "/{user_id}/stores",
    response_model=NearbyStoresResponse,
    summary="Accepted stores near the user",
    description=(
        "Clients and owners get accepted stores within their own radius, "
        "nearest first.  Admins get every accepted store, still sorted by "
        "distance from their location."
    ),
)
@limiter.limit(settings.rate_limit)
async def nearby_stores(
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    user_repo = UserRepository(db)
    row = await user_repo.get_by_id(user_id)
    if not row:
        raise HTTPException(status_code=404, detail="User not found")

    user = user_repo.to_entity(row)
    if user.point is None:
        raise HTTPException(status_code=422, detail="User has no readable location")

    store_repo = StoreRepository(db)
    stores = [
        store_repo.to_entity(s)
        for s in await store_repo.list_all(status=StoreStatus.ACCEPTED)
    ]
    matches = sort_by_distance(
        within_radius(
            user.point,
            user.radius_km,
            stores,
            bypass_filter=user.sees_all_stores,
        )
    )
    return NearbyStoresResponse(
        radius_km=user.radius_km,
        bypass_filter=user.sees_all_stores,
        stores=[StoreResponse.from_entity(m.entity, m.distance_km) for m in matches],
    )
