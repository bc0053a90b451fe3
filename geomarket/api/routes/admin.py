"""
Admin endpoints
===============

GET   /api/v1/admin/stores/pending            -- stores awaiting review
GET   /api/v1/admin/stores/review             -- every store with its distance
PATCH /api/v1/admin/stores/{store_id}/approve -- pending/declined -> accepted
PATCH /api/v1/admin/stores/{store_id}/decline -- pending/accepted -> declined
POST  /api/v1/admin/send-offers               -- run the offers campaign
GET   /api/v1/admin/health                    -- simple health check
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from geomarket.api.dependencies import get_db
from geomarket.api.middleware import limiter
from geomarket.api.schemas import CampaignResponse, HealthResponse, StoreResponse
from geomarket.config import settings
from geomarket.domain.codec import GeoPoint
from geomarket.domain.entities import InvalidStateTransition
from geomarket.domain.enums import StoreStatus
from geomarket.domain.radius import sort_by_distance, within_radius
from geomarket.infrastructure.repositories import StoreRepository
from geomarket.workers import campaign as _campaign

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/stores/pending",
    response_model=list[StoreResponse],
    summary="List stores awaiting approval",
)
@limiter.limit(settings.rate_limit)
async def pending_stores(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    repo = StoreRepository(db)
    rows = await repo.list_all(status=StoreStatus.PENDING)
    return [StoreResponse.from_entity(repo.to_entity(r)) for r in rows]


@router.get(
    "/stores/review",
    response_model=list[StoreResponse],
    summary="Every store annotated with its distance from the admin",
    description=(
        "Radius filtering is bypassed: all stores are returned, nearest "
        "first, and stores whose location cannot be read come last with "
        "``distance_km`` null."
    ),
)
@limiter.limit(settings.rate_limit)
async def review_stores(
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    status: Optional[StoreStatus] = None,
    db: AsyncSession = Depends(get_db),
):
    repo = StoreRepository(db)
    stores = [repo.to_entity(r) for r in await repo.list_all(status=status)]
    matches = sort_by_distance(
        within_radius(GeoPoint(lat=lat, lng=lng), 0.0, stores, bypass_filter=True)
    )
    return [StoreResponse.from_entity(m.entity, m.distance_km) for m in matches]


async def _transition(
    db: AsyncSession, store_id: int, new_status: StoreStatus
) -> StoreResponse:
    repo = StoreRepository(db)
    row = await repo.get_by_id(store_id)
    if not row:
        raise HTTPException(status_code=404, detail="Store not found")

    store = repo.to_entity(row)
    try:
        store.transition_to(new_status)
    except InvalidStateTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    row.status = store.status
    await db.flush()
    logger.info("Store %d is now %s", store_id, store.status.value)
    return StoreResponse.from_entity(store)


@router.patch(
    "/stores/{store_id}/approve",
    response_model=StoreResponse,
    summary="Approve a store",
)
@limiter.limit(settings.rate_limit)
async def approve_store(
    request: Request,
    store_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await _transition(db, store_id, StoreStatus.ACCEPTED)


@router.patch(
    "/stores/{store_id}/decline",
    response_model=StoreResponse,
    summary="Decline a store",
)
@limiter.limit(settings.rate_limit)
async def decline_store(
    request: Request,
    store_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await _transition(db, store_id, StoreStatus.DECLINED)


@router.post(
    "/send-offers",
    status_code=202,
    response_model=CampaignResponse,
    summary="Send nearby offers to every client",
    responses={
        409: {"description": "A campaign is already running."},
        502: {"description": "The offers dispatcher rejected the batch."},
    },
)
@limiter.limit("5/minute")
async def send_offers(request: Request):
    try:
        result = await _campaign.run_offers_campaign()
    except httpx.HTTPError as exc:
        logger.exception("Offers dispatch failed")
        raise HTTPException(status_code=502, detail="Offers dispatch failed") from exc

    if not result.started:
        raise HTTPException(status_code=409, detail="Offers campaign already running")
    return CampaignResponse(
        started=result.started, clients=result.clients, digests=result.digests
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
