"""
Offers Campaign Worker
======================

Triggered by an admin (``POST /api/v1/admin/send-offers``) and, when
``OFFERS_INTERVAL_SECONDS`` > 0, repeated by a background loop.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one campaign runs at a time
  across API processes and the loop.

Steps per campaign
------------------
1. Load all users, all accepted stores and their discounted products.
2. Build one digest per client: offers from accepted stores inside the
   client's own radius, nearest first.
3. Hand the digests to the dispatcher (one outbound call).
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from geomarket.config import settings
from geomarket.domain.enums import StoreStatus, UserType
from geomarket.domain.offers import build_digests
from geomarket.infrastructure.database import async_session_factory
from geomarket.infrastructure.locks import DistributedLock, LockNotAcquired
from geomarket.infrastructure.offers import OffersDispatcher, get_dispatcher
from geomarket.infrastructure.redis_client import get_redis
from geomarket.infrastructure.repositories import (
    ProductRepository,
    StoreRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


@dataclass(frozen=True)
class CampaignResult:
    started: bool
    clients: int = 0
    digests: int = 0


# ── Public API ────────────────────────────────────────────────────────


async def run_offers_campaign(
    dispatcher: Optional[OffersDispatcher] = None,
) -> CampaignResult:
    """Run one campaign; ``started`` is False when another run holds the lock."""
    redis = await get_redis()
    lock = DistributedLock(redis, "offers_campaign", ttl_seconds=300)

    try:
        async with lock:
            return await _collect_and_dispatch(dispatcher)
    except LockNotAcquired:
        logger.info("Offers campaign already running – skipping")
        return CampaignResult(started=False)


async def start_offers_loop() -> None:
    global _task, _stop_event
    if settings.offers_interval_seconds <= 0:
        logger.info("Periodic offers campaign disabled")
        return
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Offers loop started (interval=%ds)", settings.offers_interval_seconds
    )


async def stop_offers_loop() -> None:
    global _task, _stop_event
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
        logger.info("Offers loop stopped")
    _task = _stop_event = None


# ── Internals ─────────────────────────────────────────────────────────


async def _collect_and_dispatch(
    dispatcher: Optional[OffersDispatcher],
) -> CampaignResult:
    """Load users, accepted stores and discounted products, then dispatch."""
    async with async_session_factory() as session:
        user_repo = UserRepository(session)
        store_repo = StoreRepository(session)
        product_repo = ProductRepository(session)

        users = [user_repo.to_entity(u) for u in await user_repo.list_all()]
        stores = [
            store_repo.to_entity(s)
            for s in await store_repo.list_all(status=StoreStatus.ACCEPTED)
        ]
        products = await product_repo.list_discounted(s.id for s in stores)

    by_store = defaultdict(list)
    for row in products:
        by_store[row.store_id].append(ProductRepository.to_entity(row))

    unlocated = sum(1 for s in stores if s.point is None)
    if unlocated:
        logger.warning("%d accepted stores have no readable location", unlocated)

    clients = sum(1 for u in users if u.type == UserType.CLIENT)
    digests = build_digests(users, stores, by_store)
    sent = await (dispatcher or get_dispatcher()).dispatch(digests)
    logger.info("Offers campaign: %d digests for %d clients", sent, clients)
    return CampaignResult(started=True, clients=clients, digests=sent)


async def _loop() -> None:
    """Periodic loop: run a campaign then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_offers_campaign()
        except Exception:
            logger.exception("Unhandled error in offers campaign")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.offers_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass
