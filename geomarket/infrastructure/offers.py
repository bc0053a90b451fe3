"""
Offers dispatcher.

Email delivery lives outside this service: the campaign ends with a single
POST of all digests to ``OFFERS_WEBHOOK_URL``.  With no webhook configured
the digests are only counted and logged, which keeps local runs harmless.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx

from geomarket.config import settings
from geomarket.domain.offers import OfferDigest

logger = logging.getLogger(__name__)


class OffersDispatcher:
    def __init__(
        self,
        webhook_url: Optional[str] = None,
        *,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout_seconds
        self._transport = transport

    async def dispatch(self, digests: Sequence[OfferDigest]) -> int:
        """Send *digests*; returns how many were handed over."""
        if not digests:
            return 0
        if not self.webhook_url:
            logger.info("No offers webhook configured; %d digests not sent", len(digests))
            return len(digests)

        payload = {"digests": [d.to_payload() for d in digests]}
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            resp = await client.post(self.webhook_url, json=payload)
            resp.raise_for_status()
        logger.info("Dispatched %d offer digests", len(digests))
        return len(digests)


def get_dispatcher() -> OffersDispatcher:
    return OffersDispatcher(settings.offers_webhook_url)
