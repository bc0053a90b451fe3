"""
Address geocoding via Nominatim (OpenStreetMap).

Used by the API layer to turn a free-text address into a ``GeoPoint``
before anything reaches the radius code, and to produce a display
address for a point.  The domain never calls this module.

Lookup order for ``geocode``:
1. Nominatim restricted to the configured country codes.
2. Nominatim without a country restriction.
3. A small table of well-known Argentine cities matched by substring.
4. ``GeocodingError``.

Nominatim's usage policy asks for a descriptive ``User-Agent`` and at most
one request per second, so requests are spaced by ``min_interval_seconds``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import httpx

from geomarket.config import settings
from geomarket.domain.codec import GeoPoint

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Raised when an address cannot be resolved to a point."""


# Checked in order; "reconquista" must win over the plain "santa fe" entry.
KNOWN_CITIES: list[tuple[tuple[str, ...], GeoPoint]] = [
    (("reconquista", "santa fe"), GeoPoint(-29.1546, -59.6424)),
    (("buenos aires",), GeoPoint(-34.6037, -58.3816)),
    (("córdoba",), GeoPoint(-31.4201, -64.1888)),
    (("cordoba",), GeoPoint(-31.4201, -64.1888)),
    (("rosario",), GeoPoint(-32.9442, -60.6505)),
    (("santa fe",), GeoPoint(-31.6106, -60.7048)),
]


def known_city(address: str) -> Optional[GeoPoint]:
    text = address.lower()
    for needles, point in KNOWN_CITIES:
        if all(n in text for n in needles):
            return point
    return None


class NominatimGeocoder:
    def __init__(
        self,
        base_url: str = settings.geocoder_url,
        *,
        user_agent: str = settings.geocoder_user_agent,
        country_codes: str = settings.geocoder_country_codes,
        timeout_seconds: float = settings.geocoder_timeout_seconds,
        min_interval_seconds: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.country_codes = country_codes
        self.min_interval = min_interval_seconds
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            timeout=timeout_seconds,
            transport=transport,
        )
        self._throttle = asyncio.Lock()
        self._last_request = 0.0

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        async with self._throttle:
            wait = self.min_interval - (time.monotonic() - self._last_request)
            if wait > 0:
                await asyncio.sleep(wait)
            try:
                resp = await self._client.get(f"{self.base_url}{path}", params=params)
            finally:
                self._last_request = time.monotonic()
        resp.raise_for_status()
        return resp.json()

    async def _search(self, address: str, country_codes: Optional[str]) -> Optional[GeoPoint]:
        params: dict[str, Any] = {"format": "json", "q": address, "limit": 1}
        if country_codes:
            params["countrycodes"] = country_codes
        results = await self._get_json("/search", params)
        if not results:
            return None
        return GeoPoint(lat=float(results[0]["lat"]), lng=float(results[0]["lon"]))

    async def geocode(self, address: str) -> GeoPoint:
        """Resolve *address* to a point or raise ``GeocodingError``."""
        if not address or not address.strip():
            raise GeocodingError("Address is empty")

        try:
            point = await self._search(address, self.country_codes)
            if point is None and self.country_codes:
                logger.info("No regional match for %r, retrying globally", address)
                point = await self._search(address, None)
            if point is not None:
                return point
        except (httpx.HTTPError, KeyError, ValueError):
            logger.warning("Geocoding request failed for %r", address, exc_info=True)

        fallback = known_city(address)
        if fallback is not None:
            logger.info("Using known-city coordinates for %r", address)
            return fallback
        raise GeocodingError(f"Address not found: {address}")

    async def reverse(self, point: GeoPoint) -> str:
        """Display name for *point*; empty string when the lookup fails."""
        try:
            data = await self._get_json(
                "/reverse",
                {"format": "jsonv2", "lat": point.lat, "lon": point.lng},
            )
        except (httpx.HTTPError, ValueError):
            logger.warning("Reverse geocoding failed for %s", point, exc_info=True)
            return ""
        return data.get("display_name", "") if isinstance(data, dict) else ""


_geocoder: Optional[NominatimGeocoder] = None


def get_geocoder() -> NominatimGeocoder:
    """FastAPI dependency returning the process-wide geocoder."""
    global _geocoder
    if _geocoder is None:
        _geocoder = NominatimGeocoder()
    return _geocoder


async def close_geocoder() -> None:
    global _geocoder
    if _geocoder is not None:
        await _geocoder.aclose()
        _geocoder = None
