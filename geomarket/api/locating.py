"""
Turn request bodies into points.

Precedence: explicit ``lat``/``lng``, then a ``coordinates`` string (WKT or
WKB hex, parsed with the codec), then geocoding of ``address``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException

from geomarket.api.schemas import LocatedRequest
from geomarket.domain.codec import GeoPoint, parse_location
from geomarket.infrastructure.geocoding import GeocodingError, NominatimGeocoder


async def resolve_point(
    body: LocatedRequest,
    geocoder: NominatimGeocoder,
    *,
    required: bool = False,
) -> Optional[GeoPoint]:
    if body.lat is not None and body.lng is not None:
        return GeoPoint(lat=body.lat, lng=body.lng)

    if body.coordinates:
        point = parse_location(body.coordinates).point
        if point is None:
            raise HTTPException(
                status_code=422,
                detail=f"Unreadable coordinates: {body.coordinates!r}",
            )
        return point

    if body.address:
        try:
            return await geocoder.geocode(body.address)
        except GeocodingError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    if required:
        raise HTTPException(
            status_code=422,
            detail="Provide lat/lng, coordinates or an address",
        )
    return None
