"""
PostGIS <-> codec bridge.

Points are written as WKT elements and come back from PostGIS as WKB.
PostGIS returns *extended* WKB (with the SRID baked in); ``as_wkb`` strips
it so a 2D point reads as the plain 42-char hex string the codec expects.
"""

from __future__ import annotations

from typing import Any, Optional

from geoalchemy2.elements import WKBElement, WKTElement

from geomarket.domain.codec import GeoPoint, encode

SRID = 4326


def point_to_geometry(point: Optional[GeoPoint]) -> Optional[WKTElement]:
    if point is None:
        return None
    return WKTElement(encode(point), srid=SRID)


def geometry_to_raw(value: Any) -> Optional[str]:
    """Return the stored location as a WKT or WKB-hex string (or None)."""
    if value is None:
        return None
    if isinstance(value, WKBElement):
        return value.as_wkb().desc
    if isinstance(value, WKTElement):
        return value.data
    if isinstance(value, (bytes, memoryview)):
        return bytes(value).hex()
    return str(value)
