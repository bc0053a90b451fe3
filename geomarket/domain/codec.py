"""
Coordinate codec.

Stores and users carry their position as a string in one of two shapes:

* **WKT**     -- ``POINT(<lng> <lat>)``, longitude first.
* **WKB hex** -- exactly 42 hex characters (21 bytes): a 1-byte order flag,
  a 4-byte geometry type, then two little-endian IEEE-754 doubles holding
  longitude and latitude.  This is what PostGIS hands back for a plain 2D
  point.

``parse_location`` resolves a raw string once, at the ingestion boundary,
into a tagged ``Location``.  "Could not decode" (``Unparseable``) therefore
stays distinguishable from a store genuinely sitting at (0, 0).  ``decode``
keeps the total form that falls back to the origin.

Nothing here raises.  Complexity: O(1) per call.
"""

from __future__ import annotations

import math
import re
import struct
from dataclasses import dataclass
from typing import Optional, Union

WKT_PREFIX = "POINT("

_WKB_HEX_RE = re.compile(r"[0-9a-fA-F]{42}")
_WKB_HEADER_BYTES = 5  # byte order flag + geometry type


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


ORIGIN = GeoPoint(0.0, 0.0)


# ── Location variants ─────────────────────────────────────────────────


@dataclass(frozen=True)
class WKTLocation:
    raw: str
    point: GeoPoint


@dataclass(frozen=True)
class WKBHexLocation:
    raw: str
    point: GeoPoint


@dataclass(frozen=True)
class Unparseable:
    raw: Optional[str] = None

    @property
    def point(self) -> None:
        return None


Location = Union[WKTLocation, WKBHexLocation, Unparseable]


# ── Decoding ──────────────────────────────────────────────────────────


def _finite(token: str) -> Optional[float]:
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_wkt(raw: str) -> Location:
    body = raw[len(WKT_PREFIX):]
    end = body.find(")")
    if end < 0:
        return Unparseable(raw)

    tokens = body[:end].split()
    if len(tokens) != 2:
        return Unparseable(raw)

    lng, lat = _finite(tokens[0]), _finite(tokens[1])
    if lng is None or lat is None:
        return Unparseable(raw)
    return WKTLocation(raw, GeoPoint(lat=lat, lng=lng))


def _parse_wkb_hex(raw: str) -> Location:
    # The header is skipped as-is; only little-endian points are produced upstream.
    lng, lat = struct.unpack_from("<dd", bytes.fromhex(raw), _WKB_HEADER_BYTES)
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return Unparseable(raw)
    return WKBHexLocation(raw, GeoPoint(lat=lat, lng=lng))


def parse_location(raw: Optional[str]) -> Location:
    """Sniff *raw* as WKT or WKB hex; anything else is ``Unparseable``."""
    if not isinstance(raw, str) or not raw:
        return Unparseable(raw if isinstance(raw, str) else None)
    if raw.startswith(WKT_PREFIX):
        return _parse_wkt(raw)
    if _WKB_HEX_RE.fullmatch(raw):
        return _parse_wkb_hex(raw)
    return Unparseable(raw)


def as_location(value: Union[Location, str, None]) -> Location:
    """Accept an already-parsed ``Location`` or a raw string."""
    if isinstance(value, (WKTLocation, WKBHexLocation, Unparseable)):
        return value
    return parse_location(value)


def decode(raw: Optional[str]) -> GeoPoint:
    """Return the point encoded in *raw*, or ``ORIGIN`` when it cannot be read."""
    point = parse_location(raw).point
    return point if point is not None else ORIGIN


# ── Encoding ──────────────────────────────────────────────────────────


def encode(point: GeoPoint) -> str:
    """Render *point* as WKT, longitude first.

    ``repr`` of a float is the shortest string that round-trips, so
    ``decode(encode(p)) == p`` holds exactly.
    """
    return f"{WKT_PREFIX}{float(point.lng)!r} {float(point.lat)!r})"
