"""
Radius filtering
================

Given an origin, a radius of interest and a collection of located entities
(stores, users), annotate each entity with its great-circle distance and
keep those inside the radius.

Rules
-----
* **Inclusive boundary** -- ``distance_km <= radius_km``.
* **Unparseable locations** are annotated with ``NaN``; ``NaN <= r`` is
  false, so they drop out of every radius query without special-casing.
* **Negative radius** matches nothing.
* **Bypass mode** (admin view) returns every candidate, still annotated.
* The filter keeps input order; :func:`sort_by_distance` is a stable sort.

The radius is always an explicit argument; there is no per-user default
in here.

Complexity: O(N) for the filter, O(N log N) for the sort.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar, Union

from .codec import GeoPoint, Location, as_location
from .distance import great_circle_distance_km

T = TypeVar("T")

Locator = Callable[[Any], Union[Location, str, None]]


@dataclass(frozen=True)
class RadiusMatch(Generic[T]):
    entity: T
    distance_km: float


@dataclass(frozen=True)
class RadiusQuery:
    origin: GeoPoint
    radius_km: float
    bypass_filter: bool = False


def default_locate(entity: Any) -> Union[Location, str, None]:
    """Read ``entity.location``, falling back to ``entity.coordinates``."""
    location = getattr(entity, "location", None)
    if location is None:
        location = getattr(entity, "coordinates", None)
    return location


def distance_to(origin: GeoPoint, location: Union[Location, str, None]) -> float:
    """Distance from *origin* to *location*, ``NaN`` when it cannot be decoded."""
    point = as_location(location).point
    if point is None:
        return math.nan
    return great_circle_distance_km(origin, point)


def within_radius(
    origin: GeoPoint,
    radius_km: float,
    candidates: Iterable[T],
    *,
    bypass_filter: bool = False,
    locate: Locator = default_locate,
) -> list[RadiusMatch[T]]:
    """Annotate *candidates* with their distance and keep those within range."""
    matches: list[RadiusMatch[T]] = []
    for entity in candidates:
        d = distance_to(origin, locate(entity))
        if bypass_filter or d <= radius_km:
            matches.append(RadiusMatch(entity=entity, distance_km=d))
    return matches


def run_query(
    query: RadiusQuery,
    candidates: Iterable[T],
    *,
    locate: Locator = default_locate,
) -> list[RadiusMatch[T]]:
    return within_radius(
        query.origin,
        query.radius_km,
        candidates,
        bypass_filter=query.bypass_filter,
        locate=locate,
    )


def _sort_key(match: RadiusMatch) -> tuple[bool, float]:
    unknown = math.isnan(match.distance_km)
    return unknown, 0.0 if unknown else match.distance_km


def sort_by_distance(matches: Iterable[RadiusMatch[T]]) -> list[RadiusMatch[T]]:
    """Nearest first; ties keep input order and NaN distances go last."""
    return sorted(matches, key=_sort_key)


def round_km(distance_km: float, digits: int = 2) -> Optional[float]:
    """Display rounding; ``None`` for an unknown distance."""
    if math.isnan(distance_km):
        return None
    return round(distance_km, digits)
