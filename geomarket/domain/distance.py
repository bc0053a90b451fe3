"""
Distance calculation using the Haversine formula.

Assumption
----------
We use great-circle (Haversine) distance on a sphere of radius 6371 km
rather than a road-routing engine.  Store radii are "as the crow flies",
which is also what the map circle drawn around a user shows.

No validation is done: out-of-range coordinates give a defined but
meaningless number and NaN inputs give NaN, which a ``<=`` radius test
then rejects on its own.

Complexity: O(1) per call.
"""

import math

from .codec import GeoPoint

EARTH_RADIUS_KM = 6_371.0


def great_circle_distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(a.lat), math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    # Rounding can push h just outside [0, 1]; NaN must pass through untouched.
    if h > 1.0:
        h = 1.0
    elif h < 0.0:
        h = 0.0
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))
