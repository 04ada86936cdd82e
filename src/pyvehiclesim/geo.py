"""WGS84 coordinates and great-circle helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass

# Mean Earth radius.
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True, slots=True)
class Wgs84:
    """A point on the WGS84 ellipsoid, in decimal degrees."""

    latitude: float = 0.0
    longitude: float = 0.0

    def __str__(self) -> str:
        return f"{self.latitude}, {self.longitude}"


def distance_km(a: Wgs84, b: Wgs84) -> float:
    """Approximate great-circle distance between *a* and *b* in kilometers.

    Uses the haversine formula; ``atan2`` keeps both coincident and
    antipodal points well defined.
    """
    lat_delta = math.radians(a.latitude - b.latitude)
    lon_delta = math.radians(a.longitude - b.longitude)

    h = (
        math.sin(lat_delta / 2) ** 2
        + math.cos(math.radians(a.latitude)) * math.cos(math.radians(b.latitude)) * math.sin(lon_delta / 2) ** 2
    )
    # Rounding can push h marginally outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))


def move_towards(origin: Wgs84, target: Wgs84, km: float) -> Wgs84:
    """Return the point *km* kilometers from *origin* in the direction of *target*.

    The point is linearly interpolated in degree space, which is close
    enough for the short legs of a driving route. When *origin* and
    *target* coincide there is no direction to move in and *origin* is
    returned unchanged.
    """
    total = distance_km(origin, target)
    if total == 0.0:
        return origin

    factor = km / total
    return Wgs84(
        latitude=origin.latitude + factor * (target.latitude - origin.latitude),
        longitude=origin.longitude + factor * (target.longitude - origin.longitude),
    )
