"""Cyclic waypoint route with a current-leg cursor."""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple

from pyvehiclesim.geo import Wgs84, distance_km, move_towards

WaypointLike = Wgs84 | tuple[float, float]


class RouteAdvance(NamedTuple):
    """Outcome of one :meth:`Route.advance` call."""

    position: Wgs84
    leg_completed: bool = False
    reached: Wgs84 | None = None
    """Waypoint reached when *leg_completed* is set."""
    no_route: bool = False
    """Set on the first advance over a route with fewer than two waypoints."""


def _to_wgs84(value: WaypointLike) -> Wgs84:
    if isinstance(value, Wgs84):
        return value
    latitude, longitude = value
    return Wgs84(float(latitude), float(longitude))


class Route:
    """Ordered, logically cyclic sequence of waypoints.

    The waypoint list itself is immutable. The cursor (``leg_start`` and
    ``distance_on_leg_km``) is mutated by :meth:`advance` and is not
    thread-safe on its own; the simulator guards it with its state lock.
    """

    def __init__(self, waypoints: Iterable[WaypointLike] = ()) -> None:
        self._waypoints: tuple[Wgs84, ...] = tuple(_to_wgs84(w) for w in waypoints)
        self._leg_start = 0
        self._distance_on_leg_km = 0.0
        self._no_route_reported = False

    def __len__(self) -> int:
        return len(self._waypoints)

    @property
    def waypoints(self) -> tuple[Wgs84, ...]:
        return self._waypoints

    @property
    def leg_start(self) -> int:
        """Index of the last waypoint passed."""
        return self._leg_start

    @property
    def distance_on_leg_km(self) -> float:
        return self._distance_on_leg_km

    @property
    def is_drivable(self) -> bool:
        return len(self._waypoints) >= 2

    @property
    def start_position(self) -> Wgs84 | None:
        return self._waypoints[0] if self._waypoints else None

    def next_index(self, index: int) -> int:
        return index + 1 if index < len(self._waypoints) - 1 else 0

    def leg(self) -> tuple[Wgs84, Wgs84]:
        """Return the ``(start, end)`` waypoints of the current leg."""
        return self._waypoints[self._leg_start], self._waypoints[self.next_index(self._leg_start)]

    def leg_length_km(self) -> float:
        start, end = self.leg()
        return distance_km(start, end)

    def advance(self, position: Wgs84, speed_kmh: float, elapsed_seconds: float) -> RouteAdvance:
        """Move along the current leg for *elapsed_seconds* at *speed_kmh*.

        The new position is interpolated on the leg that was current when
        the call started. Once the distance driven on that leg reaches its
        length the cursor moves on to the next waypoint (wrapping past the
        last one) and the returned position is the reached waypoint, i.e.
        the start of the fresh leg.

        Routes with fewer than two waypoints leave *position* unchanged.
        """
        if not self.is_drivable:
            first = not self._no_route_reported
            self._no_route_reported = True
            return RouteAdvance(position=position, no_route=first)

        traveled_km = max(0.0, speed_kmh) * elapsed_seconds / 3600.0
        start, end = self.leg()
        on_leg = self._distance_on_leg_km + traveled_km

        if on_leg >= distance_km(start, end):
            self._leg_start = self.next_index(self._leg_start)
            self._distance_on_leg_km = 0.0
            return RouteAdvance(position=end, leg_completed=True, reached=end)

        self._distance_on_leg_km = on_leg
        return RouteAdvance(position=move_towards(start, end, on_leg))
