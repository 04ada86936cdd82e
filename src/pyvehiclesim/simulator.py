"""Periodic vehicle simulator with thread-safe snapshots."""

from __future__ import annotations

import functools
import logging
import random
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from pyvehiclesim._ticker import PeriodicTicker, Ticker, TickerFactory
from pyvehiclesim.config import DrivetrainParams
from pyvehiclesim.drivetrain import Drivetrain, Powertrain
from pyvehiclesim.geo import Wgs84
from pyvehiclesim.models.snapshot import VehicleSnapshot
from pyvehiclesim.route import Route, WaypointLike

_logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.5


def _default_ticker(interval: float, callback: Callable[[], None]) -> Ticker:
    return PeriodicTicker(interval, callback)


@dataclass
class _VehicleState:
    """Live, lock-guarded state. Never handed out; see :meth:`VehicleSimulator.snapshot`."""

    vehicle_id: str
    position: Wgs84
    timestamp: int
    running: bool = False
    powertrain: Powertrain = field(default_factory=Powertrain)


class VehicleSimulator:
    """Simulation of a single vehicle endlessly driving a closed route.

    The vehicle always drives forward along its waypoints and starts over
    at the first one after the last. While running, a background ticker
    calls :meth:`tick` every *tick_interval* seconds, which moves the
    vehicle, steers its speed toward a randomly chosen target and picks
    a gear (see :mod:`pyvehiclesim.drivetrain`).

    All state lives behind one lock. :meth:`start`, :meth:`stop`,
    :meth:`tick` and :meth:`snapshot` each hold it for their whole
    duration, so a snapshot never mixes values of two different steps.

    Usage::

        sim = VehicleSimulator("car-1", [(48.0, 8.0), (48.01, 8.0)])
        sim.start()
        print(sim.snapshot().kmh)
        sim.stop()

    Parameters
    ----------
    vehicle_id : str
        Identifier copied into every snapshot.
    waypoints : iterable
        :class:`Wgs84` points or ``(latitude, longitude)`` pairs. May be
        empty, in which case the vehicle stays where it is.
    params : DrivetrainParams or None
        Drivetrain tuning.
    tick_interval : float
        Seconds between two simulation steps.
    clock : callable
        Returns the current epoch time in seconds.
    rng : random.Random or None
        Random source for target speeds.
    ticker_factory : callable or None
        Builds the background ticker from ``(interval, callback)``.
    on_no_route : callable or None
        Called once when the route turns out to have fewer than two
        waypoints.
    on_waypoint_reached : callable or None
        Called with the waypoint whenever a leg is completed.
    """

    def __init__(
        self,
        vehicle_id: str,
        waypoints: Iterable[WaypointLike] = (),
        *,
        params: DrivetrainParams | None = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
        ticker_factory: TickerFactory | None = None,
        on_no_route: Callable[[], None] | None = None,
        on_waypoint_reached: Callable[[Wgs84], None] | None = None,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self._lock = threading.Lock()
        self._clock = clock
        self._tick_interval = tick_interval
        self._ticker_factory = ticker_factory or _default_ticker
        self._ticker: Ticker | None = None
        self._generation = 0

        self._route = Route(waypoints)
        self._drivetrain = Drivetrain(params, rng=rng)
        self._control = self._drivetrain.new_control()
        self._on_no_route = on_no_route
        self._on_waypoint_reached = on_waypoint_reached

        now = self._clock_ms()
        self._last_position_time = now
        self._state = _VehicleState(
            vehicle_id=vehicle_id,
            position=self._route.start_position or Wgs84(),
            timestamp=now,
        )

    @property
    def vehicle_id(self) -> str:
        return self._state.vehicle_id

    @property
    def waypoints(self) -> tuple[Wgs84, ...]:
        return self._route.waypoints

    @property
    def params(self) -> DrivetrainParams:
        return self._drivetrain.params

    @property
    def tick_interval(self) -> float:
        return self._tick_interval

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state.running

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the engine and the periodic simulation.

        The first step runs right away; does nothing if already running.
        """
        with self._lock:
            if self._state.running:
                return

            self._state.running = True
            self._last_position_time = self._now_ms()
            self._generation += 1
            events = self._step()

            ticker = self._ticker_factory(
                self._tick_interval,
                functools.partial(self._scheduled_tick, self._generation),
            )
            self._ticker = ticker
            ticker.start()
            _logger.debug("Vehicle %s started", self._state.vehicle_id)

        self._dispatch(events)

    def stop(self) -> None:
        """Stop the simulation and shift into neutral.

        Speed and position keep their last values. A step that is already
        waiting for the lock becomes a no-op.
        """
        with self._lock:
            ticker = self._ticker
            self._ticker = None
            self._generation += 1
            if ticker is not None:
                ticker.cancel()

            if not self._state.running:
                return
            self._state.running = False
            self._state.powertrain.gear = 0
            # Engine off.
            self._state.powertrain.rpm = 0.0
            _logger.debug("Vehicle %s stopped", self._state.vehicle_id)

    def snapshot(self) -> VehicleSnapshot:
        """Return an immutable copy of the current vehicle state."""
        with self._lock:
            state = self._state
            return VehicleSnapshot(
                time=state.timestamp,
                vehicle_id=state.vehicle_id,
                running=state.running,
                latitude=state.position.latitude,
                longitude=state.position.longitude,
                rpm=state.powertrain.rpm,
                kmh=state.powertrain.speed_kmh,
                gear=state.powertrain.gear,
            )

    def tick(self) -> None:
        """Run one simulation step. Normally called by the background ticker."""
        with self._lock:
            events = self._step()
        self._dispatch(events)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _scheduled_tick(self, generation: int) -> None:
        with self._lock:
            # Ticks of a cancelled ticker must not touch a restarted vehicle.
            if generation != self._generation:
                return
            events = self._step()
        self._dispatch(events)

    def _clock_ms(self) -> int:
        return int(self._clock() * 1000)

    def _now_ms(self) -> int:
        # Wall clock may step backwards; simulation time may not.
        return max(self._clock_ms(), self._state.timestamp)

    def _step(self) -> list[tuple[str, Wgs84 | None]]:
        """Advance the simulation by the time elapsed since the last step.

        Must be called with the lock held. Returns the notifications to
        deliver once the lock is released.
        """
        state = self._state
        if not state.running:
            return []

        events: list[tuple[str, Wgs84 | None]] = []
        now = self._now_ms()
        elapsed_seconds = (now - self._last_position_time) / 1000.0
        self._last_position_time = now

        advance = self._route.advance(state.position, state.powertrain.speed_kmh, elapsed_seconds)
        state.position = advance.position
        if advance.no_route:
            events.append(("no_route", None))
        if advance.leg_completed:
            events.append(("waypoint", advance.reached))

        self._drivetrain.step(self._control, state.powertrain, now)
        state.timestamp = now
        return events

    def _dispatch(self, events: list[tuple[str, Wgs84 | None]]) -> None:
        for kind, waypoint in events:
            if kind == "no_route":
                _logger.warning(
                    "Vehicle %s has no route (%d waypoints); it will not move",
                    self._state.vehicle_id,
                    len(self._route),
                )
                self._notify(self._on_no_route, kind)
            else:
                _logger.debug("Vehicle %s reached waypoint %s", self._state.vehicle_id, waypoint)
                self._notify(self._on_waypoint_reached, kind, waypoint)

    @staticmethod
    def _notify(callback: Callable[..., None] | None, kind: str, *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            _logger.debug("Simulator %s callback failed", kind, exc_info=True)
