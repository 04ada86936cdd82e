"""Simplified drivetrain: target speed control and gear/RPM selection.

The vehicle constantly steers toward a target speed:

* Once a target has been reached it is held for
  ``retarget_hold_seconds``, then a new one is drawn at random around
  the current speed.
* Below the target the speed grows geometrically (much steeper while
  below ``base_speed_kmh`` so the launch is not sluggish); above the
  target it drops by ``deceleration_factor``. The target is never
  overshot in either direction.
* After every speed change the gear is shifted until the RPM lies in
  the comfort band or the first/last gear is reached. Any number of
  gears may be skipped in one step.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from pyvehiclesim.config import DrivetrainParams

_logger = logging.getLogger(__name__)

# Exponent applied to the acceleration factor below base speed.
_LAUNCH_EXPONENT = 6


@dataclass
class DriveControl:
    """Mutable controller state owned by the simulator."""

    target_speed_kmh: float = 0.0
    previous_speed_kmh: float = 0.0
    startup_boost_kmh: float = 0.0
    target_reached_at: int | None = 0
    """Epoch millis when the target was reached; ``None`` while approaching it.

    Starts at ``0`` so the first step picks a target right away.
    """


@dataclass
class Powertrain:
    """Speed and gear of the vehicle. ``rpm`` is derived by :meth:`Drivetrain.shift`."""

    speed_kmh: float = 0.0
    rpm: float = 0.0
    gear: int = 0


class Drivetrain:
    """Drivetrain rules applied to a :class:`DriveControl` and a :class:`Powertrain`.

    Holds the tuning and the random source only; all vehicle state lives in
    the objects passed in.
    """

    def __init__(self, params: DrivetrainParams | None = None, *, rng: random.Random | None = None) -> None:
        self.params = params or DrivetrainParams()
        self._rng = rng or random.Random()

    def new_control(self) -> DriveControl:
        return DriveControl(startup_boost_kmh=self.params.startup_boost_kmh)

    def retarget(self, control: DriveControl, speed_kmh: float, now_ms: int) -> bool:
        """Pick a new target speed once the current one was held long enough.

        Returns ``True`` when a new target was chosen.
        """
        reached_at = control.target_reached_at
        if reached_at is None or now_ms - reached_at < self.params.retarget_hold_seconds * 1000:
            return False

        if control.startup_boost_kmh > 0:
            control.previous_speed_kmh = control.startup_boost_kmh
            control.startup_boost_kmh = 0.0
        else:
            control.previous_speed_kmh = speed_kmh

        max_delta = self.params.max_retarget_delta_kmh
        target = control.previous_speed_kmh + max_delta * self._rng.random()
        if target > max_delta:
            # Keeps the target from creeping upward over repeated retargets.
            target -= max_delta / 2

        control.target_speed_kmh = target
        control.target_reached_at = None
        _logger.debug("New target speed %.1f km/h", target)
        return True

    def adjust_speed(self, control: DriveControl, powertrain: Powertrain, now_ms: int) -> None:
        """Accelerate or brake one step toward the target speed."""
        params = self.params
        target = control.target_speed_kmh
        speed = powertrain.speed_kmh

        # A geometric ramp never leaves zero on its own.
        if target > 0 and speed == 0:
            speed = params.seed_speed_kmh

        if speed < target:
            if speed < params.base_speed_kmh:
                speed *= params.acceleration_factor**_LAUNCH_EXPONENT
            else:
                speed *= params.acceleration_factor
            speed = min(speed, target)

        if speed > target:
            speed *= params.deceleration_factor
            speed = max(speed, target)

        powertrain.speed_kmh = max(0.0, speed)

        if powertrain.speed_kmh == target and control.target_reached_at is None:
            control.target_reached_at = now_ms

    def shift(self, powertrain: Powertrain) -> None:
        """Derive the RPM from the speed and shift into the comfort band.

        A running vehicle is always in gear, so neutral becomes first gear
        before the RPM is computed. The RPM is recomputed after every shift;
        ``gear_count`` iterations are enough to cross all gears.
        """
        params = self.params
        upper = params.rpm_upper
        lower = params.rpm_lower

        if powertrain.gear == 0:
            powertrain.gear = 1

        for _ in range(params.gear_count):
            powertrain.rpm = params.max_rpm * powertrain.speed_kmh / (params.base_speed_kmh * powertrain.gear)

            if powertrain.rpm > upper:
                if powertrain.gear >= params.gear_count:
                    powertrain.gear = params.gear_count
                    break
                powertrain.gear += 1
            elif powertrain.rpm < lower:
                if powertrain.gear <= 1:
                    powertrain.gear = 1
                    break
                powertrain.gear -= 1
            else:
                break

    def step(self, control: DriveControl, powertrain: Powertrain, now_ms: int) -> None:
        """Run retargeting, speed adjustment and gear selection for one tick."""
        self.retarget(control, powertrain.speed_kmh, now_ms)
        self.adjust_speed(control, powertrain, now_ms)
        self.shift(powertrain)
