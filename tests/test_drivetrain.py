from __future__ import annotations

import random

import pytest

from pyvehiclesim.config import DrivetrainParams
from pyvehiclesim.drivetrain import DriveControl, Drivetrain, Powertrain


class _SequenceRandom(random.Random):
    """Replays fixed values from ``random()``, cycling."""

    def __init__(self, values: tuple[float, ...]) -> None:
        super().__init__(0)
        self._values = values
        self._index = 0

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        return value


PARAMS = DrivetrainParams()
LAUNCH = PARAMS.acceleration_factor**6


def _drivetrain(*values: float) -> Drivetrain:
    return Drivetrain(PARAMS, rng=_SequenceRandom(values or (0.5,)))


# ------------------------------------------------------------------
# Retargeting
# ------------------------------------------------------------------


class TestRetarget:
    def test_first_target_uses_startup_boost(self) -> None:
        drivetrain = _drivetrain(0.5)
        control = drivetrain.new_control()

        assert drivetrain.retarget(control, 0.0, now_ms=10_000)

        # 100 + 40 * 0.5 = 120, above 40 so 20 is taken off.
        assert control.target_speed_kmh == pytest.approx(100.0)
        assert control.previous_speed_kmh == 100.0
        assert control.startup_boost_kmh == 0.0
        assert control.target_reached_at is None

    def test_later_targets_use_current_speed(self) -> None:
        drivetrain = _drivetrain(0.25)
        control = DriveControl(target_reached_at=0)

        drivetrain.retarget(control, 10.0, now_ms=10_000)

        assert control.previous_speed_kmh == 10.0
        assert control.target_speed_kmh == pytest.approx(20.0)

    def test_target_above_max_delta_is_pulled_down(self) -> None:
        drivetrain = _drivetrain(0.5)
        control = DriveControl(target_reached_at=0)

        drivetrain.retarget(control, 30.0, now_ms=10_000)

        assert control.target_speed_kmh == pytest.approx(30.0)

    def test_target_held_for_hold_seconds(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=50.0, target_reached_at=1_000)

        assert not drivetrain.retarget(control, 50.0, now_ms=5_999)
        assert control.target_speed_kmh == 50.0
        assert drivetrain.retarget(control, 50.0, now_ms=6_000)

    def test_no_retarget_while_approaching(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=50.0, target_reached_at=None)

        assert not drivetrain.retarget(control, 20.0, now_ms=1_000_000)


# ------------------------------------------------------------------
# Speed adjustment
# ------------------------------------------------------------------


class TestAdjustSpeed:
    def test_standing_vehicle_gets_seed_speed(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=100.0, target_reached_at=None)
        powertrain = Powertrain()

        drivetrain.adjust_speed(control, powertrain, now_ms=0)

        assert powertrain.speed_kmh == pytest.approx(2.0 * LAUNCH)
        assert control.target_reached_at is None

    def test_steep_ramp_below_base_speed(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=100.0, target_reached_at=None)
        powertrain = Powertrain(speed_kmh=10.0)

        drivetrain.adjust_speed(control, powertrain, now_ms=0)

        assert powertrain.speed_kmh == pytest.approx(10.0 * LAUNCH)

    def test_gentle_ramp_above_base_speed(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=100.0, target_reached_at=None)
        powertrain = Powertrain(speed_kmh=50.0)

        drivetrain.adjust_speed(control, powertrain, now_ms=0)

        assert powertrain.speed_kmh == pytest.approx(52.0)

    def test_acceleration_is_clamped_to_target(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=30.0, target_reached_at=None)
        powertrain = Powertrain(speed_kmh=29.9)

        drivetrain.adjust_speed(control, powertrain, now_ms=4_242)

        assert powertrain.speed_kmh == 30.0
        assert control.target_reached_at == 4_242

    def test_braking_is_clamped_to_target(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=50.0, target_reached_at=None)
        powertrain = Powertrain(speed_kmh=80.0)

        drivetrain.adjust_speed(control, powertrain, now_ms=7)

        assert powertrain.speed_kmh == 50.0
        assert control.target_reached_at == 7

    def test_seed_speed_never_overshoots_small_target(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=1.0, target_reached_at=None)
        powertrain = Powertrain()

        drivetrain.adjust_speed(control, powertrain, now_ms=0)

        assert powertrain.speed_kmh == 1.0

    def test_reached_time_not_overwritten(self) -> None:
        drivetrain = _drivetrain()
        control = DriveControl(target_speed_kmh=30.0, target_reached_at=100)
        powertrain = Powertrain(speed_kmh=30.0)

        drivetrain.adjust_speed(control, powertrain, now_ms=900)

        assert control.target_reached_at == 100


# ------------------------------------------------------------------
# Gear / RPM
# ------------------------------------------------------------------


class TestShift:
    def test_neutral_becomes_first_gear(self) -> None:
        powertrain = Powertrain(speed_kmh=2.0 * LAUNCH, gear=0)

        _drivetrain().shift(powertrain)

        assert powertrain.gear == 1
        assert powertrain.rpm == pytest.approx(4000 * 2.0 * LAUNCH / 30)

    def test_stationary_vehicle_stays_in_first_gear(self) -> None:
        powertrain = Powertrain(speed_kmh=0.0, gear=0)

        _drivetrain().shift(powertrain)

        assert powertrain.gear == 1
        assert powertrain.rpm == 0.0

    def test_shifts_up_into_comfort_band(self) -> None:
        powertrain = Powertrain(speed_kmh=100.0, gear=1)

        _drivetrain().shift(powertrain)

        assert powertrain.gear == 5
        assert powertrain.rpm == pytest.approx(4000 * 100 / (30 * 5))

    def test_shifts_down_into_comfort_band(self) -> None:
        powertrain = Powertrain(speed_kmh=20.0, gear=6)

        _drivetrain().shift(powertrain)

        assert powertrain.gear == 2
        assert powertrain.rpm == pytest.approx(4000 * 20 / (30 * 2))

    def test_top_gear_saturates(self) -> None:
        powertrain = Powertrain(speed_kmh=200.0, gear=1)

        _drivetrain().shift(powertrain)

        assert powertrain.gear == PARAMS.gear_count
        assert powertrain.rpm == pytest.approx(4000 * 200 / (30 * 6))
        assert powertrain.rpm > PARAMS.rpm_upper

    def test_band_limits(self) -> None:
        assert PARAMS.rpm_upper == pytest.approx(2800.0)
        assert PARAMS.rpm_lower == pytest.approx(1200.0)


def test_random_drive_keeps_invariants() -> None:
    drivetrain = Drivetrain(PARAMS, rng=random.Random(1234))
    control = drivetrain.new_control()
    powertrain = Powertrain()

    for tick in range(2_000):
        now = tick * 500
        drivetrain.retarget(control, powertrain.speed_kmh, now)
        before = powertrain.speed_kmh
        target = control.target_speed_kmh

        drivetrain.adjust_speed(control, powertrain, now)
        after = powertrain.speed_kmh
        if before < target:
            assert before <= after <= target
        elif before > target:
            assert before >= after >= target
        else:
            assert after == target

        drivetrain.shift(powertrain)
        assert 1 <= powertrain.gear <= PARAMS.gear_count
        assert powertrain.rpm >= 0.0
        if powertrain.gear not in (1, PARAMS.gear_count):
            assert PARAMS.rpm_lower <= powertrain.rpm <= PARAMS.rpm_upper
        assert powertrain.rpm == pytest.approx(
            PARAMS.max_rpm * powertrain.speed_kmh / (PARAMS.base_speed_kmh * powertrain.gear)
        )
