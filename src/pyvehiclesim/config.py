"""Simulator configuration for pyvehiclesim."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pyvehiclesim.exceptions import SimConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, kind: type) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return kind(raw)
    except ValueError as exc:
        raise SimConfigError(f"{key} must be a {kind.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class DrivetrainParams:
    """Tuning constants of the simplified drivetrain.

    Parameters
    ----------
    min_rpm : int
        Lowest engine speed considered acceptable while driving.
    max_rpm : int
        Highest engine speed; also the scale for the comfort band.
    gear_count : int
        Number of forward gears. Gear 0 is neutral.
    rpm_midpoint_fraction : float
        Centre of the comfort band as a fraction of ``max_rpm``.
    rpm_band_fraction : float
        Half-width of the comfort band as a fraction of ``max_rpm``.
    base_speed_kmh : float
        Speed reached in first gear at ``max_rpm``.
    acceleration_factor : float
        Per-tick speed multiplier while accelerating (> 1).
    deceleration_factor : float
        Per-tick speed multiplier while braking (between 0 and 1).
    retarget_hold_seconds : float
        How long a reached target speed is held before a new one is picked.
    max_retarget_delta_kmh : float
        Upper bound of the random increment added to the basis speed.
    startup_boost_kmh : float
        Basis speed used once for the very first target.
    seed_speed_kmh : float
        Speed a standing vehicle jumps to when it has a positive target.
    """

    min_rpm: int = 800
    max_rpm: int = 4000
    gear_count: int = 6
    rpm_midpoint_fraction: float = 0.5
    rpm_band_fraction: float = 0.2
    base_speed_kmh: float = 30.0
    acceleration_factor: float = 1.04
    deceleration_factor: float = 0.04
    retarget_hold_seconds: float = 5.0
    max_retarget_delta_kmh: float = 40.0
    startup_boost_kmh: float = 100.0
    seed_speed_kmh: float = 2.0

    def __post_init__(self) -> None:
        if self.gear_count < 1:
            raise SimConfigError(f"gear_count must be at least 1, got {self.gear_count}")
        if not 0 <= self.min_rpm < self.max_rpm:
            raise SimConfigError(f"expected 0 <= min_rpm < max_rpm, got {self.min_rpm}/{self.max_rpm}")
        if self.base_speed_kmh <= 0:
            raise SimConfigError(f"base_speed_kmh must be positive, got {self.base_speed_kmh}")
        if self.acceleration_factor <= 1.0:
            raise SimConfigError(f"acceleration_factor must be > 1, got {self.acceleration_factor}")
        if not 0.0 < self.deceleration_factor < 1.0:
            raise SimConfigError(f"deceleration_factor must be in (0, 1), got {self.deceleration_factor}")
        if not 0.0 <= self.rpm_band_fraction <= self.rpm_midpoint_fraction:
            raise SimConfigError("rpm_band_fraction must be between 0 and rpm_midpoint_fraction")
        if self.retarget_hold_seconds < 0 or self.max_retarget_delta_kmh < 0:
            raise SimConfigError("retarget_hold_seconds and max_retarget_delta_kmh must not be negative")
        if self.startup_boost_kmh < 0 or self.seed_speed_kmh <= 0:
            raise SimConfigError("startup_boost_kmh must not be negative and seed_speed_kmh must be positive")

    @property
    def rpm_upper(self) -> float:
        return self.max_rpm * (self.rpm_midpoint_fraction + self.rpm_band_fraction)

    @property
    def rpm_lower(self) -> float:
        return self.max_rpm * (self.rpm_midpoint_fraction - self.rpm_band_fraction)


@dataclasses.dataclass(frozen=True)
class SimulatorConfig:
    """Runner configuration.

    Parameters
    ----------
    vehicle_id : str
        Identifier published with every message and used in topic names.
    route_file : str or None
        Path to an ``.itn`` or ``.json`` waypoint file.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_username : str or None
        Optional broker username.
    mqtt_password : str or None
        Optional broker password.
    mqtt_tls : bool
        Connect with TLS using the system trust store.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    topic_prefix : str
        First topic level for all published messages.
    tick_interval : float
        Seconds between two simulation steps.
    publish_interval : float
        Seconds between two published snapshots.
    drivetrain : DrivetrainParams
        Drivetrain tuning.
    """

    vehicle_id: str
    route_file: str | None = None
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_tls: bool = False
    mqtt_keepalive: int = 60
    topic_prefix: str = "vehicles"
    tick_interval: float = 0.5
    publish_interval: float = 1.0
    drivetrain: DrivetrainParams = dataclasses.field(default_factory=DrivetrainParams)

    def __post_init__(self) -> None:
        if not self.vehicle_id or not self.vehicle_id.strip():
            raise SimConfigError("vehicle_id must be non-empty")
        if "/" in self.vehicle_id or "+" in self.vehicle_id or "#" in self.vehicle_id:
            raise SimConfigError(f"vehicle_id must not contain MQTT topic characters: {self.vehicle_id!r}")
        if not 0 < self.mqtt_port < 65536:
            raise SimConfigError(f"mqtt_port out of range: {self.mqtt_port}")
        if self.tick_interval <= 0 or self.publish_interval <= 0:
            raise SimConfigError("tick_interval and publish_interval must be positive")

    @property
    def sensor_topic(self) -> str:
        return f"{self.topic_prefix}/{self.vehicle_id}/sensor"

    @property
    def status_topic(self) -> str:
        return f"{self.topic_prefix}/{self.vehicle_id}/status"

    @classmethod
    def from_env(cls, **overrides: Any) -> SimulatorConfig:
        """Build a config from ``VSIM_*`` environment variables.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.
            ``None`` values are ignored so unset CLI options fall through.

        Returns
        -------
        SimulatorConfig
            Populated configuration.
        """
        env = os.environ
        overrides = {key: value for key, value in overrides.items() if value is not None}

        _ENV_CONFIG_MAP = {
            "VSIM_VEHICLE_ID": "vehicle_id",
            "VSIM_ROUTE_FILE": "route_file",
            "VSIM_MQTT_HOST": "mqtt_host",
            "VSIM_MQTT_USERNAME": "mqtt_username",
            "VSIM_MQTT_PASSWORD": "mqtt_password",
            "VSIM_TOPIC_PREFIX": "topic_prefix",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "VSIM_MQTT_PORT": ("mqtt_port", int),
            "VSIM_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "VSIM_TICK_INTERVAL": ("tick_interval", float),
            "VSIM_PUBLISH_INTERVAL": ("publish_interval", float),
        }
        for env_key, (field_name, kind) in _ENV_NUMERIC_MAP.items():
            if field_name in overrides:
                continue
            val = _env_number(env, env_key, kind)
            if val is not None:
                config_kwargs[field_name] = val

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("VSIM_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        if "vehicle_id" not in config_kwargs:
            raise SimConfigError("vehicle_id is required (set VSIM_VEHICLE_ID or pass --vehicle-id)")
        return cls(**config_kwargs)
