"""Vehicle sensor snapshot."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from pyvehiclesim.models._base import SimBaseModel, now_ms


class VehicleSnapshot(SimBaseModel):
    """Immutable copy of a simulated vehicle's state at one instant.

    Parameters
    ----------
    time : int
        Epoch millis of the last simulation step.
    type : str
        Message discriminator, always ``"SENSOR_DATA"``.
    vehicle_id : str
        Vehicle identifier.
    running : bool
        Whether the engine (and the update loop) is running.
    latitude, longitude : float
        Position in WGS84 degrees.
    rpm : float
        Engine speed, derived from ``kmh`` and ``gear``.
    kmh : float
        Speed in km/h.
    gear : int
        Engaged gear, ``0`` is neutral.
    """

    time: int = Field(default_factory=now_ms)
    type: Literal["SENSOR_DATA"] = "SENSOR_DATA"
    vehicle_id: str = ""
    running: bool = False
    latitude: float = 0.0
    longitude: float = 0.0
    rpm: float = Field(default=0.0, ge=0.0)
    kmh: float = Field(default=0.0, ge=0.0)
    gear: int = Field(default=0, ge=0)
