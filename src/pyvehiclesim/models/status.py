"""Vehicle status messages."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from pyvehiclesim.models._base import SimBaseModel, now_ms


class StatusType(StrEnum):
    VEHICLE_READY = "VEHICLE_READY"
    CONNECTION_LOST = "CONNECTION_LOST"
    ERROR = "ERROR"


class StatusMessage(SimBaseModel):
    """Lifecycle notification published on the status topic."""

    time: int = Field(default_factory=now_ms)
    vehicle_id: str = ""
    type: StatusType
    message: str = ""
