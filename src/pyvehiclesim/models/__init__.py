"""Message models for pyvehiclesim."""

from pyvehiclesim.models._base import SimBaseModel
from pyvehiclesim.models.snapshot import VehicleSnapshot
from pyvehiclesim.models.status import StatusMessage, StatusType

__all__ = [
    "SimBaseModel",
    "StatusMessage",
    "StatusType",
    "VehicleSnapshot",
]
