"""pyvehiclesim - Periodic vehicle motion simulator with MQTT publishing."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyvehiclesim")
except PackageNotFoundError:
    __version__ = "0+local"
from pyvehiclesim.config import DrivetrainParams, SimulatorConfig
from pyvehiclesim.drivetrain import DriveControl, Drivetrain, Powertrain
from pyvehiclesim.exceptions import (
    MessageDecodeError,
    RouteFileError,
    SimConfigError,
    TransportError,
    VehicleSimError,
)
from pyvehiclesim.geo import Wgs84, distance_km, move_towards
from pyvehiclesim.models import StatusMessage, StatusType, VehicleSnapshot
from pyvehiclesim.route import Route, RouteAdvance
from pyvehiclesim.routes import load_route
from pyvehiclesim.simulator import VehicleSimulator

__all__ = [
    "__version__",
    "DriveControl",
    "Drivetrain",
    "DrivetrainParams",
    "MessageDecodeError",
    "Powertrain",
    "Route",
    "RouteAdvance",
    "RouteFileError",
    "SimConfigError",
    "SimulatorConfig",
    "StatusMessage",
    "StatusType",
    "TransportError",
    "VehicleSimError",
    "VehicleSimulator",
    "VehicleSnapshot",
    "Wgs84",
    "distance_km",
    "load_route",
    "move_towards",
]
