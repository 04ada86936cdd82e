"""Custom exception hierarchy for pyvehiclesim.

The simulation core never raises; these are used by the collaborators
(configuration, route files, message decoding and MQTT transport).
"""

from __future__ import annotations


class VehicleSimError(Exception):
    """Base exception for all pyvehiclesim errors."""


class SimConfigError(VehicleSimError):
    """Invalid or missing configuration."""


class RouteFileError(VehicleSimError):
    """Route file could not be read or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        line: int | None = None,
    ) -> None:
        self.path = path
        self.line = line
        super().__init__(message)


class MessageDecodeError(VehicleSimError):
    """Received payload is not a valid message (invalid JSON or schema)."""


class TransportError(VehicleSimError):
    """MQTT-level failure (connect, publish)."""

    def __init__(
        self,
        message: str,
        *,
        host: str = "",
        port: int | None = None,
    ) -> None:
        self.host = host
        self.port = port
        super().__init__(message)
