"""Publish a running simulation to a message broker.

The runner owns the glue between :class:`VehicleSimulator` and a
publisher: it starts both, announces the vehicle on the status topic and
then publishes a snapshot every ``publish_interval`` seconds until asked
to stop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from pyvehiclesim._mqtt import MqttPublisher, MqttSettings
from pyvehiclesim.config import SimulatorConfig
from pyvehiclesim.exceptions import TransportError
from pyvehiclesim.models.status import StatusMessage, StatusType
from pyvehiclesim.routes import load_route
from pyvehiclesim.simulator import VehicleSimulator

_logger = logging.getLogger(__name__)


class Publisher(Protocol):
    def start(self) -> None: ...

    def publish(self, topic: str, payload: bytes, *, retain: bool = False, qos: int = 0) -> None: ...

    def stop(self) -> None: ...


class SimulationRunner:
    """Drive a simulator and publish its snapshots.

    Usage::

        runner = SimulationRunner(simulator, publisher, sensor_topic=..., status_topic=...)
        await runner.run()  # until runner.request_stop()
    """

    def __init__(
        self,
        simulator: VehicleSimulator,
        publisher: Publisher,
        *,
        sensor_topic: str,
        status_topic: str,
        publish_interval: float = 1.0,
    ) -> None:
        if publish_interval <= 0:
            raise ValueError("publish_interval must be positive")
        self._simulator = simulator
        self._publisher = publisher
        self._sensor_topic = sensor_topic
        self._status_topic = status_topic
        self._publish_interval = publish_interval
        self._stop_event = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self.published = 0

    @property
    def simulator(self) -> VehicleSimulator:
        return self._simulator

    def request_stop(self) -> None:
        """Ask :meth:`run` to finish. Safe to call from any thread or signal handler."""
        loop = self._loop
        if loop is None or loop.is_closed():
            self._stop_event.set()
            return
        loop.call_soon_threadsafe(self._stop_event.set)

    async def run(self) -> None:
        """Publish snapshots until :meth:`request_stop` is called.

        Raises :class:`TransportError` if the publisher cannot be started.
        Failures while publishing are logged and retried on the next round.
        """
        self._loop = asyncio.get_running_loop()
        await self._loop.run_in_executor(None, self._publisher.start)

        vehicle_id = self._simulator.vehicle_id
        try:
            self._simulator.start()
            self._publish_status(StatusType.VEHICLE_READY, f"Vehicle {vehicle_id} is ready")
            _logger.info("Publishing vehicle %s to %s", vehicle_id, self._sensor_topic)

            while not self._stop_event.is_set():
                self._publish_snapshot()
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._publish_interval)
                except TimeoutError:
                    pass
        finally:
            self._simulator.stop()
            self._publish_snapshot()
            self._publish_status(StatusType.CONNECTION_LOST, f"Vehicle {vehicle_id} shut down")
            await self._loop.run_in_executor(None, self._publisher.stop)
            _logger.info("Vehicle %s stopped after %d snapshots", vehicle_id, self.published)

    def _publish_snapshot(self) -> None:
        snapshot = self._simulator.snapshot()
        try:
            self._publisher.publish(self._sensor_topic, snapshot.to_json())
        except TransportError:
            _logger.warning("Publishing snapshot failed", exc_info=True)
            return
        self.published += 1

    def _publish_status(self, status: StatusType, message: str) -> None:
        payload = StatusMessage(
            vehicle_id=self._simulator.vehicle_id,
            type=status,
            message=message,
        ).to_json()
        try:
            self._publisher.publish(self._status_topic, payload, retain=True, qos=1)
        except TransportError:
            _logger.warning("Publishing %s status failed", status, exc_info=True)


def create_runner(config: SimulatorConfig) -> SimulationRunner:
    """Build a runner publishing over MQTT from *config*.

    Raises :class:`RouteFileError` if the configured route cannot be loaded.
    """
    waypoints = load_route(config.route_file) if config.route_file else []
    simulator = VehicleSimulator(
        config.vehicle_id,
        waypoints,
        params=config.drivetrain,
        tick_interval=config.tick_interval,
    )
    publisher = MqttPublisher(MqttSettings.from_config(config), vehicle_id=config.vehicle_id)
    return SimulationRunner(
        simulator,
        publisher,
        sensor_topic=config.sensor_topic,
        status_topic=config.status_topic,
        publish_interval=config.publish_interval,
    )
