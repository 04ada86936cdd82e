"""Internal MQTT publisher for simulated vehicle messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyvehiclesim.config import SimulatorConfig
from pyvehiclesim.exceptions import TransportError
from pyvehiclesim.models.status import StatusMessage, StatusType


@dataclass(frozen=True)
class MqttSettings:
    """Broker connection data for one vehicle."""

    host: str
    port: int
    client_id: str
    status_topic: str
    username: str | None = None
    password: str | None = None
    tls: bool = False
    keepalive: int = 60

    @classmethod
    def from_config(cls, config: SimulatorConfig) -> MqttSettings:
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            client_id=f"vehiclesim_{config.vehicle_id}",
            status_topic=config.status_topic,
            username=config.mqtt_username,
            password=config.mqtt_password,
            tls=config.mqtt_tls,
            keepalive=config.mqtt_keepalive,
        )


def build_last_will(vehicle_id: str) -> bytes:
    """Status payload the broker publishes if the connection drops."""
    return StatusMessage(
        vehicle_id=vehicle_id,
        type=StatusType.CONNECTION_LOST,
        message="Connection to vehicle lost",
    ).to_json()


class MqttPublisher:
    """Threaded paho-mqtt publisher.

    The network loop runs on paho's own thread (``loop_start``). A
    retained ``CONNECTION_LOST`` status is registered as last will so
    subscribers learn about vehicles that disappear without stopping.
    """

    def __init__(
        self,
        settings: MqttSettings,
        *,
        vehicle_id: str,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._vehicle_id = vehicle_id
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is active."""
        return self._running

    def start(self) -> None:
        """Connect to the broker and start the network loop."""
        self.stop()
        settings = self._settings
        self._logger.debug(
            "MQTT publisher start requested host=%s port=%s client_id=%s",
            settings.host,
            settings.port,
            settings.client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()
        client.will_set(
            settings.status_topic,
            build_last_will(self._vehicle_id),
            qos=1,
            retain=True,
        )

        def on_connect(
            _client: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        try:
            client.connect(settings.host, settings.port, keepalive=settings.keepalive)
        except OSError as exc:
            raise TransportError(
                f"Cannot connect to MQTT broker {settings.host}:{settings.port}: {exc}",
                host=settings.host,
                port=settings.port,
            ) from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def publish(self, topic: str, payload: bytes, *, retain: bool = False, qos: int = 0) -> None:
        """Queue *payload* for delivery on *topic*."""
        client = self._client
        if client is None:
            raise TransportError("MQTT publisher is not started", host=self._settings.host, port=self._settings.port)
        info = client.publish(topic, payload, qos=qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(
                f"Publishing to {topic} failed: {mqtt.error_string(info.rc)}",
                host=self._settings.host,
                port=self._settings.port,
            )

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
