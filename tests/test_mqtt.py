from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import paho.mqtt.client as mqtt
import pytest

from pyvehiclesim._mqtt import MqttPublisher, MqttSettings, build_last_will
from pyvehiclesim.config import SimulatorConfig
from pyvehiclesim.exceptions import TransportError


class _FakeClient:
    instances: list[_FakeClient] = []

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.credentials: tuple[str, str | None] | None = None
        self.tls = False
        self.will: tuple[str, bytes, int, bool] | None = None
        self.connected_to: tuple[str, int, int] | None = None
        self.loop_running = False
        self.disconnected = False
        self.published: list[tuple[str, bytes, int, bool]] = []
        self.publish_rc = mqtt.MQTT_ERR_SUCCESS
        self.connect_error: OSError | None = None
        _FakeClient.instances.append(self)

    def enable_logger(self, _logger: Any) -> None:
        pass

    def username_pw_set(self, username: str, password: str | None) -> None:
        self.credentials = (username, password)

    def tls_set(self) -> None:
        self.tls = True

    def will_set(self, topic: str, payload: bytes, qos: int = 0, retain: bool = False) -> None:
        self.will = (topic, payload, qos, retain)

    def connect(self, host: str, port: int, keepalive: int = 60) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected_to = (host, port, keepalive)

    def loop_start(self) -> None:
        self.loop_running = True

    def loop_stop(self) -> None:
        self.loop_running = False

    def disconnect(self) -> None:
        self.disconnected = True

    def publish(self, topic: str, payload: bytes, qos: int = 0, retain: bool = False) -> SimpleNamespace:
        self.published.append((topic, payload, qos, retain))
        return SimpleNamespace(rc=self.publish_rc)


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> type[_FakeClient]:
    _FakeClient.instances = []
    monkeypatch.setattr(mqtt, "Client", _FakeClient)
    return _FakeClient


def _settings(**overrides: Any) -> MqttSettings:
    config = SimulatorConfig(vehicle_id="car-1", mqtt_host="broker", mqtt_port=1884, **overrides)
    return MqttSettings.from_config(config)


def test_settings_from_config() -> None:
    settings = _settings(mqtt_username="sim", mqtt_password="pw", mqtt_tls=True, mqtt_keepalive=30)

    assert settings == MqttSettings(
        host="broker",
        port=1884,
        client_id="vehiclesim_car-1",
        status_topic="vehicles/car-1/status",
        username="sim",
        password="pw",
        tls=True,
        keepalive=30,
    )


def test_last_will_is_connection_lost_status() -> None:
    payload = json.loads(build_last_will("car-1"))

    assert payload["type"] == "CONNECTION_LOST"
    assert payload["vehicleId"] == "car-1"


def test_start_configures_client(fake_client: type[_FakeClient]) -> None:
    publisher = MqttPublisher(_settings(mqtt_username="sim", mqtt_password="pw", mqtt_tls=True), vehicle_id="car-1")

    publisher.start()

    client = fake_client.instances[-1]
    assert publisher.is_running
    assert client.kwargs["client_id"] == "vehiclesim_car-1"
    assert client.kwargs["protocol"] == mqtt.MQTTv5
    assert client.credentials == ("sim", "pw")
    assert client.tls is True
    assert client.connected_to == ("broker", 1884, 60)
    assert client.loop_running
    assert client.will is not None
    topic, will_payload, qos, retain = client.will
    assert topic == "vehicles/car-1/status"
    assert json.loads(will_payload)["type"] == "CONNECTION_LOST"
    assert (qos, retain) == (1, True)


def test_publish_and_stop(fake_client: type[_FakeClient]) -> None:
    publisher = MqttPublisher(_settings(), vehicle_id="car-1")
    publisher.start()
    client = fake_client.instances[-1]

    publisher.publish("vehicles/car-1/sensor", b"{}")
    publisher.publish("vehicles/car-1/status", b"{}", retain=True, qos=1)
    publisher.stop()

    assert client.credentials is None
    assert client.published == [
        ("vehicles/car-1/sensor", b"{}", 0, False),
        ("vehicles/car-1/status", b"{}", 1, True),
    ]
    assert client.disconnected
    assert not client.loop_running
    assert not publisher.is_running


def test_publish_error_code_raises(fake_client: type[_FakeClient]) -> None:
    publisher = MqttPublisher(_settings(), vehicle_id="car-1")
    publisher.start()
    fake_client.instances[-1].publish_rc = mqtt.MQTT_ERR_NO_CONN

    with pytest.raises(TransportError):
        publisher.publish("vehicles/car-1/sensor", b"{}")


def test_connect_failure_raises_transport_error(
    fake_client: type[_FakeClient], monkeypatch: pytest.MonkeyPatch
) -> None:
    def refusing_client(**kwargs: Any) -> _FakeClient:
        client = _FakeClient(**kwargs)
        client.connect_error = ConnectionRefusedError("refused")
        return client

    monkeypatch.setattr(mqtt, "Client", refusing_client)
    publisher = MqttPublisher(_settings(), vehicle_id="car-1")

    with pytest.raises(TransportError) as excinfo:
        publisher.start()

    assert excinfo.value.host == "broker"
    assert excinfo.value.port == 1884
    assert not publisher.is_running


def test_publish_before_start_raises() -> None:
    publisher = MqttPublisher(_settings(), vehicle_id="car-1")

    with pytest.raises(TransportError):
        publisher.publish("vehicles/car-1/sensor", b"{}")


def test_stop_without_start_is_noop() -> None:
    publisher = MqttPublisher(_settings(), vehicle_id="car-1")

    publisher.stop()

    assert not publisher.is_running
