"""
Tests for the NUT to MQTT bridge. The paho client is mocked; NUT data comes
from an in-process fake server.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from fakenut.bridge import NUTMQTTBridge, convert_value
from fakenut.client import NUTClient, NUTError
from fakenut.config import BridgeConfig


@pytest.fixture
def mock_mqtt_client():
    """Fixture to mock the paho MQTT client."""
    with patch("fakenut.bridge.mqtt.Client") as mock_client_class:
        mock_client_instance = MagicMock()
        mock_client_instance.is_connected.return_value = True
        mock_client_instance.publish.return_value.rc = 0
        mock_client_class.return_value = mock_client_instance
        yield mock_client_instance


@pytest.fixture
def bridge(server, mock_mqtt_client):
    host, port = server.address
    config = BridgeConfig(nut_host=host, nut_port=port, topic="test/ups", update_interval=1)
    b = NUTMQTTBridge(config)
    yield b
    b.stop()


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("100", 100),
        ("-60", -60),
        ("0", 0),
        ("50.0", 50.0),
        ("232.6", 232.6),
        ("0764", "0764"),
        ("000000000000", "000000000000"),
        ("2.8.0", "2.8.0"),
        ("OL", "OL"),
        ("nan", "nan"),
        ("", ""),
    ],
)
def test_convert_value(raw, expected):
    value = convert_value(raw)
    assert value == expected
    assert type(value) is type(expected)


def test_client_setup(mock_mqtt_client):
    config = BridgeConfig(username="u", password="p", topic="t")
    with patch("fakenut.bridge.mqtt.Client") as client_class:
        NUTMQTTBridge(config)
        kwargs = client_class.call_args.kwargs
        assert kwargs["client_id"] == "nuttyqt"
        assert kwargs["transport"] == "tcp"
        instance = client_class.return_value
        instance.username_pw_set.assert_called_once_with("u", "p")
        instance.will_set.assert_called_once_with("t/availability", "offline", qos=1, retain=True)
        instance.tls_set.assert_not_called()


def test_websocket_tls_transport():
    with patch("fakenut.bridge.mqtt.Client") as client_class:
        NUTMQTTBridge(BridgeConfig(broker_protocol="wss"))
        assert client_class.call_args.kwargs["transport"] == "websockets"
        client_class.return_value.tls_set.assert_called_once()


def test_poll_reads_first_ups(bridge):
    state = bridge.poll()
    assert state["name"] == "FakeUPS"
    assert state["description"] == "Description unavailable"
    assert state["number_of_logins"] == 1
    assert state["clients"] == ["127.0.0.1"]
    assert state["variables"]["battery.charge"] == 100
    assert state["variables"]["input.frequency"] == 50.0
    assert state["variables"]["ups.status"] == "OL"
    assert state["variables"]["ups.vendorid"] == "0764"
    assert len(state["variables"]) == 42
    assert "beeper.on" in state["commands"]


def test_update_publishes_json(bridge, mock_mqtt_client):
    assert bridge.update() is True
    topic, payload = mock_mqtt_client.publish.call_args.args
    assert topic == "test/ups"
    assert mock_mqtt_client.publish.call_args.kwargs == {"qos": 0, "retain": False}
    document = json.loads(payload)
    assert document["name"] == "FakeUPS"
    assert document["number_of_logins"] == 1
    assert document["clients"] == ["127.0.0.1"]
    assert document["variables"]["ups.load"] == 12


def test_update_reuses_nut_connection(bridge):
    bridge.update()
    first = bridge.nut
    bridge.update()
    assert bridge.nut is first
    assert first.connected


def test_update_skipped_when_broker_disconnected(bridge, mock_mqtt_client):
    mock_mqtt_client.is_connected.return_value = False
    assert bridge.update() is False
    mock_mqtt_client.publish.assert_not_called()


def test_update_survives_nut_failure(mock_mqtt_client):
    nut = MagicMock(spec=NUTClient)
    nut.connected = True
    nut.list_ups.side_effect = NUTError("connection closed by server")
    b = NUTMQTTBridge(BridgeConfig(), nut_client=nut)
    assert b.update() is False
    nut.close.assert_called_once()
    mock_mqtt_client.publish.assert_not_called()


def test_poll_with_no_devices(mock_mqtt_client):
    nut = MagicMock(spec=NUTClient)
    nut.connected = True
    nut.list_ups.return_value = {}
    b = NUTMQTTBridge(BridgeConfig(), nut_client=nut)
    with pytest.raises(NUTError, match="no UPS"):
        b.poll()


def test_authenticates_when_credentials_given(mock_mqtt_client):
    nut = MagicMock(spec=NUTClient)
    nut.connected = False
    nut.list_ups.return_value = {"FakeUPS": "x"}
    nut.list_vars.return_value = {"battery.charge": "100"}
    nut.list_commands.return_value = []
    b = NUTMQTTBridge(BridgeConfig(nut_username="mon", nut_password="pw"), nut_client=nut)
    b.poll()
    nut.connect.assert_called_once()
    nut.authenticate.assert_called_once_with("mon", "pw")


def test_on_connect_publishes_availability(bridge, mock_mqtt_client):
    bridge.on_connect(mock_mqtt_client, None, None, 0, None)
    mock_mqtt_client.publish.assert_called_with("test/ups/availability", "online", qos=1, retain=True)


def test_stop_publishes_offline(bridge, mock_mqtt_client):
    bridge.update()
    nut = bridge.nut
    bridge.stop()
    mock_mqtt_client.publish.assert_called_with("test/ups/availability", "offline", qos=1, retain=True)
    mock_mqtt_client.loop_stop.assert_called()
    mock_mqtt_client.disconnect.assert_called()
    assert not nut.connected


def test_run_stops_when_connect_fails(mock_mqtt_client):
    mock_mqtt_client.connect.side_effect = OSError("refused")
    b = NUTMQTTBridge(BridgeConfig())
    b.run()
    mock_mqtt_client.loop_start.assert_not_called()


def test_run_loops_until_stopped(bridge, mock_mqtt_client):
    calls = []

    def fake_update():
        calls.append(1)
        if len(calls) == 2:
            bridge._stop_event.set()
        return True

    bridge.update = fake_update
    bridge.run()
    assert len(calls) == 2
    mock_mqtt_client.loop_start.assert_called_once()
