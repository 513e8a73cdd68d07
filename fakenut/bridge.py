# FakeNUT - NUT to MQTT Bridge
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Polls a NUT server for the telemetry of its first UPS and publishes it as
# a JSON document to an MQTT broker at a fixed interval.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""
NUT to MQTT bridge

Connects to a NUT server with NUTClient, reads the first UPS it reports and
publishes one JSON document per poll to `<topic>`. Availability of the
bridge is published (retained) to `<topic>/availability`.

Payload layout::

    {
      "name": "FakeUPS",
      "description": "Description unavailable",
      "number_of_logins": 1,
      "clients": ["127.0.0.1"],
      "variables": {"battery.charge": 100, "input.voltage": 232.6, ...},
      "commands": ["beeper.disable", ...]
    }
"""
from __future__ import annotations

import json
import math
import logging
import threading
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .client import NUTClient, NUTError
from .config import BridgeConfig

log = logging.getLogger(__name__)

_WEBSOCKET_PROTOCOLS = ("ws", "wss")
_TLS_PROTOCOLS = ("ssl", "tls", "mqtts", "wss")


def convert_value(raw: str) -> Any:
    """Convert a NUT variable string to int, float or leave it as text.

    Integral numbers become ints, other numbers floats. Strings such as
    serial numbers with leading zeros ("0764") stay strings so no digits
    are lost.
    """
    text = raw.strip()
    try:
        v = float(text)
    except ValueError:
        return raw
    if not math.isfinite(v):
        return raw
    digits = text.lstrip("-+")
    if "." in text or "e" in text.lower():
        return v
    if len(digits) > 1 and digits.startswith("0"):
        return raw
    return int(text)


class NUTMQTTBridge:
    def __init__(self, config: BridgeConfig, nut_client: Optional[NUTClient] = None):
        self.config = config
        self.availability_topic = f"{config.topic}/availability"

        transport = "websockets" if config.broker_protocol in _WEBSOCKET_PROTOCOLS else "tcp"
        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=config.client_id, transport=transport)
        if config.broker_protocol in _TLS_PROTOCOLS:
            self.client.tls_set()
        if config.username:
            self.client.username_pw_set(config.username, config.password or None)
        self.client.will_set(self.availability_topic, "offline", qos=1, retain=True)

        self.client.on_connect = self.on_connect
        self.client.on_disconnect = self.on_disconnect

        self.nut = nut_client
        self._stop_event = threading.Event()

    def on_connect(self, client, userdata, connect_flags, reason_code, properties):
        """Callback for when the client connects to the broker"""
        if reason_code == 0:
            log.info(f"Connected to MQTT broker at {self.config.broker_url}")
            self.client.publish(self.availability_topic, "online", qos=1, retain=True)
        else:
            log.error(f"Failed to connect to MQTT broker, return code {reason_code}")

    def on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        """Callback for when the client disconnects from the broker"""
        log.info(f"Disconnected from MQTT broker (code: {reason_code})")

    def connect(self) -> bool:
        """Connect to the MQTT broker and start the network loop"""
        try:
            log.info(f"Connecting to MQTT broker at {self.config.broker_url} ...")
            self.client.connect(self.config.broker_host, self.config.broker_port, keepalive=60)
            self.client.loop_start()
            return True
        except Exception as e:
            log.error(f"Failed to connect to MQTT broker: {e}")
            return False

    def _nut_client(self) -> NUTClient:
        if self.nut is None:
            self.nut = NUTClient(self.config.nut_host, self.config.nut_port)
        if not self.nut.connected:
            log.info(f"Connecting to NUT server at {self.config.nut_host}:{self.config.nut_port} ...")
            self.nut.connect()
            if self.config.nut_username and self.config.nut_password:
                log.debug("Authenticating with NUT server ...")
                self.nut.authenticate(self.config.nut_username, self.config.nut_password)
            else:
                log.debug("No NUT credentials provided. Skipping authentication ...")
        return self.nut

    def _drop_nut(self) -> None:
        if self.nut is not None:
            self.nut.close()

    def poll(self) -> Dict[str, Any]:
        """Read the first UPS from the NUT server and return its state document"""
        try:
            nut = self._nut_client()
            log.debug("Getting a list of all UPS devices ...")
            ups_list = nut.list_ups()
            if not ups_list:
                raise NUTError("NUT server reports no UPS devices")
            # TODO: publish every UPS instead of only the first one
            name, description = next(iter(ups_list.items()))
            number_of_logins = nut.get_num_logins(name)
            clients = nut.list_clients(name)
            variables = nut.list_vars(name)
            commands = nut.list_commands(name)
        except NUTError:
            # reconnect on the next poll
            self._drop_nut()
            raise
        return {
            "name": name,
            "description": description,
            "number_of_logins": number_of_logins,
            "clients": clients,
            "variables": {k: convert_value(v) for k, v in variables.items()},
            "commands": commands,
        }

    def publish(self, state: Dict[str, Any]) -> None:
        payload = json.dumps(state)
        result = self.client.publish(self.config.topic, payload, qos=0, retain=False)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            log.error(f"ERROR publishing state: {mqtt.error_string(result.rc)}")
            return
        log.debug(f"Published state to {self.config.topic}")

    def update(self) -> bool:
        """Run one poll/publish cycle. Returns True when a state was published"""
        if not self.client.is_connected():
            log.debug("MQTT client is not connected, skipping update ...")
            return False
        try:
            state = self.poll()
        except NUTError as exc:
            log.warning(f"Failed to read UPS from NUT server: {exc}")
            return False
        self.publish(state)
        return True

    def run(self) -> None:
        """Main loop - poll and publish every update_interval seconds until stop()"""
        if not self.connect():
            return
        log.info(f"Publishing UPS status every {self.config.update_interval} second(s)...")
        while not self._stop_event.is_set():
            self.update()
            log.debug(f"Sleeping for {self.config.update_interval} seconds ...")
            if self._stop_event.wait(self.config.update_interval):
                break

    def stop(self) -> None:
        """Publish offline, disconnect from the broker and close the NUT connection"""
        log.info("Shutting down ...")
        self._stop_event.set()
        if self.client.is_connected():
            info = self.client.publish(self.availability_topic, "offline", qos=1, retain=True)
            try:
                info.wait_for_publish(timeout=1.0)
            except (ValueError, RuntimeError) as exc:
                log.debug(f"offline message not confirmed: {exc}")
        self.client.loop_stop()
        self.client.disconnect()
        self._drop_nut()
        log.info("Shutdown complete")
