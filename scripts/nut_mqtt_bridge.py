#!/usr/bin/env python3
# FakeNUT - NUT to MQTT Bridge
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Polls a NUT server for UPS telemetry and publishes it as JSON to an MQTT
# broker at a fixed interval.
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

Reads the first UPS of a NUT server (real or fake) and publishes its
variables and instant commands to an MQTT topic.

Settings come from the environment (MQTT_BROKER_PROTOCOL, MQTT_BROKER_HOST,
MQTT_BROKER_PORT, MQTT_CLIENT, MQTT_TOPIC, MQTT_USER, MQTT_PASS, NUT_SERVER,
NUT_PORT, NUT_USER, NUT_PASS, UPDATE_INTERVAL, VERBOSE); the flags below
override them.

Usage:
    scripts/nut_mqtt_bridge.py --nut-host localhost --broker-host 192.168.1.10 --interval 15
"""

import sys
import signal
import logging
import argparse

from pydantic import ValidationError

from fakenut.bridge import NUTMQTTBridge
from fakenut.config import BridgeConfig

log = logging.getLogger(__name__)


def main():
    """Main entry point"""
    try:
        config = BridgeConfig()
    except ValidationError as e:
        print(f"Environment Configuration Error: {e}", file=sys.stderr)
        sys.exit(1)

    parser = argparse.ArgumentParser(description="Publish NUT UPS data to an MQTT broker")
    parser.add_argument("--nut-host", default=config.nut_host, help=f"NUT server hostname or IP (default: {config.nut_host})")
    parser.add_argument("--nut-port", default=config.nut_port, type=int, help=f"NUT server port (default: {config.nut_port})")
    parser.add_argument("--broker-host", default=config.broker_host, help=f"MQTT broker hostname or IP (default: {config.broker_host})")
    parser.add_argument("--broker-port", default=config.broker_port, type=int, help=f"MQTT broker port (default: {config.broker_port})")
    parser.add_argument("--topic", default=config.topic, help=f"MQTT topic (default: {config.topic})")
    parser.add_argument("--interval", default=config.update_interval, type=int, help=f"Publish interval in seconds (default: {config.update_interval})")
    parser.add_argument("--verbose", action="store_true", default=config.verbose, help="Enable verbose (DEBUG) logging")
    args = parser.parse_args()

    if args.interval <= 0:
        parser.error("--interval must be > 0")

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    log_format = '[%(asctime)s] %(levelname)s: %(message)s'
    logging.basicConfig(level=log_level, format=log_format, datefmt='%H:%M:%S')

    config = config.model_copy(
        update={
            "nut_host": args.nut_host,
            "nut_port": args.nut_port,
            "broker_host": args.broker_host,
            "broker_port": args.broker_port,
            "topic": args.topic,
            "update_interval": args.interval,
            "verbose": args.verbose,
        }
    )
    bridge = NUTMQTTBridge(config)

    def signal_handler(sig, frame):
        """Handle termination signals gracefully (SIGINT from Ctrl+C, SIGTERM from kill)"""
        log.info(f"Received signal {sig}, stopping")
        bridge.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    bridge.run()


if __name__ == "__main__":
    main()
