# FakeNUT - NUT Server Emulator
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# This package emulates the server side of the Network UPS Tools (upsd)
# line protocol over TCP, serving a static snapshot of simulated UPS
# devices, and ships a small client plus a NUT-to-MQTT bridge.
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

"""FakeNUT: a NUT-compatible test endpoint

This package lets monitoring agents, dashboards and bridges be exercised
against a NUT-compatible endpoint without real UPS hardware. It exposes:

- `FakeNUTServer`: a thread-per-connection TCP server answering HELP, VER,
  GET, LIST, SET, INSTCMD, LOGIN/LOGOUT/USERNAME/PASSWORD and STARTTLS.
- `parse_line`, `dispatch`: the request tokenizer and the pure
  request -> response function the server is built on.
- `DeviceModel`, `DeviceRegistry`, `create_default_registry`: the static
  device snapshot ("FakeUPS") that is served.
- `NUTClient`: a blocking client for the same protocol.

The MQTT bridge lives in `fakenut.bridge` and is imported on demand so the
server does not need paho-mqtt at runtime.
"""

from .client import NUTClient, NUTError, NUTProtocolError
from .config import BridgeConfig, ServerConfig
from .device import (
    DEFAULT_DEVICE_NAME,
    DeviceModel,
    DeviceRegistry,
    Variable,
    create_default_device,
    create_default_registry,
)
from .dispatcher import dispatch
from .parser import ParsedCommand, parse_line
from .server import FakeNUTServer

__all__ = [
    "FakeNUTServer",
    "ParsedCommand",
    "parse_line",
    "dispatch",
    "Variable",
    "DeviceModel",
    "DeviceRegistry",
    "DEFAULT_DEVICE_NAME",
    "create_default_device",
    "create_default_registry",
    "NUTClient",
    "NUTError",
    "NUTProtocolError",
    "ServerConfig",
    "BridgeConfig",
]
__version__ = "0.1.0"
