# FakeNUT - Command Dispatcher
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Maps parsed NUT requests to protocol responses using the read-only device
# registry. The dispatcher never touches sockets; the connection server
# writes whatever text it returns.
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

"""fakenut.dispatcher

dispatch(cmd, registry) -> str: build the complete reply to one request.

Every reply is one or more newline-terminated lines. LIST replies are framed
as a bracketed block::

    BEGIN LIST VAR FakeUPS
    VAR FakeUPS battery.charge "100"
    ...
    END LIST VAR FakeUPS

Error taxonomy (literals are matched byte-for-byte by clients)
- ERR INVALID-ARGUMENT: a required positional argument is missing, or LIST
  was given an unknown subcommand.
- ERR NOSUCHCMD <name>: LIST VAR for a device that is not registered.
- ERR INVALID ARGUMENT: SET is always refused (note the space).
- ERR USERNAME-REQUIRED: INSTCMD is always refused; login never sticks.
- ERR FEATURE-NOT-CONFIGURED: STARTTLS is always refused.
- ERR UNKNOWN-COMMAND: anything not in the command table.

LOGIN, LOGOUT, USERNAME and PASSWORD always answer OK and keep no state.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable

from .device import DeviceRegistry
from .parser import ParsedCommand

log = logging.getLogger(__name__)

SERVER_VERSION = "Fake UPS Server"
UPS_DESCRIPTION = "Fake UPS Device"
DESCRIPTION_UNAVAILABLE = "Description unavailable"
CLIENT_ADDRESS = "127.0.0.1"

OK = "OK"
ERR_INVALID_ARGUMENT = "ERR INVALID-ARGUMENT"
ERR_SET_REFUSED = "ERR INVALID ARGUMENT"
ERR_NO_SUCH_CMD = "ERR NOSUCHCMD"
ERR_USERNAME_REQUIRED = "ERR USERNAME-REQUIRED"
ERR_FEATURE_NOT_CONFIGURED = "ERR FEATURE-NOT-CONFIGURED"
ERR_UNKNOWN_COMMAND = "ERR UNKNOWN-COMMAND"

# Instant commands advertised by LIST CMD for every device
INSTANT_COMMANDS = (
    "beeper.disable",
    "beeper.enable",
    "beeper.mute",
    "beeper.off",
    "beeper.on",
    "load.off",
    "load.off.delay",
    "load.on",
    "load.on.delay",
    "shutdown.return",
    "shutdown.stayoff",
    "shutdown.stop",
    "test.battery.start.deep",
    "test.battery.start.quick",
    "test.battery.stop",
)

Handler = Callable[[ParsedCommand, DeviceRegistry], str]


def _reply(*lines: str) -> str:
    return "".join(line + "\n" for line in lines)


def _block(header: str, body: Iterable[str]) -> str:
    return _reply(f"BEGIN LIST {header}", *body, f"END LIST {header}")


def _help(cmd: ParsedCommand, registry: DeviceRegistry) -> str:
    return _reply("Commands: " + " ".join(COMMANDS))


def _ver(cmd: ParsedCommand, registry: DeviceRegistry) -> str:
    return _reply(SERVER_VERSION)


def _get(cmd: ParsedCommand, registry: DeviceRegistry) -> str:
    sub, device = cmd.arg1, cmd.arg2
    if not device:
        return _reply(ERR_INVALID_ARGUMENT)
    if sub == "CMDDESC":
        if not cmd.arg3:
            return _reply(ERR_INVALID_ARGUMENT)
        return _reply(f'CMDDESC {device} {cmd.arg3} "{DESCRIPTION_UNAVAILABLE}"')
    if sub == "UPSDESC":
        return _reply(f'UPSDESC {device} "{UPS_DESCRIPTION}"')
    # NUMLOGINS, and every other GET subcommand answers the same way
    return _reply(f"NUMLOGINS {device} 1")


def _list_ups(registry: DeviceRegistry) -> str:
    return _block("UPS", (f'UPS {name} "{DESCRIPTION_UNAVAILABLE}"' for name in registry))


def _list_var(device: str, registry: DeviceRegistry) -> str:
    header = f"VAR {device}"
    model = registry.lookup(device)
    if model is None:
        # The block is still closed so clients reading up to END LIST do not hang
        log.debug("LIST VAR for unknown device %r", device)
        return _block(header, [f"{ERR_NO_SUCH_CMD} {device}"])
    return _block(header, (f'VAR {device} {name} "{value}"' for name, value in model.items()))


def _list(cmd: ParsedCommand, registry: DeviceRegistry) -> str:
    sub, device = cmd.arg1, cmd.arg2
    if sub == "UPS":
        return _list_ups(registry)
    if sub not in ("CLIENT", "CMD", "VAR") or not device:
        return _reply(ERR_INVALID_ARGUMENT)
    if sub == "VAR":
        return _list_var(device, registry)
    if sub == "CLIENT":
        return _block(f"CLIENT {device}", [f"CLIENT {device} {CLIENT_ADDRESS}"])
    return _block(f"CMD {device}", (f"CMD {device} {name}" for name in INSTANT_COMMANDS))


def _fixed(line: str) -> Handler:
    def handler(cmd: ParsedCommand, registry: DeviceRegistry) -> str:
        return _reply(line)
    return handler


# Order matters: HELP lists the commands in this order
COMMANDS: Dict[str, Handler] = {
    "HELP": _help,
    "VER": _ver,
    "GET": _get,
    "LIST": _list,
    "SET": _fixed(ERR_SET_REFUSED),
    "INSTCMD": _fixed(ERR_USERNAME_REQUIRED),
    "LOGIN": _fixed(OK),
    "LOGOUT": _fixed(OK),
    "USERNAME": _fixed(OK),
    "PASSWORD": _fixed(OK),
    "STARTTLS": _fixed(ERR_FEATURE_NOT_CONFIGURED),
}


def dispatch(cmd: ParsedCommand, registry: DeviceRegistry) -> str:
    """Return the full response text for one parsed request."""
    handler = COMMANDS.get(cmd.command)
    if handler is None:
        log.debug("unknown command %r", cmd.command)
        return _reply(ERR_UNKNOWN_COMMAND)
    return handler(cmd, registry)
