# FakeNUT - NUT Protocol Client
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# A small blocking client for the NUT upsd line protocol, used by the MQTT
# bridge to poll a server and by the tests to talk to the emulator.
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

"""fakenut.client

NUTClient keeps one TCP connection to a NUT server and issues one request
at a time. Single-line replies are returned as text; LIST requests read the
whole `BEGIN LIST ... / END LIST ...` block.

Errors
- NUTError: connection problems and unexpected framing.
- NUTProtocolError: the server answered `ERR <token> [detail]`; the token
  is available as `.code`.
"""
from __future__ import annotations

import socket
import logging
from typing import Dict, List, Optional

log = logging.getLogger(__name__)


class NUTError(Exception):
    """Base exception for NUT client errors."""


class NUTProtocolError(NUTError):
    """The server replied with an ERR line."""

    def __init__(self, line: str):
        parts = line.split(" ", 2)
        self.code = parts[1] if len(parts) > 1 else ""
        self.detail = parts[2] if len(parts) > 2 else ""
        super().__init__(line)


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        text = text[1:-1]
    return text.replace('\\"', '"').replace("\\\\", "\\")


class NUTClient:
    """Blocking client for one NUT server connection."""

    def __init__(self, host: str = "localhost", port: int = 3493, timeout: Optional[float] = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None
        self._reader = None

    def __enter__(self) -> "NUTClient":
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        if self._sock is not None:
            return
        log.debug("connecting to NUT server at %s:%s", self.host, self.port)
        try:
            self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as exc:
            raise NUTError(f"failed to connect to {self.host}:{self.port}: {exc}") from exc
        self._reader = self._sock.makefile("rb")

    def close(self) -> None:
        """Send LOGOUT (best effort) and close the connection."""
        if self._sock is None:
            return
        try:
            self._sock.sendall(b"LOGOUT\n")
        except OSError as exc:
            log.debug("LOGOUT failed: %s", exc)
        self._reader.close()
        self._sock.close()
        self._sock = None
        self._reader = None

    # Low-level line I/O
    def _send(self, line: str) -> None:
        if self._sock is None:
            raise NUTError("not connected")
        try:
            self._sock.sendall((line + "\n").encode("utf-8"))
        except OSError as exc:
            raise NUTError(f"send failed: {exc}") from exc

    def _read_line(self) -> str:
        try:
            raw = self._reader.readline()
        except OSError as exc:
            raise NUTError(f"read failed: {exc}") from exc
        if not raw:
            raise NUTError("connection closed by server")
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        if line.startswith("ERR "):
            raise NUTProtocolError(line)
        return line

    def command(self, line: str) -> str:
        """Send one request and return its single-line reply."""
        self._send(line)
        return self._read_line()

    def list_block(self, query: str) -> List[str]:
        """Send `LIST <query>` and return the lines between BEGIN and END."""
        self._send(f"LIST {query}")
        first = self._read_line()
        if first != f"BEGIN LIST {query}":
            raise NUTError(f"unexpected reply to LIST {query}: {first!r}")
        end = f"END LIST {query}"
        lines: List[str] = []
        pending: Optional[NUTProtocolError] = None
        while True:
            try:
                line = self._read_line()
            except NUTProtocolError as exc:
                # keep reading so the block is consumed before raising
                pending = pending or exc
                continue
            if line == end:
                break
            lines.append(line)
        if pending is not None:
            raise pending
        return lines

    def _expect_ok(self, line: str) -> None:
        reply = self.command(line)
        if reply != "OK":
            raise NUTError(f"unexpected reply to {line.split(' ', 1)[0]}: {reply!r}")

    # Protocol helpers
    def authenticate(self, username: str, password: str) -> None:
        self._expect_ok(f"USERNAME {username}")
        self._expect_ok(f"PASSWORD {password}")

    def version(self) -> str:
        return self.command("VER")

    def help(self) -> str:
        return self.command("HELP")

    def list_ups(self) -> Dict[str, str]:
        """Return a mapping of UPS name -> description."""
        out: Dict[str, str] = {}
        for line in self.list_block("UPS"):
            # UPS <name> "<description>"
            _, name, desc = line.split(" ", 2)
            out[name] = _unquote(desc)
        return out

    def list_vars(self, ups: str) -> Dict[str, str]:
        """Return the variables of `ups` as name -> value strings, in server order."""
        prefix = f"VAR {ups} "
        out: Dict[str, str] = {}
        for line in self.list_block(f"VAR {ups}"):
            if not line.startswith(prefix):
                raise NUTError(f"unexpected line in LIST VAR: {line!r}")
            name, value = line[len(prefix):].split(" ", 1)
            out[name] = _unquote(value)
        return out

    def list_commands(self, ups: str) -> List[str]:
        return [line.split(" ", 2)[2] for line in self.list_block(f"CMD {ups}")]

    def list_clients(self, ups: str) -> List[str]:
        return [line.split(" ", 2)[2] for line in self.list_block(f"CLIENT {ups}")]

    def get_num_logins(self, ups: str) -> int:
        reply = self.command(f"GET NUMLOGINS {ups}")
        return int(reply.rsplit(" ", 1)[1])

    def get_description(self, ups: str) -> str:
        reply = self.command(f"GET UPSDESC {ups}")
        return _unquote(reply.split(" ", 2)[2])

    def get_command_description(self, ups: str, command: str) -> str:
        reply = self.command(f"GET CMDDESC {ups} {command}")
        return _unquote(reply.split(" ", 3)[3])
