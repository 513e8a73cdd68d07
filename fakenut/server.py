# FakeNUT - Connection Server
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Provides the FakeNUTServer class: a threaded TCP listener that speaks the
# NUT upsd line protocol, reading newline-terminated commands and answering
# from a static device registry.
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

"""fakenut.server

FakeNUTServer: a TCP server that emulates the request/response side of the
NUT `upsd` daemon so clients can be tested without UPS hardware.

High-level responsibilities
- Listen on host:port (default localhost:3493, overridable with the
  NUT_SERVER / NUT_PORT environment variables or constructor arguments).
- Accept connections and hand each one to its own daemon thread so a slow
  client never holds up the accept loop.
- For every newline-terminated line: strip it, parse it, dispatch it and
  write the whole reply with a single sendall().

Connection lifecycle
- Reading -> Dispatching -> Writing -> Reading ... until the peer closes,
  a read fails or a write fails; then the socket is closed. Errors only end
  the affected connection.
- Accepted sockets have no timeout. A client that never sends a newline
  keeps its thread until it disconnects.

Thread safety
- The device registry is read-only after construction and every
  connection only touches its own socket.
- Binding and closing the listener happen under one lock. The accept
  thread is handed the bound listener and never binds one itself, so a
  stop() right after start() cannot be undone by the accept thread.
- stop() closes the listener; it does not drain or close live connections.
"""
from __future__ import annotations

import socket
import threading
import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .device import DeviceRegistry, create_default_registry
from .dispatcher import dispatch
from .parser import parse_line

log = logging.getLogger(__name__)


class FakeNUTServer:
    """Serve a NUT-compatible endpoint backed by a static device registry."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        registry: Optional[DeviceRegistry] = None,
        verbose: Optional[bool] = None,
        config: Optional[ServerConfig] = None,
    ):
        # Environment is consulted once, here; explicit arguments win
        if config is None:
            config = ServerConfig()
        self.host = config.host if host is None else host
        self.port = config.port if port is None else int(port)
        self.verbose = config.verbose if verbose is None else verbose

        self.registry = create_default_registry() if registry is None else registry

        self._lock = threading.Lock()
        self._listener: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """The bound (host, port) once listening, else None."""
        listener = self._listener
        if listener is None:
            return None
        try:
            host, port = listener.getsockname()[:2]
        except OSError:
            # closed by a concurrent stop()
            return None
        return host, port

    def _open(self) -> Tuple[socket.socket, Tuple[str, int]]:
        # Binding and stop() both hold the lock, so the listener returned
        # here is still open when its address is read.
        with self._lock:
            if self._listener is None:
                try:
                    self._listener = socket.create_server((self.host, self.port))
                except OSError as exc:
                    raise OSError(
                        exc.errno, f"Fake NUT server failed to start server on {self.host}:{self.port}: {exc.strerror}"
                    ) from exc
                self._stop_event.clear()
                log.info("Fake NUT server listening on %s:%s", *self._listener.getsockname()[:2])
            listener = self._listener
            host, port = listener.getsockname()[:2]
        return listener, (host, port)

    def listen(self) -> Tuple[str, int]:
        """Bind and listen if not done yet; returns the bound address."""
        return self._open()[1]

    def serve_forever(self) -> None:
        """Run the accept loop in the calling thread until stop() is called."""
        listener, _ = self._open()
        self._serve(listener)

    def start(self) -> Tuple[str, int]:
        """Listen and run the accept loop in a background daemon thread."""
        listener, address = self._open()
        if self._thread and self._thread.is_alive():
            return address
        self._thread = threading.Thread(target=self._serve, args=(listener,), daemon=True, name="fakenut-server")
        self._thread.start()
        return address

    def _serve(self, listener: socket.socket) -> None:
        # Only ever accepts on the listener it was given; a closed listener ends the loop.
        while not self._stop_event.is_set():
            try:
                conn, peer = listener.accept()
            except OSError as exc:
                if self._stop_event.is_set() or listener.fileno() < 0:
                    break
                log.warning("Fake NUT server error accepting connection: %s", exc)
                continue
            log.debug("accepted connection from %s:%s", *peer[:2])
            th = threading.Thread(
                target=self._handle_connection,
                args=(conn, peer),
                daemon=True,
                name=f"fakenut-conn-{peer[0]}:{peer[1]}",
            )
            th.start()
        log.debug("accept loop finished")

    def stop(self) -> None:
        """Stop accepting new connections.

        Graceful shutdown is not implemented: connections that are already
        open keep running until their peers disconnect.
        """
        log.info("NOTICE: Fake NUT server graceful shutdown not implemented, live connections are not drained")
        with self._lock:
            self._stop_event.set()
            listener, self._listener = self._listener, None
            if listener is not None:
                try:
                    # wakes a thread blocked in accept()
                    listener.shutdown(socket.SHUT_RDWR)
                except OSError as exc:
                    log.debug("listener shutdown: %s", exc)
                listener.close()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)

    def handle_line(self, line: str) -> str:
        """Return the reply for one raw request line."""
        return dispatch(parse_line(line.strip()), self.registry)

    def _handle_connection(self, conn: socket.socket, peer) -> None:
        peer_name = f"{peer[0]}:{peer[1]}"
        with conn, conn.makefile("rb") as reader:
            while True:
                try:
                    raw = reader.readline()
                except OSError as exc:
                    log.warning("Fake NUT server error reading from %s: %s", peer_name, exc)
                    return
                if not raw.endswith(b"\n"):
                    # EOF; a trailing fragment without newline is never a command
                    log.debug("connection from %s closed", peer_name)
                    return

                command = raw.decode("utf-8", errors="replace").strip()
                if self.verbose:
                    log.info("Fake NUT server received command from %s: %s", peer_name, command)

                response = self.handle_line(command)
                try:
                    conn.sendall(response.encode("utf-8"))
                except OSError as exc:
                    log.warning("Fake NUT server error writing to %s: %s", peer_name, exc)
                    return
