import socket

import pytest

from fakenut import FakeNUTServer, NUTClient
from fakenut.config import ServerConfig

CONFIG_VARIABLES = (
    "NUT_SERVER",
    "NUT_PORT",
    "NUT_USER",
    "NUT_PASS",
    "VERBOSE",
    "MQTT_BROKER_PROTOCOL",
    "MQTT_BROKER_HOST",
    "MQTT_BROKER_PORT",
    "MQTT_CLIENT",
    "MQTT_TOPIC",
    "MQTT_USER",
    "MQTT_PASS",
    "UPDATE_INTERVAL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Run every test without settings from the caller's environment or a stray .env file."""
    for name in CONFIG_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def server():
    """A fake NUT server on an ephemeral localhost port."""
    srv = FakeNUTServer(host="127.0.0.1", port=0, config=ServerConfig())
    srv.start()
    yield srv
    srv.stop()


@pytest.fixture
def nut_client(server):
    host, port = server.address
    with NUTClient(host, port, timeout=5.0) as client:
        yield client


def _recv_lines(sock_file, count):
    return [sock_file.readline().decode("utf-8") for _ in range(count)]


@pytest.fixture
def raw_conn(server):
    """Raw socket + line reader to check replies byte-for-byte."""
    sock = socket.create_connection(server.address, timeout=5.0)
    reader = sock.makefile("rb")

    class Conn:
        def send(self, data) -> None:
            if isinstance(data, str):
                data = data.encode("utf-8")
            sock.sendall(data)

        def request(self, line: str, lines: int = 1) -> str:
            self.send(line + "\n")
            return "".join(_recv_lines(reader, lines))

        def readline(self) -> str:
            return reader.readline().decode("utf-8")

    yield Conn()
    reader.close()
    sock.close()
