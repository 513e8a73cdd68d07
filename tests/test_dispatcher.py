"""
Tests for the protocol dispatcher (no sockets involved).
"""

import re

import pytest

from fakenut.device import DeviceRegistry, create_default_device, create_default_registry
from fakenut.dispatcher import INSTANT_COMMANDS, dispatch
from fakenut.parser import parse_line


@pytest.fixture
def registry():
    return create_default_registry()


def run(line, registry):
    return dispatch(parse_line(line), registry)


@pytest.mark.parametrize("line", ["FOO", "", "list ups", "help", "UPSDVER", "VERSION", " LIST UPS"])
def test_unknown_commands(line, registry):
    assert run(line, registry) == "ERR UNKNOWN-COMMAND\n"


def test_help(registry):
    assert run("HELP", registry) == (
        "Commands: HELP VER GET LIST SET INSTCMD LOGIN LOGOUT USERNAME PASSWORD STARTTLS\n"
    )


def test_ver(registry):
    assert run("VER", registry) == "Fake UPS Server\n"


@pytest.mark.parametrize(
    "line, expected",
    [
        ("GET NUMLOGINS FakeUPS", "NUMLOGINS FakeUPS 1\n"),
        ("GET NUMLOGINS", "ERR INVALID-ARGUMENT\n"),
        ("GET CMDDESC FakeUPS beeper.on", 'CMDDESC FakeUPS beeper.on "Description unavailable"\n'),
        ("GET CMDDESC FakeUPS", "ERR INVALID-ARGUMENT\n"),
        ("GET CMDDESC", "ERR INVALID-ARGUMENT\n"),
        ("GET UPSDESC FakeUPS", 'UPSDESC FakeUPS "Fake UPS Device"\n'),
        ("GET UPSDESC", "ERR INVALID-ARGUMENT\n"),
        # other subcommands fall back to NUMLOGINS
        ("GET VAR FakeUPS", "NUMLOGINS FakeUPS 1\n"),
        ("GET VAR", "ERR INVALID-ARGUMENT\n"),
    ],
)
def test_get(line, expected, registry):
    assert run(line, registry) == expected


def test_get_does_not_check_the_registry(registry):
    assert run("GET UPSDESC Other", registry) == 'UPSDESC Other "Fake UPS Device"\n'


def test_list_ups(registry):
    assert run("LIST UPS", registry) == (
        'BEGIN LIST UPS\nUPS FakeUPS "Description unavailable"\nEND LIST UPS\n'
    )


def test_list_ups_with_several_devices():
    registry = DeviceRegistry({"a": create_default_device(), "b": create_default_device()})
    lines = run("LIST UPS", registry).splitlines()
    assert lines[0] == "BEGIN LIST UPS"
    assert lines[-1] == "END LIST UPS"
    assert sorted(lines[1:-1]) == ['UPS a "Description unavailable"', 'UPS b "Description unavailable"']


def test_list_client(registry):
    assert run("LIST CLIENT FakeUPS", registry) == (
        "BEGIN LIST CLIENT FakeUPS\nCLIENT FakeUPS 127.0.0.1\nEND LIST CLIENT FakeUPS\n"
    )


def test_list_cmd(registry):
    lines = run("LIST CMD Whatever", registry).splitlines()
    assert lines[0] == "BEGIN LIST CMD Whatever"
    assert lines[-1] == "END LIST CMD Whatever"
    assert lines[1:-1] == [f"CMD Whatever {name}" for name in INSTANT_COMMANDS]
    assert len(lines[1:-1]) == 15


def test_list_var(registry):
    reply = run("LIST VAR FakeUPS", registry)
    assert reply.endswith("\n")
    lines = reply.splitlines()
    device = registry["FakeUPS"]
    assert len(lines) == 2 + len(device)
    assert lines[0] == "BEGIN LIST VAR FakeUPS"
    assert lines[-1] == "END LIST VAR FakeUPS"
    pattern = re.compile(r'^VAR FakeUPS (\S+) "(.*)"$')
    names = []
    for line in lines[1:-1]:
        match = pattern.match(line)
        assert match, line
        names.append(match.group(1))
    assert names == list(device.names)
    assert 'VAR FakeUPS input.frequency "50.0"' in lines
    assert 'VAR FakeUPS battery.charge "100"' in lines
    assert 'VAR FakeUPS driver.version.usb "libusb-1.0.0 (API: 0x1000102)"' in lines


def test_list_var_unknown_device(registry):
    reply = run("LIST VAR Nonexistent", registry)
    assert reply == (
        "BEGIN LIST VAR Nonexistent\nERR NOSUCHCMD Nonexistent\nEND LIST VAR Nonexistent\n"
    )
    assert run("LIST VAR Nonexistent", registry) == reply


@pytest.mark.parametrize("line", ["LIST VAR", "LIST CMD", "LIST CLIENT", "LIST", "LIST RW FakeUPS", "LIST ENUM FakeUPS x"])
def test_list_invalid_argument(line, registry):
    assert run(line, registry) == "ERR INVALID-ARGUMENT\n"


@pytest.mark.parametrize("line", ["SET", "SET VAR FakeUPS ups.id test", "SET anything"])
def test_set_is_always_refused(line, registry):
    assert run(line, registry) == "ERR INVALID ARGUMENT\n"


@pytest.mark.parametrize(
    "line, expected",
    [
        ("INSTCMD FakeUPS beeper.on", "ERR USERNAME-REQUIRED\n"),
        ("INSTCMD", "ERR USERNAME-REQUIRED\n"),
        ("LOGIN", "OK\n"),
        ("LOGIN FakeUPS", "OK\n"),
        ("LOGOUT", "OK\n"),
        ("USERNAME admin", "OK\n"),
        ("PASSWORD secret", "OK\n"),
        ("STARTTLS", "ERR FEATURE-NOT-CONFIGURED\n"),
    ],
)
def test_fixed_replies(line, expected, registry):
    assert run(line, registry) == expected
