# FakeNUT - Device Model & Registry
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Declares the telemetry variables of a simulated UPS as an ordered schema
# table and provides the read-only registry the protocol dispatcher serves.
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

"""Device model and registry for simulated UPS devices.

A device is a fixed, ordered table of NUT variables. Each row carries the
dotted NUT name, the value and (for floats) the number of decimals used when
the value is written to the wire. The order of the table is the order in
which `LIST VAR` reports the variables.

Key objects
- Variable: one (name, value, precision) row.
- DeviceModel: an immutable, ordered collection of variables.
- DeviceRegistry: an immutable mapping of device name -> DeviceModel.
- create_default_device() / create_default_registry(): the baseline
  snapshot served by the emulator ("FakeUPS", on line, battery full).
"""
from __future__ import annotations

from collections import abc
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, NamedTuple, Optional, Tuple, Union

Value = Union[int, float, str]

DEFAULT_DEVICE_NAME = "FakeUPS"

# Decimal digits used for float values unless a row says otherwise
FLOAT_PRECISION = 1


class Variable(NamedTuple):
    """A single named NUT variable."""

    name: str
    value: Value
    precision: Optional[int] = None

    def format(self) -> str:
        """Return the value the way it is written inside the quotes of a VAR line."""
        if isinstance(self.value, float):
            digits = FLOAT_PRECISION if self.precision is None else self.precision
            return f"{self.value:.{digits}f}"
        return str(self.value)


class DeviceModel:
    """An ordered, read-only set of NUT variables."""

    def __init__(self, variables: Iterable[Union[Variable, Tuple]]):
        rows = tuple(v if isinstance(v, Variable) else Variable(*v) for v in variables)
        index: Dict[str, Variable] = {}
        for row in rows:
            if row.value is None:
                raise ValueError(f"variable {row.name!r} has no value")
            if row.name in index:
                raise ValueError(f"duplicate variable {row.name!r}")
            index[row.name] = row
        self._variables = rows
        self._index = index

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __repr__(self) -> str:
        return f"DeviceModel({len(self._variables)} variables)"

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(v.name for v in self._variables)

    def get(self, name: str) -> Optional[Variable]:
        return self._index.get(name)

    def value(self, name: str) -> Value:
        """Return the raw value of `name`; raises KeyError for unknown names."""
        return self._index[name].value

    def items(self) -> Iterator[Tuple[str, str]]:
        """Yield (name, formatted value) pairs in declared order."""
        for v in self._variables:
            yield v.name, v.format()


# Baseline snapshot, grouped as battery, device, driver, input, output, ups.
DEFAULT_VARIABLES: Tuple[Variable, ...] = (
    Variable("battery.charge", 100),
    Variable("battery.charge.low", 20),
    Variable("battery.charge.warning", 25),
    Variable("battery.mfr.date", "1"),
    Variable("battery.runtime", 1620),
    Variable("battery.runtime.low", 300),
    Variable("battery.type", "PbAcid"),
    Variable("battery.voltage", 26),
    Variable("battery.voltage.nominal", 24),
    Variable("device.mfr", "1"),
    Variable("device.model", "FakeNUT Server"),
    Variable("device.serial", "000000000000"),
    Variable("device.type", "ups"),
    Variable("driver.name", "usbhid-ups"),
    Variable("driver.parameter.pollfreq", 40),
    Variable("driver.parameter.pollinterval", 2),
    Variable("driver.parameter.port", "auto"),
    Variable("driver.parameter.synchronous", "auto"),
    Variable("driver.version", "2.8.0"),
    Variable("driver.version.data", "FakeNUT Server"),
    Variable("driver.version.internal", "0.47"),
    Variable("driver.version.usb", "libusb-1.0.0 (API: 0x1000102)"),
    Variable("input.frequency", 50.0),
    Variable("input.transfer.high", 290),
    Variable("input.transfer.low", 165),
    Variable("input.voltage", 232.6),
    Variable("input.voltage.nominal", 230),
    Variable("output.frequency", 50.0),
    Variable("output.voltage", 2.3),
    Variable("ups.beeper.status", "disabled"),
    Variable("ups.delay.shutdown", 20),
    Variable("ups.delay.start", 30),
    Variable("ups.load", 12),
    Variable("ups.mfr", "1"),
    Variable("ups.model", "2200R"),
    Variable("ups.productid", "0601"),
    Variable("ups.realpower.nominal", 1320),
    Variable("ups.serial", "000000000000"),
    Variable("ups.status", "OL"),
    Variable("ups.timer.shutdown", -60),
    Variable("ups.timer.start", -60),
    Variable("ups.vendorid", "0764"),
)


def create_default_device() -> DeviceModel:
    return DeviceModel(DEFAULT_VARIABLES)


class DeviceRegistry(abc.Mapping):
    """Read-only mapping of device name -> DeviceModel.

    The registry is filled once when it is created and cannot be changed
    afterwards, so connection threads can read it concurrently without locks.
    """

    def __init__(self, devices: Mapping[str, DeviceModel]):
        self._devices = MappingProxyType(dict(devices))

    def __getitem__(self, name: str) -> DeviceModel:
        return self._devices[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._devices)

    def __len__(self) -> int:
        return len(self._devices)

    def __repr__(self) -> str:
        return f"DeviceRegistry({list(self._devices)!r})"

    def lookup(self, name: str) -> Optional[DeviceModel]:
        """Return the device called `name`, or None when it is not registered."""
        return self._devices.get(name)


def create_default_registry() -> DeviceRegistry:
    return DeviceRegistry({DEFAULT_DEVICE_NAME: create_default_device()})
