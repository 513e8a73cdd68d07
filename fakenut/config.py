# FakeNUT - Configuration
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Environment-driven settings for the emulator and the NUT-to-MQTT bridge.
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


"""Settings loaded from environment variables.

Both settings classes use Pydantic's BaseSettings. Values come from the
process environment first, then from a `.env` file in the working
directory, then from the defaults below. Field names are the Python names;
each one reads the environment variable given as its alias. Invalid values
raise `pydantic.ValidationError`. Nothing here is global: callers build and
pass the objects.
"""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3493


class ServerConfig(BaseSettings):
    """Listen address of the emulator."""

    host: str = Field(DEFAULT_HOST, validation_alias="NUT_SERVER")
    port: int = Field(DEFAULT_PORT, validation_alias="NUT_PORT")
    verbose: bool = Field(False, validation_alias="VERBOSE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )


class BridgeConfig(BaseSettings):
    """Settings for polling a NUT server and publishing to an MQTT broker."""

    # MQTT broker
    broker_protocol: str = Field("tcp", validation_alias="MQTT_BROKER_PROTOCOL")
    broker_host: str = Field("localhost", validation_alias="MQTT_BROKER_HOST")
    broker_port: int = Field(1883, validation_alias="MQTT_BROKER_PORT")
    client_id: str = Field("nuttyqt", validation_alias="MQTT_CLIENT")
    topic: str = Field("nuttyqt", validation_alias="MQTT_TOPIC")
    username: str = Field("", validation_alias="MQTT_USER")
    password: str = Field("", validation_alias="MQTT_PASS")

    # NUT server
    nut_host: str = Field(DEFAULT_HOST, validation_alias="NUT_SERVER")
    nut_port: int = Field(DEFAULT_PORT, validation_alias="NUT_PORT")
    nut_username: str = Field("", validation_alias="NUT_USER")
    nut_password: str = Field("", validation_alias="NUT_PASS")

    update_interval: int = Field(60, gt=0, validation_alias="UPDATE_INTERVAL")  # seconds
    verbose: bool = Field(False, validation_alias="VERBOSE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def broker_url(self) -> str:
        return f"{self.broker_protocol}://{self.broker_host}:{self.broker_port}"
