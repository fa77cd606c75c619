#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers.

Test the configuration schemas, and the gateway's (re-)configuration.
"""

from dataclasses import FrozenInstanceError

import pytest
import voluptuous as vol

from fs20_rf import Gateway, GatewayConfig
from fs20_rf import exceptions as exc
from fs20_rf.schemas import SCH_GATEWAY_CONFIG, SCH_GLOBAL_CONFIG
from fs20_tx import DimMode
from fs20_tx.schemas import SCH_SERIAL_PORT_CONFIG

SERIAL_PORT = "/dev/ttyUSB0"


def test_gateway_schema() -> None:
    assert SCH_GATEWAY_CONFIG({}) == {
        "disable_sending": False,
        "frame_log": None,
    }

    config = SCH_GATEWAY_CONFIG(
        {
            "device": f" {SERIAL_PORT} ",
            "baudrate": "38400",
            "parity": "even",
            "refresh": "1000",
            "dimmode": "inc_dec",
            "frame_log": "fs20.log",
            "something_else": True,  # e.g. options for other bindings
        }
    )
    assert config == {
        "device": SERIAL_PORT,
        "baudrate": 38400,
        "parity": "E",
        "refresh": 1000,
        "dimmode": "INC_DEC",
        "disable_sending": False,
        "frame_log": {"file_name": "fs20.log", "rotate_backups": 0, "rotate_bytes": None},
    }


@pytest.mark.parametrize(
    "config",
    ({"baudrate": 12345}, {"parity": "NO"}, {"refresh": 0}, {"refresh": "soon"}),
)
def test_gateway_schema_invalid(config: dict) -> None:
    with pytest.raises(vol.Invalid):
        SCH_GATEWAY_CONFIG(config)


def test_global_schema() -> None:
    assert SCH_GLOBAL_CONFIG({}) == {"config": {}, "bindings": {}}

    config = SCH_GLOBAL_CONFIG(
        {
            "config": {"device": SERIAL_PORT},
            "bindings": {"Lamp1": {"address": "1234 01", "room": "hall"}},
        }
    )
    assert config["bindings"] == {"Lamp1": {"address": "123401", "room": "hall"}}

    for bad_config in (
        {"known_list": {}},
        {"bindings": {"Lamp1": {"address": "1234"}}},
        {"bindings": {"": {"address": "123401"}}},
    ):
        with pytest.raises(vol.Invalid):
            SCH_GLOBAL_CONFIG(bad_config)


def test_serial_port_schema() -> None:
    assert SCH_SERIAL_PORT_CONFIG({}) == {"baudrate": 9600, "parity": "N", "timeout": 0}
    assert SCH_SERIAL_PORT_CONFIG({"parity": "O"})["parity"] == "O"


async def test_gateway_config() -> None:
    gwy = Gateway(SERIAL_PORT)

    assert gwy.config == GatewayConfig(device=SERIAL_PORT)
    assert gwy.config.port_config == {"baudrate": 9600, "parity": "N", "timeout": 0}
    assert gwy.config.dim_mode == DimMode.UP_DOWN
    assert gwy.config.refresh_interval == 60000

    with pytest.raises(FrozenInstanceError):
        gwy.config.baudrate = 38400  # type: ignore[misc]

    gwy = Gateway(config={"device": SERIAL_PORT, "dimmode": "INC_DEC"})
    assert gwy.ser_name == SERIAL_PORT
    assert gwy.config.dim_mode == DimMode.INC_DEC


async def test_gateway_config_invalid() -> None:
    with pytest.raises(exc.ConfigurationError):
        Gateway()  # there is no device

    with pytest.raises(exc.ConfigurationError):
        Gateway(SERIAL_PORT, config={"baudrate": 12345})

    with pytest.raises(exc.BindingConfigInvalid):
        Gateway(
            SERIAL_PORT,
            bindings={"Lamp1": {"address": "123401"}, "Lamp2": {"address": "123401"}},
        )


async def test_gateway_updated() -> None:
    gwy = Gateway(SERIAL_PORT)

    assert gwy.updated(None) is False

    with pytest.raises(exc.ConfigurationError):
        gwy.updated({"dimmode": "INC_DEC"})  # there is no device

    assert gwy.updated({"device": SERIAL_PORT, "dimmode": "INC_DEC"}) is False
    assert gwy.config.dim_mode == DimMode.INC_DEC

    assert gwy.updated({"device": SERIAL_PORT, "dimmode": "SIDEWAYS"}) is False
    assert gwy.config.dim_mode == DimMode.INC_DEC  # the previous value is retained

    assert gwy.updated({"device": SERIAL_PORT, "refresh": 500}) is False
    assert gwy.config.refresh_interval == 500
    assert gwy.updated({"device": SERIAL_PORT}) is False
    assert gwy.config.refresh_interval == 500  # the previous value is retained

    assert gwy.updated({"device": SERIAL_PORT, "baudrate": 38400}) is True
    assert gwy._port_config["baudrate"] == 38400

    assert gwy.updated({"device": "/dev/ttyUSB1", "baudrate": 38400}) is True
    assert gwy.ser_name == "/dev/ttyUSB1"


async def test_gateway_updated_is_atomic() -> None:
    gwy = Gateway(SERIAL_PORT)
    config = gwy.config

    with pytest.raises(exc.ConfigurationError):
        gwy.updated({"device": SERIAL_PORT, "parity": "WRONG"})

    assert gwy.config is config  # unchanged
