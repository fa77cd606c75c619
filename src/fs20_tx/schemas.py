#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers.

Schema processor for protocol (lower) layer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Final, TypedDict

import voluptuous as vol
from serial import (  # type: ignore[import-untyped]
    PARITY_EVEN,
    PARITY_MARK,
    PARITY_NONE,
    PARITY_ODD,
    PARITY_SPACE,
)

from .const import BAUDRATES, DEFAULT_BAUDRATE, DEFAULT_PARITY, SZ_BAUDRATE, SZ_PARITY

_LOGGER = logging.getLogger(__name__)


#
# 1/3: Frame log configuration
SZ_FILE_NAME: Final = "file_name"
SZ_FRAME_LOG: Final = "frame_log"
SZ_ROTATE_BACKUPS: Final = "rotate_backups"
SZ_ROTATE_BYTES: Final = "rotate_bytes"


class FrameLogConfigT(TypedDict):
    file_name: str
    rotate_backups: int
    rotate_bytes: int | None


def sch_frame_log_dict_factory(
    default_backups: int = 0,
) -> dict[vol.Required, vol.Any]:
    """Return a frame log dict with a configurable default rotation policy.

    The frame log may be a file name, or a dict with the rotation policy too.
    """

    SCH_FRAME_LOG_CONFIG = vol.Schema(
        {
            vol.Optional(SZ_ROTATE_BACKUPS, default=default_backups): vol.Any(
                None, int
            ),
            vol.Optional(SZ_ROTATE_BYTES): vol.Any(None, int),
        },
        extra=vol.PREVENT_EXTRA,
    )

    SCH_FRAME_LOG_NAME = str

    def NormaliseFrameLog(rotate_backups: int = 0) -> Callable[..., Any]:
        def normalise_frame_log(node_value: str | FrameLogConfigT) -> FrameLogConfigT:
            if isinstance(node_value, str):
                return {
                    SZ_FILE_NAME: node_value,
                    SZ_ROTATE_BACKUPS: rotate_backups,
                    SZ_ROTATE_BYTES: None,
                }
            return node_value

        return normalise_frame_log

    return {  # SCH_FRAME_LOG_DICT
        vol.Required(SZ_FRAME_LOG, default=None): vol.Any(
            None,
            vol.All(
                SCH_FRAME_LOG_NAME,
                NormaliseFrameLog(rotate_backups=default_backups),
            ),
            SCH_FRAME_LOG_CONFIG.extend(
                {vol.Required(SZ_FILE_NAME): SCH_FRAME_LOG_NAME}
            ),
        )
    }

#
# 2/3: Serial port configuration
SZ_PORT_CONFIG: Final = "port_config"
SZ_PORT_NAME: Final = "port_name"
SZ_TIMEOUT: Final = "timeout"

PARITY_MAP: Final[dict[str, str]] = {
    "NONE": PARITY_NONE,
    "ODD": PARITY_ODD,
    "EVEN": PARITY_EVEN,
    "MARK": PARITY_MARK,
    "SPACE": PARITY_SPACE,
}


def ConvertParity() -> Callable[[str], str]:
    def convert_parity(node_value: str) -> str:
        return PARITY_MAP.get(node_value, node_value)  # may already be converted

    return convert_parity


SCH_PARITY = vol.All(
    vol.Upper, vol.In(tuple(PARITY_MAP) + tuple(PARITY_MAP.values()))
)

SCH_SERIAL_PORT_CONFIG = vol.Schema(
    {
        vol.Optional(SZ_BAUDRATE, default=DEFAULT_BAUDRATE): vol.All(
            vol.Coerce(int), vol.In(BAUDRATES)
        ),
        vol.Optional(SZ_PARITY, default=DEFAULT_PARITY): vol.All(
            SCH_PARITY, ConvertParity()
        ),
        vol.Optional(SZ_TIMEOUT, default=0): vol.Any(None, int),
    },
    extra=vol.PREVENT_EXTRA,
)


class PortConfigT(TypedDict):
    baudrate: int  # 9600, ...
    parity: str  # as used by pyserial, e.g. 'N'
    timeout: int | None


#
# 3/3: Engine configuration
SZ_DISABLE_SENDING: Final = "disable_sending"  # also forced by a frame log source
