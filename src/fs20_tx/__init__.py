#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol encoder/decoder, for CUL/culfw transceivers."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import TYPE_CHECKING, Any

from .address import Address, is_valid_address, normalise_address
from .command import (
    Command,
    SemanticCommandT,
    decode,
    dim_level,
    encode,
    parse_command,
    to_wire_value,
)
from .const import (
    DIM_COMMANDS,
    SZ_VERSION,
    DimMode,
    FS20Command,
    IncreaseDecreaseType,
    OnOffType,
    StopMoveType,
    ToggleType,
    UpDownType,
)
from .frame import Frame, is_fs20_frame, parse_frame
from .gateway import Engine
from .logger import FRAME_LOGGER, set_frame_logging
from .protocol import (
    FS20ProtocolT,
    PortProtocol,
    ReadProtocol,
    create_stack,
    protocol_factory,
)
from .transport import FileTransport, FS20TransportT, PortTransport, transport_factory
from .version import VERSION

__all__ = [
    "VERSION",
    "Engine",
    #
    "SZ_VERSION",
    #
    "DIM_COMMANDS",
    "DimMode",
    "FS20Command",
    "IncreaseDecreaseType",
    "OnOffType",
    "SemanticCommandT",
    "StopMoveType",
    "ToggleType",
    "UpDownType",
    #
    "Address",
    "Command",
    "Frame",
    #
    "decode",
    "dim_level",
    "encode",
    "is_fs20_frame",
    "is_valid_address",
    "normalise_address",
    "parse_command",
    "parse_frame",
    "to_wire_value",
    #
    "FS20ProtocolT",
    "PortProtocol",
    "ReadProtocol",
    "create_stack",
    "protocol_factory",
    #
    "FileTransport",
    "FS20TransportT",
    "PortTransport",
    "transport_factory",
    #
    "set_frame_logging_config",
]


if TYPE_CHECKING:
    from logging import Logger


async def set_frame_logging_config(**config: Any) -> Logger:
    """Set up FS20 frame logging to a file and/or the console.

    Runs in an executor, as opening the frame log file is a blocking call.

    :param config: if file_name is included, opens the frame log file
    :return: a logging.Logger
    """
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, partial(set_frame_logging, FRAME_LOGGER, **config))
    return FRAME_LOGGER
