#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers.

Convert between the generic vocabulary of the automation bus and FS20 command codes,
and construct (outbound) commands.
"""

from __future__ import annotations

import logging
import math
from typing import TypeAlias

from . import exceptions as exc
from .address import Address
from .const import (
    DIM_COMMANDS,
    DIM_LEVELS,
    FRAME_PREFIX,
    FS20Command,
    IncreaseDecreaseType,
    OnOffType,
    StopMoveType,
    ToggleType,
    UpDownType,
)

_LOGGER = logging.getLogger(__name__)


SemanticCommandT: TypeAlias = (
    OnOffType
    | UpDownType
    | IncreaseDecreaseType
    | StopMoveType
    | ToggleType
    | int
    | float
)

_FS20_BY_SEMANTIC: dict[SemanticCommandT, FS20Command] = {
    OnOffType.ON: FS20Command.ON,
    OnOffType.OFF: FS20Command.OFF,
    UpDownType.UP: FS20Command.DIM_UP,
    UpDownType.DOWN: FS20Command.DIM_DOWN,
    IncreaseDecreaseType.INCREASE: FS20Command.DIM_UP,
    IncreaseDecreaseType.DECREASE: FS20Command.DIM_DOWN,
    ToggleType.TOGGLE: FS20Command.TOGGLE,
}

_SEMANTIC_BY_NAME: dict[str, SemanticCommandT] = {
    str(k): k for k in _FS20_BY_SEMANTIC
} | {str(k): k for k in StopMoveType}


def _level_to_fs20(level: int | float) -> FS20Command:
    """Convert a dim level (percent) to the nearest FS20 command (never rounds to OFF)."""

    if not 0 <= level <= 100:
        raise exc.UnsupportedCommand(f"Dim level is out of range (0-100): {level}")
    if level == 0:
        return FS20Command.OFF
    return DIM_COMMANDS[math.ceil(level * DIM_LEVELS / 100) - 1]


def encode(command: SemanticCommandT) -> FS20Command:
    """Return the FS20 command for a generic command (or dim level).

    Raise UnsupportedCommand if there is no FS20 equivalent.
    """

    # NOTE: bool is an int, and StrEnums are strs, so order of tests is important
    if isinstance(command, bool):
        raise exc.UnsupportedCommand(f"Unsupported command: {command!r}")

    if isinstance(command, int | float) and not isinstance(command, str):
        return _level_to_fs20(command)

    try:
        return _FS20_BY_SEMANTIC[command]
    except (KeyError, TypeError) as err:
        raise exc.UnsupportedCommand(f"Unsupported command: {command!r}") from err


def decode(hex_value: str) -> FS20Command:
    """Return the FS20 command for a wire value (e.g. '11' is ON).

    Raise UnknownCommandCode if the value is not a command code.
    """

    try:
        return FS20Command(hex_value.upper())
    except (AttributeError, ValueError) as err:
        raise exc.UnknownCommandCode(f"Unknown command code: {hex_value!r}") from err


def to_wire_value(fs20_cmd: FS20Command) -> str:
    """Return the wire value (two hex digits) of a FS20 command."""
    return fs20_cmd.value


def dim_level(fs20_cmd: FS20Command) -> int | None:
    """Return the dim level (percent) of a DIM_x command, otherwise None.

    The levels are as labelled by ELV: 6%, 12%, 18%, 25%, ... 93%, 100%.
    """

    if fs20_cmd not in DIM_COMMANDS:
        return None
    return (DIM_COMMANDS.index(fs20_cmd) + 1) * 100 // DIM_LEVELS


def parse_command(value: str) -> SemanticCommandT:
    """Convert a string (e.g. from the CLI or MQTT) into a generic command.

    Accepts the names of the generic commands (case-insensitive), and dim levels
    (e.g. '50' or '50%'). Raise UnsupportedCommand otherwise.
    """

    text = str(value).strip().upper()
    if text in _SEMANTIC_BY_NAME:
        return _SEMANTIC_BY_NAME[text]

    try:
        level = float(text.rstrip("%"))
    except ValueError as err:
        raise exc.UnsupportedCommand(f"Unsupported command: {value!r}") from err
    return int(level) if level.is_integer() else level


class Command:
    """The Command class (frames to be transmitted).

    `F 1234 01 11` - frame type, house code, device, command
    """

    def __init__(self, frame: str) -> None:
        """Create a command from a string (and its meta-attrs)."""

        self._frame = frame

        if frame[:1] != FRAME_PREFIX or len(frame) != 9:
            raise exc.CommandInvalid(f"Bad frame: invalid structure: {frame}")

        try:
            self.dst = Address(frame[1:7])
        except ValueError as err:
            raise exc.CommandInvalid(f"Bad frame: invalid address: {frame}") from err

        try:
            self.code = decode(frame[7:9])
        except exc.UnknownCommandCode as err:
            raise exc.CommandInvalid(f"Bad frame: invalid command: {frame}") from err

    @classmethod
    def from_attrs(cls, address: str | Address, fs20_cmd: FS20Command) -> Command:
        """Create a command from its attrs (e.g. address='123401', FS20Command.ON)."""

        if not isinstance(address, Address):
            try:
                address = Address(address)
            except ValueError as err:
                raise exc.CommandInvalid(f"Invalid address: {address}") from err

        return cls(f"{FRAME_PREFIX}{address.id}{to_wire_value(fs20_cmd)}")

    def __repr__(self) -> str:
        """Return a unambiguous string representation of this object."""
        return self._frame

    def __str__(self) -> str:
        """Return the wire representation of this object."""
        return self._frame

    def __eq__(self, other: object) -> bool:
        if not hasattr(other, "_frame"):
            return NotImplemented
        return self._frame == other._frame  # type: ignore[no-any-return]

    def __hash__(self) -> int:
        return hash(self._frame)

    @property
    def _hdr(self) -> str:
        return f"{self.dst.id}|{self.code.name}"
