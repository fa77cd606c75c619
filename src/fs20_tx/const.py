#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers."""

from __future__ import annotations

import re
from enum import EnumCheck, StrEnum, verify
from typing import Final

# used by transport/protocol...
DEFAULT_BAUDRATE: Final[int] = 9600
DEFAULT_PARITY: Final = "NONE"
DEFAULT_REFRESH_INTERVAL: Final[int] = 60000  # msecs
DEFAULT_VERSION_TIMEOUT: Final[float] = 3  # secs, to wait for culfw's version line
MIN_INTER_WRITE_GAP: Final[float] = 0.05  # seconds

FRAME_PREFIX: Final = "F"  # the only frame type handled, others belong to other protocols
FRAME_LENGTH: Final = 9  # F + house code (4) + device (2) + command (2)

# culfw (see: http://culfw.de/commandref.html)
CULFW_VERSION_CMD: Final = "V"
CULFW_REPORTING_CMD: Final = "X21"  # report all rcvd frames, with RSSI (slow RF mode)
CULFW_LIMIT_OVERFLOW: Final = "LOVF"  # 1% duty cycle (per hour) limit has been reached

BAUDRATES: Final = (75, 110, 300, 1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200)

HOUSE_CODE_REGEX: Final = re.compile(r"^[0-9A-F]{4}$")
DEVICE_REGEX: Final = re.compile(r"^[0-9A-F]{2}$")
ADDRESS_REGEX: Final = re.compile(r"^[0-9A-F]{6}$")
ELV_HOUSE_CODE_REGEX: Final = re.compile(r"^[1-4]{8}$")
ELV_DEVICE_REGEX: Final = re.compile(r"^[1-4]{4}$")
ELV_ADDRESS_REGEX: Final = re.compile(r"^[1-4]{12}$")

SZ_BAUDRATE: Final = "baudrate"
SZ_PARITY: Final = "parity"
SZ_VERSION: Final = "version"  # culfw version string, as reported by the CUL


@verify(EnumCheck.UNIQUE)
class FS20Command(StrEnum):
    """The FS20 command codes, the value of each is its (two hex digit) wire value."""

    OFF = "00"
    DIM_1 = "01"  # 6.25%
    DIM_2 = "02"
    DIM_3 = "03"
    DIM_4 = "04"  # 25%
    DIM_5 = "05"
    DIM_6 = "06"
    DIM_7 = "07"
    DIM_8 = "08"  # 50%
    DIM_9 = "09"
    DIM_10 = "0A"
    DIM_11 = "0B"
    DIM_12 = "0C"  # 75%
    DIM_13 = "0D"
    DIM_14 = "0E"
    DIM_15 = "0F"
    DIM_16 = "10"  # 100%
    ON = "11"  # on, at the previous dim level
    TOGGLE = "12"
    DIM_UP = "13"
    DIM_DOWN = "14"
    DIM_UP_DOWN = "15"
    TIMER_SET = "16"
    SEND_STATUS = "17"
    OFF_FOR_TIMER = "18"
    ON_100_FOR_TIMER = "19"
    ON_OLD_FOR_TIMER = "1A"
    RESET = "1B"
    RAMP_ON_TIME = "1C"
    RAMP_OFF_TIME = "1D"
    ON_OLD_FOR_TIMER_PREV = "1E"
    ON_100_FOR_TIMER_PREV = "1F"


DIM_LEVELS: Final = 16  # the number of discrete dim levels, DIM_1 to DIM_16

DIM_COMMANDS: Final[tuple[FS20Command, ...]] = tuple(
    c for c in FS20Command if c.name.startswith("DIM_") and c.name[4:].isdigit()
)


@verify(EnumCheck.UNIQUE)
class DimMode(StrEnum):
    """How DIM_UP/DIM_DOWN are presented to the automation bus."""

    UP_DOWN = "UP_DOWN"
    INC_DEC = "INC_DEC"


#
# The generic (semantic) vocabulary of the automation bus
class OnOffType(StrEnum):
    ON = "ON"
    OFF = "OFF"


class UpDownType(StrEnum):
    UP = "UP"
    DOWN = "DOWN"


class IncreaseDecreaseType(StrEnum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"


class StopMoveType(StrEnum):  # there is no FS20 equivalent
    STOP = "STOP"
    MOVE = "MOVE"


class ToggleType(StrEnum):
    TOGGLE = "TOGGLE"

