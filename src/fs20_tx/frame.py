#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers.

Provide the Frame class, for frames as received from the transceiver.
"""

from __future__ import annotations

import logging

from . import exceptions as exc
from .const import FRAME_LENGTH, FRAME_PREFIX

_LOGGER = logging.getLogger(__name__)


def is_fs20_frame(raw: str) -> bool:
    """Return True if the frame is (ostensibly) FS20 traffic.

    Other protocols share the transceiver, so other frame types are to be expected.
    """
    return raw[:1] == FRAME_PREFIX


class Frame:
    """The Frame class - a frame received from the transceiver.

    `F 1234 01 11 [2D]` - frame type, house code, device, command, [RSSI]
    """

    house_code: str
    device: str
    command_hex: str

    def __init__(self, frame: str) -> None:
        """Create a frame from a string.

        Will raise NotAnFS20Frame if it is invalid.
        """

        self._frame: str = frame

        if not is_fs20_frame(frame):
            raise exc.NotAnFS20Frame(f"Bad frame: not an FS20 frame: >>>{frame}<<<")
        if len(frame) < FRAME_LENGTH:
            raise exc.NotAnFS20Frame(f"Bad frame: invalid length: >>>{frame}<<<")

        self.house_code = frame[1:5]
        self.device = frame[5:7]
        self.command_hex = frame[7:9]

        self._extra: str = frame[FRAME_LENGTH:]  # e.g. RSSI, is ignored

    def __repr__(self) -> str:
        """Return a unambiguous string representation of this object."""
        return self._frame[:FRAME_LENGTH]

    def __str__(self) -> str:
        """Return a brief readable string representation of this object."""
        return f"{FRAME_PREFIX} {self.house_code} {self.device} {self.command_hex}"

    def __eq__(self, other: object) -> bool:
        if not hasattr(other, "_frame"):
            return NotImplemented
        return repr(self) == repr(other)

    def __hash__(self) -> int:
        return hash(repr(self))

    @property
    def address(self) -> str:
        """Return the full address (house code + device)."""
        return self.house_code + self.device


def parse_frame(raw: str) -> Frame:
    """Return a Frame, or raise NotAnFS20Frame."""
    return Frame(raw)
