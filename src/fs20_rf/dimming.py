#!/usr/bin/env python3
"""FS20 RF - resolve a received FS20 command into a semantic event."""

from __future__ import annotations

from fs20_tx.command import dim_level
from fs20_tx.const import (
    DimMode,
    FS20Command,
    IncreaseDecreaseType,
    OnOffType,
    ToggleType,
    UpDownType,
)

from .events import CommandEvent, SemanticEventT, StateEvent

_OFF_COMMANDS = (FS20Command.OFF, FS20Command.OFF_FOR_TIMER)
_ON_COMMANDS = (
    FS20Command.ON,
    FS20Command.ON_100_FOR_TIMER,
    FS20Command.ON_OLD_FOR_TIMER,
    FS20Command.ON_100_FOR_TIMER_PREV,
    FS20Command.ON_OLD_FOR_TIMER_PREV,
)

_DIM_EVENTS: dict[DimMode, dict[FS20Command, CommandEvent]] = {
    DimMode.UP_DOWN: {
        FS20Command.DIM_UP: CommandEvent(UpDownType.UP),
        FS20Command.DIM_DOWN: CommandEvent(UpDownType.DOWN),
    },
    DimMode.INC_DEC: {
        FS20Command.DIM_UP: CommandEvent(IncreaseDecreaseType.INCREASE),
        FS20Command.DIM_DOWN: CommandEvent(IncreaseDecreaseType.DECREASE),
    },
}


def resolve_event(fs20_cmd: FS20Command, dim_mode: DimMode) -> SemanticEventT | None:
    """Return the event for a received FS20 command, or None if there isn't one.

    DIM_UP/DIM_DOWN are reported as UP/DOWN, or as INCREASE/DECREASE, as per the dim
    mode. The other codes (e.g. TIMER_SET, SEND_STATUS, RESET) have no event.
    """

    if fs20_cmd in _OFF_COMMANDS:
        return StateEvent(OnOffType.OFF)
    if fs20_cmd in _ON_COMMANDS:
        return StateEvent(OnOffType.ON)
    if (level := dim_level(fs20_cmd)) is not None:
        return StateEvent(level)
    if fs20_cmd == FS20Command.TOGGLE:
        return CommandEvent(ToggleType.TOGGLE)
    return _DIM_EVENTS[dim_mode].get(fs20_cmd)
