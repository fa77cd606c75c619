#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers.

Test the resolution of received FS20 commands into events (incl. the dim mode).
"""

import pytest

from fs20_rf.dimming import resolve_event
from fs20_rf.events import CommandEvent, StateEvent
from fs20_tx import (
    DimMode,
    FS20Command,
    IncreaseDecreaseType,
    OnOffType,
    ToggleType,
    UpDownType,
)

TESTS_MODE_INDEPENDENT = {
    FS20Command.OFF: StateEvent(OnOffType.OFF),
    FS20Command.OFF_FOR_TIMER: StateEvent(OnOffType.OFF),
    FS20Command.ON: StateEvent(OnOffType.ON),
    FS20Command.ON_100_FOR_TIMER: StateEvent(OnOffType.ON),
    FS20Command.ON_OLD_FOR_TIMER: StateEvent(OnOffType.ON),
    FS20Command.ON_100_FOR_TIMER_PREV: StateEvent(OnOffType.ON),
    FS20Command.ON_OLD_FOR_TIMER_PREV: StateEvent(OnOffType.ON),
    FS20Command.DIM_1: StateEvent(6),
    FS20Command.DIM_8: StateEvent(50),
    FS20Command.DIM_16: StateEvent(100),
    FS20Command.TOGGLE: CommandEvent(ToggleType.TOGGLE),
    FS20Command.DIM_UP_DOWN: None,
    FS20Command.TIMER_SET: None,
    FS20Command.SEND_STATUS: None,
    FS20Command.RESET: None,
    FS20Command.RAMP_ON_TIME: None,
    FS20Command.RAMP_OFF_TIME: None,
}


@pytest.mark.parametrize("dim_mode", DimMode)
@pytest.mark.parametrize("fs20_cmd", TESTS_MODE_INDEPENDENT)
def test_resolve_mode_independent(fs20_cmd: FS20Command, dim_mode: DimMode) -> None:
    assert resolve_event(fs20_cmd, dim_mode) == TESTS_MODE_INDEPENDENT[fs20_cmd]


def test_resolve_up_down() -> None:
    assert resolve_event(FS20Command.DIM_UP, DimMode.UP_DOWN) == CommandEvent(
        UpDownType.UP
    )
    assert resolve_event(FS20Command.DIM_DOWN, DimMode.UP_DOWN) == CommandEvent(
        UpDownType.DOWN
    )


def test_resolve_inc_dec() -> None:
    assert resolve_event(FS20Command.DIM_UP, DimMode.INC_DEC) == CommandEvent(
        IncreaseDecreaseType.INCREASE
    )
    assert resolve_event(FS20Command.DIM_DOWN, DimMode.INC_DEC) == CommandEvent(
        IncreaseDecreaseType.DECREASE
    )


def test_resolve_is_one_or_the_other() -> None:
    for fs20_cmd in FS20Command:
        event = resolve_event(fs20_cmd, DimMode.UP_DOWN)
        assert event is None or isinstance(event, StateEvent | CommandEvent)
