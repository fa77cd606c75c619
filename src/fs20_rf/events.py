#!/usr/bin/env python3
"""FS20 RF - the events published to the automation bus.

A decoded frame becomes either a new state for an item (e.g. ON, or a dim level), or a
command for an item (e.g. TOGGLE, or DIM_UP as UP/INCREASE), never both.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Protocol, TypeAlias

from fs20_tx.const import (
    IncreaseDecreaseType,
    OnOffType,
    ToggleType,
    UpDownType,
)

_LOGGER = logging.getLogger(__name__)


StateT: TypeAlias = OnOffType | int  # a dim level is a percentage
CommandT: TypeAlias = UpDownType | IncreaseDecreaseType | ToggleType


class StateEvent(NamedTuple):
    state: StateT


class CommandEvent(NamedTuple):
    command: CommandT


SemanticEventT: TypeAlias = StateEvent | CommandEvent


class EventPublisher(Protocol):
    """The automation bus, as seen by the gateway."""

    def publish_state(self, item_name: str, state: StateT) -> None: ...

    def publish_command(self, item_name: str, command: CommandT) -> None: ...


def publish(publisher: EventPublisher, item_name: str, event: SemanticEventT) -> None:
    """Publish the event, as a state update or as a command, exactly once."""

    match event:
        case StateEvent(state=state):
            publisher.publish_state(item_name, state)
        case CommandEvent(command=command):
            publisher.publish_command(item_name, command)
        case _:
            raise TypeError(f"Not a semantic event: {event!r}")


class LoggingPublisher:
    """An event publisher that simply logs the events (e.g. when there is no bus)."""

    def publish_state(self, item_name: str, state: StateT) -> None:
        _LOGGER.info("%s < state: %s", item_name, state)

    def publish_command(self, item_name: str, command: CommandT) -> None:
        _LOGGER.info("%s < command: %s", item_name, command)
