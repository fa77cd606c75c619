#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers."""

import logging
import warnings
from pathlib import Path
from typing import Any

from fs20_rf.directory import DeviceDirectory, DictBindingProvider
from fs20_rf.events import CommandT, StateT
from fs20_tx import Command, DimMode, Engine, FS20Command

warnings.filterwarnings("ignore", category=DeprecationWarning)

logging.disable(logging.WARNING)  # usu. WARNING


TEST_DIR = Path(__file__).resolve().parent  # TEST_DIR = f"{os.path.dirname(__file__)}"

LAMP_1 = "Lamp1"
LAMP_1_ADDR = "123401"


def assert_raises(exception, fnc, *args):
    try:
        fnc(*args)
    except exception:  # as err:
        pass  # or: assert True
    else:
        assert False


class RecordingPublisher:
    """An event publisher that records the events, in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, Any]] = []

    def publish_state(self, item_name: str, state: StateT) -> None:
        self.calls.append(("state", item_name, state))

    def publish_command(self, item_name: str, command: CommandT) -> None:
        self.calls.append(("command", item_name, command))


class _Config:
    def __init__(self, dim_mode: DimMode) -> None:
        self.dim_mode = dim_mode


class StubGateway:
    """Has only the attrs the dispatcher uses (no transport, no event loop)."""

    def __init__(
        self,
        bindings: dict[str, dict[str, Any]] | None = None,
        dim_mode: DimMode = DimMode.UP_DOWN,
        publisher: Any = None,
    ) -> None:
        self.config = _Config(dim_mode)
        self.directory = DeviceDirectory()
        if bindings:
            self.directory.add_provider(DictBindingProvider(bindings))
        self.publisher = publisher or RecordingPublisher()

    @staticmethod
    def create_cmd(address: str, fs20_cmd: FS20Command) -> Command:
        return Engine.create_cmd(address, fs20_cmd)
