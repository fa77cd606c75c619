#!/usr/bin/env python3
"""A CLI for the fs20_rf library."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Final, TextIO

import click
import voluptuous as vol
from colorama import Fore, Style, init as colorama_init

from fs20_rf import GracefulExit, exceptions as exc
from fs20_rf.events import CommandT, StateT
from fs20_rf.gateway import Gateway
from fs20_rf.mqtt import MqttBus
from fs20_rf.schemas import (
    SCH_GLOBAL_CONFIG,
    SZ_ADDRESS,
    SZ_BINDINGS,
    SZ_CONFIG,
    SZ_DISABLE_SENDING,
    SZ_FRAME_LOG,
)
from fs20_tx import is_valid_address, normalise_address, parse_command
from fs20_tx.command import SemanticCommandT
from fs20_tx.const import SZ_BAUDRATE, OnOffType
from fs20_tx.logger import CONSOLE_COLS, DEFAULT_DATEFMT, DEFAULT_FMT

SZ_INPUT_FILE: Final = "input_file"
SZ_SERIAL_PORT: Final = "serial_port"

# this is called after import colorlog to ensure its handlers wrap the correct streams
logging.basicConfig(level=logging.WARNING, format=DEFAULT_FMT, datefmt=DEFAULT_DATEFMT)


EXECUTE: Final = "execute"
LISTEN: Final = "listen"
MONITOR: Final = "monitor"
PARSE: Final = "parse"


COLORS = {
    OnOffType.ON: Style.BRIGHT + Fore.GREEN,
    OnOffType.OFF: Fore.GREEN,
}

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


class AddressParamType(click.ParamType):
    name = "address"

    def convert(self, value: str, param, ctx):
        if is_valid_address(value):
            return normalise_address(value)
        self.fail(f"{value!r} is not a valid FS20 address", param, ctx)


class ExecCmdParamType(click.ParamType):
    name = "exec_cmd"

    def convert(self, value: str | tuple, param, ctx):
        if isinstance(value, tuple):
            return value
        try:
            item_name, command = value.rsplit(maxsplit=1)
            return item_name, parse_command(command)
        except (ValueError, exc.UnsupportedCommand):
            self.fail(f"{value!r} is not a valid '<item_name> <command>'", param, ctx)


class ConsolePublisher:
    """An event publisher that prints the events to the console (with colours)."""

    def __init__(self, long_format: bool = False) -> None:
        self._con_cols = sys.maxsize if long_format else CONSOLE_COLS

    def publish_state(self, item_name: str, state: StateT) -> None:
        color = COLORS.get(state, Fore.CYAN)  # type: ignore[call-overload]
        print(f"{color}{item_name} < state: {state}"[: self._con_cols])

    def publish_command(self, item_name: str, command: CommandT) -> None:
        print(f"{Fore.YELLOW}{item_name} < command: {command}"[: self._con_cols])


class TeePublisher:
    """An event publisher that publishes to several publishers, in order."""

    def __init__(self, *publishers: Any) -> None:
        self._publishers = publishers

    def publish_state(self, item_name: str, state: StateT) -> None:
        for publisher in self._publishers:
            publisher.publish_state(item_name, state)

    def publish_command(self, item_name: str, command: CommandT) -> None:
        for publisher in self._publishers:
            publisher.publish_command(item_name, command)


def split_kwargs(obj: tuple[dict, dict], kwargs: dict) -> tuple[dict, dict]:
    """Split kwargs into cli/library kwargs."""
    cli_kwargs, lib_kwargs = obj

    cli_kwargs = cli_kwargs | kwargs
    lib_kwargs = {
        SZ_CONFIG: dict(lib_kwargs[SZ_CONFIG]),
        SZ_BINDINGS: dict(lib_kwargs[SZ_BINDINGS]),
    }

    if kwargs.get(SZ_BAUDRATE):
        lib_kwargs[SZ_CONFIG][SZ_BAUDRATE] = kwargs[SZ_BAUDRATE]
    if kwargs.get(SZ_FRAME_LOG):
        lib_kwargs[SZ_CONFIG][SZ_FRAME_LOG] = kwargs[SZ_FRAME_LOG]

    return cli_kwargs, lib_kwargs


# Args/Params for both RF and file
@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-z", "--debug-mode", is_flag=True, help="enable debug logging")
@click.option("-c", "--config-file", type=click.File("r"), help="a JSON config file")
@click.option(  # --bind Lamp1 123401
    "-b",
    "--bind",
    multiple=True,
    type=(str, AddressParamType()),
    help="bind an item to an address, e.g. 'Lamp1 123401'",
)
@click.option("-lf", "--long-format", is_flag=True, help="dont truncate STDOUT")
@click.pass_context
def cli(ctx, config_file=None, bind: tuple = (), **kwargs: Any) -> None:
    """A CLI for the fs20_rf library."""

    if kwargs["debug_mode"]:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        lib_kwargs: dict[str, Any] = SCH_GLOBAL_CONFIG(
            json.load(config_file) if config_file else {}
        )
    except (json.JSONDecodeError, vol.Invalid) as err:
        raise click.BadParameter(str(err), param_hint="--config-file") from err

    for item_name, address in bind:  # CLI takes precedence
        lib_kwargs[SZ_BINDINGS][item_name] = {SZ_ADDRESS: address}

    ctx.obj = kwargs, lib_kwargs


# Args/Params for frame log only
class FileCommand(click.Command):  # client.py parse <file>
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.insert(  # input_file
            0,
            click.Argument(
                ("input-file",),
                type=click.Path(exists=True, dir_okay=False, allow_dash=True),
                default="-",
            ),
        )


# Args/Params for RF frames only
class PortCommand(click.Command):  # client.py <command> <port> --frame-log xxx
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.insert(0, click.Argument(("serial-port",)))
        self.params.insert(  # --frame-log
            1,
            click.Option(
                ("-o", "--frame-log"),
                type=click.Path(),
                help="Log all frames to this file",
            ),
        )
        self.params.insert(  # --baudrate
            2,
            click.Option(
                ("-B", "--baudrate"),
                type=click.INT,
                help="The baudrate of the CUL (default: 9600)",
            ),
        )


#
# 1/4: PARSE (a file)
@click.command(cls=FileCommand)  # parse a frame log, then stop
@click.pass_obj
def parse(obj, **kwargs: Any):
    """Parse a log file for frames/events."""
    config, lib_config = split_kwargs(obj, kwargs)

    return PARSE, lib_config, config


#
# 2/4: MONITOR (listen to RF, and send commands)
@click.command(cls=PortCommand)  # (optionally) execute a command, then monitor
@click.option(  # --exec-cmd 'Lamp1 ON'
    "-x", "--exec-cmd", type=ExecCmdParamType(), help="e.g. 'Lamp1 ON'"
)
@click.option(  # --mqtt-broker mqtt://localhost:1883/FS20
    "-m", "--mqtt-broker", type=click.STRING, help="e.g. 'mqtt://localhost:1883/FS20'"
)
@click.pass_obj
def monitor(obj, **kwargs: Any):
    """Monitor a serial port for frames/events (and send commands)."""
    config, lib_config = split_kwargs(obj, kwargs)

    return MONITOR, lib_config, config


#
# 3/4: EXECUTE (send a command to RF, then quit)
@click.command(cls=PortCommand)  # execute a command, then stop
@click.option(  # --exec-cmd 'Lamp1 ON'
    "-x", "--exec-cmd", type=ExecCmdParamType(), required=True, help="e.g. 'Lamp1 ON'"
)
@click.pass_obj
def execute(obj, **kwargs: Any):
    """Execute the specified command, then quit."""
    config, lib_config = split_kwargs(obj, kwargs)

    return EXECUTE, lib_config, config


#
# 4/4: LISTEN (to RF - NO sending)
@click.command(cls=PortCommand)  # listen, only
@click.pass_obj
def listen(obj, **kwargs: Any):
    """Listen to (eavesdrop only) a serial port for frames/events."""
    config, lib_config = split_kwargs(obj, kwargs)

    print(" - sending is force-disabled")
    lib_config[SZ_CONFIG][SZ_DISABLE_SENDING] = True

    return LISTEN, lib_config, config


async def _exec_cmd(gwy: Gateway, exec_cmd: tuple[str, SemanticCommandT]) -> None:
    item_name, command = exec_cmd

    if (frame := await gwy.async_send_command(item_name, command)) is None:
        print(f"{Fore.RED}{item_name} > {command}: not sent")
    else:
        print(f"{Style.BRIGHT}{Fore.MAGENTA}{item_name} > {command}: {frame}")


async def async_main(command: str, lib_kwargs: dict, **kwargs: Any) -> None:
    """Do certain things."""

    def handle_frame(frame: str) -> None:
        """Print the frame as it arrives (a callback)."""
        print(f"{Style.DIM}{frame}")

    colorama_init(autoreset=True)

    input_file: TextIO | None = None
    if kwargs.get(SZ_INPUT_FILE):
        input_file = click.open_file(kwargs[SZ_INPUT_FILE])  # "-" is stdin

    publisher: Any = ConsolePublisher(long_format=kwargs["long_format"])

    bus: MqttBus | None = None
    if kwargs.get("mqtt_broker"):
        bus = MqttBus(kwargs["mqtt_broker"])
        publisher = TeePublisher(publisher, bus)

    try:
        gwy = Gateway(
            kwargs.get(SZ_SERIAL_PORT),
            input_file=input_file,
            config=lib_kwargs[SZ_CONFIG],
            bindings=lib_kwargs[SZ_BINDINGS],
            publisher=publisher,
        )
    except exc.FS20Exception as err:  # e.g. ConfigurationError, BindingConfigInvalid
        if input_file:
            input_file.close()
        print(f"\r\nclient.py: Engine not started: {err}")
        return

    if kwargs["long_format"]:
        gwy.add_msg_handler(handle_frame)

    if bus:
        bus.attach(gwy)
        bus.start()

    print("\r\nclient.py: Starting engine...")

    try:  # main code here
        await gwy.start()

        if command != PARSE and not gwy.is_active:
            raise exc.TransportError(f"Unable to open: {gwy.ser_name}")

        if command == EXECUTE:
            await _exec_cmd(gwy, kwargs["exec_cmd"])

        elif command == MONITOR:
            if kwargs["exec_cmd"]:
                await _exec_cmd(gwy, kwargs["exec_cmd"])
            await gwy._protocol.wait_for_connection_lost(timeout=None)

        elif command == LISTEN:
            await gwy._protocol.wait_for_connection_lost(timeout=None)

    except asyncio.CancelledError:
        msg = "ended via: CancelledError (e.g. SIGINT)"
    except GracefulExit:
        msg = "ended via: GracefulExit"
    except exc.FS20Exception as err:
        msg = f"ended via: FS20Exception: {err}"
    else:  # if no Exceptions raised, e.g. EOF when parsing, or Ctrl-C?
        msg = "ended without error (e.g. EOF)"
    finally:
        await gwy.stop()
        if bus:
            bus.stop()
        if input_file:
            input_file.close()

    print(f"\r\nclient.py: Engine stopped: {msg}")


cli.add_command(parse)
cli.add_command(monitor)
cli.add_command(execute)
cli.add_command(listen)


def main() -> None:
    print("\r\nclient.py: Starting fs20_rf...")

    try:
        result = cli(standalone_mode=False)
    except click.ClickException as err:
        print(f"Error: {err}")
        sys.exit(-1)

    if isinstance(result, int):
        sys.exit(result)

    (command, lib_kwargs, kwargs) = result

    if sys.platform == "win32":
        print(" - event_loop_policy set for win32")  # do before asyncio.run()
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    try:
        asyncio.run(async_main(command, lib_kwargs, **kwargs))
    except KeyboardInterrupt:
        print("\r\nclient.py: Engine stopped: ended via: KeyboardInterrupt")

    print(" - finished fs20_rf.\r\n")


if __name__ == "__main__":
    main()
