#!/usr/bin/env python3
"""FS20 RF - The serial to RF gateway (a CUL running culfw)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from threading import Lock
from typing import TYPE_CHECKING, Any, Never, TextIO

from .address import Address
from .command import Command
from .const import SZ_VERSION, FS20Command
from .protocol import protocol_factory
from .schemas import (
    SZ_DISABLE_SENDING,
    SZ_FRAME_LOG,
    SZ_PORT_CONFIG,
    SZ_PORT_NAME,
    PortConfigT,
)
from .transport import transport_factory

if TYPE_CHECKING:
    from .protocol import FS20ProtocolT
    from .transport import FS20TransportT

_FrameHandlerT = Callable[[str], None]


_LOGGER = logging.getLogger(__name__)


class Engine:
    """The engine class."""

    def __init__(
        self,
        port_name: str | None,
        input_file: TextIO | None = None,
        port_config: PortConfigT | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        **kwargs: Any,
    ) -> None:
        if port_name and input_file:
            _LOGGER.warning(
                "Port (%s) specified, so file (%s) ignored",
                port_name,
                input_file,
            )
            input_file = None

        self._disable_sending = bool(kwargs.pop(SZ_DISABLE_SENDING, False))
        if input_file:
            self._disable_sending = True
        elif not port_name:
            raise TypeError("Either a port_name or a input_file must be specified")

        self.ser_name = port_name
        self._input_file = input_file

        self._port_config: PortConfigT | dict[Never, Never] = port_config or {}
        self._loop = loop or asyncio.get_running_loop()

        self._engine_lock = Lock()  # for self._tasks, which may be added from any thread

        self._protocol: FS20ProtocolT = None  # type: ignore[assignment]
        self._transport: FS20TransportT | None = None  # None until self.start()

        self._prev_frame: str | None = None
        self._this_frame: str | None = None

        self._tasks: list[asyncio.Task] = []  # type: ignore[type-arg]
        self._del_handler: Callable[[], None] | None = None

        self._set_protocol()  # sets self._protocol

    def __str__(self) -> str:
        if not self._transport:
            return f"CUL ({self.ser_name})"

        version = self._transport.get_extra_info(SZ_VERSION)
        return f"{version or 'CUL'} ({self.ser_name})"

    def _set_protocol(self) -> None:
        """Create an appropriate protocol for the frame source (transport).

        The corresponding transport will be created later.
        """

        self._protocol = protocol_factory(disable_sending=self._disable_sending)

    def add_msg_handler(self, frame_handler: _FrameHandlerT, /) -> Callable[[], None]:
        """Add a handler for received frames.

        Returns a callback that can be used to subsequently remove the handler.
        """
        return self._protocol.add_handler(frame_handler)

    async def start(self) -> None:
        """Create a suitable transport for the specified frame source.

        Initiate receiving (frames) and sending (Commands).
        """

        self._del_handler = self._protocol.add_handler(self._frame_handler)

        frame_source: dict[str, Any] = {}  # [str, dict | str | TextIO]
        if self.ser_name:
            frame_source[SZ_PORT_NAME] = self.ser_name
            frame_source[SZ_PORT_CONFIG] = self._port_config
        else:  # if self._input_file:
            frame_source[SZ_FRAME_LOG] = self._input_file

        # incl. await protocol.wait_for_connection_made(timeout=...)
        self._transport = await transport_factory(
            self._protocol,
            disable_sending=self._disable_sending,
            loop=self._loop,
            **frame_source,
        )

        await self._protocol.wait_for_connection_made()
        if self._input_file:  # wait until the whole frame log has been read
            await self._protocol.wait_for_connection_lost(timeout=None)

    async def stop(self) -> None:
        """Close the transport (will stop the protocol)."""

        async def cancel_all_tasks() -> None:
            with self._engine_lock:
                tasks, self._tasks = self._tasks, []
            _ = [t.cancel() for t in tasks if not t.done()]
            await asyncio.gather(*tasks, return_exceptions=True)

        await cancel_all_tasks()

        if self._del_handler:
            self._del_handler()
            self._del_handler = None

        if self._transport and not self._transport.is_closing():
            self._transport.close()
            await self._protocol.wait_for_connection_lost()

        self._transport = None
        return None

    def add_task(self, task: asyncio.Task[Any]) -> None:
        # keep a track of tasks, so we can tidy-up
        with self._engine_lock:
            self._tasks = [t for t in self._tasks if not t.done()]
            self._tasks.append(task)

    @staticmethod
    def create_cmd(address: str | Address, fs20_cmd: FS20Command) -> Command:
        """Make a command addressed to a device (house code + device)."""
        return Command.from_attrs(address, fs20_cmd)

    async def async_send_cmd(self, cmd: Command, /) -> Command:
        """Send a Command and return it (FS20 devices do not acknowledge).

        If the Command can't be sent, raise:
            ProtocolError:  didn't attempt to Tx Command for some reason
            TransportError: the Tx failed
        """
        return await self._protocol.send_cmd(cmd)

    async def async_send_frame(self, frame: str, /) -> Command:
        """Send a frame, e.g. 'F12340111' (raise CommandInvalid if it is invalid)."""
        return await self.async_send_cmd(Command(frame.strip().upper()))

    def _frame_handler(self, frame: str) -> None:
        self._this_frame, self._prev_frame = frame, self._this_frame
