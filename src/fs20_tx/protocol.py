#!/usr/bin/env python3
"""FS20 RF - FS20 compatible frame protocol."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime as dt
from typing import TYPE_CHECKING, Any, Final, TypeAlias

from . import exceptions as exc
from .command import Command
from .transport import transport_factory

if TYPE_CHECKING:
    from .transport import FS20TransportT


#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_LOG_FRAMES: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


FrameHandlerT: TypeAlias = Callable[[str], None]


class _BaseProtocol(asyncio.Protocol):
    """Base class for FS20 protocols."""

    def __init__(self, frame_handler: FrameHandlerT | None = None) -> None:
        self._frame_handlers: list[FrameHandlerT] = []
        if frame_handler:
            self._frame_handlers.append(frame_handler)

        self._transport: FS20TransportT = None  # type: ignore[assignment]
        self._loop = asyncio.get_running_loop()

        self._pause_writing = False
        self._wait_connection_lost: asyncio.Future[None] | None = None
        self._wait_connection_made: asyncio.Future[FS20TransportT] = (
            self._loop.create_future()
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(handlers={len(self._frame_handlers)})"

    def add_handler(self, frame_handler: FrameHandlerT, /) -> Callable[[], None]:
        """Add a frame handler to the list of such callbacks.

        Returns a callback that can be used to subsequently remove the frame handler.
        """

        def del_handler() -> None:
            if frame_handler in self._frame_handlers:
                self._frame_handlers.remove(frame_handler)

        if frame_handler not in self._frame_handlers:
            self._frame_handlers.append(frame_handler)

        return del_handler

    def connection_made(  # type: ignore[override]
        self, transport: FS20TransportT, /, *, cul: bool = False
    ) -> None:
        """Called when the connection to the Transport is established.

        The argument is the transport representing the pipe connection. To receive data,
        wait for frame_received() calls. When the connection is closed, connection_lost()
        is called.

        Our PortTransport wraps SerialTransport and will wait for the culfw handshake
        to complete (c.f. FileTransport) before calling connection_made(cul=True), so
        the callback is consumed if it was invoked by SerialTransport.
        """

        if not cul or self._wait_connection_made.done():
            return

        self._wait_connection_lost = self._loop.create_future()
        self._wait_connection_made.set_result(transport)
        self._transport = transport

    async def wait_for_connection_made(self, timeout: float = 1) -> FS20TransportT:
        """A courtesy function to wait until connection_made() has been invoked.

        Will raise TransportError if isn't connected within timeout seconds.
        """

        try:
            return await asyncio.wait_for(self._wait_connection_made, timeout)
        except TimeoutError as err:
            raise exc.TransportError(
                f"Transport did not bind to Protocol within {timeout} secs"
            ) from err

    def connection_lost(self, err: Exception | None) -> None:  # type: ignore[override]
        """Called when the connection to the Transport is lost or closed.

        The argument is an exception object or None (the latter meaning a regular EOF is
        received or the connection was aborted or closed).
        """

        if err:
            _LOGGER.error("%s: Connection to the transceiver was lost: %s", self, err)

        if not self._wait_connection_lost or self._wait_connection_lost.done():
            return

        self._wait_connection_made = self._loop.create_future()
        if err:
            self._wait_connection_lost.set_exception(err)
        else:
            self._wait_connection_lost.set_result(None)

    async def wait_for_connection_lost(
        self, timeout: float | None = 1
    ) -> Exception | None:
        """A courtesy function to wait until connection_lost() has been invoked.

        Includes scenarios where neither connection_made() nor connection_lost() were
        invoked.

        Will raise TransportError if isn't disconnected within timeout seconds (if any).
        """

        if not self._wait_connection_lost:
            return None

        try:
            return await asyncio.wait_for(self._wait_connection_lost, timeout)
        except TimeoutError as err:
            raise exc.TransportError(
                f"Transport did not unbind from Protocol within {timeout} secs"
            ) from err

    def pause_writing(self) -> None:
        """Called when the transport's buffer goes over the high-water mark."""
        self._pause_writing = True

    def resume_writing(self) -> None:
        """Called when the transport's buffer drains below the low-water mark."""
        self._pause_writing = False

    async def send_cmd(self, cmd: Command, /) -> Command:
        """Send a Command (there is no QoS: FS20 devices do not acknowledge).

        Will raise ProtocolError if the Command can't be sent.
        """

        if _DBG_FORCE_LOG_FRAMES:
            _LOGGER.warning(f"QUEUED:     {cmd}")
        else:
            _LOGGER.debug(f"QUEUED:     {cmd}")

        if self._pause_writing:
            raise exc.ProtocolError("The Protocol is currently read-only/paused")

        await self.send_frame(str(cmd))
        return cmd

    async def send_frame(self, frame: str) -> None:
        """Write to the transport."""

        if not self._transport:
            raise exc.ProtocolError("There is no connected Transport")
        await self._transport.write_frame(frame)

    def frame_received(self, dtm: dt, frame: str) -> None:
        """A wrapper for self._frame_received(frame)."""

        if _DBG_FORCE_LOG_FRAMES:
            _LOGGER.warning(f"Recv'd: {frame}")
        else:
            _LOGGER.debug(f"Recv'd: {frame} (at {dtm.isoformat(timespec='seconds')})")

        self._frame_received(frame)

    def _frame_received(self, frame: str) -> None:
        """Pass the frame to each handler, in order (each is run to completion)."""

        for handler in tuple(self._frame_handlers):
            try:
                handler(frame)
            except Exception as err:  # protect this layer from upper layers
                _LOGGER.exception("%s < exception from upper layer: %s", frame, err)


class ReadProtocol(_BaseProtocol):
    """A protocol that can only receive frames."""

    def __init__(self, frame_handler: FrameHandlerT | None = None) -> None:
        super().__init__(frame_handler)

        self._pause_writing = True

    async def send_cmd(self, cmd: Command, /) -> Command:
        """Raise an exception as the Protocol cannot send Commands."""
        raise exc.ProtocolError(f"{cmd._hdr}: < this Protocol is Read-Only")


class PortProtocol(_BaseProtocol):
    """A protocol that can receive frames and send Commands."""


FS20ProtocolT: TypeAlias = PortProtocol | ReadProtocol


def protocol_factory(
    frame_handler: FrameHandlerT | None = None,
    /,
    *,
    disable_sending: bool | None = False,
) -> FS20ProtocolT:
    """Create and return a FS20-specific async frame Protocol."""

    if disable_sending:
        _LOGGER.debug("ReadProtocol: Sending has been disabled")
        return ReadProtocol(frame_handler)

    return PortProtocol(frame_handler)


async def create_stack(
    frame_handler: FrameHandlerT | None = None,
    /,
    *,
    protocol_factory_: Callable[..., FS20ProtocolT] | None = None,
    transport_factory_: Callable[..., Awaitable[FS20TransportT]] | None = None,
    disable_sending: bool | None = False,
    **kwargs: Any,  # these are for the transport_factory
) -> tuple[FS20ProtocolT, FS20TransportT]:
    """Utility function to provide a Protocol / Transport pair.

    Architecture: gwy (client) -> frame (Protocol) -> bytes (Transport) -> CUL/log
    - send Commands via awaitable Protocol.send_cmd(cmd)
    - receive frames via the handler callback(s)
    """

    read_only = kwargs.get("frame_log") is not None
    disable_sending = disable_sending or read_only

    protocol: FS20ProtocolT = (protocol_factory_ or protocol_factory)(
        frame_handler, disable_sending=disable_sending
    )

    transport: FS20TransportT = await (transport_factory_ or transport_factory)(
        protocol, disable_sending=disable_sending, **kwargs
    )

    return protocol, transport
