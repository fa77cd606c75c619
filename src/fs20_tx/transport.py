#!/usr/bin/env python3
"""FS20 RF - FS20 compatible frame transport (for CUL/culfw transceivers).

Operates at the frame layer of: gateway - command - frame - CUL

A remote CUL can be used via a pyserial URL, e.g. fs20_client monitor
'rfc2217://localhost:5001' (see ser2net), and a frame log can be replayed to a
client via a pair of ptys (see socat).

culfw will only report received frames after it has been sent 'X21' (and it will
respond to 'V' with its version string). See: http://culfw.de/commandref.html
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
import os
from collections.abc import Iterable
from datetime import datetime as dt
from string import printable
from typing import TYPE_CHECKING, Any, Final, TextIO, TypeAlias

import serial_asyncio  # type: ignore[import-untyped]
from serial import (  # type: ignore[import-untyped]
    Serial,
    SerialException,
    serial_for_url,
)

from . import exceptions as exc
from .const import (
    CULFW_LIMIT_OVERFLOW,
    CULFW_REPORTING_CMD,
    CULFW_VERSION_CMD,
    DEFAULT_VERSION_TIMEOUT,
    MIN_INTER_WRITE_GAP,
    SZ_VERSION,
)
from .logger import FRAME_LOGGER
from .schemas import SCH_SERIAL_PORT_CONFIG, PortConfigT

if TYPE_CHECKING:
    from .protocol import FS20ProtocolT


_DEFAULT_TIMEOUT_PORT: Final[float] = DEFAULT_VERSION_TIMEOUT + 1

SZ_READER_TASK: Final = "reader_task"

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_FRAME_LOGGING: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


def _str(value: bytes) -> str:
    try:
        result = "".join(
            c for c in value.decode("ascii", errors="strict") if c in printable
        )
    except UnicodeDecodeError:
        _LOGGER.warning("%s < Cant decode bytestream (ignoring)", value)
        return ""
    return result


def _split_log_line(line: str) -> tuple[str, str]:
    """Split a frame log line into its (optional) timestamp and its frame.

    Accepts 'F12340111', and '2023-11-05T21:14:31.123456 F12340111 # comment'.
    """

    line = line.split("#", 1)[0].strip()
    dtm_str, _, frame = line.rpartition(" ")
    return dtm_str.strip(), frame


class _FileTransportAbstractor:
    """Do the bare minimum to abstract a transport from its underlying class."""

    def __init__(
        self,
        frame_source: TextIO,
        protocol: FS20ProtocolT,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._frame_source = frame_source

        self._protocol = protocol
        self._loop = loop or asyncio.get_event_loop()


class _PortTransportAbstractor(serial_asyncio.SerialTransport):  # type: ignore[misc, no-any-unimported]
    """Do the bare minimum to abstract a transport from its underlying class."""

    serial: Serial  # type: ignore[no-any-unimported]

    def __init__(  # type: ignore[no-any-unimported]
        self,
        serial_instance: Serial,
        protocol: FS20ProtocolT,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        super().__init__(loop or asyncio.get_event_loop(), protocol, serial_instance)


# ### Base classes (common to all Transports) #########################################
# ### Code shared by all R/O, R/W transport types (File, Serial)


class _ReadTransport:
    """Interface for read-only transports."""

    _protocol: FS20ProtocolT = None  # type: ignore[assignment]
    _loop: asyncio.AbstractEventLoop

    def __init__(
        self, *args: Any, extra: dict[str, Any] | None = None, **kwargs: Any
    ) -> None:
        super().__init__(*args, loop=kwargs.pop("loop", None))

        self._extra: dict[str, Any] = {} if extra is None else extra
        self._extra.setdefault(SZ_VERSION, None)

        self._closing: bool = False
        self._reading: bool = False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._protocol})"

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The asyncio event loop as declared by SerialTransport."""
        return self._loop

    def get_extra_info(self, name: str, default: Any = None) -> Any:
        return self._extra.get(name, default)

    def is_closing(self) -> bool:
        """Return True if the transport is closing or has closed."""
        return self._closing

    def _close(self, exc: Exception | None = None) -> None:
        """Inform the protocol that this transport has closed."""

        if self._closing:
            return
        self._closing = True

        self.loop.call_soon_threadsafe(
            functools.partial(self._protocol.connection_lost, exc)
        )

    def close(self) -> None:
        """Close the transport gracefully."""
        self._close()

    def is_reading(self) -> bool:
        """Return True if the transport is receiving."""
        return self._reading

    def pause_reading(self) -> None:
        """Pause the receiving end (no data to protocol.frame_received())."""
        self._reading = False

    def resume_reading(self) -> None:
        """Resume the receiving end."""
        self._reading = True

    def _make_connection(self) -> None:
        self._reading = True
        self.loop.call_soon_threadsafe(
            functools.partial(self._protocol.connection_made, self, cul=True)
        )

    # NOTE: all transports should call this method when they receive a frame
    def _frame_read(self, dtm: dt, frame: str) -> None:
        """Pass any (non-blank) frames to the protocol's callback."""

        if not (frame := frame.strip()):
            return

        if self._closing is True:
            _LOGGER.debug("%s < Transport is closing or has closed (ignoring)", frame)
            return

        FRAME_LOGGER.info("%s", frame)

        self.loop.call_soon_threadsafe(self._protocol.frame_received, dtm, frame)

    async def write_frame(self, frame: str) -> None:
        """Transmit the frame via the underlying handler."""
        raise exc.TransportSerialError("This transport is read only")


class _FullTransport(_ReadTransport):  # asyncio.Transport
    """Interface representing a bidirectional transport."""

    def __init__(
        self, *args: Any, disable_sending: bool = False, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)

        self._disable_sending = disable_sending

    # NOTE: Protocols call write_frame(), not write()
    def write(self, data: bytes) -> None:
        """Write the data to the underlying handler."""
        raise exc.TransportError("write() not implemented, use write_frame() instead")

    async def write_frame(self, frame: str) -> None:
        """Transmit the frame via the underlying handler."""

        if self._disable_sending is True:
            raise exc.TransportError("Sending has been disabled")
        if self._closing is True:
            raise exc.TransportError("Transport is closing or has closed")

        await self._write_frame(frame)

    async def _write_frame(self, frame: str) -> None:
        """Write some data bytes to the underlying transport."""
        raise NotImplementedError("_write_frame() not implemented here")


# ### Transports ######################################################################
# ### Implement the transports for File (R/O), Serial


class FileTransport(_ReadTransport, _FileTransportAbstractor):
    """Receive frames from a read-only source such as a frame log."""

    def __init__(self, *args: Any, disable_sending: bool = True, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

        if bool(disable_sending) is False:
            raise exc.TransportSourceInvalid("This Transport cannot send frames")

        self._extra[SZ_READER_TASK] = self._reader_task = self._loop.create_task(
            self._start_reader(), name="FileTransport._start_reader()"
        )

        self._make_connection()

    async def _start_reader(self) -> None:
        try:
            await self._reader()
        except Exception as err:
            self._close(exc=err)
        else:
            self._close()

    # NOTE: self._frame_read() invoked from here
    async def _reader(self) -> None:
        """Loop through the frame source for Frames and process them."""

        if not isinstance(self._frame_source, Iterable):
            raise exc.TransportSourceInvalid(
                f"Frame source is not a file: {self._frame_source!r}"
            )

        for line in self._frame_source:
            while not self._reading:
                await asyncio.sleep(0.001)

            # can be blank lines, or comments, in annotated log files
            if (line := line.strip()) and line[:1] != "#":
                dtm_str, frame = _split_log_line(line)
                try:
                    dtm = dt.fromisoformat(dtm_str) if dtm_str else dt.now()
                except ValueError:
                    _LOGGER.warning("%s < Invalid timestamp (ignoring)", line)
                else:
                    self._frame_read(dtm, frame)

            await asyncio.sleep(0)  # NOTE: big performance penalty if delay >0

    def _close(self, exc: Exception | None = None) -> None:
        """Close the transport (cancel any outstanding tasks)."""

        super()._close(exc)

        if self._reader_task and self._reader_task is not asyncio.current_task():
            self._reader_task.cancel()


class PortTransport(_FullTransport, _PortTransportAbstractor):
    """Send/receive frames async to/from a CUL (running culfw) via a serial port.

    See: http://culfw.de/culfw.html
    """

    _init_fut: asyncio.Future[str]
    _init_task: asyncio.Task[None] | None = None

    _recv_buffer: bytes = b""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

        self._leaker_sem = asyncio.BoundedSemaphore()
        self._leaker_task = self._loop.create_task(
            self._leak_sem(), name="PortTransport._leak_sem()"
        )

        self._init_fut = self._loop.create_future()
        self._init_task = self._loop.create_task(
            self._create_connection(), name="PortTransport._create_connection()"
        )

    async def _create_connection(self) -> None:
        """Invoke the Protocol's connection_made() callback after the culfw handshake.

        The version is requested first (culfw replies with, say, 'V 1.67 CUL868'), and
        then the CUL is instructed to report all received frames. These are commands to
        the CUL itself (not to be transmitted), so are sent even when sending is
        disabled.
        """

        try:
            await self._write_frame(CULFW_VERSION_CMD)
        except exc.TransportSerialError:  # the transport has been aborted
            return

        try:
            version = await asyncio.wait_for(self._init_fut, DEFAULT_VERSION_TIMEOUT)
        except TimeoutError:
            _LOGGER.warning(
                "No version string from %s within %s secs (is it running culfw?)",
                self.serial.name,
                DEFAULT_VERSION_TIMEOUT,
            )
        else:
            _LOGGER.info("Connected to %s: %s", self.serial.name, version)

        try:
            await self._write_frame(CULFW_REPORTING_CMD)
        except exc.TransportSerialError:
            return
        self._make_connection()

    async def _leak_sem(self) -> None:
        """Used to enforce a minimum time between calls to self.write()."""
        while True:
            await asyncio.sleep(MIN_INTER_WRITE_GAP)
            with contextlib.suppress(ValueError):
                self._leaker_sem.release()

    def _line_read(self, dtm: dt, line: str) -> None:
        """Process a line from culfw, which is not always a frame."""

        if line[:2] == f"{CULFW_VERSION_CMD} ":
            self._extra[SZ_VERSION] = line
            if not self._init_fut.done():
                self._init_fut.set_result(line)
            return

        if line == CULFW_LIMIT_OVERFLOW:
            _LOGGER.warning(
                "%s < The CUL has reached its duty cycle limit (1%% per hour): "
                "frames will not be sent until more time has passed",
                line,
            )
            return

        if self._reading:
            self._frame_read(dtm, line)

    # NOTE: self._frame_read() invoked from here
    def _read_ready(self) -> None:
        """Make Frames from the read data and process them."""

        def bytes_read(data: bytes) -> Iterable[tuple[dt, bytes]]:
            self._recv_buffer += data
            if b"\r\n" in self._recv_buffer:
                lines = self._recv_buffer.split(b"\r\n")
                self._recv_buffer = lines[-1]
                for line in lines[:-1]:
                    yield dt.now(), line + b"\r\n"

        try:
            data: bytes = self.serial.read(self._max_read_size)
        except SerialException as err:
            if not self._closing:
                self._close(exc=err)  # have to use _close() to pass in exception
            return

        if not data:
            return

        for dtm, raw_line in bytes_read(data):
            if _DBG_FORCE_FRAME_LOGGING:
                _LOGGER.warning("Rx: %s", raw_line)
            elif _LOGGER.getEffectiveLevel() == logging.INFO:  # log for INFO not DEBUG
                _LOGGER.info("Rx: %s", raw_line)

            if line := _str(raw_line).strip():
                self._line_read(dtm, line)

    async def write_frame(self, frame: str) -> None:  # Protocols call this, not write()
        """Transmit the frame via the underlying handler."""

        await self._leaker_sem.acquire()  # MIN_INTER_WRITE_GAP
        await super().write_frame(frame)

    async def _write_frame(self, frame: str) -> None:
        """Write some data bytes to the underlying transport."""

        data = bytes(frame, "ascii") + b"\r\n"

        if _DBG_FORCE_FRAME_LOGGING:
            _LOGGER.warning("Tx:     %s", data)
        elif _LOGGER.getEffectiveLevel() == logging.INFO:  # log for INFO not DEBUG
            _LOGGER.info("Tx:     %s", data)

        try:
            self._write(data)
        except SerialException as err:
            self._abort(err)
            raise exc.TransportSerialError(f"Failed to write: {frame}") from err

    def _write(self, data: bytes) -> None:
        self.serial.write(data)

    def _abort(self, exc: Exception) -> None:  # used by serial_asyncio.SerialTransport
        super()._abort(exc)

        if self._init_task:
            self._init_task.cancel()
        if self._leaker_task:
            self._leaker_task.cancel()

    def _close(self, exc: Exception | None = None) -> None:
        """Close the transport (cancel any outstanding tasks)."""

        super()._close(exc)

        if self._init_task:
            self._init_task.cancel()
        if self._leaker_task:
            self._leaker_task.cancel()

        self._remove_reader()
        with contextlib.suppress(SerialException):
            self.serial.close()


FS20TransportT: TypeAlias = FileTransport | PortTransport


async def transport_factory(
    protocol: FS20ProtocolT,
    /,
    *,
    port_name: str | None = None,
    port_config: PortConfigT | dict[str, Any] | None = None,
    frame_log: TextIO | None = None,
    disable_sending: bool | None = False,
    extra: dict[str, Any] | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> FS20TransportT:
    """Create and return a FS20-specific async frame Transport."""

    def get_serial_instance(  # type: ignore[no-any-unimported]
        ser_name: str, ser_config: PortConfigT | dict[str, Any] | None
    ) -> Serial:
        """Return a Serial instance for the given port name and config.

        May: raise TransportSourceInvalid("Unable to open serial port...")
        """
        ser_config = SCH_SERIAL_PORT_CONFIG(dict(ser_config or {}))

        try:
            ser_obj = serial_for_url(ser_name, **ser_config)
        except (SerialException, ValueError) as err:
            _LOGGER.error(
                "Failed to open %s (config: %s): %s", ser_name, ser_config, err
            )
            raise exc.TransportSourceInvalid(
                f"Unable to open the serial port: {ser_name}"
            ) from err

        # the CUL is usually a CDC-ACM device, which may not support this
        with contextlib.suppress(AttributeError, NotImplementedError, ValueError):
            ser_obj.set_low_latency_mode(True)

        return ser_obj

    def issue_warning() -> None:
        """Warn of the perils of semi-supported configurations."""
        _LOGGER.warning(
            f"{'Windows' if os.name == 'nt' else 'This type of serial interface'} "
            "is not fully supported by this library: "
            "please don't report any Transport/Protocol errors/warnings, "
            "unless they are reproducable with a standard configuration "
            "(e.g. linux with a local serial port)"
        )

    if len([x for x in (frame_log, port_name) if x is not None]) != 1:
        raise exc.TransportSourceInvalid(
            "Frame source must be exactly one of: frame_log, port_name"
        )

    if frame_log is not None:
        return FileTransport(frame_log, protocol, extra=extra, loop=loop)

    assert port_name is not None  # mypy check

    ser_instance = get_serial_instance(port_name, port_config)

    if os.name == "nt" or ser_instance.portstr[:7] in ("rfc2217", "socket:"):
        issue_warning()

    transport = PortTransport(
        ser_instance,
        protocol,
        disable_sending=bool(disable_sending),
        extra=extra,
        loop=loop,
    )

    # the version handshake may take up to DEFAULT_VERSION_TIMEOUT secs
    try:
        await protocol.wait_for_connection_made(timeout=_DEFAULT_TIMEOUT_PORT)
    except exc.TransportError:
        transport.close()
        raise
    return transport
