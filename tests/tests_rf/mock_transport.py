#!/usr/bin/env python3
"""An in-memory transport (a CUL without a serial port) useful for testing."""

import asyncio
import functools
from datetime import datetime as dt
from typing import Any

from fs20_tx import exceptions as exc
from fs20_tx.const import SZ_VERSION
from fs20_tx.protocol import FS20ProtocolT

CUL_VERSION = "V 1.67 CUL868"


class MockTransport:
    """Record the frames that are written, and inject the frames that are read."""

    def __init__(
        self,
        protocol: FS20ProtocolT,
        /,
        *,
        disable_sending: bool = False,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self._protocol = protocol
        self._loop = asyncio.get_running_loop()

        self._extra = {SZ_VERSION: CUL_VERSION} | (extra or {})
        self._disable_sending = disable_sending
        self._closing = False

        self.tx_log: list[str] = []
        self.write_error: Exception | None = None  # raised by the next write_frame()

        self._loop.call_soon(
            functools.partial(self._protocol.connection_made, self, cul=True)
        )

    def get_extra_info(self, name: str, default: Any = None) -> Any:
        return self._extra.get(name, default)

    def is_closing(self) -> bool:
        return self._closing

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        self._loop.call_soon(self._protocol.connection_lost, None)

    async def write_frame(self, frame: str) -> None:
        if self._disable_sending:
            raise exc.TransportError("Sending has been disabled")
        if self._closing:
            raise exc.TransportError("Transport is closing or has closed")
        if self.write_error:
            err, self.write_error = self.write_error, None
            raise err

        self.tx_log.append(frame)

    def inject(self, frame: str) -> None:
        """Pass a frame to the protocol, as if it was received by the CUL."""
        self._protocol.frame_received(dt.now(), frame)


class MockTransportFactory:
    """A drop-in for transport_factory() that creates MockTransports."""

    def __init__(self) -> None:
        self.transports: list[MockTransport] = []
        self.open_error: Exception | None = None  # raised when opening the port
        self.port_configs: list[dict[str, Any]] = []  # as used to open each port

    @property
    def transport(self) -> MockTransport:
        return self.transports[-1]

    async def __call__(
        self,
        protocol: FS20ProtocolT,
        /,
        *,
        port_name: str | None = None,
        port_config: dict[str, Any] | None = None,
        frame_log: Any = None,
        disable_sending: bool | None = False,
        extra: dict[str, Any] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> MockTransport:
        if self.open_error:
            raise self.open_error

        self.port_configs.append(dict(port_config or {}))
        transport = MockTransport(
            protocol, disable_sending=bool(disable_sending), extra=extra
        )
        self.transports.append(transport)

        await protocol.wait_for_connection_made()
        return transport
