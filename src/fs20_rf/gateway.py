#!/usr/bin/env python3
"""FS20 RF - the gateway (i.e. a CUL running culfw)."""

from __future__ import annotations

import asyncio
import logging
import warnings
from collections.abc import Mapping
from concurrent.futures import Future
from dataclasses import dataclass, replace
from threading import Lock
from types import TracebackType
from typing import Any, TextIO

import voluptuous as vol

from fs20_tx import Engine, set_frame_logging_config
from fs20_tx.command import SemanticCommandT
from fs20_tx.const import (
    DEFAULT_BAUDRATE,
    DEFAULT_REFRESH_INTERVAL,
    SZ_BAUDRATE,
    SZ_PARITY,
    DimMode,
)
from fs20_tx.schemas import PARITY_MAP, SZ_TIMEOUT, PortConfigT

from . import exceptions as exc
from .directory import DeviceDirectory, DictBindingProvider
from .dispatcher import process_command, process_frame
from .events import EventPublisher, LoggingPublisher
from .schemas import (
    SCH_GATEWAY_CONFIG,
    SZ_DEVICE,
    SZ_DIMMODE,
    SZ_DISABLE_SENDING,
    SZ_FRAME_LOG,
    SZ_REFRESH,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class GatewayConfig:
    """The (immutable) gateway configuration, it is replaced rather than updated."""

    device: str | None = None
    baudrate: int = DEFAULT_BAUDRATE
    parity: str = PARITY_MAP["NONE"]  # as used by pyserial
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL  # msecs
    dim_mode: DimMode = DimMode.UP_DOWN
    disable_sending: bool = False

    @property
    def port_config(self) -> PortConfigT:
        return {SZ_BAUDRATE: self.baudrate, SZ_PARITY: self.parity, SZ_TIMEOUT: 0}

    def _connection(self) -> tuple[str | None, int, str]:
        return self.device, self.baudrate, self.parity


def _merge_config(prev: GatewayConfig, config: dict[str, Any]) -> GatewayConfig:
    """Return a new config from a validated config dict, and the previous config.

    A key that is absent (or blank) retains its previous value, as does an unknown dim
    mode (which is not fatal).
    """

    dim_mode = prev.dim_mode
    if value := config.get(SZ_DIMMODE):
        try:
            dim_mode = DimMode(value)
        except ValueError:
            _LOGGER.warning(
                "Invalid %s: %s (only %s are supported), retaining: %s",
                SZ_DIMMODE,
                value,
                "|".join(DimMode),
                dim_mode,
            )
    _LOGGER.debug("Dim mode is: %s", dim_mode)

    return replace(
        prev,
        device=config.get(SZ_DEVICE) or prev.device,
        baudrate=config.get(SZ_BAUDRATE) or prev.baudrate,
        parity=config.get(SZ_PARITY) or prev.parity,
        refresh_interval=config.get(SZ_REFRESH) or prev.refresh_interval,
        dim_mode=dim_mode,
        disable_sending=config[SZ_DISABLE_SENDING],
    )


def _validate_config(config: Mapping[str, Any]) -> dict[str, Any]:
    try:
        return SCH_GATEWAY_CONFIG(dict(config))  # type: ignore[no-any-return]
    except vol.Invalid as err:
        raise exc.ConfigurationError(f"Invalid configuration: {err}") from err


class Gateway(Engine):
    """The gateway class."""

    def __init__(
        self,
        port_name: str | None = None,
        input_file: TextIO | None = None,
        config: Mapping[str, Any] | None = None,
        bindings: Mapping[str, Mapping[str, Any]] | None = None,
        publisher: EventPublisher | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        **kwargs: Any,
    ) -> None:
        if kwargs.pop("debug_mode", None):
            _LOGGER.setLevel(logging.DEBUG)

        cfg = _validate_config(config or {})
        self.config = _merge_config(GatewayConfig(), cfg)

        if port_name:
            self.config = replace(self.config, device=port_name)
        elif not input_file and not self.config.device:
            raise exc.ConfigurationError(f"The {SZ_DEVICE} is not configured")

        super().__init__(
            port_name or (None if input_file else self.config.device),
            input_file=input_file,
            port_config=self.config.port_config,
            loop=loop,
            disable_sending=self.config.disable_sending,
            **kwargs,
        )

        self._config_lock = Lock()

        self._frame_log: dict[str, Any] | None = cfg[SZ_FRAME_LOG]

        self.directory = DeviceDirectory()
        if bindings:
            self.directory.add_provider(DictBindingProvider(bindings))

        self.publisher: EventPublisher = publisher or LoggingPublisher()

        self._refresh_task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        if not self.ser_name:
            return f"Gateway(input_file={self._input_file})"
        return f"Gateway(port_name={self.ser_name}, port_config={self._port_config})"

    async def __aenter__(self) -> Gateway:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.stop()

    @property
    def is_active(self) -> bool:
        """Return True if the gateway has an open connection to its transceiver."""
        return self._transport is not None and not self._transport.is_closing()

    def updated(self, config: Mapping[str, Any] | None) -> bool:
        """Apply a new configuration, replacing the old one (atomically).

        Raise ConfigurationError if the device is missing (or the config is invalid).
        Returns True if the connection settings have changed, so that the transceiver
        has to be re-opened (see: async_updated()).
        """

        if config is None:
            return False

        cfg = _validate_config(config)
        if not cfg.get(SZ_DEVICE):
            raise exc.ConfigurationError(f"The {SZ_DEVICE} is not configured")

        with self._config_lock:
            prev, self.config = self.config, _merge_config(self.config, cfg)

            if self._input_file:  # the frame source is not a serial port
                return False

            self.ser_name = self.config.device
            self._port_config = self.config.port_config

        return self.config._connection() != prev._connection()

    async def async_updated(self, config: Mapping[str, Any] | None) -> None:
        """Apply a new configuration, and (re-)open the transceiver as required."""

        if not self.updated(config) and self.is_active:
            return

        if self.is_active:
            _LOGGER.info("Re-opening %s, as its settings have changed", self.ser_name)
            await self.stop()
        await self.start()

    async def start(self) -> None:
        """Start the Gateway (open the transceiver, and start the refresh tick).

        If the transceiver can't be opened, the gateway is left disabled (the error is
        logged) until it is reconfigured.
        """

        if self._frame_log:
            await set_frame_logging_config(**self._frame_log)

        try:
            await super().start()
        except exc.TransportError as err:
            _LOGGER.error("Can't open the CUL (%s): %s", self.ser_name, err)
            await super().stop()
            return

        if self.ser_name:
            self._refresh_task = self._loop.create_task(
                self._refresh_loop(), name="Gateway._refresh_loop()"
            )
            self.add_task(self._refresh_task)

    async def stop(self) -> None:
        """Stop the Gateway and tidy up."""

        await super().stop()  # incl. the refresh task, and unsubscribe
        self._refresh_task = None

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.refresh_interval / 1000)
            self.execute()

    def execute(self) -> None:
        """The refresh tick: there is nothing to poll, as FS20 devices only transmit."""
        _LOGGER.debug("%s: Refresh tick (nothing to do)", self)

    def _frame_handler(self, frame: str) -> None:
        """A callback to handle frames from the protocol stack."""

        super()._frame_handler(frame)
        process_frame(self, frame)

    async def async_send_command(
        self, item_name: str, command: SemanticCommandT
    ) -> str | None:
        """Send a generic command to the FS20 device that is bound to an item.

        Returns the frame that was sent, if any. A failure to send is logged, and
        reported to the caller as a RuntimeWarning; it is not retried.
        """

        if (cmd := process_command(self, item_name, command)) is None:
            return None

        try:
            await self.async_send_cmd(cmd)
        except exc.ProtocolError as err:  # incl. TransportError
            _LOGGER.error("%s: Failed to send %s: %s", item_name, cmd, err)
            warnings.warn(
                f"{item_name}: Failed to send {cmd}: {err}", RuntimeWarning, stacklevel=2
            )
            return None

        return str(cmd)

    def send_command(
        self, item_name: str, command: SemanticCommandT
    ) -> Future[str | None]:
        """Schedule an async_send_command() from any thread, and return a Future."""

        return asyncio.run_coroutine_threadsafe(
            self.async_send_command(item_name, command), self._loop
        )
