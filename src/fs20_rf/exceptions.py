#!/usr/bin/env python3
"""FS20 RF - exceptions above the frame/protocol/transport layer."""

from __future__ import annotations

from fs20_tx.exceptions import (
    CommandInvalid as CommandInvalid,
    FS20Exception as FS20Exception,
    NotAnFS20Frame as NotAnFS20Frame,
    ProtocolError as ProtocolError,
    TransportError as TransportError,
    UnknownCommandCode as UnknownCommandCode,
    UnsupportedCommand as UnsupportedCommand,
)


class _FS20UpperError(FS20Exception):
    """A failure in the upper layer (configuration, bindings, dispatch)."""


########################################################################################
# Errors above the protocol/transport layer, incl. configuration & bindings


class ConfigurationError(_FS20UpperError):
    """The gateway configuration is invalid (e.g. the device is missing)."""

    HINT = "the serial port of the CUL must be configured as 'device'"


class BindingConfigInvalid(_FS20UpperError):
    """The device bindings are invalid (e.g. an address is bound twice)."""
