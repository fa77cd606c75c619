#!/usr/bin/env python3
"""FS20 RF - exceptions within the frame/protocol/transport layer."""

from __future__ import annotations


class _FS20BaseException(Exception):
    """Base class for all fs20_tx exceptions."""

    pass


class FS20Exception(_FS20BaseException):
    """Base class for all fs20_tx exceptions."""

    HINT: None | str = None

    def __init__(self, *args: object):
        super().__init__(*args)
        self.message: str | None = args[0] if args else None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.message and self.HINT:
            return f"{self.message} (hint: {self.HINT})"
        if self.message:
            return self.message
        if self.HINT:
            return f"Hint: {self.HINT}"
        return ""


class _FS20LowerError(FS20Exception):
    """A failure in the lower layer (parser, protocol, transport, serial)."""


########################################################################################
# Errors at/below the protocol/transport layer


class ProtocolError(_FS20LowerError):
    """An error occurred when sending or receiving frames."""


class TransportError(ProtocolError):
    """An error when sending or receiving frames (bytes)."""


class TransportSerialError(TransportError):
    """The transport's serial port has thrown an error."""

    HINT = "check the device name, and that the CUL is plugged in"


class TransportSourceInvalid(TransportError):
    """The source of frames is not valid type/configuration."""


########################################################################################
# Errors when processing frames & command codes


class ParserBaseError(_FS20LowerError):
    """The frame is corrupt/not internally consistent, or cannot be parsed."""


class FrameInvalid(ParserBaseError):
    """The frame is corrupt/not internally consistent."""


class NotAnFS20Frame(FrameInvalid):
    """The frame is not an FS20 frame (wrong frame type, or too short)."""


class UnknownCommandCode(ParserBaseError):
    """The frame's command byte is not a known FS20 command code."""


class CommandInvalid(_FS20LowerError):
    """The command is corrupt/not internally consistent."""


class UnsupportedCommand(CommandInvalid):
    """The (generic) command has no FS20 equivalent."""
