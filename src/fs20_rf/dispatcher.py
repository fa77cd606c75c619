#!/usr/bin/env python3
"""FS20 RF - Decode/process a frame (inbound), or a command (outbound)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from fs20_tx import Command, decode, encode, is_fs20_frame, parse_frame
from fs20_tx.command import SemanticCommandT

from . import exceptions as exc
from .dimming import resolve_event
from .events import SemanticEventT, publish

if TYPE_CHECKING:
    from . import Gateway

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_LOG_FRAMES: Final[bool] = False  # useful for dev/test

_LOGGER = logging.getLogger(__name__)


__all__ = ["process_command", "process_frame"]


def process_frame(gwy: Gateway, raw: str) -> SemanticEventT | None:
    """Decode a received frame and publish its event (if any) for the bound item.

    Every failure is local to the frame: it is logged, and the frame is dropped.
    Returns the event that was published, if any.
    """

    if not is_fs20_frame(raw):  # the other protocols of the CUL are of no interest
        return None

    try:
        frame = parse_frame(raw)
    except exc.NotAnFS20Frame as err:
        _LOGGER.warning("%s < %s", raw, err)
        return None

    if (binding := gwy.directory.find_by_address(frame.address.upper())) is None:
        _LOGGER.debug("%s < No binding for address %s (ignoring)", raw, frame.address)
        return None

    try:
        fs20_cmd = decode(frame.command_hex)
    except exc.UnknownCommandCode as err:
        _LOGGER.warning("%s < %s (for %s)", raw, err, binding.item_name)
        return None

    if (event := resolve_event(fs20_cmd, gwy.config.dim_mode)) is None:
        _LOGGER.info(
            "%s < %s has no equivalent event (for %s)",
            raw,
            fs20_cmd.name,
            binding.item_name,
        )
        return None

    if _DBG_FORCE_LOG_FRAMES:
        _LOGGER.warning("%s < %s: %s", raw, binding.item_name, event)
    else:
        _LOGGER.debug("%s < %s: %s", raw, binding.item_name, event)

    try:
        publish(gwy.publisher, binding.item_name, event)
    except Exception as err:  # protect this layer from the bus
        _LOGGER.exception("%s < Failed to publish %s: %s", raw, event, err)
        return None

    return event


def process_command(
    gwy: Gateway, item_name: str, command: SemanticCommandT
) -> Command | None:
    """Return the Command (to send) for a generic command to an item, or None.

    None is returned if the item is not bound to an FS20 device (silently), or if the
    command has no FS20 equivalent (with a warning).
    """

    if (binding := gwy.directory.find_by_item_name(item_name)) is None:
        _LOGGER.debug("%s: No binding for item (ignoring %s)", item_name, command)
        return None

    try:
        fs20_cmd = encode(command)
    except exc.UnsupportedCommand as err:
        _LOGGER.warning("%s: %s", item_name, err)
        return None

    return gwy.create_cmd(binding.address, fs20_cmd)
