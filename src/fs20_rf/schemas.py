#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers.

Schema processor for upper layer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Final

import voluptuous as vol

from fs20_tx.address import normalise_address
from fs20_tx.const import (
    BAUDRATES,
    SZ_BAUDRATE,
    SZ_PARITY,
)
from fs20_tx.schemas import (  # noqa: F401
    SCH_PARITY,
    SZ_DISABLE_SENDING,
    SZ_FRAME_LOG,
    ConvertParity,
    sch_frame_log_dict_factory,
)

_LOGGER = logging.getLogger(__name__)


#
# 0/3: Schema strings
SZ_CONFIG: Final = "config"
SZ_BINDINGS: Final = "bindings"

SZ_DEVICE: Final = "device"
SZ_REFRESH: Final = "refresh"
SZ_DIMMODE: Final = "dimmode"

SZ_ADDRESS: Final = "address"


def NormaliseAddress() -> Callable[[str], str]:
    def normalise(node_value: str) -> str:
        try:
            return normalise_address(node_value)
        except ValueError as err:
            raise vol.Invalid(f"invalid FS20 address: {node_value}") from err

    return normalise


#
# 1/3: Gateway configuration (the flat keys of the binding configuration)
SCH_GATEWAY_DICT = {
    vol.Optional(SZ_DEVICE): vol.Any(None, vol.All(str, vol.Strip)),
    vol.Optional(SZ_BAUDRATE): vol.All(vol.Coerce(int), vol.In(BAUDRATES)),
    vol.Optional(SZ_PARITY): vol.All(SCH_PARITY, ConvertParity()),  # GatewayConfig has the defaults
    vol.Optional(SZ_REFRESH): vol.All(vol.Coerce(int), vol.Range(min=1)),  # msecs
    vol.Optional(SZ_DIMMODE): vol.Any(None, vol.All(str, vol.Strip, vol.Upper)),
    vol.Optional(SZ_DISABLE_SENDING, default=False): bool,
}
SCH_GATEWAY_DICT |= sch_frame_log_dict_factory(default_backups=0)

SCH_GATEWAY_CONFIG = vol.Schema(SCH_GATEWAY_DICT, extra=vol.REMOVE_EXTRA)

#
# 2/3: Device bindings, {item_name: {address: ..., **options}}
SCH_BINDING = vol.Schema(
    {vol.Required(SZ_ADDRESS): vol.All(str, NormaliseAddress())},
    extra=vol.ALLOW_EXTRA,  # any other options are for the consumers of the binding
)

SCH_BINDINGS = vol.Schema({vol.All(str, vol.Length(min=1)): SCH_BINDING})

#
# 3/3: Global configuration (e.g. a JSON config file for the client)
SCH_GLOBAL_CONFIG = vol.Schema(
    {
        vol.Optional(SZ_CONFIG, default={}): dict,  # validated by the Gateway
        vol.Optional(SZ_BINDINGS, default={}): SCH_BINDINGS,
    },
    extra=vol.PREVENT_EXTRA,
)
