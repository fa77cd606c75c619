#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers.

Works with (amongst others):
- FS20 ST/SU/DI (switches, dimmers)
- FS20 S4/S8/S20 (remotes & wall buttons)
- any other FS20 device that can be learnt by a CUL running culfw
"""

from __future__ import annotations

import logging

from fs20_tx import Address, Command, Frame  # noqa: F401
from fs20_tx.version import VERSION  # noqa: F401

from .directory import (  # noqa: F401
    BindingProvider,
    DeviceBinding,
    DeviceDirectory,
    DictBindingProvider,
)
from .events import (  # noqa: F401
    CommandEvent,
    EventPublisher,
    SemanticEventT,
    StateEvent,
)
from .gateway import Gateway, GatewayConfig  # noqa: F401

_LOGGER = logging.getLogger(__name__)


class GracefulExit(SystemExit):
    code = 1
