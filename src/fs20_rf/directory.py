#!/usr/bin/env python3
"""FS20 RF - the device directory (which item is bound to which FS20 address).

Bindings are supplied by one or more providers, which are queried in the order they
were registered: the first provider to know of an address (or item) wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from threading import Lock
from types import MappingProxyType
from typing import Any, Protocol

import voluptuous as vol

from fs20_tx.address import normalise_address

from . import exceptions as exc
from .schemas import SCH_BINDINGS, SZ_ADDRESS

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class DeviceBinding:
    """The binding of an item (of the automation bus) to an FS20 device."""

    address: str  # house code + device, as 6 hex digits
    item_name: str
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", normalise_address(self.address))
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @property
    def house_code(self) -> str:
        return self.address[:4]

    @property
    def device(self) -> str:
        return self.address[4:]


class BindingProvider(Protocol):
    """A source of device bindings."""

    def find_by_address(self, address: str) -> DeviceBinding | None: ...

    def find_by_item_name(self, item_name: str) -> DeviceBinding | None: ...


class DictBindingProvider:
    """A binding provider built from a mapping: {item_name: {address: ..., **options}}."""

    def __init__(self, bindings: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        try:
            config: dict[str, dict[str, Any]] = SCH_BINDINGS(dict(bindings or {}))
        except vol.Invalid as err:
            raise exc.BindingConfigInvalid(f"Invalid bindings: {err}") from err

        self._by_item_name: dict[str, DeviceBinding] = {}
        self._by_address: dict[str, DeviceBinding] = {}

        for item_name, options in config.items():
            binding = DeviceBinding(
                address=options[SZ_ADDRESS],
                item_name=item_name,
                options={k: v for k, v in options.items() if k != SZ_ADDRESS},
            )
            if other := self._by_address.get(binding.address):
                raise exc.BindingConfigInvalid(
                    f"Address {binding.address} is bound to both "
                    f"{other.item_name} and {item_name}"
                )
            self._by_address[binding.address] = binding
            self._by_item_name[item_name] = binding

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(bindings={len(self._by_item_name)})"

    def __len__(self) -> int:
        return len(self._by_item_name)

    @property
    def bindings(self) -> tuple[DeviceBinding, ...]:
        return tuple(self._by_item_name.values())

    def find_by_address(self, address: str) -> DeviceBinding | None:
        return self._by_address.get(address)

    def find_by_item_name(self, item_name: str) -> DeviceBinding | None:
        return self._by_item_name.get(item_name)


class DeviceDirectory:
    """An ordered list of binding providers (first match wins).

    Lookups iterate a snapshot of the providers, and so never block each other (nor a
    change to the providers); changes are serialised and replace the snapshot.
    """

    def __init__(self, providers: Iterable[BindingProvider] = ()) -> None:
        self._lock = Lock()
        self._providers: tuple[BindingProvider, ...] = tuple(providers)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(providers={len(self._providers)})"

    @property
    def providers(self) -> tuple[BindingProvider, ...]:
        """Return a snapshot of the providers, in registration order."""
        return self._providers

    def add_provider(self, provider: BindingProvider) -> Callable[[], None]:
        """Append a provider (lowest priority).

        Returns a callback that can be used to subsequently remove the provider.
        """

        def del_provider() -> None:
            with self._lock:
                self._providers = tuple(p for p in self._providers if p is not provider)

        with self._lock:
            if provider not in self._providers:
                self._providers = self._providers + (provider,)

        return del_provider

    def set_providers(self, providers: Iterable[BindingProvider]) -> None:
        """Replace all the providers, atomically."""

        providers = tuple(providers)
        with self._lock:
            self._providers = providers

    def find_by_address(self, address: str) -> DeviceBinding | None:
        """Return the binding for an address (6 hex digits), or None if unbound."""

        for provider in self._providers:  # a snapshot, as it is an immutable tuple
            if (binding := provider.find_by_address(address)) is not None:
                return binding
        return None

    def find_by_item_name(self, item_name: str) -> DeviceBinding | None:
        """Return the binding for an item, or None if unbound."""

        for provider in self._providers:
            if (binding := provider.find_by_item_name(item_name)) is not None:
                return binding
        return None
