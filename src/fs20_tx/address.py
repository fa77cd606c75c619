#!/usr/bin/env python3
"""FS20 RF - house codes & device addresses.

FS20 remotes are labelled in ELV notation (base 4, using the digits 1-4), e.g. house
code 12341234 with device 1111. On the air (and to culfw) the same values are hex,
e.g. 1B1B with 00. Both notations are accepted here, but hex is used internally.
"""

from __future__ import annotations

from functools import lru_cache

from .const import (
    ADDRESS_REGEX,
    DEVICE_REGEX,
    ELV_ADDRESS_REGEX,
    ELV_DEVICE_REGEX,
    ELV_HOUSE_CODE_REGEX,
    HOUSE_CODE_REGEX,
)


def elv_to_hex(elv_code: str) -> str:
    """Convert (say) '12341234' to '1B1B', or '1111' to '00'."""

    if not elv_code or len(elv_code) % 4 or any(c not in "1234" for c in elv_code):
        raise ValueError(f"Invalid ELV code: {elv_code}")

    value = 0
    for digit in elv_code:
        value = (value << 2) + int(digit) - 1
    return f"{value:0{len(elv_code) // 2}X}"


def hex_to_elv(hex_code: str) -> str:
    """Convert (say) '1B1B' to '12341234', or '00' to '1111'."""

    try:
        value = int(hex_code, 16)
    except (TypeError, ValueError) as err:
        raise ValueError(f"Invalid hex code: {hex_code}") from err

    digits = []
    for _ in range(len(hex_code) * 2):
        digits.append(str((value & 0x03) + 1))
        value >>= 2
    return "".join(reversed(digits))


def normalise_house_code(value: str) -> str:
    """Return a house code as 4 hex digits (accepts hex, or 8 digit ELV notation)."""

    value = str(value).strip().upper()
    if HOUSE_CODE_REGEX.match(value):
        return value
    if ELV_HOUSE_CODE_REGEX.match(value):
        return elv_to_hex(value)
    raise ValueError(f"Invalid house code: {value}")


def normalise_device(value: str) -> str:
    """Return a device (sub-)address as 2 hex digits (accepts hex, or ELV notation)."""

    value = str(value).strip().upper()
    if DEVICE_REGEX.match(value):
        return value
    if ELV_DEVICE_REGEX.match(value):
        return elv_to_hex(value)
    raise ValueError(f"Invalid device address: {value}")


@lru_cache(maxsize=256)
def normalise_address(value: str) -> str:
    """Return a full address (house code + device) as 6 hex digits.

    Accepts '123401', '1234 01', '1234-01', '12341234 1111' and '123412341111'.
    """

    value = str(value).strip().upper()
    for sep in (" ", "-", "_", ":"):
        if sep in value:
            house_code, _, device = value.partition(sep)
            return normalise_house_code(house_code) + normalise_device(device)

    if ADDRESS_REGEX.match(value):
        return value
    if ELV_ADDRESS_REGEX.match(value):
        return elv_to_hex(value[:8]) + elv_to_hex(value[8:])
    raise ValueError(f"Invalid address: {value}")


def is_valid_address(value: str) -> bool:
    try:
        normalise_address(value)
    except ValueError:
        return False
    return True


class Address:
    """The FS20 Address class (a house code and a device within that house)."""

    def __init__(self, address: str) -> None:
        """Create an address from a valid address (hex or ELV notation).

        Will raise ValueError if it is invalid.
        """

        self.id: str = normalise_address(address)
        self.house_code: str = self.id[:4]
        self.device: str = self.id[4:]

    @classmethod
    def from_parts(cls, house_code: str, device: str) -> Address:
        return cls(normalise_house_code(house_code) + normalise_device(device))

    def __repr__(self) -> str:
        return self.id

    def __str__(self) -> str:
        return f"{self.house_code}:{self.device}"

    def __eq__(self, other: object) -> bool:
        if not hasattr(other, "id"):
            return NotImplemented
        return self.id == other.id  # type: ignore[no-any-return]

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def elv(self) -> str:
        """Return the address in ELV notation, e.g. '12341234 1111'."""
        return f"{hex_to_elv(self.house_code)} {hex_to_elv(self.device)}"
